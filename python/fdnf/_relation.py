# This file is part of fd_normal_form.
#
# Developed for the LSST Data Management System.
# This product includes software developed by the LSST Project
# (http://www.lsst.org).
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

from __future__ import annotations

__all__ = ("Relation", "RelationBuilder")

import json
from collections.abc import Iterable, Mapping, Set
from types import MappingProxyType
from typing import TYPE_CHECKING, Generic

from lsst.utils.classes import immutable
from lsst.utils.logging import getLogger

from ._exceptions import EmptyDeterminantError, UnexpectedAttributeError
from ._keys import _A, Key, KeySet, is_superkey_of

if TYPE_CHECKING:
    from ._solver import Solver


_LOG = getLogger(__name__)


def _format_attributes(attributes: Iterable[_A]) -> str:
    return f"[{', '.join(sorted(str(a) for a in attributes))}]"


@immutable
class Relation(Generic[_A]):
    """An immutable store of functional dependencies.

    For every attribute, a relation holds the set of determinants (`Key`
    objects) known to functionally determine it.  Relations are usually
    created by a `RelationBuilder` or by the closure methods of another
    relation, which never modify ``self``.

    Parameters
    ----------
    data : `~collections.abc.Mapping` [ `Attribute`, \
            `~collections.abc.Set` [ `Key` ] ]
        Determinants for each attribute.  Every determinant must be
        non-empty; this is not checked here.
    attributes : `~collections.abc.Set` [ `Attribute` ]
        All attributes of the relation, including those that have no
        determinant.
    forced_attributes : `~collections.abc.Set` [ `Attribute` ], optional
        Fixed schema the relation was built against, if any.

    Notes
    -----
    Relations define `str` to provide a compact listing of their
    dependencies (one line per determinant) and `repr` to provide a JSON
    form that can be read back with `MappingReader`.
    """

    def __init__(
        self,
        data: Mapping[_A, Set[Key[_A]]],
        attributes: Set[_A],
        forced_attributes: Set[_A] | None = None,
    ):
        self._data: dict[_A, KeySet[Key[_A]]] = {a: KeySet(keys) for a, keys in data.items()}
        self._attributes = frozenset(attributes)
        self._forced_attributes = frozenset(forced_attributes) if forced_attributes is not None else None

    @classmethod
    def from_dependencies(
        cls,
        dependencies: Iterable[tuple[Iterable[_A], Iterable[_A]]],
        forced_attributes: Iterable[_A] | None = None,
    ) -> Relation[_A]:
        """Construct a relation from ``(determinant, dependents)`` pairs.

        Parameters
        ----------
        dependencies : `~collections.abc.Iterable` [ `tuple` ]
            Pairs of attribute iterables; the first element of each pair
            determines every attribute in the second.
        forced_attributes : `~collections.abc.Iterable` [ `Attribute` ], \
                optional
            Fixed schema every dependency must be a subset of.

        Returns
        -------
        relation : `Relation`
            New relation.

        Raises
        ------
        EmptyDeterminantError
            Raised if a determinant is empty.
        UnexpectedAttributeError
            Raised if ``forced_attributes`` is given and a dependency refers
            to an attribute that is not in it.
        """
        builder: RelationBuilder[_A] = RelationBuilder(forced_attributes)
        builder.add_dependencies(dependencies)
        return builder.build()

    def __str__(self) -> str:
        return "\n".join(
            f"{_format_attributes(key)} -> {_format_attributes(dependents)}"
            for key, dependents in sorted(
                self.compact().items(), key=lambda item: (len(item[0]), sorted(str(a) for a in item[0]))
            )
        )

    def __repr__(self) -> str:
        from ._serialization import DictWriter

        return json.dumps(DictWriter().write_relation(self), indent=2)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Relation):
            return NotImplemented
        return self._attributes == other._attributes and self._data == other._data

    def __hash__(self) -> int:
        return hash((self._attributes, frozenset(self._data.items())))

    @property
    def attributes(self) -> frozenset[_A]:
        """All attributes of this relation (`frozenset` [ `Attribute` ])."""
        return self._attributes

    @property
    def forced_attributes(self) -> frozenset[_A] | None:
        """The fixed schema this relation was built against, or `None`
        (`frozenset` [ `Attribute` ] or `None`).
        """
        return self._forced_attributes

    @property
    def data(self) -> Mapping[_A, KeySet[Key[_A]]]:
        """Read-only mapping from attribute to the determinants of that
        attribute (`~collections.abc.Mapping` [ `Attribute`, `KeySet` ]).

        Attributes without any determinant do not appear.
        """
        return MappingProxyType(self._data)

    def str_simple(self) -> str:
        """Return a string with one ``determinant -> attribute`` line per
        stored dependency.
        """
        return "\n".join(
            sorted(
                f"{_format_attributes(key)} -> {attribute}"
                for attribute, keys in self._data.items()
                for key in keys
            )
        )

    def dependencies_of(self, key: Iterable[_A]) -> frozenset[_A]:
        """Return the attributes determined by a set of attributes.

        Parameters
        ----------
        key : `~collections.abc.Iterable` [ `Attribute` ]
            Attributes to look up.

        Returns
        -------
        dependents : `frozenset` [ `Attribute` ]
            Every attribute with at least one stored determinant that is a
            subset of ``key``.  Only stored dependencies are considered, so
            this is only the full closure when ``self`` is already closed.
        """
        key = Key(key)
        return frozenset(
            attribute
            for attribute, determinants in self._data.items()
            if any(is_superkey_of(key, d) for d in determinants)
        )

    def dependencies_to(self, attribute: _A) -> KeySet[Key[_A]] | None:
        """Return the determinants of an attribute.

        Parameters
        ----------
        attribute : `Attribute`
            Attribute to look up.

        Returns
        -------
        determinants : `KeySet` or `None`
            Determinants of ``attribute``; empty if the attribute has none,
            and `None` if it is not an attribute of this relation at all.
        """
        if attribute not in self._attributes:
            return None
        return self._data.get(attribute, KeySet())

    def compact(self) -> dict[Key[_A], frozenset[_A]]:
        """Invert the dependency store, grouping by determinant.

        Returns
        -------
        compact : `dict` [ `Key`, `frozenset` [ `Attribute` ] ]
            Mapping from each determinant to every attribute it determines.
            If ``{a}`` determines both ``b`` and ``c``, this holds a single
            ``{a}: {b, c}`` entry.
        """
        result: dict[Key[_A], set[_A]] = {}
        for attribute, keys in self._data.items():
            for key in keys:
                result.setdefault(key, set()).add(attribute)
        return {key: frozenset(dependents) for key, dependents in result.items()}

    def reflexive(self) -> Relation[_A]:
        """Return a relation that also records the trivial dependency of
        every attribute on itself.

        Returns
        -------
        relation : `Relation`
            New relation in which ``{a}`` is a determinant of every attribute
            ``a``, in addition to its existing determinants.
        """
        data = {a: self._data.get(a, KeySet()) | {Key((a,))} for a in self._attributes}
        return Relation(data, self._attributes, self._attributes)

    def transitive_closure(self) -> Relation[_A]:
        """Return a relation holding, for every attribute, all determinants
        that transitively determine it.

        Returns
        -------
        relation : `Relation`
            New relation.  Attributes with no determinant at all are absent
            from its `data`.

        Notes
        -----
        Determinants are expanded by replacing any member ``x`` of a known
        determinant with each determinant currently known for ``x``, over the
        whole store, until no attribute gains a new determinant.  The result
        is the smallest store closed under that substitution, so it does not
        depend on iteration order and closing it again changes nothing.
        """
        data = {attribute: set(keys) for attribute, keys in self._data.items() if keys}
        rounds = 0
        changed = True
        while changed:
            changed = False
            rounds += 1
            for keys in data.values():
                for key in list(keys):
                    for member in key:
                        for determinant in list(data.get(member, ())):
                            alternative = key.difference((member,)).union(determinant)
                            if alternative not in keys:
                                keys.add(alternative)
                                changed = True
        _LOG.debug(
            "Transitive closure of %d attribute(s) holds %d determinant(s) after %d round(s).",
            len(self._attributes),
            sum(len(keys) for keys in data.values()),
            rounds,
        )
        return Relation(data, self._attributes, self._attributes)

    def transitive_closure_reflexive(self) -> Relation[_A]:
        """Return the transitive closure of `reflexive`.

        This is the form `Solver` operates on.
        """
        return self.reflexive().transitive_closure()

    def solve(self) -> Solver[_A]:
        """Analyze this relation.

        Returns
        -------
        solver : `Solver`
            Candidate keys, prime attributes and normal form of ``self``.
        """
        from ._solver import Solver

        return Solver(self)


class RelationBuilder(Generic[_A]):
    """A mutable accumulator of functional dependencies.

    Parameters
    ----------
    forced_attributes : `~collections.abc.Iterable` [ `Attribute` ], optional
        Fixed schema.  If given, every dependency added later must only
        refer to these attributes, and they are all attributes of the built
        relation even if no dependency mentions them.

    Notes
    -----
    Every ``add_*`` method checks its whole input before changing anything,
    so a call that raises leaves the builder exactly as it was.
    """

    def __init__(self, forced_attributes: Iterable[_A] | None = None):
        self._forced_attributes = frozenset(forced_attributes) if forced_attributes is not None else None
        self._attributes: set[_A] = set(self._forced_attributes or ())
        self._data: dict[_A, set[Key[_A]]] = {}

    @property
    def attributes(self) -> frozenset[_A]:
        """Attributes seen so far, or the forced schema
        (`frozenset` [ `Attribute` ]).
        """
        return frozenset(self._attributes)

    @property
    def forced_attributes(self) -> frozenset[_A] | None:
        """The fixed schema, or `None` (`frozenset` [ `Attribute` ])."""
        return self._forced_attributes

    def add_dependency(self, key: Iterable[_A], dependents: Iterable[_A]) -> RelationBuilder[_A]:
        """Add the dependency ``key -> dependents``.

        Parameters
        ----------
        key : `~collections.abc.Iterable` [ `Attribute` ]
            Determinant of the dependency.
        dependents : `~collections.abc.Iterable` [ `Attribute` ]
            Attributes determined by ``key``.

        Returns
        -------
        builder : `RelationBuilder`
            ``self``, to allow calls to be chained.

        Raises
        ------
        EmptyDeterminantError
            Raised if ``key`` is empty.
        UnexpectedAttributeError
            Raised if a forced schema is set and ``key`` or ``dependents``
            includes an attribute that is not in it.
        """
        key = Key(key)
        dependents = frozenset(dependents)
        self._check(key, dependents)
        self._commit(key, dependents)
        return self

    def add_dependencies(
        self, dependencies: Iterable[tuple[Iterable[_A], Iterable[_A]]]
    ) -> RelationBuilder[_A]:
        """Add many ``(key, dependents)`` pairs.

        Pairs are added in order; if one is rejected, the pairs before it
        remain added.

        Raises
        ------
        EmptyDeterminantError
            Raised if a determinant is empty.
        UnexpectedAttributeError
            Raised if a dependency does not fit the forced schema.
        """
        for key, dependents in dependencies:
            self.add_dependency(key, dependents)
        return self

    def add_relation(self, other: Relation[_A]) -> RelationBuilder[_A]:
        """Add every dependency stored in another relation.

        Parameters
        ----------
        other : `Relation`
            Relation whose ``(determinant, attribute)`` pairs are added.

        Returns
        -------
        builder : `RelationBuilder`
            ``self``, to allow calls to be chained.

        Raises
        ------
        EmptyDeterminantError
            Raised if ``other`` holds an empty determinant.
        UnexpectedAttributeError
            Raised if a forced schema is set and ``other`` refers to
            attributes that are not in it.  Nothing is added in that case.
        """
        pairs = [(key, frozenset((attribute,))) for attribute, keys in other.data.items() for key in keys]
        for key, dependents in pairs:
            self._check(key, dependents)
        for key, dependents in pairs:
            self._commit(key, dependents)
        return self

    def build(self) -> Relation[_A]:
        """Return an immutable snapshot of the dependencies added so far."""
        return Relation(self._data, self._attributes, self._forced_attributes)

    def _check(self, key: Key[_A], dependents: frozenset[_A]) -> None:
        if not key:
            raise EmptyDeterminantError(
                f"Dependency on {_format_attributes(dependents)} has an empty determinant."
            )
        if self._forced_attributes is not None:
            if unexpected := (key | dependents) - self._forced_attributes:
                raise UnexpectedAttributeError(
                    unexpected,
                    f"Dependency {_format_attributes(key)} -> {_format_attributes(dependents)} refers "
                    f"to attribute(s) {_format_attributes(unexpected)} that are not in the schema "
                    f"{_format_attributes(self._forced_attributes)}.",
                )

    def _commit(self, key: Key[_A], dependents: frozenset[_A]) -> None:
        for attribute in dependents:
            self._data.setdefault(attribute, set()).add(key)
        self._attributes.update(key, dependents)
