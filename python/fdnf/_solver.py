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

__all__ = (
    "Solver",
    "candidate_keys",
    "is_2nf",
    "is_3nf",
    "non_prime_attributes",
    "normal_form",
    "prime_attributes",
)

import json
from collections.abc import Set
from typing import Generic

from lsst.utils.classes import cached_getter, immutable
from lsst.utils.logging import getLogger

from ._keys import _A, Key, KeySet, drop_covered_keys, power_set_without_self_and_empty, product_all
from ._relation import Relation

_LOG = getLogger(__name__)


def candidate_keys(closure: Relation[_A]) -> KeySet[Key[_A]]:
    """Derive the candidate keys of a closed relation.

    Parameters
    ----------
    closure : `Relation`
        Reflexive, transitive closure of a relation (see
        `Relation.transitive_closure_reflexive`).

    Returns
    -------
    keys : `KeySet`
        Every minimal set of attributes that determines all attributes.

    Notes
    -----
    A set of attributes determines everything exactly when, for every
    attribute, it includes one of that attribute's determinants.  The
    `product` of all determinant sets enumerates those unions; the covered
    (non-minimal) ones are then dropped.  The intermediate product can grow
    multiplicatively with the number of attributes.
    """
    return drop_covered_keys(product_all(closure.data.values()))


def prime_attributes(keys: Set[Key[_A]]) -> frozenset[_A]:
    """Return the union of all given candidate keys."""
    return frozenset().union(*keys)


def non_prime_attributes(prim: Set[_A], attributes: Set[_A]) -> frozenset[_A]:
    return frozenset(attributes - prim)


def is_2nf(not_prim: Set[_A], keys: Set[Key[_A]], closure: Relation[_A]) -> bool:
    """Test whether no non-prime attribute depends on a proper subset of a
    candidate key.

    Parameters
    ----------
    not_prim : `~collections.abc.Set` [ `Attribute` ]
        Non-prime attributes.
    keys : `~collections.abc.Set` [ `Key` ]
        Candidate keys.
    closure : `Relation`
        Closed relation the keys were derived from.

    Returns
    -------
    result : `bool`
        `False` if any partial dependency exists.
    """
    for attribute in not_prim:
        determinants = closure.data.get(attribute, KeySet())
        for key in keys:
            for subset in power_set_without_self_and_empty(key) or ():
                if subset in determinants:
                    _LOG.debug("Partial dependency %s -> %s violates 2NF.", sorted(subset), attribute)
                    return False
    return True


def is_3nf(closure: Relation[_A]) -> bool:
    """Test whether no attribute is determined transitively through another
    attribute that does not determine it back.

    Parameters
    ----------
    closure : `Relation`
        Reflexive, transitive closure of a relation.

    Returns
    -------
    result : `bool`
        `False` if an attribute ``outer`` determines another attribute
        ``inner`` that is not equivalent to it and ``inner`` in turn
        determines any third attribute.
    """
    dependencies = {a: closure.dependencies_of((a,)) for a in closure.attributes}
    for outer in closure.attributes:
        for inner in dependencies[outer]:
            if inner == outer or outer in dependencies[inner]:
                continue
            if dependencies[inner] - {outer, inner}:
                _LOG.debug("Transitive dependency through %s (from %s) violates 3NF.", inner, outer)
                return False
    return True


def normal_form(not_prim: Set[_A], keys: Set[Key[_A]], closure: Relation[_A]) -> int:
    """Return the highest normal form (1, 2 or 3) a closed relation is in.

    3NF is only tested when the relation is in 2NF.
    """
    nf = 1
    if is_2nf(not_prim, keys, closure):
        nf = 2
        if is_3nf(closure):
            nf = 3
    return nf


@immutable
class Solver(Generic[_A]):
    """Candidate keys, prime attributes and normal form of a relation.

    Parameters
    ----------
    relation : `Relation`
        Relation to analyze.  It does not need to be closed; its reflexive,
        transitive closure is computed here and every result is derived from
        that closure.

    Notes
    -----
    All results are computed on first access and cached.
    """

    def __init__(self, relation: Relation[_A]):
        self.relation = relation
        self.closure = relation.transitive_closure_reflexive()

    relation: Relation[_A]
    """The relation as given (`Relation`)."""

    closure: Relation[_A]
    """Reflexive, transitive closure of `relation` (`Relation`)."""

    def __str__(self) -> str:
        return (
            f"Solver(attributes={self._format(self.attributes)}, prim={self._format(self.prim)}, "
            f"not_prim={self._format(self.not_prim)}, normal_form={self.normal_form}, "
            f"candidate_keys=[{', '.join(self._format(k) for k in self._sorted_keys())}])"
        )

    def __repr__(self) -> str:
        from ._serialization import DictWriter

        return json.dumps(DictWriter().write_solver(self), indent=2)

    @property
    def attributes(self) -> frozenset[_A]:
        """All attributes of the relation (`frozenset` [ `Attribute` ])."""
        return self.closure.attributes

    @property  # type: ignore
    @cached_getter
    def candidate_keys(self) -> KeySet[Key[_A]]:
        """Every candidate key of the relation (`KeySet`)."""
        keys = candidate_keys(self.closure)
        _LOG.debug("Found %d candidate key(s).", len(keys))
        return keys

    @property  # type: ignore
    @cached_getter
    def prim(self) -> frozenset[_A]:
        """Attributes that are part of at least one candidate key
        (`frozenset` [ `Attribute` ]).
        """
        return prime_attributes(self.candidate_keys)

    @property  # type: ignore
    @cached_getter
    def not_prim(self) -> frozenset[_A]:
        """Attributes that are not part of any candidate key
        (`frozenset` [ `Attribute` ]).
        """
        return non_prime_attributes(self.prim, self.attributes)

    @property  # type: ignore
    @cached_getter
    def normal_form(self) -> int:
        """The highest normal form the relation is in (`int`, one of 1, 2,
        or 3).
        """
        return normal_form(self.not_prim, self.candidate_keys, self.closure)

    def is_2nf(self) -> bool:
        """Return whether the relation is at least in second normal form."""
        return self.normal_form >= 2

    def is_3nf(self) -> bool:
        """Return whether the relation is in third normal form.

        Unlike the module-level `is_3nf` predicate, which only looks for
        transitive dependencies, this also requires second normal form.
        """
        return self.normal_form >= 3

    def _sorted_keys(self) -> list[Key[_A]]:
        return sorted(self.candidate_keys, key=lambda k: (len(k), sorted(str(a) for a in k)))

    @staticmethod
    def _format(attributes: Set[_A]) -> str:
        return f"[{', '.join(sorted(str(a) for a in attributes))}]"
