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

__all__ = ("DictWriter", "MappingReader", "format_report")

from collections.abc import Iterator, Mapping, Set
from typing import Any, Generic, TypeGuard

from ._exceptions import RelationSerializationError
from ._keys import _A, Key
from ._relation import Relation
from ._solver import Solver


def is_str_mapping(mapping: Any) -> TypeGuard[Mapping[str, Any]]:
    if not isinstance(mapping, Mapping):
        return False
    return all(type(k) is str for k in mapping)


class MappingReader(Generic[_A]):
    """A class for deserializing `Relation` objects from nested mappings of
    builtin types.

    Notes
    -----
    Attributes are read with `read_attribute`, which returns them unchanged
    by default; subclasses can override it to produce other attribute types.

    See Also
    --------
    DictWriter
    """

    def read_relation(self, mapping: Any) -> Relation[_A]:
        """Read a relation that has been serialized as a mapping.

        Parameters
        ----------
        mapping : `Mapping`
            A mapping with string keys that corresponds to a serialized
            relation, typically produced by `DictWriter.write_relation` (and
            often converted to/from JSON).  This is annotated as
            `typing.Any` because this method takes responsibility for
            checking that it is a mapping (with recognized keys).

        Returns
        -------
        relation : `Relation`
            Deserialized relation.

        Raises
        ------
        RelationSerializationError
            Raised if the mapping is not a valid serialized relation.
        """
        match mapping:
            case {"attributes": attributes, "dependencies": dependencies, **rest} if is_str_mapping(mapping):
                forced_attributes = rest.get("forced_attributes")
                relation = Relation(
                    self._read_dependencies(dependencies),
                    self.read_attribute_set(attributes),
                    self.read_attribute_set(forced_attributes) if forced_attributes is not None else None,
                )
                if unknown := frozenset().union(*relation.compact(), relation.data) - relation.attributes:
                    raise RelationSerializationError(
                        f"Dependencies refer to attribute(s) {sorted(str(a) for a in unknown)} "
                        "that are not in the relation's attributes."
                    )
                return relation
        raise RelationSerializationError(f"Invalid serialized relation: {mapping!r}.")

    def read_attribute(self, raw: Any) -> _A:
        """Read a single attribute.

        Parameters
        ----------
        raw : `typing.Any`
            Serialized form of the attribute.

        Returns
        -------
        attribute : `Attribute`
            Attribute; the default implementation returns ``raw`` if it is a
            `str`.
        """
        if not isinstance(raw, str):
            raise RelationSerializationError(f"Expected a string attribute, got {raw!r}.")
        return raw  # type: ignore

    def read_attribute_set(self, raw: Any) -> frozenset[_A]:
        return frozenset(
            self.read_attribute(a)
            for a in self._iter(raw, f"Expected an iterable of attributes, got {raw!r}.")
        )

    def _read_dependencies(self, raw: Any) -> dict[_A, set[Key[_A]]]:
        data: dict[_A, set[Key[_A]]] = {}
        for item in self._iter(raw, f"Expected an iterable of dependencies, got {raw!r}."):
            match item:
                case {"key": key, "dependents": dependents}:
                    key = Key(self.read_attribute_set(key))
                    if not key:
                        raise RelationSerializationError(f"Dependency {item!r} has an empty determinant.")
                    for attribute in self.read_attribute_set(dependents):
                        data.setdefault(attribute, set()).add(key)
                case _:
                    raise RelationSerializationError(f"Invalid serialized dependency: {item!r}.")
        return data

    def _iter(self, iterable: Any, message: str) -> Iterator:
        if isinstance(iterable, (str, Mapping)):
            raise RelationSerializationError(message)
        try:
            yield from iterable
        except TypeError:
            raise RelationSerializationError(message) from None


class DictWriter(Generic[_A]):
    """A class that transforms relations and solver results into nested
    dictionaries suitable for serialization via JSON or similar formats.

    Notes
    -----
    Attributes are formatted with `str` (which can be overridden by
    reimplementing `write_attribute`), and all sets are sorted as they are
    saved to make the serialized form deterministic.

    See Also
    --------
    MappingReader
    """

    def write_relation(self, relation: Relation[_A]) -> dict[str, Any]:
        """Convert a relation to a dictionary.

        Dependencies are grouped by determinant, as in `Relation.compact`.
        """
        return {
            "attributes": self.write_attribute_set(relation.attributes),
            "forced_attributes": (
                self.write_attribute_set(relation.forced_attributes)
                if relation.forced_attributes is not None
                else None
            ),
            "dependencies": sorted(
                (
                    {"key": self.write_attribute_set(key), "dependents": self.write_attribute_set(dependents)}
                    for key, dependents in relation.compact().items()
                ),
                key=lambda d: (len(d["key"]), d["key"]),
            ),
        }

    def write_solver(self, solver: Solver[_A]) -> dict[str, Any]:
        """Convert the results of a `Solver` to a dictionary."""
        return {
            "relation": self.write_relation(solver.closure),
            "attributes": self.write_attribute_set(solver.attributes),
            "prim": self.write_attribute_set(solver.prim),
            "not_prim": self.write_attribute_set(solver.not_prim),
            "candidate_keys": self.write_key_set(solver.candidate_keys),
            "normal_form": solver.normal_form,
        }

    def write_attribute(self, attribute: _A) -> Any:
        """Convert a single attribute to a serializable type.

        The default implementation returns the `str` representation.
        """
        return str(attribute)

    def write_attribute_set(self, attributes: Set[_A]) -> list[Any]:
        return sorted(self.write_attribute(a) for a in attributes)

    def write_key_set(self, keys: Set[Key[_A]]) -> list[list[Any]]:
        """Convert a set of keys to a sorted list of sorted lists."""
        return sorted((self.write_attribute_set(key) for key in keys), key=lambda k: (len(k), k))


def format_report(solver: Solver) -> str:
    """Format the results of a `Solver` for humans.

    Parameters
    ----------
    solver : `Solver`
        Solver to report on.

    Returns
    -------
    report : `str`
        Multi-line report.
    """
    writer: DictWriter = DictWriter()
    keys = ", ".join(f"[{', '.join(key)}]" for key in writer.write_key_set(solver.candidate_keys))
    lines = [
        "Report on Relation:",
        str(solver.closure),
        "",
        f"attributes: [{', '.join(writer.write_attribute_set(solver.attributes))}]",
        f"prim attributes: [{', '.join(writer.write_attribute_set(solver.prim))}]",
        f"non-prim attributes: [{', '.join(writer.write_attribute_set(solver.not_prim))}]",
        f"key-candidates: [{keys}]",
        f"Highest normal form: {solver.normal_form}",
    ]
    return "\n".join(lines)
