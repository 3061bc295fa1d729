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

"""Parsing of textual functional dependencies.

A dependency line looks like ``A B -> C D``: attributes on both sides of a
single ``->`` arrow, separated by a delimiter.  With the empty delimiter
every non-blank character is an attribute, so ``ab->c`` means
``{a, b} -> {c}``.  A line without an arrow declares the attributes of the
relation.
"""

from __future__ import annotations

__all__ = (
    "ARROW",
    "IngestResult",
    "ParsedDependency",
    "ReaderConfig",
    "Rejection",
    "parse_attribute_list",
    "parse_dependency",
    "read_dependencies",
)

import dataclasses
from collections.abc import Iterable

from lsst.utils.logging import getLogger

from ._exceptions import DependencyError
from ._keys import Key
from ._relation import Relation, RelationBuilder

_LOG = getLogger(__name__)

ARROW = "->"


@dataclasses.dataclass(frozen=True)
class ParsedDependency:
    """A single dependency read from a line of text."""

    key: Key[str]
    """Determinant of the dependency (`Key` [ `str` ])."""

    values: frozenset[str]
    """Attributes determined by `key` (`frozenset` [ `str` ])."""

    @property
    def attributes(self) -> frozenset[str]:
        """All attributes mentioned by this dependency
        (`frozenset` [ `str` ]).
        """
        return self.key | self.values

    @property
    def is_empty(self) -> bool:
        """Whether this is the sentinel parsed from an empty line."""
        return not self.key and not self.values


def _tokenize(text: str, delimiter: str) -> list[str]:
    if not delimiter:
        return [c for c in text if not c.isspace()]
    return [token.strip() for token in text.split(delimiter) if token.strip()]


def parse_attribute_list(line: str, delimiter: str = " ") -> frozenset[str]:
    """Return the attributes listed on a declaration line."""
    return frozenset(_tokenize(line, delimiter))


def parse_dependency(line: str, delimiter: str = "") -> ParsedDependency | None:
    """Parse a single dependency.

    Parameters
    ----------
    line : `str`
        Text of the form ``<attributes> -> <attributes>``.
    delimiter : `str`, optional
        String separating attributes.  The default empty string makes every
        non-blank character an attribute.

    Returns
    -------
    dependency : `ParsedDependency` or `None`
        The parsed dependency, or `None` if the line has no arrow, more than
        one arrow, or no attributes on either side.  An empty line yields a
        dependency with an empty key and no values.
    """
    if line == "":
        return ParsedDependency(Key(), frozenset())
    sides = line.split(ARROW)
    if len(sides) != 2:
        return None
    key, values = (_tokenize(side, delimiter) for side in sides)
    if not key or not values:
        return None
    return ParsedDependency(Key(key), frozenset(values))


@dataclasses.dataclass(frozen=True)
class ReaderConfig:
    """Options for `read_dependencies`."""

    delimiter: str = " "
    """String separating attributes on a line (`str`)."""

    forced_attributes: frozenset[str] | None = None
    """Fixed schema every dependency must fit; overrides a declaration line
    in the input (`frozenset` [ `str` ] or `None`).
    """

    skip_invalid: bool = False
    """If `True`, lines that cannot be parsed or added are recorded and
    skipped; if `False` (default), the first such line stops reading and no
    relation is produced (`bool`).
    """


@dataclasses.dataclass(frozen=True)
class Rejection:
    """A line that could not be turned into a dependency."""

    line: str
    reason: str
    error: DependencyError | None = None
    """The error raised when adding the dependency, or `None` if the line
    could not be parsed (`DependencyError` or `None`).
    """

    def __str__(self) -> str:
        return f"{self.reason} in {self.line!r}"


@dataclasses.dataclass(frozen=True)
class IngestResult:
    """The outcome of `read_dependencies`."""

    relation: Relation[str] | None
    """Relation built from the accepted lines, or `None` if reading stopped
    at a rejected line (`Relation` or `None`).
    """

    rejections: tuple[Rejection, ...] = ()
    """Lines that were rejected (`tuple` [ `Rejection`, ... ])."""

    lines: tuple[str, ...] = ()
    """Every line that was read, including a declaration line
    (`tuple` [ `str`, ... ]).
    """

    @property
    def ok(self) -> bool:
        """Whether every line was accepted (`bool`)."""
        return self.relation is not None and not self.rejections


def read_dependencies(lines: Iterable[str], config: ReaderConfig = ReaderConfig()) -> IngestResult:
    """Build a relation from lines of text.

    Parameters
    ----------
    lines : `~collections.abc.Iterable` [ `str` ]
        Input lines, with or without trailing newlines.  If the first line
        has no arrow, it declares the attributes of the relation (ignored if
        ``config.forced_attributes`` is set).  Reading stops at the first
        empty line; a line holding only whitespace is not empty and is
        rejected like any other unparsable line.
    config : `ReaderConfig`, optional
        Reader options.

    Returns
    -------
    result : `IngestResult`
        The relation and any rejected lines.  Bad input never raises;
        ``config.skip_invalid`` selects whether it stops reading.
    """
    read: list[str] = []
    pending: list[str] = []
    forced_attributes = config.forced_attributes
    for n, raw in enumerate(lines):
        line = raw.rstrip("\r\n")
        if not line:
            break
        read.append(line)
        if n == 0 and ARROW not in line and line.strip():
            if forced_attributes is None:
                forced_attributes = parse_attribute_list(line, config.delimiter)
                _LOG.debug("Attributes declared by first line: %s.", sorted(forced_attributes))
            continue
        pending.append(line)

    builder: RelationBuilder[str] = RelationBuilder(forced_attributes)
    rejections: list[Rejection] = []
    for line in pending:
        dependency = parse_dependency(line, config.delimiter)
        if dependency is None:
            rejection = Rejection(line, "Failed parsing")
        else:
            try:
                builder.add_dependency(dependency.key, dependency.values)
                continue
            except DependencyError as err:
                rejection = Rejection(line, str(err), err)
        _LOG.debug("Rejected line %r: %s", line, rejection.reason)
        rejections.append(rejection)
        if not config.skip_invalid:
            return IngestResult(None, tuple(rejections), tuple(read))
    return IngestResult(builder.build(), tuple(rejections), tuple(read))
