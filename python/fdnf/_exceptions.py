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
    "DependencyError",
    "EmptyDeterminantError",
    "RelationSerializationError",
    "UnexpectedAttributeError",
)

from collections.abc import Iterable
from typing import Any


class DependencyError(Exception):
    """Base class for exceptions raised when a functional dependency cannot
    be accepted.
    """


class EmptyDeterminantError(DependencyError):
    """Exception raised when a dependency with an empty determinant is added
    to a relation.
    """


class UnexpectedAttributeError(DependencyError):
    """Exception raised when a dependency refers to attributes that are not
    part of a relation's forced schema.

    Parameters
    ----------
    attributes : `~collections.abc.Iterable`
        The attributes that are not in the forced schema.
    message : `str`, optional
        Message to use instead of the default one.
    """

    def __init__(self, attributes: Iterable[Any], message: str | None = None):
        self.attributes = frozenset(attributes)
        if message is None:
            message = f"Unexpected attribute(s) {sorted(str(a) for a in self.attributes)}."
        super().__init__(message)

    attributes: frozenset
    """The attributes that were rejected (`frozenset`)."""


class RelationSerializationError(DependencyError):
    """Exception raised when a serialized relation is malformed."""
