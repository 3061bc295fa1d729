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

"""Seeding relations from SQLAlchemy table definitions."""

from __future__ import annotations

__all__ = ("attributes_from_table", "relation_from_table")

from collections.abc import Iterable

import sqlalchemy
from lsst.utils.logging import getLogger

from ._relation import RelationBuilder

_LOG = getLogger(__name__)


def attributes_from_table(table: sqlalchemy.schema.Table) -> frozenset[str]:
    """Return the column names of a table, for use as a forced schema."""
    return frozenset(column.name for column in table.columns)


def relation_from_table(
    table: sqlalchemy.schema.Table,
    dependencies: Iterable[tuple[Iterable[str], Iterable[str]]] = (),
) -> RelationBuilder[str]:
    """Start a relation from the definition of a table.

    Parameters
    ----------
    table : `sqlalchemy.schema.Table`
        Table whose columns form the forced schema.  Its primary key and
        every unique constraint determine all of its columns.
    dependencies : `~collections.abc.Iterable` [ `tuple` ], optional
        Additional ``(determinant, dependents)`` pairs of column names.

    Returns
    -------
    builder : `RelationBuilder`
        Builder holding the constraint-implied dependencies, so more can be
        added before it is built.

    Raises
    ------
    UnexpectedAttributeError
        Raised if ``dependencies`` refer to names that are not columns of
        ``table``.
    """
    columns = attributes_from_table(table)
    builder: RelationBuilder[str] = RelationBuilder(columns)
    for constraint in table.constraints:
        if not isinstance(constraint, (sqlalchemy.PrimaryKeyConstraint, sqlalchemy.UniqueConstraint)):
            continue
        key = frozenset(column.name for column in constraint.columns)
        if not key:
            # Tables without a primary key still carry an empty constraint.
            continue
        _LOG.debug("Constraint on %s of table %s determines all columns.", sorted(key), table.name)
        builder.add_dependency(key, columns - key)
    builder.add_dependencies(dependencies)
    return builder
