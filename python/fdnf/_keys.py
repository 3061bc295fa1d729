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
    "Attribute",
    "Key",
    "KeySet",
    "drop_covered_keys",
    "has_subset_of",
    "has_superset_of",
    "is_superkey_of",
    "power_set_without_self_and_empty",
    "product",
    "product_all",
)

import itertools
from collections.abc import Hashable, Iterable, Set
from typing import Protocol, TypeVar

_A = TypeVar("_A", bound="Attribute")


class Attribute(Hashable, Protocol):
    """An interface for objects that represent attributes of a relation
    schema.

    Nothing about an attribute is interpreted beyond hashing, equality and
    its `str` form; plain `str` names are the usual choice.
    """

    def __str__(self) -> str:
        ...


# As with KeySet below, this would ideally be a `typing.NewType`, but those
# can't be generic (https://github.com/python/mypy/issues/3331).
Key = frozenset
"""Type alias for an immutable set of attributes that is used as a
determinant or as a candidate key (`type`).
"""

KeySet = frozenset
"""Type alias for an immutable set of `Key` objects (`type`).
"""


def power_set_without_self_and_empty(key: Key[_A]) -> set[Key[_A]] | None:
    """Return every proper, non-empty subset of a key.

    Parameters
    ----------
    key : `Key`
        Key whose subsets should be enumerated.

    Returns
    -------
    subsets : `set` [ `Key` ] or `None`
        Set with ``2**n - 2`` elements for a key of size ``n``.  This is empty
        for a single-attribute key and `None` for an empty key, for which the
        question is not applicable.
    """
    if not key:
        return None
    members = list(key)
    return {
        Key(combination)
        for size in range(1, len(members))
        for combination in itertools.combinations(members, size)
    }


def is_superkey_of(key: Set[_A], other: Set[_A]) -> bool:
    """Test whether every attribute of ``other`` is also in ``key``."""
    return key.issuperset(other)


def has_subset_of(key: Key[_A], keys: Set[Key[_A]]) -> bool:
    """Test whether ``keys`` contains ``key`` or any subset of it.

    A key that passes this test is *covered* by ``keys``: anything a subset
    determines is also determined by ``key``.

    Parameters
    ----------
    key : `Key`
        Key to test.
    keys : `~collections.abc.Set` [ `Key` ]
        Keys that will be checked to see if any element is a subset of
        ``key``.

    Returns
    -------
    covered : `bool`
        Whether ``key`` is a superset of any element of ``keys``.
    """
    return key in keys or any(key.issuperset(other) for other in keys)


def has_superset_of(key: Key[_A], keys: Set[Key[_A]]) -> bool:
    """Test whether ``keys`` contains ``key`` or any superset of it."""
    return key in keys or any(key.issubset(other) for other in keys)


def drop_covered_keys(keys: Iterable[Key[_A]]) -> KeySet[Key[_A]]:
    """Return a set of keys in which no key is a superset of any other.

    Parameters
    ----------
    keys : `~collections.abc.Iterable` [ `Key` ]
        Starting keys.

    Returns
    -------
    new_keys : `KeySet`
        The minimal elements of ``keys``.

    See Also
    --------
    has_subset_of
    """
    keys = set(keys)
    while True:
        to_drop = {k1 for k1, k2 in itertools.permutations(keys, 2) if k1.issuperset(k2)}
        if to_drop:
            keys.difference_update(to_drop)
        else:
            return KeySet(keys)


def product(lhs: Set[Key[_A]] | None, rhs: Set[Key[_A]] | None) -> KeySet[Key[_A]]:
    """Return the cross-union of two sets of keys.

    Parameters
    ----------
    lhs : `~collections.abc.Set` [ `Key` ] or `None`
        First operand.  `None` or an empty set acts as the identity.
    rhs : `~collections.abc.Set` [ `Key` ] or `None`
        Second operand.  `None` or an empty set acts as the identity.

    Returns
    -------
    keys : `KeySet`
        Set of ``a | b`` for every ``a`` in ``lhs`` and ``b`` in ``rhs``.

    Notes
    -----
    This operation is commutative and associative, but the size of the
    result can be as large as ``len(lhs) * len(rhs)``; folding it over many
    operands grows multiplicatively, so callers with many attributes should
    bound their input.
    """
    if not lhs:
        return KeySet(rhs or ())
    if not rhs:
        return KeySet(lhs)
    return KeySet(key1.union(key2) for key1, key2 in itertools.product(lhs, rhs))


def product_all(operands: Iterable[Set[Key[_A]]]) -> KeySet[Key[_A]]:
    """Fold `product` over any number of sets of keys.

    An empty iterable yields an empty `KeySet`.
    """
    result: KeySet[Key[_A]] | None = None
    for operand in operands:
        result = product(result, operand)
    return result if result is not None else KeySet()
