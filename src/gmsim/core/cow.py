"""
Copy-on-write handle for snapshots shared between models.

A `Shared` wraps one value and a reference counter shared by every handle
cloned from it. Reads go straight to the value; `make_mut()` hands out a
private copy first whenever another handle still points at the same value.
Counting is explicit (handles are cloned with `clone()`), not based on
Python's own refcounts; a handle discarded without `drop()` only costs one
extra copy on the next write.
"""

from __future__ import annotations

import copy
from typing import Generic, TypeVar

T = TypeVar("T")


class _Cell(Generic[T]):
    __slots__ = ("value", "refs")

    def __init__(self, value: T) -> None:
        self.value = value
        self.refs = 1


class Shared(Generic[T]):
    """Read shared, write forces a private copy."""

    __slots__ = ("_cell",)

    def __init__(self, value: T) -> None:
        self._cell = _Cell(value)

    def get(self) -> T:
        return self._cell.value

    def is_shared(self) -> bool:
        return self._cell.refs > 1

    def clone(self) -> "Shared[T]":
        other = Shared.__new__(Shared)
        other._cell = self._cell
        self._cell.refs += 1
        return other

    def make_mut(self) -> T:
        cell = self._cell
        if cell.refs > 1:
            cell.refs -= 1
            self._cell = _Cell(copy.deepcopy(cell.value))
        return self._cell.value

    def drop(self) -> None:
        """Release this handle's claim; the handle must not be used afterwards."""
        self._cell.refs -= 1

    def __repr__(self) -> str:
        return f"Shared({self._cell.value!r}, refs={self._cell.refs})"


__all__ = ["Shared"]
