"""Virtual inventory: swap-impact accounting shared across markets.

Several markets trading the same underlying exposure can point at one
virtual inventory. Each swap or deposit moves the shared virtual pool by the
same token deltas as the real pool, and the impact charged is the worse of
the market's own impact and the impact measured on the virtual pool.
"""
from __future__ import annotations

from dataclasses import dataclass

from .core.exc import ComputationError
from .core.constants import U128_MAX
from .core.cow import Shared


@dataclass
class VirtualInventory:
    """Snapshot of a virtual inventory account."""

    address: str
    long_amount: int = 0
    short_amount: int = 0


class VirtualInventoryModel:
    """Copy-on-write wrapper over a VirtualInventory snapshot."""

    def __init__(self, inventory: VirtualInventory | Shared):
        self._inventory = inventory if isinstance(inventory, Shared) else Shared(inventory)

    @property
    def address(self) -> str:
        return self._inventory.get().address

    @property
    def long_amount(self) -> int:
        return self._inventory.get().long_amount

    @property
    def short_amount(self) -> int:
        return self._inventory.get().short_amount

    def amount(self, is_long: bool) -> int:
        return self.long_amount if is_long else self.short_amount

    def copy(self) -> "VirtualInventoryModel":
        return VirtualInventoryModel(self._inventory.clone())

    def release(self) -> None:
        """Drop a copy that is no longer needed."""
        self._inventory.drop()

    def apply_delta(self, is_long: bool, delta: int) -> None:
        """Move one side of the virtual pool (checked in both directions)."""
        current = self.amount(is_long)
        nxt = current + delta
        if nxt < 0:
            raise ComputationError(f"virtual inventory underflow: {current} + {delta}")
        if nxt > U128_MAX:
            raise ComputationError(f"virtual inventory overflow: {current} + {delta}")
        inv = self._inventory.make_mut()
        if is_long:
            inv.long_amount = nxt
        else:
            inv.short_amount = nxt

    def __repr__(self) -> str:
        return (
            f"VirtualInventoryModel(address={self.address!r}, "
            f"long={self.long_amount}, short={self.short_amount})"
        )


__all__ = ["VirtualInventory", "VirtualInventoryModel"]
