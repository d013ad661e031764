"""
vestledger/core/models.py

Immutable value types shared by every layer.

    Asset            — one registered fungible asset (priority = index)
    LifecycleState   — configuring → started, one-way
    Disbursement     — one asset leg of a settlement, as actually transferred
    SettlementResult — outcome of one settle() call
    VestingInfo      — read-only reporting view of one beneficiary

All amounts are int. Normalized amounts are scaled by 10**18
(see core/units.py). Timestamps are unix seconds.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class LifecycleState(Enum):
    CONFIGURING = "configuring"
    STARTED     = "started"


@dataclass(frozen=True)
class Asset:
    """A registered asset. `index` is its position in the disbursement waterfall."""
    index:    int
    handle:   str
    decimals: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index":    self.index,
            "handle":   self.handle,
            "decimals": self.decimals,
        }


@dataclass(frozen=True)
class Disbursement:
    """
    One asset leg of a settlement.

    normalized_amount is re-derived from native_amount after flooring, so it
    is exactly what the beneficiary received, never the pre-floor target.
    """
    asset_index:       int
    handle:            str
    native_amount:     int
    normalized_amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_index":       self.asset_index,
            "handle":            self.handle,
            "native_amount":     str(self.native_amount),
            "normalized_amount": str(self.normalized_amount),
        }


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of one settle() call. A no-op settlement has no disbursements."""
    beneficiary:    str
    settled_at:     int
    vested:         int
    claimed_before: int
    owed:           int
    disbursements:  Tuple[Disbursement, ...] = ()

    @property
    def disbursed(self) -> int:
        """Normalized total actually paid out by this call."""
        return sum(d.normalized_amount for d in self.disbursements)

    @property
    def remaining(self) -> int:
        """Normalized amount still owed after this call (carried forward)."""
        return self.owed - self.disbursed

    @property
    def claimed_after(self) -> int:
        return self.claimed_before + self.disbursed

    @property
    def is_noop(self) -> bool:
        return not self.disbursements

    def native_by_handle(self) -> Dict[str, int]:
        totals: Dict[str, int] = {}
        for d in self.disbursements:
            totals[d.handle] = totals.get(d.handle, 0) + d.native_amount
        return totals

    def to_dict(self) -> Dict[str, Any]:
        return {
            "beneficiary":    self.beneficiary,
            "settled_at":     self.settled_at,
            "vested":         str(self.vested),
            "claimed_before": str(self.claimed_before),
            "owed":           str(self.owed),
            "disbursed":      str(self.disbursed),
            "remaining":      str(self.remaining),
            "disbursements":  [d.to_dict() for d in self.disbursements],
        }


@dataclass(frozen=True)
class VestingInfo:
    """Reporting view mirroring a dashboard's per-beneficiary read."""
    beneficiary:      str
    allocation:       Tuple[Tuple[int, int], ...]
    vested:           int
    claimed:          int
    claimable:        int
    total_allocation: int
    next_milestone:   Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "beneficiary":      self.beneficiary,
            "allocation":       [
                {"timestamp": ts, "amount": str(amount)}
                for ts, amount in self.allocation
            ],
            "vested":           str(self.vested),
            "claimed":          str(self.claimed),
            "claimable":        str(self.claimable),
            "total_allocation": str(self.total_allocation),
            "next_milestone":   self.next_milestone,
        }
