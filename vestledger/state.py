"""
Aggregate vesting state.

VestingState is the single value every operation takes and returns.
It is immutable; operations build a new snapshot with dataclasses.replace()
and the caller swaps it in. Nothing in the package holds a module-level
instance.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict

from vestledger.core.models import LifecycleState
from vestledger.ledger.ledger import ClaimLedger
from vestledger.registry.registry import AssetRegistry
from vestledger.schedule.schedule import Schedule


@dataclass(frozen=True)
class VestingState:
    registry:  AssetRegistry  = field(default_factory=AssetRegistry)
    schedule:  Schedule       = field(default_factory=Schedule)
    claims:    ClaimLedger    = field(default_factory=ClaimLedger)
    lifecycle: LifecycleState = LifecycleState.CONFIGURING

    @property
    def started(self) -> bool:
        return self.lifecycle is LifecycleState.STARTED

    def evolve(self, **changes: Any) -> "VestingState":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lifecycle": self.lifecycle.value,
            "registry":  self.registry.to_list(),
            "schedule":  self.schedule.to_dict(),
            "claims":    self.claims.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VestingState":
        return cls(
            registry=  AssetRegistry.from_list(data.get("registry", [])),
            schedule=  Schedule.from_dict(data.get("schedule", {})),
            claims=    ClaimLedger.from_dict(data.get("claims", {})),
            lifecycle= LifecycleState(data.get("lifecycle", "configuring")),
        )
