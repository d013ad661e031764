"""
Claim ledger: cumulative normalized amount disbursed per beneficiary.

Counters only ever grow. credit() returns a new ledger; the old one is left
untouched so a failed settlement has nothing to roll back.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Tuple


@dataclass(frozen=True)
class ClaimLedger:
    claimed: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "claimed", MappingProxyType(dict(self.claimed)))

    def claimed_of(self, beneficiary: str) -> int:
        return self.claimed.get(beneficiary, 0)

    def credit(self, beneficiary: str, amount: int) -> "ClaimLedger":
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TypeError(f"amount must be int, got {type(amount).__name__}")
        if amount < 0:
            raise ValueError(f"claimed amounts never decrease, got credit {amount}")
        if amount == 0:
            return self
        updated = dict(self.claimed)
        updated[beneficiary] = updated.get(beneficiary, 0) + amount
        return ClaimLedger(updated)

    def total(self) -> int:
        return sum(self.claimed.values())

    def items(self) -> Iterator[Tuple[str, int]]:
        return iter(self.claimed.items())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClaimLedger):
            return NotImplemented
        return dict(self.claimed) == dict(other.claimed)

    def __hash__(self) -> int:
        return hash(frozenset(self.claimed.items()))

    def to_dict(self) -> Dict[str, str]:
        return {b: str(v) for b, v in self.claimed.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, str]) -> "ClaimLedger":
        return cls({b: int(v) for b, v in data.items()})
