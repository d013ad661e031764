"""
Schedule & allocation store.

One global list of milestone timestamps shared by every beneficiary, and a
beneficiary × milestone matrix of normalized amounts.

Invariants enforced by Schedule.build():
    milestones strictly increasing          → NonMonotonicScheduleError
    len(matrix) == len(beneficiaries)       → ConfigurationError
    len(row) == len(milestones) per row     → ConfigurationError
    beneficiaries unique                    → ConfigurationError
    every amount an int >= 0                → ConfigurationError

Vested amount is answered from per-beneficiary prefix sums with a binary
search over the milestone list, O(log M) per query.
"""

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from vestledger.core.exceptions import ConfigurationError, NonMonotonicScheduleError
from vestledger.core.time import parse_timestamp


def _prefix_sums(row: Sequence[int]) -> Tuple[int, ...]:
    sums = [0]
    for amount in row:
        sums.append(sums[-1] + amount)
    return tuple(sums)


@dataclass(frozen=True)
class Schedule:
    milestones:    Tuple[int, ...] = ()
    beneficiaries: Tuple[str, ...] = ()
    allocations:   Tuple[Tuple[int, ...], ...] = ()

    _prefix: Dict[str, Tuple[int, ...]] = field(
        init=False, repr=False, compare=False, default_factory=dict,
    )

    def __post_init__(self) -> None:
        prefix = {
            b: _prefix_sums(row)
            for b, row in zip(self.beneficiaries, self.allocations)
        }
        object.__setattr__(self, "_prefix", prefix)

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def build(
        cls,
        milestones:        Iterable[Any],
        beneficiaries:     Iterable[str],
        allocation_matrix: Iterable[Iterable[int]],
    ) -> "Schedule":
        """Validate raw inputs and return a complete new schedule."""
        try:
            stamps = tuple(parse_timestamp(m) for m in milestones)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid milestone timestamp: {exc}") from exc

        for i in range(1, len(stamps)):
            if stamps[i] <= stamps[i - 1]:
                raise NonMonotonicScheduleError(
                    "milestones must be strictly increasing",
                    {"position": i, "previous": stamps[i - 1], "value": stamps[i]},
                )

        names = tuple(beneficiaries)
        seen = set()
        for name in names:
            if not isinstance(name, str) or not name:
                raise ConfigurationError(
                    "beneficiary must be a non-empty string", {"beneficiary": repr(name)}
                )
            if name in seen:
                raise ConfigurationError("duplicate beneficiary", {"beneficiary": name})
            seen.add(name)

        rows = tuple(tuple(row) for row in allocation_matrix)
        if len(rows) != len(names):
            raise ConfigurationError(
                "allocation matrix row count must equal beneficiary count",
                {"rows": len(rows), "beneficiaries": len(names)},
            )

        for name, row in zip(names, rows):
            if len(row) != len(stamps):
                raise ConfigurationError(
                    "allocation row length must equal milestone count",
                    {"beneficiary": name, "columns": len(row), "milestones": len(stamps)},
                )
            for col, amount in enumerate(row):
                if isinstance(amount, bool) or not isinstance(amount, int):
                    raise ConfigurationError(
                        "allocation amounts must be int",
                        {"beneficiary": name, "milestone": col, "amount": repr(amount)},
                    )
                if amount < 0:
                    raise ConfigurationError(
                        "allocation amounts must be non-negative",
                        {"beneficiary": name, "milestone": col, "amount": amount},
                    )

        return cls(milestones=stamps, beneficiaries=names, allocations=rows)

    # ── Queries ───────────────────────────────────────────────

    def __contains__(self, beneficiary: str) -> bool:
        return beneficiary in self._prefix

    def vested_amount(self, beneficiary: str, as_of: int) -> int:
        """Sum of allocations for milestones <= as_of. Unknown beneficiary → 0."""
        sums = self._prefix.get(beneficiary)
        if sums is None:
            return 0
        return sums[bisect_right(self.milestones, as_of)]

    def allocation_of(self, beneficiary: str) -> Tuple[Tuple[int, int], ...]:
        """(timestamp, amount) per milestone. Unknown beneficiary → ()."""
        if beneficiary not in self._prefix:
            return ()
        row = self.allocations[self.beneficiaries.index(beneficiary)]
        return tuple(zip(self.milestones, row))

    def total_allocation(self, beneficiary: str) -> int:
        sums = self._prefix.get(beneficiary)
        return sums[-1] if sums else 0

    def next_milestone(self, as_of: int) -> Optional[int]:
        """First milestone strictly after as_of, or None once fully vested."""
        i = bisect_right(self.milestones, as_of)
        return self.milestones[i] if i < len(self.milestones) else None

    # ── Persistence ───────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "milestones":    list(self.milestones),
            "beneficiaries": list(self.beneficiaries),
            "allocations":   [[str(a) for a in row] for row in self.allocations],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Schedule":
        matrix: List[List[int]] = [
            [int(a) for a in row] for row in data.get("allocations", [])
        ]
        return cls.build(
            data.get("milestones", []),
            data.get("beneficiaries", []),
            matrix,
        )
