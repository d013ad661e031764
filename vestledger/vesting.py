"""
vestledger/vesting.py

Public operations over VestingState, and the Vesting facade that threads a
current state through them.

Functional surface: every function takes a state and returns a value or a
new state. None of them mutate their input:

    replace_asset_registry(state, assets)                          → state
    replace_schedule(state, milestones, beneficiaries, matrix, now) → state
    start(state)                                                   → state
    get_allocation(state, b) / get_claimed(state, b) / list_assets(state)
    claimable(state, b, now) / vesting_info(state, b, now)

Policy decisions:
    - configuration is rejected once started (LifecycleError)
    - start() twice raises AlreadyStartedError
    - an unknown beneficiary owes nothing; settle() is a no-op for it unless
      the caller asks for strict mode
    - claims survive reconfiguration, and a new schedule that would leave
      anyone's claims above their vested amount is rejected
"""

import logging
from contextlib import nullcontext
from typing import Any, Callable, ContextManager, Iterable, Optional, Tuple, Union

from vestledger.core.exceptions import ConfigurationError, UnknownBeneficiaryError
from vestledger.core.models import Asset, SettlementResult, VestingInfo
from vestledger.core.time import unix_now
from vestledger.ledger.journal import Journal, RecordType, StagedJournal
from vestledger.lifecycle.gate import require_configuring
from vestledger.lifecycle.gate import start as _start
from vestledger.registry.registry import AssetRegistry, AssetSpec
from vestledger.schedule.schedule import Schedule
from vestledger.settlement.engine import SettlementEngine, owed_amount
from vestledger.state import VestingState

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────

def replace_asset_registry(
    state:  VestingState,
    assets: Iterable[AssetSpec],
) -> VestingState:
    """Swap in a complete new registry. Prior state is untouched on failure."""
    require_configuring(state, "replace_asset_registry")
    registry = AssetRegistry.build(assets)
    return state.evolve(registry=registry)


def replace_schedule(
    state:             VestingState,
    milestones:        Iterable[Any],
    beneficiaries:     Iterable[str],
    allocation_matrix: Iterable[Iterable[int]],
    now:               int,
) -> VestingState:
    """
    Swap in a complete new schedule.

    Raises:
        LifecycleError            — already started
        NonMonotonicScheduleError — milestones not strictly increasing
        ConfigurationError        — shape mismatch, bad amount, or the new
                                    schedule vests less at `now` than some
                                    beneficiary has already claimed
    """
    require_configuring(state, "replace_schedule")
    schedule = Schedule.build(milestones, beneficiaries, allocation_matrix)

    for beneficiary, claimed in state.claims.items():
        vested = schedule.vested_amount(beneficiary, now)
        if claimed > vested:
            raise ConfigurationError(
                "new schedule vests less than already claimed",
                {"beneficiary": beneficiary, "claimed": claimed, "vested": vested},
            )

    return state.evolve(schedule=schedule)


def start(state: VestingState) -> VestingState:
    return _start(state)


# ─────────────────────────────────────────────────────────────
# Queries
# ─────────────────────────────────────────────────────────────

def get_allocation(state: VestingState, beneficiary: str) -> Tuple[Tuple[int, int], ...]:
    return state.schedule.allocation_of(beneficiary)


def get_claimed(state: VestingState, beneficiary: str) -> int:
    return state.claims.claimed_of(beneficiary)


def list_assets(state: VestingState) -> Tuple[Asset, ...]:
    return state.registry.assets


def is_started(state: VestingState) -> bool:
    return state.started


def claimable(state: VestingState, beneficiary: str, now: int) -> int:
    return owed_amount(state, beneficiary, now)


def vesting_info(state: VestingState, beneficiary: str, now: int) -> VestingInfo:
    schedule = state.schedule
    return VestingInfo(
        beneficiary=      beneficiary,
        allocation=       schedule.allocation_of(beneficiary),
        vested=           schedule.vested_amount(beneficiary, now),
        claimed=          state.claims.claimed_of(beneficiary),
        claimable=        owed_amount(state, beneficiary, now),
        total_allocation= schedule.total_allocation(beneficiary),
        next_milestone=   schedule.next_milestone(now),
    )


# ─────────────────────────────────────────────────────────────
# Facade
# ─────────────────────────────────────────────────────────────

class Vesting:
    """
    Stateful wrapper: holds the current VestingState and swaps in each new
    snapshot only after an operation fully succeeds.

    Args:
        engine:      SettlementEngine bound to the asset ports and pool
        state:       Starting state (fresh configuring state by default)
        clock:       Zero-arg callable returning unix seconds
        journal:     Optional signed journal (or StagedJournal); each committed
                     change is appended
        transaction: Optional zero-arg callable returning a context manager
                     that wraps each settlement (e.g. Treasury.atomic)
    """

    def __init__(
        self,
        engine:      SettlementEngine,
        state:       Optional[VestingState] = None,
        clock:       Callable[[], int] = unix_now,
        journal:     Optional[Union[Journal, StagedJournal]] = None,
        transaction: Optional[Callable[[], ContextManager[Any]]] = None,
    ):
        self.engine = engine
        self._state = state if state is not None else VestingState()
        self._clock = clock
        self.journal = journal
        self._transaction = transaction or nullcontext

    @classmethod
    def with_treasury(cls, treasury, **kwargs) -> "Vesting":
        """Facade over an adapters.Treasury: its ports, its pool, its rollback."""
        engine = SettlementEngine(treasury.ports, treasury.pool_holder)
        return cls(engine, transaction=treasury.atomic, **kwargs)

    @property
    def state(self) -> VestingState:
        return self._state

    def now(self) -> int:
        return int(self._clock())

    # ── Configuration ─────────────────────────────────────────

    def replace_asset_registry(self, assets: Iterable[AssetSpec]) -> None:
        new_state = replace_asset_registry(self._state, assets)
        self._record(RecordType.REGISTRY_REPLACED, {
            "assets": new_state.registry.to_list(),
        })
        self._state = new_state
        logger.info("asset registry replaced: %d asset(s)", len(new_state.registry))

    def replace_schedule(
        self,
        milestones:        Iterable[Any],
        beneficiaries:     Iterable[str],
        allocation_matrix: Iterable[Iterable[int]],
    ) -> None:
        new_state = replace_schedule(
            self._state, milestones, beneficiaries, allocation_matrix, self.now(),
        )
        self._record(RecordType.SCHEDULE_REPLACED, new_state.schedule.to_dict())
        self._state = new_state
        logger.info(
            "schedule replaced: %d milestone(s), %d beneficiary(ies)",
            len(new_state.schedule.milestones),
            len(new_state.schedule.beneficiaries),
        )

    def start(self) -> None:
        new_state = start(self._state)
        self._record(RecordType.STARTED, {})
        self._state = new_state
        logger.info("vesting started")

    # ── Settlement ────────────────────────────────────────────

    def settle(self, beneficiary: str, strict: bool = False) -> SettlementResult:
        """
        Pay the beneficiary whatever is vested and unpaid, as far as the pool allows.

        Any caller may settle any beneficiary. With strict=True a beneficiary
        missing from the schedule raises UnknownBeneficiaryError instead of
        returning a no-op result.
        """
        if strict and beneficiary not in self._state.schedule:
            raise UnknownBeneficiaryError(
                "beneficiary is not in the schedule", {"beneficiary": beneficiary}
            )

        now = self.now()
        with self._transaction():
            new_state, result = self.engine.settle(self._state, beneficiary, now)
            if not result.is_noop:
                self._record(RecordType.SETTLEMENT, result.to_dict(), timestamp=now)

        self._state = new_state
        return result

    # ── Queries ───────────────────────────────────────────────

    @property
    def started(self) -> bool:
        return self._state.started

    def get_allocation(self, beneficiary: str) -> Tuple[Tuple[int, int], ...]:
        return get_allocation(self._state, beneficiary)

    def get_claimed(self, beneficiary: str) -> int:
        return get_claimed(self._state, beneficiary)

    def list_assets(self) -> Tuple[Asset, ...]:
        return list_assets(self._state)

    def claimable(self, beneficiary: str) -> int:
        return claimable(self._state, beneficiary, self.now())

    def vesting_info(self, beneficiary: str) -> VestingInfo:
        return vesting_info(self._state, beneficiary, self.now())

    # ── Internal ──────────────────────────────────────────────

    def _record(self, record_type: str, payload: dict, timestamp: Optional[int] = None) -> None:
        if self.journal is not None:
            self.journal.append(record_type, payload, timestamp=timestamp)
