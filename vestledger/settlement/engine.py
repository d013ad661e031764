"""
Settlement engine: vested-vs-claimed accounting and waterfall disbursement.
"""

import logging
from typing import List, Mapping, Protocol, Tuple

from vestledger.core.exceptions import ConfigurationError, TransferFailure
from vestledger.core.models import Disbursement, SettlementResult
from vestledger.state import VestingState

logger = logging.getLogger(__name__)


class AssetTransferPort(Protocol):
    """
    What the engine needs from one registered asset.

    balance_of() is the pool's spendable native balance. transfer() pays the
    pool's funds to `to` and reports success; it may also raise.
    """

    def balance_of(self, holder: str) -> int: ...

    def transfer(self, to: str, amount: int) -> bool: ...


def owed_amount(state: VestingState, beneficiary: str, now: int) -> int:
    """Vested minus already claimed, floored at zero."""
    vested  = state.schedule.vested_amount(beneficiary, now)
    claimed = state.claims.claimed_of(beneficiary)
    return max(0, vested - claimed)


class SettlementEngine:
    """
    Settles a beneficiary's owed amount across the asset registry.

    Waterfall:
        For each asset in registry order, while something is still owed,
        take min(owed, pool balance), floor it to the asset's native units,
        transfer, and credit exactly what was transferred.

    Carry-forward:
        Whatever the pool cannot cover stays owed and is picked up by a later
        settle() once more balance arrives. Shortfall is not an error.

    Atomicity:
        The claim ledger is credited once, after every transfer in the call
        has succeeded. A TransferFailure leaves the input state as the
        current state. Reverting transfers that already went out before the
        failing one is the host transaction's job (see adapters.Treasury.atomic).
    """

    def __init__(
        self,
        ports:       Mapping[str, AssetTransferPort],
        pool_holder: str,
    ):
        """
        Args:
            ports:       Transfer capability per asset, keyed by asset handle
            pool_holder: Account whose balances fund disbursements
        """
        self.ports = ports
        self.pool_holder = pool_holder

    def settle(
        self,
        state:       VestingState,
        beneficiary: str,
        now:         int,
    ) -> Tuple[VestingState, SettlementResult]:
        """
        Pay out whatever the beneficiary is owed at `now`, as far as the pool allows.

        Returns:
            (new_state, result). new_state is `state` itself on a no-op.
        """
        vested  = state.schedule.vested_amount(beneficiary, now)
        claimed = state.claims.claimed_of(beneficiary)
        owed    = vested - claimed

        if owed <= 0:
            logger.debug("settle %s: nothing owed (vested=%d claimed=%d)",
                         beneficiary, vested, claimed)
            return state, SettlementResult(
                beneficiary=    beneficiary,
                settled_at=     now,
                vested=         vested,
                claimed_before= claimed,
                owed=           0,
            )

        self._check_ports(state)

        disbursements = self._run_waterfall(state, beneficiary, owed)
        paid = sum(d.normalized_amount for d in disbursements)

        new_state = state.evolve(claims=state.claims.credit(beneficiary, paid))
        self._assert_invariant(new_state, beneficiary, vested)

        result = SettlementResult(
            beneficiary=    beneficiary,
            settled_at=     now,
            vested=         vested,
            claimed_before= claimed,
            owed=           owed,
            disbursements=  tuple(disbursements),
        )
        if result.remaining:
            logger.info("settle %s: paid %d of %d owed, %d carried forward",
                        beneficiary, paid, owed, result.remaining)
        else:
            logger.info("settle %s: paid %d in full", beneficiary, paid)
        return new_state, result

    # ── Internal ──────────────────────────────────────────────

    def _check_ports(self, state: VestingState) -> None:
        missing = [a.handle for a in state.registry if a.handle not in self.ports]
        if missing:
            raise ConfigurationError(
                "no transfer port for registered asset(s)", {"handles": missing}
            )

    def _run_waterfall(
        self,
        state:       VestingState,
        beneficiary: str,
        owed:        int,
    ) -> List[Disbursement]:
        registry  = state.registry
        remaining = owed
        legs: List[Disbursement] = []

        for asset in registry:
            if remaining <= 0:
                break
            port = self.ports[asset.handle]

            balance = self._balance(port, asset.handle)
            take_norm = min(remaining, registry.normalize(asset.index, balance))
            if take_norm == 0:
                continue

            take_native = registry.denormalize(asset.index, take_norm)
            if take_native == 0:
                # Less than one native unit owed in this asset
                continue
            disbursed_norm = registry.normalize(asset.index, take_native)

            self._transfer(port, asset.handle, beneficiary, take_native)
            logger.debug("settle %s: %s paid %d native (%d normalized)",
                         beneficiary, asset.handle, take_native, disbursed_norm)

            legs.append(Disbursement(
                asset_index=       asset.index,
                handle=            asset.handle,
                native_amount=     take_native,
                normalized_amount= disbursed_norm,
            ))
            remaining -= disbursed_norm

        return legs

    def _balance(self, port: AssetTransferPort, handle: str) -> int:
        balance = port.balance_of(self.pool_holder)
        if isinstance(balance, bool) or not isinstance(balance, int) or balance < 0:
            raise TransferFailure(
                "asset reported an invalid pool balance",
                {"handle": handle, "balance": repr(balance)},
            )
        return balance

    def _transfer(
        self,
        port:        AssetTransferPort,
        handle:      str,
        beneficiary: str,
        amount:      int,
    ) -> None:
        details = {"handle": handle, "to": beneficiary, "amount": amount}
        try:
            ok = port.transfer(beneficiary, amount)
        except TransferFailure:
            raise
        except Exception as exc:
            logger.warning("transfer of %d %s to %s raised: %s",
                           amount, handle, beneficiary, exc)
            raise TransferFailure(f"asset transfer raised: {exc}", details) from exc
        if not ok:
            logger.warning("transfer of %d %s to %s rejected",
                           amount, handle, beneficiary)
            raise TransferFailure("asset transfer rejected", details)

    @staticmethod
    def _assert_invariant(
        state:       VestingState,
        beneficiary: str,
        vested:      int,
    ) -> None:
        claimed = state.claims.claimed_of(beneficiary)
        if claimed > vested:
            raise RuntimeError(
                f"Settlement invariant violated, claimed exceeds vested: "
                f"beneficiary={beneficiary}, claimed={claimed}, vested={vested}"
            )


def settle(
    state:       VestingState,
    beneficiary: str,
    now:         int,
    ports:       Mapping[str, AssetTransferPort],
    pool_holder: str,
) -> Tuple[VestingState, SettlementResult]:
    """One-shot functional form of SettlementEngine.settle()."""
    return SettlementEngine(ports, pool_holder).settle(state, beneficiary, now)
