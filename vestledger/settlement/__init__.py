"""
vestledger Settlement Engine

Computes vested vs. claimed and runs the waterfall disbursement across the
asset registry.

Critical Invariants:
- claimed never exceeds vested, for any beneficiary, after any call
- the ledger records re-derived (post-floor) amounts, never targets
- a failed transfer commits nothing
- owed == 0 is a no-op, not an error
"""

from vestledger.settlement.engine import (
    AssetTransferPort,
    SettlementEngine,
    owed_amount,
    settle,
)

__all__ = ["AssetTransferPort", "SettlementEngine", "owed_amount", "settle"]
