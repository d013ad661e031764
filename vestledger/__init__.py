"""
vestledger/__init__.py

vestledger: milestone vesting ledger with multi-asset waterfall settlement.

Beneficiaries earn normalized (18-decimal) amounts at fixed milestone
timestamps. Anyone may settle a beneficiary: whatever is vested and not yet
claimed is paid out across the registered assets in priority order, and any
shortfall carries forward to the next settlement.

    from vestledger import Treasury, Vesting

    treasury = Treasury()
    vesting  = Vesting.with_treasury(treasury)
    vesting.replace_asset_registry([("USDC", 6), ("USDT", 18)])
    treasury.sync_registry(vesting.state.registry)
    vesting.replace_schedule([t1, t2], ["alice"], [[100 * 10**18, 200 * 10**18]])
    vesting.start()
    vesting.settle("alice")
"""

__version__ = "0.1.0"

from vestledger.adapters.tokens import InMemoryToken, Treasury
from vestledger.core.exceptions import (
    AlreadyStartedError,
    ConfigurationError,
    JournalError,
    LifecycleError,
    NonMonotonicScheduleError,
    StoreError,
    TransferFailure,
    UnknownBeneficiaryError,
    VestingError,
)
from vestledger.core.models import (
    Asset,
    Disbursement,
    LifecycleState,
    SettlementResult,
    VestingInfo,
)
from vestledger.core.units import NORMALIZED_DECIMALS, format_units, parse_units
from vestledger.settlement.engine import AssetTransferPort, SettlementEngine
from vestledger.state import VestingState
from vestledger.vesting import Vesting

__all__ = [
    # Facade and state
    "Vesting",
    "VestingState",
    "SettlementEngine",
    "AssetTransferPort",
    # Reference collaborators
    "Treasury",
    "InMemoryToken",
    # Value types
    "Asset",
    "Disbursement",
    "LifecycleState",
    "SettlementResult",
    "VestingInfo",
    # Errors
    "VestingError",
    "ConfigurationError",
    "NonMonotonicScheduleError",
    "LifecycleError",
    "AlreadyStartedError",
    "TransferFailure",
    "UnknownBeneficiaryError",
    "JournalError",
    "StoreError",
    # Units
    "NORMALIZED_DECIMALS",
    "parse_units",
    "format_units",
]
