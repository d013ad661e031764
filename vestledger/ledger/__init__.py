"""
vestledger Ledger

ClaimLedger is the per-beneficiary claimed counter the engine settles against.
Journal is the signed, hash-chained audit trail of committed state changes.
"""

from vestledger.ledger.ledger import ClaimLedger
from vestledger.ledger.journal import (
    Journal,
    JournalRecord,
    JournalReport,
    RecordType,
    StagedJournal,
)

__all__ = [
    "ClaimLedger",
    "Journal",
    "JournalRecord",
    "JournalReport",
    "RecordType",
    "StagedJournal",
]
