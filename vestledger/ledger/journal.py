"""
vestledger/ledger/journal.py

Disbursement journal — append-only, hash-chained, Ed25519-signed JSONL.

Every state change the Vesting facade commits is appended here as one
JournalRecord. The journal is an audit trail, not the source of truth:
state lives in VestingState and is persisted by store.StateStore.

Record contract:
    signed bytes = canonicalize(record.to_signing_dict())
    causal_hash  = SHA-256(canonicalize(prev.to_signing_dict()))
    first record = GENESIS_HASH ("0" * 64)
    sequence     = 0, 1, 2, ... with no gaps

append() MUST, in this order:
    1. Acquire lock
    2. Build the record with causal_hash from the last record
    3. Sign
    4. Append one JSON line to disk
    5. Advance in-memory state only after the write succeeded
"""

import json
import logging
import threading
import uuid
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from vestledger.core.canonical import canonical_hash, canonicalize
from vestledger.core.crypto import OperatorKey
from vestledger.core.exceptions import JournalError
from vestledger.core.time import unix_now

logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64


class RecordType:
    """The only valid JournalRecord.record_type values."""
    REGISTRY_REPLACED = "registry_replaced"
    SCHEDULE_REPLACED = "schedule_replaced"
    STARTED           = "started"
    SETTLEMENT        = "settlement"


_VALID_RECORD_TYPES = {
    RecordType.REGISTRY_REPLACED,
    RecordType.SCHEDULE_REPLACED,
    RecordType.STARTED,
    RecordType.SETTLEMENT,
}


# ─────────────────────────────────────────────────────────────
# JournalRecord
# ─────────────────────────────────────────────────────────────

@dataclass
class JournalRecord:
    record_id:         str
    record_type:       str
    sequence:          int
    timestamp:         int
    causal_hash:       str
    signer_public_key: str
    payload:           Dict[str, Any]
    signature:         Optional[str] = None

    @classmethod
    def create(
        cls,
        record_type:       str,
        sequence:          int,
        signer_public_key: str,
        payload:           Dict[str, Any],
        prev:              Optional["JournalRecord"] = None,
        timestamp:         Optional[int] = None,
    ) -> "JournalRecord":
        if record_type not in _VALID_RECORD_TYPES:
            raise ValueError(
                f"Invalid record_type '{record_type}'. "
                f"Valid: {sorted(_VALID_RECORD_TYPES)}"
            )
        if not isinstance(payload, dict):
            raise TypeError(f"payload must be dict, got {type(payload).__name__}")

        return cls(
            record_id=         f"vj-{uuid.uuid4()}",
            record_type=       record_type,
            sequence=          sequence,
            timestamp=         unix_now() if timestamp is None else timestamp,
            causal_hash=       cls.causal_hash_of(prev),
            signer_public_key= signer_public_key,
            payload=           payload,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalRecord":
        return cls(
            record_id=         data["record_id"],
            record_type=       data["record_type"],
            sequence=          data["sequence"],
            timestamp=         data["timestamp"],
            causal_hash=       data["causal_hash"],
            signer_public_key= data["signer_public_key"],
            payload=           data.get("payload", {}),
            signature=         data.get("signature"),
        )

    def to_signing_dict(self) -> Dict[str, Any]:
        """Every field except signature. Also the surface hashed into the next record."""
        return {
            "causal_hash":       self.causal_hash,
            "payload":           self.payload,
            "record_id":         self.record_id,
            "record_type":       self.record_type,
            "sequence":          self.sequence,
            "signer_public_key": self.signer_public_key,
            "timestamp":         self.timestamp,
        }

    def to_dict(self) -> Dict[str, Any]:
        d = self.to_signing_dict().copy()
        d["signature"] = self.signature
        return d

    @staticmethod
    def causal_hash_of(prev: Optional["JournalRecord"]) -> str:
        if prev is None:
            return GENESIS_HASH
        return canonical_hash(prev.to_signing_dict())

    def sign(self, operator_key: OperatorKey) -> "JournalRecord":
        self.signature = operator_key.sign(canonicalize(self.to_signing_dict()))
        return self

    def verify_signature(self) -> bool:
        if not self.signature:
            return False
        return OperatorKey.verify(
            canonicalize(self.to_signing_dict()),
            self.signature,
            self.signer_public_key,
        )

    def verify_chain(self, prev: Optional["JournalRecord"]) -> bool:
        return self.causal_hash == self.causal_hash_of(prev)


# ─────────────────────────────────────────────────────────────
# Verification report
# ─────────────────────────────────────────────────────────────

@dataclass
class JournalViolation:
    at_sequence:    int
    record_id:      str
    violation_type: str   # "sequence_gap" | "chain_break" | "invalid_signature"
    detail:         str


@dataclass
class JournalReport:
    total_records:      int
    violations:         List[JournalViolation] = field(default_factory=list)
    record_type_counts: Dict[str, int]         = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.violations


# ─────────────────────────────────────────────────────────────
# Journal
# ─────────────────────────────────────────────────────────────

class Journal:
    """
    Append-only signed journal backed by a single JSONL file.

    State (next sequence, last record) is restored from the file on
    construction so a restarted process keeps extending the same chain.
    """

    def __init__(self, path: Path, operator_key: OperatorKey) -> None:
        self.path        = Path(path)
        self.operator_key = operator_key

        self._lock:     threading.Lock          = threading.Lock()
        self._sequence: int                     = 0
        self._last:     Optional[JournalRecord] = None

        self._restore_state()

    # ── Public API ────────────────────────────────────────────

    def append(
        self,
        record_type: str,
        payload:     Dict[str, Any],
        timestamp:   Optional[int] = None,
    ) -> JournalRecord:
        """Sign and append one record. Raises JournalError on write failure."""
        with self._lock:
            record = JournalRecord.create(
                record_type=       record_type,
                sequence=          self._sequence,
                signer_public_key= self.operator_key.public_key_hex,
                payload=           payload,
                prev=              self._last,
                timestamp=         timestamp,
            ).sign(self.operator_key)

            self._write(record)

            self._sequence += 1
            self._last      = record

        logger.debug("journal: appended %s seq=%d", record_type, record.sequence)
        return record

    def records(self) -> List[JournalRecord]:
        """Load every record from disk. Raises JournalError on malformed lines."""
        if not self.path.exists():
            return []
        records: List[JournalRecord] = []
        with open(self.path, "r", encoding="utf-8") as f:
            for line_num, raw in enumerate(f, 1):
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    records.append(JournalRecord.from_dict(json.loads(raw)))
                except (json.JSONDecodeError, KeyError) as exc:
                    raise JournalError(
                        f"Malformed journal line {line_num}: {exc}",
                        {"path": str(self.path)},
                    ) from exc
        return records

    def verify(self) -> JournalReport:
        """Check sequence continuity, causal hashes and signatures."""
        records = self.records()
        report = JournalReport(total_records=len(records))

        prev: Optional[JournalRecord] = None
        for i, record in enumerate(records):
            report.record_type_counts[record.record_type] = (
                report.record_type_counts.get(record.record_type, 0) + 1
            )
            if record.sequence != i:
                report.violations.append(JournalViolation(
                    at_sequence=    i,
                    record_id=      record.record_id,
                    violation_type= "sequence_gap",
                    detail=         f"Expected sequence {i}, got {record.sequence}",
                ))
            if not record.verify_chain(prev):
                expected = JournalRecord.causal_hash_of(prev)
                report.violations.append(JournalViolation(
                    at_sequence=    record.sequence,
                    record_id=      record.record_id,
                    violation_type= "chain_break",
                    detail=(
                        f"causal_hash mismatch: expected ...{expected[-12:]}, "
                        f"got ...{record.causal_hash[-12:]}"
                    ),
                ))
            if not record.verify_signature():
                report.violations.append(JournalViolation(
                    at_sequence=    record.sequence,
                    record_id=      record.record_id,
                    violation_type= "invalid_signature",
                    detail=         "Ed25519 signature does not verify",
                ))
            prev = record

        return report

    @property
    def next_sequence(self) -> int:
        return self._sequence

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        """
        Restore sequence and last record from an existing journal.
        A corrupt last line leaves state at genesis and issues a RuntimeWarning.
        """
        if not self.path.exists():
            return

        last_line = None
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                stripped = line.strip()
                if stripped:
                    last_line = stripped

        if not last_line:
            return

        try:
            record = JournalRecord.from_dict(json.loads(last_line))
        except (json.JSONDecodeError, KeyError) as exc:
            warnings.warn(
                f"Journal: could not restore state from {self.path}: {exc}. "
                "Last line may be corrupted. Run verify() before appending.",
                RuntimeWarning,
                stacklevel=3,
            )
            return

        self._sequence = record.sequence + 1
        self._last     = record

    def _write(self, record: JournalRecord) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record.to_dict()) + "\n")
        except OSError as exc:
            raise JournalError(
                f"Journal write failed: {exc}", {"path": str(self.path)}
            ) from exc


# ─────────────────────────────────────────────────────────────
# StagedJournal
# ─────────────────────────────────────────────────────────────

class StagedJournal:
    """
    Holds records in memory until flush(), for callers that persist state
    separately. Records reach disk only after the state they describe is
    saved; discard() drops them when that save never happens.

    Timestamps are taken at append() time, not at flush() time.
    """

    def __init__(self, journal: Journal) -> None:
        self.journal = journal
        self._pending: List[tuple] = []

    def append(
        self,
        record_type: str,
        payload:     Dict[str, Any],
        timestamp:   Optional[int] = None,
    ) -> None:
        if record_type not in _VALID_RECORD_TYPES:
            raise ValueError(f"Invalid record_type '{record_type}'")
        self._pending.append(
            (record_type, dict(payload), unix_now() if timestamp is None else timestamp)
        )

    @property
    def pending(self) -> int:
        return len(self._pending)

    def flush(self) -> List[JournalRecord]:
        """
        Write every pending record in order. A record leaves the queue only
        once written, so a failed flush can be retried without duplicates.
        """
        written: List[JournalRecord] = []
        while self._pending:
            record_type, payload, timestamp = self._pending[0]
            written.append(self.journal.append(record_type, payload, timestamp=timestamp))
            self._pending.pop(0)
        return written

    def discard(self) -> None:
        if self._pending:
            logger.debug("journal: discarded %d staged record(s)", len(self._pending))
        self._pending.clear()
