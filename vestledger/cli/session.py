"""
Operator session: everything a CLI command needs, loaded from one home directory.

    <home>/state.json      vesting state + simulated treasury (StateStore)
    <home>/journal.jsonl   signed disbursement journal
    <home>/operator.key    Ed25519 key that signs the journal

Journal records are staged while a command runs and written only after
state.json has been saved, so a rejected or unsaved command leaves no trace
in the journal.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from vestledger.adapters.tokens import Treasury
from vestledger.core.crypto import OperatorKey
from vestledger.core.time import unix_now
from vestledger.ledger.journal import Journal, StagedJournal
from vestledger.store import StateStore
from vestledger.vesting import Vesting

STATE_FILE   = "state.json"
JOURNAL_FILE = "journal.jsonl"
KEY_FILE     = "operator.key"


@dataclass
class Session:
    home:     Path
    store:    StateStore
    treasury: Treasury
    vesting:  Vesting
    journal:  StagedJournal

    @classmethod
    def open(cls, home: Path, at: Optional[int] = None) -> "Session":
        """Load state from `home`. `at` pins the clock for back-dated runs."""
        home = Path(home)
        store = StateStore(home / STATE_FILE)
        state, treasury = store.load()
        key = OperatorKey.load_or_create(home / KEY_FILE)
        journal = StagedJournal(Journal(home / JOURNAL_FILE, key))
        clock = (lambda: at) if at is not None else unix_now
        vesting = Vesting.with_treasury(
            treasury, state=state, clock=clock, journal=journal,
        )
        return cls(home=home, store=store, treasury=treasury, vesting=vesting, journal=journal)

    def save(self) -> None:
        """Persist state, then write the records staged for it."""
        self.store.save(self.vesting.state, self.treasury)
        self.journal.flush()
