"""
In-memory fungible tokens and the treasury that holds the vesting pool.

This is the reference asset-transfer collaborator: what tests, the CLI and
local simulations plug into the settlement engine. A deployment against a
real ledger supplies its own AssetTransferPort per asset instead.

Treasury.atomic() plays the part of the host transaction. Balances are
snapshotted on entry and restored if the block raises, so a settlement that
fails on its second asset also undoes the transfer made on its first.
"""

import copy
from collections.abc import Mapping
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from vestledger.core.exceptions import ConfigurationError
from vestledger.registry.registry import AssetRegistry

DEFAULT_POOL = "vesting-pool"


class InMemoryToken:
    """Minimal balance-sheet token: mint, balance_of, transfer_from."""

    def __init__(self, handle: str, decimals: int = 18):
        self.handle = handle
        self.decimals = decimals
        self.balances: Dict[str, int] = {}

    def mint(self, holder: str, amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValueError(f"mint amount must be a non-negative int, got {amount!r}")
        self.balances[holder] = self.balances.get(holder, 0) + amount

    def balance_of(self, holder: str) -> int:
        return self.balances.get(holder, 0)

    def transfer_from(self, sender: str, to: str, amount: int) -> bool:
        """Move `amount` from sender to `to`. False if the sender cannot cover it."""
        if amount < 0 or self.balances.get(sender, 0) < amount:
            return False
        self.balances[sender] -= amount
        self.balances[to] = self.balances.get(to, 0) + amount
        return True

    def total_supply(self) -> int:
        return sum(self.balances.values())

    def __repr__(self) -> str:
        return f"InMemoryToken(handle={self.handle!r}, decimals={self.decimals})"


class PoolTransferPort:
    """Binds one token to the pool account: the engine's view of one asset."""

    def __init__(self, token: InMemoryToken, pool_holder: str):
        self.token = token
        self.pool_holder = pool_holder

    def balance_of(self, holder: str) -> int:
        return self.token.balance_of(holder)

    def transfer(self, to: str, amount: int) -> bool:
        return self.token.transfer_from(self.pool_holder, to, amount)


class TreasuryPorts(Mapping):
    """Read-only Mapping[handle, PoolTransferPort] over a treasury's tokens."""

    def __init__(self, treasury: "Treasury"):
        self._treasury = treasury

    def __getitem__(self, handle: str) -> PoolTransferPort:
        token = self._treasury.tokens[handle]
        return PoolTransferPort(token, self._treasury.pool_holder)

    def __iter__(self) -> Iterator[str]:
        return iter(self._treasury.tokens)

    def __len__(self) -> int:
        return len(self._treasury.tokens)


class Treasury:
    """Token set plus the pool account vesting disbursements are paid from."""

    def __init__(self, pool_holder: str = DEFAULT_POOL):
        self.pool_holder = pool_holder
        self.tokens: Dict[str, InMemoryToken] = {}

    # ── Tokens ────────────────────────────────────────────────

    def add_token(self, handle: str, decimals: int = 18) -> InMemoryToken:
        existing = self.tokens.get(handle)
        if existing is not None:
            if existing.decimals != decimals:
                raise ConfigurationError(
                    "token already exists with different decimals",
                    {"handle": handle, "existing": existing.decimals, "requested": decimals},
                )
            return existing
        token = InMemoryToken(handle, decimals)
        self.tokens[handle] = token
        return token

    def token(self, handle: str) -> InMemoryToken:
        try:
            return self.tokens[handle]
        except KeyError:
            raise ConfigurationError("unknown token", {"handle": handle})

    def sync_registry(self, registry: AssetRegistry) -> None:
        """Make sure every registered asset has a token behind it."""
        for asset in registry:
            self.add_token(asset.handle, asset.decimals)

    def fund(self, handle: str, amount: int) -> None:
        """Mint `amount` native units of `handle` into the pool."""
        self.token(handle).mint(self.pool_holder, amount)

    def pool_balance(self, handle: str) -> int:
        return self.token(handle).balance_of(self.pool_holder)

    def balance_of(self, handle: str, holder: str) -> int:
        return self.token(handle).balance_of(holder)

    @property
    def ports(self) -> "TreasuryPorts":
        """Live handle → port view; tokens added later are visible immediately."""
        return TreasuryPorts(self)

    # ── Host transaction ──────────────────────────────────────

    @contextmanager
    def atomic(self) -> Iterator["Treasury"]:
        snapshot = {h: copy.copy(t.balances) for h, t in self.tokens.items()}
        try:
            yield self
        except BaseException:
            for handle, balances in snapshot.items():
                self.tokens[handle].balances = balances
            raise

    # ── Persistence ───────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_holder": self.pool_holder,
            "tokens": {
                handle: {
                    "decimals": token.decimals,
                    "balances": {h: str(v) for h, v in token.balances.items()},
                }
                for handle, token in self.tokens.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Treasury":
        data = data or {}
        treasury = cls(data.get("pool_holder", DEFAULT_POOL))
        for handle, entry in data.get("tokens", {}).items():
            token = treasury.add_token(handle, entry.get("decimals", 18))
            token.balances = {h: int(v) for h, v in entry.get("balances", {}).items()}
        return treasury
