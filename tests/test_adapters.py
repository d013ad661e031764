"""
tests/test_adapters.py

In-memory tokens and the treasury that backs the reference transfer ports.
"""

import pytest

from vestledger.adapters.tokens import DEFAULT_POOL, InMemoryToken, PoolTransferPort, Treasury
from vestledger.core.exceptions import ConfigurationError
from vestledger.registry.registry import AssetRegistry


class TestInMemoryToken:

    def test_transfer_moves_balance(self):
        token = InMemoryToken("USDT")
        token.mint("pool", 100)
        assert token.transfer_from("pool", "alice", 40)
        assert token.balance_of("pool") == 60
        assert token.balance_of("alice") == 40
        assert token.total_supply() == 100

    def test_overdraft_is_rejected_without_side_effects(self):
        token = InMemoryToken("USDT")
        token.mint("pool", 10)
        assert not token.transfer_from("pool", "alice", 11)
        assert token.balance_of("pool") == 10
        assert token.balance_of("alice") == 0

    def test_mint_rejects_negative(self):
        with pytest.raises(ValueError):
            InMemoryToken("USDT").mint("pool", -1)

    def test_port_pays_from_pool(self):
        token = InMemoryToken("USDC", 6)
        token.mint("pool", 5)
        port = PoolTransferPort(token, "pool")
        assert port.transfer("alice", 5)
        assert port.balance_of("pool") == 0


class TestTreasury:

    def test_sync_registry_creates_tokens(self):
        treasury = Treasury()
        treasury.sync_registry(AssetRegistry.build([("USDC", 6), ("USDT", 18)]))
        assert sorted(treasury.ports) == ["USDC", "USDT"]
        assert treasury.token("USDC").decimals == 6
        assert treasury.pool_holder == DEFAULT_POOL

    def test_ports_view_is_live(self):
        treasury = Treasury()
        ports = treasury.ports
        treasury.add_token("DAI")
        assert "DAI" in ports
        assert len(ports) == 1

    def test_decimals_conflict_rejected(self):
        treasury = Treasury()
        treasury.add_token("USDC", 6)
        assert treasury.add_token("USDC", 6) is treasury.token("USDC")
        with pytest.raises(ConfigurationError):
            treasury.add_token("USDC", 18)

    def test_unknown_token(self):
        with pytest.raises(ConfigurationError):
            Treasury().pool_balance("USDC")

    def test_atomic_restores_on_error(self):
        treasury = Treasury()
        treasury.add_token("USDT")
        treasury.fund("USDT", 100)

        with pytest.raises(RuntimeError):
            with treasury.atomic():
                treasury.ports["USDT"].transfer("alice", 60)
                raise RuntimeError("abort")

        assert treasury.pool_balance("USDT") == 100
        assert treasury.balance_of("USDT", "alice") == 0

    def test_atomic_keeps_changes_on_success(self):
        treasury = Treasury()
        treasury.add_token("USDT")
        treasury.fund("USDT", 100)

        with treasury.atomic():
            treasury.ports["USDT"].transfer("alice", 60)

        assert treasury.balance_of("USDT", "alice") == 60

    def test_dict_round_trip(self):
        treasury = Treasury("custody")
        treasury.add_token("USDC", 6)
        treasury.fund("USDC", 10**30)

        restored = Treasury.from_dict(treasury.to_dict())

        assert restored.pool_holder == "custody"
        assert restored.pool_balance("USDC") == 10**30
        assert restored.to_dict() == treasury.to_dict()
