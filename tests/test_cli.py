"""
tests/test_cli.py

Operator CLI flows against a temporary home directory.

Exit codes: 0 ok, 1 operation rejected, 2 environment/file error.

A claim never settles past the wall clock, and the journal only ever records
changes that reached state.json.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from vestledger.cli import cli
from vestledger.cli.session import JOURNAL_FILE, KEY_FILE, STATE_FILE, Session
from vestledger.core.exceptions import StoreError
from vestledger.store import StateStore

EXAMPLE_CONFIG = str(Path(__file__).resolve().parent.parent / "examples" / "networks.yaml")

AFTER_T1 = "2025-09-01T00:01:40Z"
AT_T2 = "2025-10-01T00:00:00Z"

RECORD_SETTLEMENT = "settlement"

FAR_FUTURE_CONFIG = """
networks:
  local:
    assets:
      - handle: "USDT"
        decimals: 18
    milestones:
      - "2090-01-01T00:00:00Z"
    beneficiaries:
      "alice": ["100"]
"""

NON_MONOTONIC_CONFIG = """
networks:
  local:
    assets:
      - handle: "USDT"
        decimals: 18
    milestones:
      - "2090-01-01T00:00:00Z"
      - "2080-01-01T00:00:00Z"
    beneficiaries:
      "alice": ["100", "200"]
"""

REPLACEMENT_CONFIG = """
networks:
  local:
    assets:
      - handle: "DAI"
        decimals: 18
      - handle: "USDC"
        decimals: 6
    milestones:
      - "2025-09-01T00:00:00Z"
    beneficiaries:
      "carol": ["50"]
"""


# ─────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def home(tmp_path):
    return tmp_path / "home"


@pytest.fixture
def invoke(runner, home):
    """Helper: run a vestledger command against the temp home."""
    def _invoke(*args):
        return runner.invoke(cli, ["--home", str(home), *args])
    return _invoke


@pytest.fixture
def deployed(invoke):
    result = invoke("deploy", EXAMPLE_CONFIG, "--network", "local", "--start")
    assert result.exit_code == 0, result.output
    return invoke


@pytest.fixture
def write_config(tmp_path):
    """Helper: write a YAML config under tmp_path and return its path as str."""
    def _write(text, name="networks.yaml"):
        path = tmp_path / name
        path.write_text(text)
        return str(path)
    return _write


def journal_types(home):
    """Record types in the journal file, in order. Empty if it was never written."""
    path = home / JOURNAL_FILE
    if not path.exists():
        return []
    return [json.loads(line)["record_type"] for line in path.read_text().splitlines() if line.strip()]


# ─────────────────────────────────────────────────────────────
# Deploy / start
# ─────────────────────────────────────────────────────────────

class TestDeploy:

    def test_deploy_writes_state_journal_and_key(self, deployed, home):
        assert (home / STATE_FILE).exists()
        assert (home / JOURNAL_FILE).exists()
        assert (home / KEY_FILE).exists()

    def test_deploy_reports_counts(self, invoke):
        result = invoke("deploy", EXAMPLE_CONFIG, "--network", "local")
        assert result.exit_code == 0
        assert "2 asset(s)" in result.output
        assert "[started]" not in result.output

    def test_assets_listed_in_priority_order(self, deployed):
        result = deployed("assets", "--format", "json")
        assert result.exit_code == 0
        rows = json.loads(result.output)
        assert [(r["index"], r["handle"], r["decimals"]) for r in rows] == [
            (0, "USDC", 6),
            (1, "USDT", 18),
        ]

    def test_redeploy_after_start_rejected(self, deployed):
        result = deployed("deploy", EXAMPLE_CONFIG, "--network", "local")
        assert result.exit_code == 1
        assert "ERROR" in result.output

    def test_start_twice_rejected(self, deployed):
        result = deployed("start")
        assert result.exit_code == 1

    def test_separate_start(self, invoke):
        invoke("deploy", EXAMPLE_CONFIG, "--network", "local")
        result = invoke("start")
        assert result.exit_code == 0
        assert "started" in result.output

    def test_unknown_network_is_a_file_error(self, invoke):
        result = invoke("deploy", EXAMPLE_CONFIG, "--network", "ropsten")
        assert result.exit_code == 2


# ─────────────────────────────────────────────────────────────
# Fund / claim / info
# ─────────────────────────────────────────────────────────────

class TestClaimFlow:

    def test_fund_and_claim(self, deployed):
        assert deployed("fund", "USDT", "1800").exit_code == 0

        result = deployed("claim", "alice", "--at", AFTER_T1, "--format", "json")
        assert result.exit_code == 0, result.output
        out = json.loads(result.output)
        assert out["disbursed"] == str(100 * 10**18)
        assert out["disbursements"][0]["handle"] == "USDT"

        result = deployed("claim", "alice", "--at", AT_T2, "--format", "json")
        assert json.loads(result.output)["disbursed"] == str(200 * 10**18)

        result = deployed("claim", "alice", "--at", AT_T2)
        assert "Nothing to claim" in result.output

    def test_claim_is_persisted_between_invocations(self, deployed):
        deployed("fund", "USDC", "40.5")
        deployed("claim", "alice", "--at", AFTER_T1)

        result = deployed("info", "alice", "--at", AFTER_T1, "--format", "json")

        info = json.loads(result.output)
        assert info["claimed"] == str(405 * 10**17)
        assert info["claimable"] == str(595 * 10**17)
        assert info["started"] is True

    def test_underfunded_claim_warns(self, deployed):
        deployed("fund", "USDC", "10")
        result = deployed("claim", "alice", "--at", AFTER_T1)
        assert result.exit_code == 0
        assert "still owed" in result.output

    def test_info_human(self, deployed):
        result = deployed("info", "bob", "--at", AFTER_T1)
        assert result.exit_code == 0
        assert "Claimable    1200" in result.output
        assert "Next         2025-10-01T00:00:00Z" in result.output

    def test_unknown_beneficiary(self, deployed):
        deployed("fund", "USDT", "10")
        assert deployed("claim", "mallory", "--at", AT_T2).exit_code == 0
        assert deployed("claim", "mallory", "--at", AT_T2, "--strict").exit_code == 1

    def test_fund_unknown_asset(self, deployed):
        assert deployed("fund", "DAI", "10").exit_code == 1

    def test_fund_excess_precision(self, deployed):
        assert deployed("fund", "USDC", "0.0000001").exit_code == 2

    def test_bad_timestamp(self, deployed):
        assert deployed("claim", "alice", "--at", "yesterday").exit_code == 2


# ─────────────────────────────────────────────────────────────
# Verify / environment errors
# ─────────────────────────────────────────────────────────────

class TestVerify:

    def test_valid_journal(self, deployed):
        deployed("fund", "USDT", "1800")
        deployed("claim", "alice", "--at", AFTER_T1)

        result = deployed("verify")

        assert result.exit_code == 0
        assert "VALID" in result.output
        assert "settlement: 1" in result.output

    def test_tampered_journal(self, deployed, home):
        deployed("fund", "USDT", "1800")
        deployed("claim", "alice", "--at", AFTER_T1)

        path = home / JOURNAL_FILE
        lines = path.read_text().splitlines()
        record = json.loads(lines[-1])
        record["payload"]["disbursed"] = str(10**24)
        lines[-1] = json.dumps(record)
        path.write_text("\n".join(lines) + "\n")

        result = deployed("verify", "--quiet")
        assert result.exit_code == 1
        assert result.output == ""

    def test_missing_journal(self, invoke):
        assert invoke("verify").exit_code == 2

    def test_corrupt_state_file(self, deployed, home):
        (home / STATE_FILE).write_text("{")
        result = deployed("info", "alice")
        assert result.exit_code == 2
        assert "ERROR" in result.output


# ─────────────────────────────────────────────────────────────
# Wall clock: claimed never exceeds what has vested by now
# ─────────────────────────────────────────────────────────────

class TestWallClock:

    @pytest.fixture
    def far_future(self, invoke, write_config):
        """One milestone in 2090, alice 100, pool funded with 1000 USDT."""
        config = write_config(FAR_FUTURE_CONFIG)
        assert invoke("deploy", config, "--network", "local", "--start").exit_code == 0
        assert invoke("fund", "USDT", "1000").exit_code == 0
        return invoke

    def test_future_dated_claim_rejected(self, far_future, home):
        result = far_future("claim", "alice", "--at", "2095-01-01T00:00:00Z")

        assert result.exit_code == 2
        assert "future" in result.output

        info = json.loads(far_future("info", "alice", "--format", "json").output)
        assert info["claimed"] == "0"
        assert info["vested"] == "0"
        assert RECORD_SETTLEMENT not in journal_types(home)

    def test_pool_untouched_after_rejected_claim(self, far_future):
        far_future("claim", "alice", "--at", "2095-01-01T00:00:00Z")
        rows = json.loads(far_future("assets", "--format", "json").output)
        assert rows[0]["pool_balance"] == str(1000 * 10**18)

    def test_claim_now_pays_nothing_before_milestone(self, far_future):
        result = far_future("claim", "alice")
        assert result.exit_code == 0
        assert "Nothing to claim" in result.output

    def test_info_may_look_ahead(self, far_future):
        """info is read-only, so a future --at is allowed there."""
        result = far_future("info", "alice", "--at", "2095-01-01T00:00:00Z", "--format", "json")
        assert result.exit_code == 0
        info = json.loads(result.output)
        assert info["claimable"] == str(100 * 10**18)
        assert info["claimed"] == "0"


# ─────────────────────────────────────────────────────────────
# Journal and state stay in step
# ─────────────────────────────────────────────────────────────

class TestRejectedConfiguration:

    def test_bad_schedule_leaves_no_state_and_empty_journal(self, invoke, home, write_config):
        """The registry step succeeds, the schedule step fails: nothing is kept."""
        config = write_config(NON_MONOTONIC_CONFIG)

        result = invoke("deploy", config, "--network", "local")

        assert result.exit_code == 1
        assert not (home / STATE_FILE).exists()
        assert journal_types(home) == []

    def test_rejected_redeploy_keeps_previous_journal(self, invoke, home, write_config):
        assert invoke("deploy", EXAMPLE_CONFIG, "--network", "local").exit_code == 0
        before = journal_types(home)
        assert before == ["registry_replaced", "schedule_replaced"]

        result = invoke("deploy", write_config(NON_MONOTONIC_CONFIG), "--network", "local")

        assert result.exit_code == 1
        assert journal_types(home) == before
        rows = json.loads(invoke("assets", "--format", "json").output)
        assert [r["handle"] for r in rows] == ["USDC", "USDT"]
        assert invoke("verify", "--quiet").exit_code == 0

    def test_failed_save_writes_no_journal(self, home, monkeypatch):
        session = Session.open(home)
        session.vesting.replace_asset_registry([("USDT", 18)])

        def broken_save(self, state, treasury):
            raise StoreError("disk full")
        monkeypatch.setattr(StateStore, "save", broken_save)

        with pytest.raises(StoreError):
            session.save()
        assert journal_types(home) == []
        assert session.journal.pending == 1

    def test_successful_commands_are_journaled(self, deployed, home):
        deployed("fund", "USDT", "1800")
        deployed("claim", "alice", "--at", AFTER_T1)
        assert journal_types(home) == [
            "registry_replaced", "schedule_replaced", "started", RECORD_SETTLEMENT,
        ]


# ─────────────────────────────────────────────────────────────
# Per-task configuration
# ─────────────────────────────────────────────────────────────

class TestSetCommands:

    def test_set_assets_then_schedule_then_start(self, invoke, home):
        result = invoke("set-assets", EXAMPLE_CONFIG, "--network", "local")
        assert result.exit_code == 0, result.output
        assert "[0] USDC, [1] USDT" in result.output

        result = invoke("set-schedule", EXAMPLE_CONFIG, "--network", "local")
        assert result.exit_code == 0, result.output
        assert "2 milestone(s), 2 beneficiary(ies)" in result.output

        assert invoke("start").exit_code == 0
        assert journal_types(home) == ["registry_replaced", "schedule_replaced", "started"]

        info = json.loads(invoke("info", "bob", "--at", AT_T2, "--format", "json").output)
        assert info["total_allocation"] == str(1500 * 10**18)

    def test_set_assets_replaces_only_registry(self, invoke, write_config):
        invoke("deploy", EXAMPLE_CONFIG, "--network", "local")

        result = invoke("set-assets", write_config(REPLACEMENT_CONFIG), "--network", "local")

        assert result.exit_code == 0, result.output
        rows = json.loads(invoke("assets", "--format", "json").output)
        assert [(r["index"], r["handle"]) for r in rows] == [(0, "DAI"), (1, "USDC")]
        info = json.loads(invoke("info", "alice", "--at", AT_T2, "--format", "json").output)
        assert info["total_allocation"] == str(300 * 10**18)

    def test_set_schedule_replaces_only_schedule(self, invoke, write_config):
        invoke("deploy", EXAMPLE_CONFIG, "--network", "local")

        result = invoke("set-schedule", write_config(REPLACEMENT_CONFIG), "--network", "local")

        assert result.exit_code == 0, result.output
        rows = json.loads(invoke("assets", "--format", "json").output)
        assert [r["handle"] for r in rows] == ["USDC", "USDT"]
        carol = json.loads(invoke("info", "carol", "--at", AT_T2, "--format", "json").output)
        assert carol["total_allocation"] == str(50 * 10**18)
        alice = json.loads(invoke("info", "alice", "--at", AT_T2, "--format", "json").output)
        assert alice["total_allocation"] == "0"

    def test_set_commands_rejected_after_start(self, deployed, home):
        before = journal_types(home)
        assert deployed("set-assets", EXAMPLE_CONFIG, "--network", "local").exit_code == 1
        assert deployed("set-schedule", EXAMPLE_CONFIG, "--network", "local").exit_code == 1
        assert journal_types(home) == before

    def test_bad_schedule_rejected(self, invoke, home, write_config):
        result = invoke("set-schedule", write_config(NON_MONOTONIC_CONFIG), "--network", "local")
        assert result.exit_code == 1
        assert journal_types(home) == []
