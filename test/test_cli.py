"""
Tests for the command line interface.

Each invocation runs against a fresh in-process ledger, so these cover
argument handling, output shape and exit codes rather than state that
spans several commands.
"""

import json

import pytest

from blockfund.cli import EXIT_CODES, build_parser, main
from blockfund.shared.exceptions import LedgerErrorCode


@pytest.fixture(autouse=True)
def memory_network(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BLOCKFUND_NETWORK", "memory")
    monkeypatch.setenv("BLOCKFUND_PROJECTION_DB_URL", "sqlite://")
    monkeypatch.setenv("BLOCKFUND_LOG_LEVEL", "WARNING")


class TestCommands:
    def test_create(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["create", "--goal", "2.5", "--duration", "3600", "--cid", "bafy-meta"])

        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["operation"] == "createCampaign"
        assert output["campaignId"] == 1
        assert output["reconciled"] is False
        assert output["campaign"]["goal"] == "2.5"
        assert output["campaign"]["totalFunded"] == "0.0"
        assert output["campaign"]["status"] == "ACTIVE"
        assert output["campaign"]["metadataCID"] == "bafy-meta"
        assert output["campaign"]["deadline"].endswith("+00:00")

    def test_create_with_iso_deadline(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["create", "--goal", "1", "--deadline", "2999-01-01T00:00:00"])

        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["campaign"]["deadline"] == "2999-01-01T00:00:00+00:00"

    def test_count_on_fresh_ledger(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["count"]) == 0
        assert json.loads(capsys.readouterr().out) == {"count": 0}

    def test_balance_defaults_to_signer(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--key", "alice-secret", "balance"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["address"].startswith("0x")
        assert output["balance"] == "0.0"


class TestExitCodes:
    def test_unknown_campaign(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["get", "5"])

        assert code == 11
        error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert error["error"] == "NOT_FOUND"
        assert error["campaignId"] == 5

    @pytest.mark.parametrize("command", ["withdraw", "close", "refund", "contributions"])
    def test_operations_on_unknown_campaign(self, command: str) -> None:
        assert main([command, "3"]) == 11

    def test_unknown_campaign_without_precheck(self) -> None:
        assert main(["--no-precheck", "contribute", "3", "1"]) == 11

    def test_invalid_amount(self) -> None:
        assert main(["contribute", "1", "abc"]) == 14
        assert main(["contribute", "1", "-2"]) == 14

    def test_invalid_goal(self) -> None:
        assert main(["create", "--goal", "0", "--duration", "60"]) == 10
        assert main(["create", "--goal", "x", "--duration", "60"]) == 10

    def test_deadline_in_past(self) -> None:
        assert main(["create", "--goal", "1", "--deadline", "1000"]) == 10
        assert main(["create", "--goal", "1", "--deadline", "not-a-date"]) == 10

    def test_code_table(self) -> None:
        assert EXIT_CODES[LedgerErrorCode.SELF_CONTRIBUTION.value] == EXIT_CODES["UNAUTHORIZED"] == 15
        assert EXIT_CODES["SUBMISSION_FAILED"] == 20
        assert EXIT_CODES["TIMEOUT"] == 21
        assert len(set(EXIT_CODES.values())) == 12

    def test_unconfigured_network(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("BLOCKFUND_SEPOLIA_URL", "")

        assert main(["--network", "sepolia", "count"]) == 1
        error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert error["error"] == "CONFIGURATION"
        assert "sepolia" in error["message"]

    def test_unexpected_value_error_is_not_configuration(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def broken(*args: object) -> None:
            raise ValueError("malformed gateway response")

        monkeypatch.setattr("blockfund.cli._run_command", broken)

        with pytest.raises(ValueError, match="malformed gateway response"):
            main(["count"])


class TestParser:
    def test_create_requires_deadline_or_duration(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["create", "--goal", "1"])

    def test_duration_and_deadline_are_exclusive(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(
                ["create", "--goal", "1", "--duration", "5", "--deadline", "2999-01-01"]
            )

    def test_serve_options(self) -> None:
        args = build_parser().parse_args(["serve", "--port", "9000"])

        assert args.command == "serve"
        assert args.port == 9000
        assert args.host is None
