"""Tests for settings and ledger client selection."""

import pytest

from blockfund.config import NetworkName, Settings
from blockfund.ledger.factory import get_ledger_client
from blockfund.ledger.http_adapter import HttpLedgerClient
from blockfund.ledger.local_adapter import LocalLedgerClient
from blockfund.shared.exceptions import NetworkConfigurationError


class TestSettings:
    def test_default_values(self) -> None:
        # Environment variables may override runtime values; check declared defaults
        fields = Settings.model_fields
        assert fields["network"].default == NetworkName.MEMORY
        assert fields["localhost_url"].default == "http://127.0.0.1:8545"
        assert fields["token_decimals"].default == 18
        assert fields["max_submit_attempts"].default == 3

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BLOCKFUND_NETWORK", "sepolia")
        monkeypatch.setenv("BLOCKFUND_SEPOLIA_URL", "https://sepolia.example.com/")
        monkeypatch.setenv("BLOCKFUND_CONFIRMATION_TIMEOUT_SECONDS", "5")

        settings = Settings(_env_file=None)

        assert settings.network == NetworkName.SEPOLIA
        assert settings.sepolia_url == "https://sepolia.example.com"
        assert settings.confirmation_timeout_seconds == 5.0

    def test_invalid_values_rejected(self) -> None:
        with pytest.raises(ValueError):
            Settings(_env_file=None, max_submit_attempts=0)
        with pytest.raises(ValueError):
            Settings(_env_file=None, poll_interval_seconds=0)

    def test_gateway_url(self) -> None:
        settings = Settings(_env_file=None, localhost_url="http://127.0.0.1:9000/", mainnet_url="")

        assert settings.gateway_url(NetworkName.LOCALHOST) == "http://127.0.0.1:9000"
        with pytest.raises(NetworkConfigurationError, match="not configured"):
            settings.gateway_url(NetworkName.MAINNET)
        with pytest.raises(NetworkConfigurationError, match="no gateway URL"):
            settings.gateway_url(NetworkName.MEMORY)


class TestLedgerClientFactory:
    def test_memory_network(self) -> None:
        client = get_ledger_client(Settings(_env_file=None, network=NetworkName.MEMORY))

        assert isinstance(client, LocalLedgerClient)

    @pytest.mark.asyncio
    async def test_remote_network(self) -> None:
        client = get_ledger_client(
            Settings(_env_file=None, network=NetworkName.LOCALHOST, http_timeout_seconds=2)
        )

        assert isinstance(client, HttpLedgerClient)
        await client.aclose()

    def test_unconfigured_network(self) -> None:
        with pytest.raises(NetworkConfigurationError):
            get_ledger_client(Settings(_env_file=None, network=NetworkName.SEPOLIA, sepolia_url=""))
