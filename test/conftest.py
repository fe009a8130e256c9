"""
Shared fixtures: an in-process ledger with a frozen clock, signers for the
usual actors and orchestrators wired to them.
"""

from __future__ import annotations

from typing import Callable

import pytest

from blockfund.campaigns.projection import InMemoryProjectionCache
from blockfund.config import Settings
from blockfund.identity import LocalKeySigner
from blockfund.ledger.local_adapter import LocalLedgerClient
from blockfund.ledger.state_machine import CampaignLedger
from blockfund.orchestrator import CampaignOrchestrator

START_TIME = 1_700_000_000
UNIT = 10**18


@pytest.fixture
def ledger() -> CampaignLedger:
    return CampaignLedger(clock=lambda: START_TIME)


@pytest.fixture
def creator() -> LocalKeySigner:
    return LocalKeySigner("creator-secret")


@pytest.fixture
def alice() -> LocalKeySigner:
    return LocalKeySigner("alice-secret")


@pytest.fixture
def bob() -> LocalKeySigner:
    return LocalKeySigner("bob-secret")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        confirmation_timeout_seconds=0.2,
        poll_interval_seconds=0.01,
        max_submit_attempts=3,
    )


@pytest.fixture
def client(ledger: CampaignLedger) -> LocalLedgerClient:
    return LocalLedgerClient(ledger)


@pytest.fixture
def cache() -> InMemoryProjectionCache:
    return InMemoryProjectionCache()


@pytest.fixture
def make_orchestrator(
    client: LocalLedgerClient,
    cache: InMemoryProjectionCache,
    settings: Settings,
) -> Callable[[LocalKeySigner], CampaignOrchestrator]:
    def _make(signer: LocalKeySigner) -> CampaignOrchestrator:
        return CampaignOrchestrator(client, signer, cache, settings)

    return _make
