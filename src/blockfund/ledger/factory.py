"""
Ledger client factory.

Network selection comes from Settings (BLOCKFUND_NETWORK); it is resolved
once when the client is built.
"""

from __future__ import annotations

import logging

from blockfund.config import NetworkName, Settings, get_settings
from blockfund.ledger.http_adapter import HttpLedgerClient
from blockfund.ledger.interface import LedgerClient
from blockfund.ledger.local_adapter import LocalLedgerClient

logger = logging.getLogger(__name__)


def get_ledger_client(settings: Settings | None = None) -> LedgerClient:
    """Build the ledger client for the configured network."""
    cfg = settings or get_settings()

    if cfg.network == NetworkName.MEMORY:
        logger.info("Ledger client resolved", extra={"network": cfg.network.value})
        return LocalLedgerClient()

    base_url = cfg.gateway_url(cfg.network)
    logger.info(
        "Ledger client resolved",
        extra={
            "network": cfg.network.value,
            "gateway_url": base_url,
            "http_timeout_seconds": cfg.http_timeout_seconds,
        },
    )
    return HttpLedgerClient(base_url, timeout_seconds=cfg.http_timeout_seconds)
