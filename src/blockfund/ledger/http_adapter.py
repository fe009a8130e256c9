"""
HTTP ledger client.

Talks to a ledger gateway (see ``blockfund.ledger.router``) with httpx.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from blockfund.ledger.interface import LedgerClient
from blockfund.ledger.models import (
    CampaignRecord,
    Contribution,
    LedgerRequest,
    Receipt,
    SubmissionAck,
)
from blockfund.shared.exceptions import (
    LedgerUnavailableError,
    SubmissionFailedError,
    error_from_code,
)

logger = logging.getLogger(__name__)

# Timeouts and throttling say nothing about the request itself
_TRANSIENT_STATUS_CODES = frozenset({408, 429})


class HttpLedgerClient(LedgerClient):
    """Ledger client for a remote gateway.

    An externally supplied ``http_client`` is not closed by ``aclose``.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout_seconds)
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._http_client

    def _url(self, path: str) -> str:
        return f"{self._base_url}/api/ledger{path}"

    async def aclose(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def submit(self, request: LedgerRequest) -> SubmissionAck:
        client = self._get_client()
        try:
            response = await client.post(self._url("/requests"), json=request.to_wire())
        except httpx.HTTPError as exc:
            logger.warning(
                "Ledger submission transport error",
                extra={"request_id": request.request_id, "error": str(exc)},
            )
            raise SubmissionFailedError(
                f"Transport error: {exc}",
                campaign_id=request.campaign_id,
                request_id=request.request_id,
            ) from exc

        if response.is_success:
            return SubmissionAck.model_validate(response.json())

        logger.warning(
            "Ledger rejected submission",
            extra={"request_id": request.request_id, "status_code": response.status_code},
        )
        if response.is_client_error and response.status_code not in _TRANSIENT_STATUS_CODES:
            # A definite refusal, resubmitting the same body cannot succeed
            detail = _error_detail(response) or {}
            raise error_from_code(
                detail.get("code", "SUBMISSION_REJECTED"),
                detail.get("message", f"Gateway refused submission with HTTP {response.status_code}"),
                request.campaign_id,
            )
        raise SubmissionFailedError(
            f"Gateway returned HTTP {response.status_code}",
            campaign_id=request.campaign_id,
            request_id=request.request_id,
        )

    async def get_receipt(self, tx_hash: str) -> Receipt | None:
        data = await self._get_optional(f"/receipts/{tx_hash}")
        return Receipt.model_validate(data) if data is not None else None

    async def get_receipt_by_request(self, request_id: str) -> Receipt | None:
        data = await self._get_optional(f"/requests/{request_id}/receipt")
        return Receipt.model_validate(data) if data is not None else None

    async def get_campaign(self, campaign_id: int) -> CampaignRecord:
        data = await self._get(f"/campaigns/{campaign_id}", campaign_id=campaign_id)
        return CampaignRecord.model_validate(data)

    async def get_campaign_count(self) -> int:
        data = await self._get("/campaigns/count")
        return int(data["count"])

    async def get_contributions(self, campaign_id: int) -> list[Contribution]:
        data = await self._get(f"/campaigns/{campaign_id}/contributions", campaign_id=campaign_id)
        return [Contribution.model_validate(item) for item in data]

    async def get_balance(self, address: str) -> int:
        data = await self._get(f"/accounts/{address}/balance")
        return int(data["balance"])

    async def get_time(self) -> int:
        data = await self._get("/time")
        return int(data["timestamp"])

    async def _get(self, path: str, campaign_id: int | None = None) -> Any:
        client = self._get_client()
        try:
            response = await client.get(self._url(path))
        except httpx.HTTPError as exc:
            raise LedgerUnavailableError(f"Ledger read failed: {exc}") from exc

        if response.is_success:
            return response.json()

        detail = _error_detail(response)
        if detail is not None:
            raise error_from_code(detail.get("code", ""), detail.get("message"), campaign_id)
        raise LedgerUnavailableError(f"Ledger read failed with HTTP {response.status_code}")

    async def _get_optional(self, path: str) -> Any | None:
        client = self._get_client()
        try:
            response = await client.get(self._url(path))
        except httpx.HTTPError as exc:
            raise LedgerUnavailableError(f"Ledger read failed: {exc}") from exc

        if response.status_code == 404:
            return None
        if not response.is_success:
            raise LedgerUnavailableError(f"Ledger read failed with HTTP {response.status_code}")
        return response.json()


def _error_detail(response: httpx.Response) -> dict[str, Any] | None:
    try:
        body = response.json()
    except ValueError:
        return None
    detail = body.get("detail") if isinstance(body, dict) else None
    return detail if isinstance(detail, dict) and "code" in detail else None
