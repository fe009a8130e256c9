"""
Campaign request orchestrator.

Turns lifecycle operations into signed ledger requests, waits for their
receipts and reconciles ambiguous outcomes. Each request carries a fresh
request id; resubmissions reuse it so the ledger applies it at most once.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable

import anyio
from sqlalchemy.exc import SQLAlchemyError

from blockfund.campaigns import resolver
from blockfund.campaigns.projection import ProjectionCache, ProjectionEntry
from blockfund.config import Settings, get_settings
from blockfund.identity import Signer
from blockfund.ledger.interface import LedgerClient
from blockfund.ledger.models import CampaignRecord, LedgerRequest, Operation, Receipt
from blockfund.ledger.state_machine import rejection_message
from blockfund.orchestrator.models import OperationResult
from blockfund.shared.exceptions import (
    AppError,
    ConfirmationTimeoutError,
    LedgerErrorCode,
    LedgerUnavailableError,
    OrchestrationError,
    SubmissionFailedError,
    error_from_code,
    rejection_for,
)
from blockfund.shared.logging import correlation_id_var, get_logger, log_with_context

logger = get_logger(__name__)


class CampaignOrchestrator:
    """Drives campaign operations against a ledger on behalf of one signer."""

    def __init__(
        self,
        client: LedgerClient,
        signer: Signer,
        cache: ProjectionCache,
        settings: Settings | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._client = client
        self._signer = signer
        self._cache = cache
        self._clock = clock
        self._confirmation_timeout = settings.confirmation_timeout_seconds
        self._poll_interval = settings.poll_interval_seconds
        self._max_attempts = settings.max_submit_attempts
        self._campaign_locks: dict[int, anyio.Lock] = {}

    @property
    def address(self) -> str:
        return self._signer.address

    @property
    def cache(self) -> ProjectionCache:
        return self._cache

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def create_campaign(
        self,
        goal: int,
        deadline: int,
        metadata_cid: str = "",
        precheck: bool = True,
    ) -> OperationResult:
        if precheck:
            self._raise_if(resolver.check_create(goal, deadline, await self._now()), None)

        request = self._build_request(
            Operation.CREATE_CAMPAIGN,
            goal=goal,
            deadline=deadline,
            metadata_cid=metadata_cid,
        )
        return await self._run(request)

    async def contribute(self, campaign_id: int, amount: int, precheck: bool = True) -> OperationResult:
        async with self._lock_for(campaign_id):
            if precheck:
                record = await self._client.get_campaign(campaign_id)
                now = await self._now()
                self._raise_if(
                    resolver.check_contribute(record, amount, now, self.address), campaign_id
                )
            if amount < 0:
                # Not representable on the wire
                self._raise_if(LedgerErrorCode.INVALID_AMOUNT, campaign_id)
            request = self._build_request(
                Operation.CONTRIBUTE, campaign_id=campaign_id, value=amount
            )
            return await self._run(request)

    async def withdraw(self, campaign_id: int, precheck: bool = True) -> OperationResult:
        async with self._lock_for(campaign_id):
            if precheck:
                record = await self._client.get_campaign(campaign_id)
                self._raise_if(resolver.check_withdraw(record, self.address), campaign_id)
            request = self._build_request(Operation.WITHDRAW, campaign_id=campaign_id)
            return await self._run(request)

    async def close_campaign(self, campaign_id: int, precheck: bool = True) -> OperationResult:
        async with self._lock_for(campaign_id):
            if precheck:
                record = await self._client.get_campaign(campaign_id)
                self._raise_if(resolver.check_close(record, self.address), campaign_id)
            request = self._build_request(Operation.CLOSE_CAMPAIGN, campaign_id=campaign_id)
            return await self._run(request)

    async def claim_refund(self, campaign_id: int, precheck: bool = True) -> OperationResult:
        async with self._lock_for(campaign_id):
            if precheck:
                record = await self._client.get_campaign(campaign_id)
                # Refunds already paid are not visible to clients, the ledger decides the rest
                self._raise_if(resolver.check_refund(record), campaign_id)
            request = self._build_request(Operation.CLAIM_REFUND, campaign_id=campaign_id)
            return await self._run(request)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_campaign(self, campaign_id: int, use_cache: bool = False) -> CampaignRecord:
        """Return a campaign, from the projection cache when allowed and present."""
        if use_cache:
            entry = self._cache.get(campaign_id)
            if entry is not None:
                return entry.record
        return (await self.refresh(campaign_id)).record

    async def refresh(self, campaign_id: int) -> ProjectionEntry:
        """Re-read one campaign from the ledger into the cache."""
        record = await self._client.get_campaign(campaign_id)
        return self._cache.put(record)

    async def refresh_all(self) -> list[ProjectionEntry]:
        count = await self._client.get_campaign_count()
        entries = [await self.refresh(campaign_id) for campaign_id in range(1, count + 1)]
        logger.info("Projection cache refreshed", extra={"campaigns": count})
        return entries

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_for(self, campaign_id: int) -> anyio.Lock:
        lock = self._campaign_locks.get(campaign_id)
        if lock is None:
            lock = self._campaign_locks[campaign_id] = anyio.Lock()
        return lock

    async def _now(self) -> int:
        if self._clock is not None:
            return self._clock()
        return await self._client.get_time()

    def _raise_if(self, code: LedgerErrorCode | None, campaign_id: int | None) -> None:
        if code is None:
            return
        logger.info(
            "Request rejected by pre-check",
            extra={"campaign_id": campaign_id, "error_code": code.value},
        )
        raise rejection_for(code)(rejection_message(code), campaign_id=campaign_id)

    def _build_request(self, operation: Operation, **fields: object) -> LedgerRequest:
        request = LedgerRequest(
            request_id=str(uuid.uuid4()),
            sender=self.address,
            operation=operation,
            **fields,
        )
        return self._signer.sign(request)

    async def _run(self, request: LedgerRequest) -> OperationResult:
        token = correlation_id_var.set(request.request_id)
        try:
            receipt, reconciled, attempts = await self._submit_and_confirm(request)

            if not receipt.succeeded:
                campaign_id = receipt.campaign_id or request.campaign_id
                logger.info(
                    "Request reverted",
                    extra={
                        "operation": request.operation.value,
                        "campaign_id": campaign_id,
                        "error_code": receipt.error_code,
                    },
                )
                raise error_from_code(
                    receipt.error_code or "", receipt.error_message, campaign_id
                )

            campaign_id = receipt.campaign_id
            if campaign_id is None:
                raise OrchestrationError(
                    "Confirmed receipt carries no campaign id",
                    "INVALID_RECEIPT",
                    request_id=request.request_id,
                )
            record = await self._refresh_confirmed(campaign_id)
            logger.info(
                "Request confirmed",
                extra={
                    "operation": request.operation.value,
                    "campaign_id": campaign_id,
                    "tx_hash": receipt.tx_hash,
                    "block_number": receipt.block_number,
                    "reconciled": reconciled,
                    "attempts": attempts,
                },
            )
            return OperationResult(
                operation=request.operation,
                campaign_id=campaign_id,
                record=record,
                receipt=receipt,
                reconciled=reconciled,
                attempts=attempts,
            )
        finally:
            correlation_id_var.reset(token)

    async def _refresh_confirmed(self, campaign_id: int) -> CampaignRecord | None:
        """Re-read a campaign after its receipt confirmed.

        The receipt already settles the outcome, so a failed re-read or
        cache write only drops the projection entry.
        """
        try:
            record = await self._client.get_campaign(campaign_id)
        except AppError as exc:
            logger.warning(
                "Re-read after confirmation failed",
                extra={"campaign_id": campaign_id, "error_code": exc.code},
            )
            self._drop_projection(campaign_id)
            return None

        try:
            self._cache.put(record)
        except SQLAlchemyError as exc:
            logger.warning(
                "Projection write after confirmation failed",
                extra={"campaign_id": campaign_id, "error": str(exc)},
            )
            self._drop_projection(campaign_id)
        return record

    def _drop_projection(self, campaign_id: int) -> None:
        try:
            self._cache.invalidate(campaign_id)
        except SQLAlchemyError as exc:
            logger.error(
                "Stale projection entry could not be dropped",
                extra={"campaign_id": campaign_id, "error": str(exc)},
            )

    async def _submit_and_confirm(self, request: LedgerRequest) -> tuple[Receipt, bool, int]:
        """Submit until a receipt is observed.

        Returns the receipt, whether reconciliation was needed, and the
        number of submissions made.
        """
        errors: list[OrchestrationError] = []
        for attempt in range(1, self._max_attempts + 1):
            try:
                ack = await self._client.submit(request)
                receipt = await self._await_receipt(ack.tx_hash, request)
                return receipt, bool(errors), attempt
            except (SubmissionFailedError, ConfirmationTimeoutError) as exc:
                errors.append(exc)
                logger.warning(
                    "Request outcome unknown, reconciling",
                    extra={
                        "operation": request.operation.value,
                        "campaign_id": request.campaign_id,
                        "attempt": attempt,
                        "error_code": exc.code,
                    },
                )

            # The effect may have landed even though we never saw it
            receipt = await self._client.get_receipt_by_request(request.request_id)
            if receipt is not None:
                return receipt, True, attempt

        if not errors:
            raise SubmissionFailedError(
                "No submission attempted",
                campaign_id=request.campaign_id,
                request_id=request.request_id,
            )
        last_error = errors[-1]
        log_with_context(
            logger,
            logging.ERROR,
            "Request abandoned after retries",
            operation=request.operation.value,
            campaign_id=request.campaign_id,
            request_id=request.request_id,
            attempts=self._max_attempts,
            error_code=last_error.code,
        )
        raise last_error

    async def _await_receipt(self, tx_hash: str, request: LedgerRequest) -> Receipt:
        try:
            with anyio.fail_after(self._confirmation_timeout):
                while True:
                    receipt = await self._client.get_receipt(tx_hash)
                    if receipt is not None:
                        return receipt
                    await anyio.sleep(self._poll_interval)
        except TimeoutError as exc:
            raise ConfirmationTimeoutError(
                f"No receipt for {tx_hash} within {self._confirmation_timeout}s",
                campaign_id=request.campaign_id,
                request_id=request.request_id,
            ) from exc
        except LedgerUnavailableError as exc:
            # The request was acknowledged, so its outcome is unknown rather than failed
            raise ConfirmationTimeoutError(
                f"Receipt lookup for {tx_hash} failed: {exc.message}",
                campaign_id=request.campaign_id,
                request_id=request.request_id,
            ) from exc
