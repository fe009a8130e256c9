"""
Authoritative campaign ledger.

A single serial state machine: every mutation runs under one lock, so all
operations against a campaign are totally ordered. Each executed request
is stored under its request id and applied at most once.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from typing import Callable

from blockfund.campaigns import resolver
from blockfund.ledger.models import (
    VALID_STATUS_TRANSITIONS,
    CampaignRecord,
    CampaignStatus,
    Contribution,
    EventType,
    LedgerEvent,
    LedgerRequest,
    Operation,
    Receipt,
    ReceiptStatus,
    compute_tx_hash,
)
from blockfund.shared.exceptions import (
    CampaignNotFoundError,
    InvalidParametersError,
    LedgerErrorCode,
    LedgerRejectionError,
    rejection_for,
)
from blockfund.shared.logging import get_logger

logger = get_logger(__name__)


def _system_clock() -> int:
    return int(time.time())


class CampaignLedger:
    """In-process ledger enforcing the campaign state machine."""

    def __init__(self, clock: Callable[[], int] = _system_clock) -> None:
        self._clock = clock
        self._time_offset = 0
        self._lock = threading.RLock()
        self._campaigns: dict[int, CampaignRecord] = {}
        self._contributions: dict[int, list[Contribution]] = defaultdict(list)
        self._refunded: dict[tuple[int, str], int] = defaultdict(int)
        self._escrow: dict[int, int] = defaultdict(int)
        self._balances: dict[str, int] = defaultdict(int)
        self._events: list[LedgerEvent] = []
        self._receipts_by_hash: dict[str, Receipt] = {}
        self._receipts_by_request: dict[str, Receipt] = {}
        self._block_number = 0

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def now(self) -> int:
        return self._clock() + self._time_offset

    def advance_time(self, seconds: int) -> int:
        """Move the ledger clock forward; returns the new time."""
        if seconds < 0:
            raise ValueError("Ledger time cannot move backwards")
        with self._lock:
            self._time_offset += seconds
            return self.now()

    @property
    def block_number(self) -> int:
        return self._block_number

    # ------------------------------------------------------------------
    # Request surface
    # ------------------------------------------------------------------

    def execute(self, request: LedgerRequest) -> Receipt:
        """Apply a request once and return its receipt.

        A request id seen before returns the stored receipt without touching
        state. Rejections produce a reverted receipt rather than an exception.
        """
        with self._lock:
            existing = self._receipts_by_request.get(request.request_id)
            if existing is not None:
                logger.info(
                    "Duplicate request ignored",
                    extra={"request_id": request.request_id, "tx_hash": existing.tx_hash},
                )
                return existing

            self._block_number += 1
            first_event = len(self._events)
            campaign_id = request.campaign_id
            error: LedgerRejectionError | None = None
            try:
                campaign_id = self._dispatch(request)
            except LedgerRejectionError as exc:
                error = exc

            receipt = Receipt(
                tx_hash=compute_tx_hash(request),
                request_id=request.request_id,
                operation=request.operation,
                status=ReceiptStatus.REVERTED if error else ReceiptStatus.CONFIRMED,
                block_number=self._block_number,
                campaign_id=campaign_id,
                error_code=error.code if error else None,
                error_message=error.message if error else None,
                events=list(self._events[first_event:]),
            )
            self._receipts_by_hash[receipt.tx_hash] = receipt
            self._receipts_by_request[receipt.request_id] = receipt

        logger.info(
            "Request executed",
            extra={
                "request_id": request.request_id,
                "operation": request.operation.value,
                "campaign_id": campaign_id,
                "status": receipt.status.value,
                "error_code": receipt.error_code,
                "block_number": receipt.block_number,
            },
        )
        return receipt

    def _dispatch(self, request: LedgerRequest) -> int | None:
        op = request.operation
        if op == Operation.CREATE_CAMPAIGN:
            if request.goal is None or request.deadline is None:
                raise InvalidParametersError("goal and deadline are required")
            return self.create_campaign(
                request.sender, request.goal, request.deadline, request.metadata_cid or ""
            )

        if request.campaign_id is None:
            raise InvalidParametersError(f"{op.value} requires a campaign id")
        campaign_id = request.campaign_id
        if op == Operation.CONTRIBUTE:
            self.contribute(request.sender, campaign_id, request.value)
        elif op == Operation.WITHDRAW:
            self.withdraw(request.sender, campaign_id)
        elif op == Operation.CLOSE_CAMPAIGN:
            self.close_campaign(request.sender, campaign_id)
        elif op == Operation.CLAIM_REFUND:
            self.claim_refund(request.sender, campaign_id)
        return campaign_id

    def get_receipt(self, tx_hash: str) -> Receipt | None:
        return self._receipts_by_hash.get(tx_hash)

    def get_receipt_by_request(self, request_id: str) -> Receipt | None:
        return self._receipts_by_request.get(request_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_campaign(self, sender: str, goal: int, deadline: int, metadata_cid: str) -> int:
        with self._lock:
            code = resolver.check_create(goal, deadline, self.now())
            if code is not None:
                raise InvalidParametersError(_REJECTION_MESSAGES[code])

            campaign_id = len(self._campaigns) + 1
            self._campaigns[campaign_id] = CampaignRecord(
                id=campaign_id,
                creator=sender,
                goal=goal,
                deadline=deadline,
                total_funded=0,
                metadata_cid=metadata_cid,
                status=CampaignStatus.ACTIVE,
            )
            self._emit(
                EventType.CAMPAIGN_CREATED,
                campaign_id,
                creator=sender,
                goal=goal,
                deadline=deadline,
                metadataCID=metadata_cid,
            )
            return campaign_id

    def contribute(self, sender: str, campaign_id: int, amount: int) -> None:
        with self._lock:
            record = self._require(campaign_id)
            self._reject_if(
                resolver.check_contribute(record, amount, self.now(), sender), campaign_id
            )

            self._escrow[campaign_id] += amount
            log = self._contributions[campaign_id]
            log.append(
                Contribution(
                    campaign_id=campaign_id,
                    contributor=sender,
                    amount=amount,
                    timestamp=self.now(),
                    sequence=len(log) + 1,
                )
            )
            self._campaigns[campaign_id] = record.model_copy(
                update={"total_funded": record.total_funded + amount}
            )
            self._emit(
                EventType.CONTRIBUTION_RECEIVED, campaign_id, contributor=sender, amount=amount
            )

    def withdraw(self, sender: str, campaign_id: int) -> int:
        """Release escrow to the creator; returns the amount paid out."""
        with self._lock:
            record = self._require(campaign_id)
            self._reject_if(resolver.check_withdraw(record, sender), campaign_id)

            # Status flips before funds move so a re-entrant call sees a final campaign.
            self._transition(record, CampaignStatus.SUCCESSFUL)
            amount = self._escrow.pop(campaign_id, 0)
            self._balances[record.creator.lower()] += amount
            self._emit(
                EventType.FUNDS_WITHDRAWN, campaign_id, creator=record.creator, amount=amount
            )
            return amount

    def close_campaign(self, sender: str, campaign_id: int) -> None:
        with self._lock:
            record = self._require(campaign_id)
            self._reject_if(resolver.check_close(record, sender), campaign_id)

            self._transition(record, CampaignStatus.CLOSED)
            self._emit(EventType.CAMPAIGN_CLOSED, campaign_id, creator=record.creator)

    def claim_refund(self, sender: str, campaign_id: int) -> int:
        """Return a contributor's escrowed funds from a closed campaign."""
        with self._lock:
            record = self._require(campaign_id)
            refundable = self._refundable(campaign_id, sender)
            self._reject_if(resolver.check_refund(record, refundable), campaign_id)

            self._refunded[(campaign_id, sender.lower())] += refundable
            self._escrow[campaign_id] -= refundable
            self._balances[sender.lower()] += refundable
            self._emit(
                EventType.REFUND_ISSUED, campaign_id, contributor=sender, amount=refundable
            )
            return refundable

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_campaign(self, campaign_id: int) -> CampaignRecord:
        with self._lock:
            return self._require(campaign_id)

    def get_campaign_count(self) -> int:
        with self._lock:
            return len(self._campaigns)

    def get_contributions(self, campaign_id: int) -> list[Contribution]:
        with self._lock:
            self._require(campaign_id)
            return list(self._contributions.get(campaign_id, []))

    def get_contribution_total(self, campaign_id: int, contributor: str) -> int:
        with self._lock:
            self._require(campaign_id)
            return sum(
                c.amount
                for c in self._contributions.get(campaign_id, [])
                if resolver.same_identity(c.contributor, contributor)
            )

    def balance_of(self, address: str) -> int:
        with self._lock:
            return self._balances.get(address.lower(), 0)

    def escrow_of(self, campaign_id: int) -> int:
        with self._lock:
            self._require(campaign_id)
            return self._escrow.get(campaign_id, 0)

    @property
    def events(self) -> list[LedgerEvent]:
        with self._lock:
            return list(self._events)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, campaign_id: int) -> CampaignRecord:
        record = self._campaigns.get(campaign_id)
        if record is None:
            raise CampaignNotFoundError(campaign_id=campaign_id)
        return record

    def _reject_if(self, code: LedgerErrorCode | None, campaign_id: int) -> None:
        if code is None:
            return
        cls = rejection_for(code)
        raise cls(_REJECTION_MESSAGES[code], campaign_id=campaign_id)

    def _transition(self, record: CampaignRecord, target: CampaignStatus) -> None:
        if target not in VALID_STATUS_TRANSITIONS[record.status]:
            raise rejection_for(LedgerErrorCode.ALREADY_FINALIZED)(
                _REJECTION_MESSAGES[LedgerErrorCode.ALREADY_FINALIZED], campaign_id=record.id
            )
        self._campaigns[record.id] = record.model_copy(update={"status": target})

    def _refundable(self, campaign_id: int, contributor: str) -> int:
        paid_in = sum(
            c.amount
            for c in self._contributions.get(campaign_id, [])
            if resolver.same_identity(c.contributor, contributor)
        )
        return paid_in - self._refunded.get((campaign_id, contributor.lower()), 0)

    def _emit(self, event_type: EventType, campaign_id: int, **args: object) -> None:
        self._events.append(
            LedgerEvent(event_type=event_type, campaign_id=campaign_id, args=dict(args))
        )


_REJECTION_MESSAGES: dict[LedgerErrorCode, str] = {
    LedgerErrorCode.INVALID_PARAMETERS: "Goal must be positive and deadline in the future",
    LedgerErrorCode.NOT_FOUND: "Campaign not found",
    LedgerErrorCode.CAMPAIGN_NOT_ACTIVE: "Campaign is not active",
    LedgerErrorCode.DEADLINE_PASSED: "Campaign has ended",
    LedgerErrorCode.INVALID_AMOUNT: "Contribution must be greater than zero",
    LedgerErrorCode.UNAUTHORIZED: "Only the creator can perform this operation",
    LedgerErrorCode.SELF_CONTRIBUTION: "Creator cannot fund their own campaign",
    LedgerErrorCode.GOAL_NOT_MET: "Funding goal not reached",
    LedgerErrorCode.ALREADY_FINALIZED: "Campaign is already finalized",
    LedgerErrorCode.REFUND_UNAVAILABLE: "Refunds are only available for closed campaigns",
    LedgerErrorCode.NOTHING_TO_REFUND: "No refundable contribution for this address",
}


def rejection_message(code: LedgerErrorCode) -> str:
    return _REJECTION_MESSAGES[code]
