"""
Campaign eligibility rules.

Pure functions over a stored campaign record. The ledger calls the
``check_*`` functions to decide rejections; clients call the same
functions for advisory pre-checks before submitting a request. Each
``check_*`` returns ``None`` when the ledger would accept, otherwise the
first rejection code in the ledger's check order.
"""

from __future__ import annotations

from blockfund.ledger.models import TERMINAL_STATUSES, CampaignRecord, CampaignStatus
from blockfund.shared.exceptions import LedgerErrorCode


def check_create(goal: int, deadline: int, now: int) -> LedgerErrorCode | None:
    if goal <= 0 or deadline <= now:
        return LedgerErrorCode.INVALID_PARAMETERS
    return None


def check_contribute(
    record: CampaignRecord,
    amount: int,
    now: int,
    sender: str | None = None,
) -> LedgerErrorCode | None:
    if record.status != CampaignStatus.ACTIVE:
        return LedgerErrorCode.CAMPAIGN_NOT_ACTIVE
    if now >= record.deadline:
        return LedgerErrorCode.DEADLINE_PASSED
    if amount <= 0:
        return LedgerErrorCode.INVALID_AMOUNT
    if sender is not None and same_identity(sender, record.creator):
        return LedgerErrorCode.SELF_CONTRIBUTION
    return None


def check_withdraw(record: CampaignRecord, caller: str) -> LedgerErrorCode | None:
    if not same_identity(caller, record.creator):
        return LedgerErrorCode.UNAUTHORIZED
    if record.total_funded < record.goal:
        return LedgerErrorCode.GOAL_NOT_MET
    if record.status != CampaignStatus.ACTIVE:
        return LedgerErrorCode.ALREADY_FINALIZED
    return None


def check_close(record: CampaignRecord, caller: str) -> LedgerErrorCode | None:
    if not same_identity(caller, record.creator):
        return LedgerErrorCode.UNAUTHORIZED
    if record.status != CampaignStatus.ACTIVE:
        return LedgerErrorCode.ALREADY_FINALIZED
    return None


def check_refund(record: CampaignRecord, refundable: int | None = None) -> LedgerErrorCode | None:
    """Refunds are paid only from CLOSED campaigns.

    ``refundable`` is the caller's unrefunded contribution total when known;
    clients without access to the contribution log pass ``None``.
    """
    if record.status != CampaignStatus.CLOSED:
        return LedgerErrorCode.REFUND_UNAVAILABLE
    if refundable is not None and refundable <= 0:
        return LedgerErrorCode.NOTHING_TO_REFUND
    return None


def can_contribute(record: CampaignRecord, now: int) -> bool:
    return record.status == CampaignStatus.ACTIVE and now < record.deadline


def can_withdraw(record: CampaignRecord) -> bool:
    return record.status == CampaignStatus.ACTIVE and record.total_funded >= record.goal


def is_finalized(record: CampaignRecord) -> bool:
    return record.status in TERMINAL_STATUSES


def same_identity(a: str, b: str) -> bool:
    """Addresses compare case-insensitively."""
    return a.lower() == b.lower()
