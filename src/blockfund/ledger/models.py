"""
Ledger data models.

Wire names follow the ledger interface (camelCase); Python attributes are
snake_case. All amounts are integer minor units, all times integer epoch
seconds.
"""

import hashlib
import json
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CampaignStatus(IntEnum):
    """Campaign lifecycle status, encoded by ordinal on the wire."""

    ACTIVE = 0
    SUCCESSFUL = 1
    CLOSED = 2

    @property
    def label(self) -> str:
        return self.name


# ACTIVE is the only non-terminal state
VALID_STATUS_TRANSITIONS: dict[CampaignStatus, set[CampaignStatus]] = {
    CampaignStatus.ACTIVE: {CampaignStatus.SUCCESSFUL, CampaignStatus.CLOSED},
    CampaignStatus.SUCCESSFUL: set(),
    CampaignStatus.CLOSED: set(),
}

TERMINAL_STATUSES = frozenset(s for s, nxt in VALID_STATUS_TRANSITIONS.items() if not nxt)


class Operation(str, Enum):
    """State-changing operations accepted by the ledger."""

    CREATE_CAMPAIGN = "createCampaign"
    CONTRIBUTE = "contribute"
    WITHDRAW = "withdraw"
    CLOSE_CAMPAIGN = "closeCampaign"
    CLAIM_REFUND = "claimRefund"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class CampaignRecord(_WireModel):
    """Read-only projection of one campaign as stored by the ledger."""

    id: int = Field(..., gt=0, description="Ledger-assigned campaign id")
    creator: str = Field(..., description="Address of the creating identity")
    goal: int = Field(..., gt=0, description="Funding goal in minor units")
    deadline: int = Field(..., description="Deadline as epoch seconds")
    total_funded: int = Field(0, ge=0, alias="totalFunded")
    metadata_cid: str = Field("", alias="metadataCID")
    status: CampaignStatus = CampaignStatus.ACTIVE

    @property
    def deadline_at(self) -> datetime:
        return datetime.fromtimestamp(self.deadline, tz=timezone.utc)


class Contribution(_WireModel):
    """One accepted contribution in the append-only log."""

    campaign_id: int = Field(..., alias="campaignId")
    contributor: str
    amount: int = Field(..., gt=0)
    timestamp: int
    sequence: int = Field(..., ge=1, description="Position in the campaign's log")


class EventType(str, Enum):
    CAMPAIGN_CREATED = "CampaignCreated"
    CONTRIBUTION_RECEIVED = "ContributionReceived"
    FUNDS_WITHDRAWN = "FundsWithdrawn"
    CAMPAIGN_CLOSED = "CampaignClosed"
    REFUND_ISSUED = "RefundIssued"


class LedgerEvent(_WireModel):
    """Event emitted by a confirmed transition."""

    event_type: EventType = Field(..., alias="eventType")
    campaign_id: int = Field(..., alias="campaignId")
    args: dict[str, Any] = Field(default_factory=dict)


class LedgerRequest(_WireModel):
    """A signed state-change request.

    ``request_id`` is the idempotency key: the ledger applies each id at
    most once.
    """

    request_id: str = Field(..., min_length=1, alias="requestId")
    sender: str = Field(..., min_length=1)
    operation: Operation
    campaign_id: int | None = Field(None, alias="campaignId")
    goal: int | None = None
    deadline: int | None = None
    metadata_cid: str | None = Field(None, alias="metadataCID")
    value: int = Field(0, ge=0, description="Funds attached to the request")
    signature: str = ""

    def signing_payload(self) -> bytes:
        """Canonical bytes covered by the signature."""
        data = self.to_wire()
        data.pop("signature", None)
        return _canonical(data)


class ReceiptStatus(str, Enum):
    CONFIRMED = "confirmed"
    REVERTED = "reverted"


class Receipt(_WireModel):
    """Outcome of an included request."""

    tx_hash: str = Field(..., alias="txHash")
    request_id: str = Field(..., alias="requestId")
    operation: Operation
    status: ReceiptStatus
    block_number: int = Field(..., alias="blockNumber")
    campaign_id: int | None = Field(None, alias="campaignId")
    error_code: str | None = Field(None, alias="errorCode")
    error_message: str | None = Field(None, alias="errorMessage")
    events: list[LedgerEvent] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == ReceiptStatus.CONFIRMED


class SubmissionAck(_WireModel):
    """Acknowledgement that the ledger accepted a request for inclusion."""

    tx_hash: str = Field(..., alias="txHash")
    request_id: str = Field(..., alias="requestId")


def _canonical(data: dict[str, Any]) -> bytes:
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


def compute_tx_hash(request: LedgerRequest) -> str:
    """Deterministic transaction hash for a request."""
    return "0x" + hashlib.sha256(request.signing_payload()).hexdigest()
