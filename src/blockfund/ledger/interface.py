"""
Ledger client interface definition.

A LedgerClient is the orchestrator's only view of the ledger: it submits
signed requests, polls for receipts and performs read-only queries.
Submission and confirmation are separate steps; ``submit`` returning does
not mean the request was applied.
"""

from abc import ABC, abstractmethod

from blockfund.ledger.models import (
    CampaignRecord,
    Contribution,
    LedgerRequest,
    Receipt,
    SubmissionAck,
)


class LedgerClient(ABC):
    """Abstract interface for ledger transports."""

    @abstractmethod
    async def submit(self, request: LedgerRequest) -> SubmissionAck:
        """Hand a request to the ledger for inclusion.

        Raises:
            SubmissionFailedError: the ledger never acknowledged the request.
                The request may still be applied later.
        """
        ...

    @abstractmethod
    async def get_receipt(self, tx_hash: str) -> Receipt | None:
        """Return the receipt of an included request, or None while pending."""
        ...

    @abstractmethod
    async def get_receipt_by_request(self, request_id: str) -> Receipt | None:
        """Look up a receipt by the request's idempotency key."""
        ...

    @abstractmethod
    async def get_campaign(self, campaign_id: int) -> CampaignRecord:
        """Read one campaign.

        Raises:
            CampaignNotFoundError: unknown id.
        """
        ...

    @abstractmethod
    async def get_campaign_count(self) -> int:
        ...

    @abstractmethod
    async def get_contributions(self, campaign_id: int) -> list[Contribution]:
        ...

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Funds credited to an address by withdrawals and refunds."""
        ...

    @abstractmethod
    async def get_time(self) -> int:
        """Current ledger time in epoch seconds."""
        ...

    async def aclose(self) -> None:
        """Release transport resources."""
        return None
