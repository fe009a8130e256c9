"""
In-process ledger client.

Drives a CampaignLedger directly. Used for the ``memory`` network and in
tests, where failure modes of a real network (lost acknowledgements,
missing receipts, slow inclusion) can be injected.
"""

import logging

import anyio

from blockfund.ledger.interface import LedgerClient
from blockfund.ledger.models import (
    CampaignRecord,
    Contribution,
    LedgerRequest,
    Receipt,
    SubmissionAck,
    compute_tx_hash,
)
from blockfund.ledger.state_machine import CampaignLedger
from blockfund.shared.exceptions import SubmissionFailedError

logger = logging.getLogger(__name__)


class LocalLedgerClient(LedgerClient):
    """Ledger client bound to an in-process CampaignLedger."""

    def __init__(self, ledger: CampaignLedger | None = None, auto_mine: bool = True) -> None:
        self._ledger = ledger or CampaignLedger()
        self._auto_mine = auto_mine
        self._submitted: list[LedgerRequest] = []
        self._pending: dict[str, LedgerRequest] = {}
        self._hidden_receipts: set[str] = set()
        self._fail_submissions = 0
        self._failed_submissions_land = False
        self._hide_next_receipts = 0

    @property
    def ledger(self) -> CampaignLedger:
        return self._ledger

    @property
    def submitted(self) -> list[LedgerRequest]:
        return self._submitted.copy()

    @property
    def pending(self) -> list[LedgerRequest]:
        return list(self._pending.values())

    def reset(self) -> None:
        self._submitted.clear()
        self._pending.clear()
        self._hidden_receipts.clear()
        self._fail_submissions = 0
        self._failed_submissions_land = False
        self._hide_next_receipts = 0

    def configure_submission_failure(self, count: int = 1, lands: bool = False) -> None:
        """Fail the next ``count`` submissions.

        With ``lands=True`` the ledger applies the request but the
        acknowledgement is lost on the way back.
        """
        self._fail_submissions = count
        self._failed_submissions_land = lands

    def hide_receipts(self, count: int = 1) -> None:
        """Withhold receipts of the next ``count`` requests from tx-hash polling."""
        self._hide_next_receipts = count

    def reveal_receipts(self) -> None:
        self._hidden_receipts.clear()

    async def submit(self, request: LedgerRequest) -> SubmissionAck:
        self._submitted.append(request)
        tx_hash = compute_tx_hash(request)

        if self._fail_submissions > 0:
            self._fail_submissions -= 1
            if self._failed_submissions_land:
                await anyio.to_thread.run_sync(self._ledger.execute, request)
            logger.info(
                "Local: submission failure injected",
                extra={"request_id": request.request_id, "landed": self._failed_submissions_land},
            )
            raise SubmissionFailedError(
                "Injected submission failure",
                campaign_id=request.campaign_id,
                request_id=request.request_id,
            )

        if self._hide_next_receipts > 0:
            self._hide_next_receipts -= 1
            self._hidden_receipts.add(tx_hash)

        if self._auto_mine:
            await anyio.to_thread.run_sync(self._ledger.execute, request)
        elif self._ledger.get_receipt_by_request(request.request_id) is None:
            self._pending.setdefault(request.request_id, request)

        return SubmissionAck(tx_hash=tx_hash, request_id=request.request_id)

    def mine(self) -> list[Receipt]:
        """Include every pending request in submission order."""
        receipts = [self._ledger.execute(request) for request in self._pending.values()]
        self._pending.clear()
        return receipts

    async def get_receipt(self, tx_hash: str) -> Receipt | None:
        if tx_hash in self._hidden_receipts:
            return None
        return self._ledger.get_receipt(tx_hash)

    async def get_receipt_by_request(self, request_id: str) -> Receipt | None:
        return self._ledger.get_receipt_by_request(request_id)

    async def get_campaign(self, campaign_id: int) -> CampaignRecord:
        return self._ledger.get_campaign(campaign_id)

    async def get_campaign_count(self) -> int:
        return self._ledger.get_campaign_count()

    async def get_contributions(self, campaign_id: int) -> list[Contribution]:
        return self._ledger.get_contributions(campaign_id)

    async def get_balance(self, address: str) -> int:
        return self._ledger.balance_of(address)

    async def get_time(self) -> int:
        return self._ledger.now()
