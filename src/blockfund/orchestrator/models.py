"""
Orchestrator result types.
"""

from dataclasses import dataclass

from blockfund.ledger.models import CampaignRecord, Operation, Receipt


@dataclass(frozen=True)
class OperationResult:
    """Confirmed outcome of one orchestrated operation.

    ``record`` is the campaign as re-read from the ledger after
    confirmation, or None when that re-read failed. ``reconciled`` is
    set when the outcome was only established after a lost
    acknowledgement or a confirmation timeout.
    """

    operation: Operation
    campaign_id: int
    record: CampaignRecord | None
    receipt: Receipt
    reconciled: bool = False
    attempts: int = 1

    @property
    def amount(self) -> int | None:
        """Funds moved by the operation, taken from its ledger event."""
        for event in self.receipt.events:
            if "amount" in event.args:
                return int(event.args["amount"])
        return None
