"""
Ledger gateway API router.

Exposes a CampaignLedger over HTTP so remote orchestrators can submit
requests and read state. Requests are included as soon as they arrive.
"""

from typing import Annotated, Any

import anyio
from fastapi import APIRouter, Depends, HTTPException, Request, status

from blockfund.ledger.models import LedgerRequest
from blockfund.ledger.state_machine import CampaignLedger
from blockfund.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/ledger", tags=["ledger"])


def get_ledger(request: Request) -> CampaignLedger:
    """Dependency returning the ledger bound to the application."""
    return request.app.state.ledger


LedgerDep = Annotated[CampaignLedger, Depends(get_ledger)]


def _receipt_pending(key: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": "RECEIPT_PENDING", "message": f"No receipt for {key}"},
    )


@router.post("/requests", status_code=status.HTTP_202_ACCEPTED)
async def submit_request(body: LedgerRequest, ledger: LedgerDep) -> dict[str, Any]:
    """Accept a signed request and include it in the next block."""
    logger.info(
        "Ledger request received",
        extra={
            "request_id": body.request_id,
            "operation": body.operation.value,
            "campaign_id": body.campaign_id,
        },
    )
    receipt = await anyio.to_thread.run_sync(ledger.execute, body)
    return {"txHash": receipt.tx_hash, "requestId": receipt.request_id}


@router.get("/receipts/{tx_hash}")
async def get_receipt(tx_hash: str, ledger: LedgerDep) -> dict[str, Any]:
    receipt = ledger.get_receipt(tx_hash)
    if receipt is None:
        raise _receipt_pending(tx_hash)
    return receipt.to_wire()


@router.get("/requests/{request_id}/receipt")
async def get_receipt_by_request(request_id: str, ledger: LedgerDep) -> dict[str, Any]:
    receipt = ledger.get_receipt_by_request(request_id)
    if receipt is None:
        raise _receipt_pending(request_id)
    return receipt.to_wire()


@router.get("/campaigns/count")
async def get_campaign_count(ledger: LedgerDep) -> dict[str, int]:
    return {"count": ledger.get_campaign_count()}


@router.get("/campaigns/{campaign_id}")
async def get_campaign(campaign_id: int, ledger: LedgerDep) -> dict[str, Any]:
    return ledger.get_campaign(campaign_id).to_wire()


@router.get("/campaigns/{campaign_id}/contributions")
async def get_contributions(campaign_id: int, ledger: LedgerDep) -> list[dict[str, Any]]:
    return [c.to_wire() for c in ledger.get_contributions(campaign_id)]


@router.get("/accounts/{address}/balance")
async def get_balance(address: str, ledger: LedgerDep) -> dict[str, Any]:
    return {"address": address, "balance": ledger.balance_of(address)}


@router.get("/time")
async def get_time(ledger: LedgerDep) -> dict[str, int]:
    return {"timestamp": ledger.now(), "blockNumber": ledger.block_number}
