"""
Command line interface.

One subcommand per campaign lifecycle operation plus read-only queries.
Amounts are entered and printed as human decimals; the ledger only sees
integer minor units. The ``memory`` network lives for a single process,
use ``blockfund serve`` and ``--network localhost`` to keep state between
invocations.
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone
from typing import Any

import anyio
import uvicorn

from blockfund.campaigns.projection import SqlProjectionCache
from blockfund.config import NetworkName, Settings, get_settings
from blockfund.identity import LocalKeySigner
from blockfund.ledger.factory import get_ledger_client
from blockfund.ledger.interface import LedgerClient
from blockfund.ledger.models import CampaignRecord, Contribution
from blockfund.orchestrator import CampaignOrchestrator, OperationResult
from blockfund.shared.exceptions import (
    AppError,
    InvalidAmountError,
    InvalidParametersError,
    LedgerErrorCode,
)
from blockfund.shared.logging import get_logger, setup_logging
from blockfund.shared.units import format_units, parse_units

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

EXIT_CODES: dict[str, int] = {
    LedgerErrorCode.INVALID_PARAMETERS.value: 10,
    LedgerErrorCode.NOT_FOUND.value: 11,
    LedgerErrorCode.CAMPAIGN_NOT_ACTIVE.value: 12,
    LedgerErrorCode.DEADLINE_PASSED.value: 13,
    LedgerErrorCode.INVALID_AMOUNT.value: 14,
    LedgerErrorCode.UNAUTHORIZED.value: 15,
    LedgerErrorCode.SELF_CONTRIBUTION.value: 15,
    LedgerErrorCode.GOAL_NOT_MET.value: 16,
    LedgerErrorCode.ALREADY_FINALIZED.value: 17,
    LedgerErrorCode.REFUND_UNAVAILABLE.value: 18,
    LedgerErrorCode.NOTHING_TO_REFUND.value: 19,
    "SUBMISSION_FAILED": 20,
    "TIMEOUT": 21,
}


def exit_code_for(exc: AppError) -> int:
    return EXIT_CODES.get(exc.code, EXIT_FAILURE)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="blockfund", description="Crowdfunding campaign ledger client")
    parser.add_argument(
        "--network",
        choices=[n.value for n in NetworkName],
        help="Ledger to talk to (default: BLOCKFUND_NETWORK or memory)",
    )
    parser.add_argument("--key", help="Signer secret (default: BLOCKFUND_SIGNER_KEY)")
    parser.add_argument(
        "--no-precheck",
        action="store_true",
        help="Submit without the local eligibility check and report the ledger's verdict",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create a campaign")
    create.add_argument("--goal", required=True, help="Funding goal, e.g. 10 or 2.5")
    when = create.add_mutually_exclusive_group(required=True)
    when.add_argument("--duration", type=int, help="Seconds from now until the deadline")
    when.add_argument("--deadline", help="Deadline as epoch seconds or ISO 8601 datetime")
    create.add_argument("--cid", default="", help="Opaque metadata reference")

    contribute = sub.add_parser("contribute", help="Contribute to a campaign")
    contribute.add_argument("campaign_id", type=int)
    contribute.add_argument("amount", help="Amount, e.g. 0.5")

    for name, help_text in (
        ("withdraw", "Withdraw funds of a campaign that met its goal"),
        ("close", "Close a campaign"),
        ("refund", "Claim a refund from a closed campaign"),
        ("get", "Show one campaign"),
        ("contributions", "List contributions of a campaign"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("campaign_id", type=int)

    sub.add_parser("count", help="Number of campaigns")

    balance = sub.add_parser("balance", help="Funds credited by withdrawals and refunds")
    balance.add_argument("address", nargs="?", help="Address (default: the signer's)")

    serve = sub.add_parser("serve", help="Run a local ledger gateway")
    serve.add_argument("--host", help="Bind address (default: BLOCKFUND_GATEWAY_HOST)")
    serve.add_argument("--port", type=int, help="Port (default: BLOCKFUND_GATEWAY_PORT)")

    return parser


def format_record(record: CampaignRecord, decimals: int) -> dict[str, Any]:
    return {
        "id": record.id,
        "creator": record.creator,
        "goal": format_units(record.goal, decimals),
        "deadline": record.deadline_at.isoformat(),
        "totalFunded": format_units(record.total_funded, decimals),
        "metadataCID": record.metadata_cid,
        "status": record.status.label,
    }


def format_result(result: OperationResult, decimals: int) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "operation": result.operation.value,
        "campaignId": result.campaign_id,
        "txHash": result.receipt.tx_hash,
        "blockNumber": result.receipt.block_number,
        "reconciled": result.reconciled,
    }
    amount = result.amount
    if amount is not None:
        payload["amount"] = format_units(amount, decimals)
    if result.record is not None:
        payload["campaign"] = format_record(result.record, decimals)
    return payload


def _format_contribution(contribution: Contribution, decimals: int) -> dict[str, Any]:
    return {
        "sequence": contribution.sequence,
        "contributor": contribution.contributor,
        "amount": format_units(contribution.amount, decimals),
        "timestamp": datetime.fromtimestamp(contribution.timestamp, tz=timezone.utc).isoformat(),
    }


def _parse_amount(text: str, decimals: int) -> int:
    try:
        amount = parse_units(text, decimals)
    except ValueError as exc:
        raise InvalidAmountError(str(exc)) from exc
    if amount < 0:
        raise InvalidAmountError(f"Amount must not be negative: {text}")
    return amount


def _parse_goal(text: str, decimals: int) -> int:
    try:
        return parse_units(text, decimals)
    except ValueError as exc:
        raise InvalidParametersError(str(exc)) from exc


def _parse_deadline(text: str) -> int:
    if text.isdigit():
        return int(text)
    try:
        moment = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidParametersError(f"Invalid deadline: {text}") from exc
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


async def _run_command(args: argparse.Namespace, settings: Settings) -> Any:
    decimals = settings.token_decimals
    client: LedgerClient = get_ledger_client(settings)
    cache = SqlProjectionCache(settings.projection_db_url)
    orchestrator = CampaignOrchestrator(
        client, LocalKeySigner(args.key or settings.signer_key), cache, settings
    )
    precheck = not args.no_precheck

    try:
        if args.command == "create":
            goal = _parse_goal(args.goal, decimals)
            if args.duration is not None:
                deadline = await client.get_time() + args.duration
            else:
                deadline = _parse_deadline(args.deadline)
            result = await orchestrator.create_campaign(goal, deadline, args.cid, precheck=precheck)
            return format_result(result, decimals)

        if args.command == "contribute":
            amount = _parse_amount(args.amount, decimals)
            result = await orchestrator.contribute(args.campaign_id, amount, precheck=precheck)
            return format_result(result, decimals)

        if args.command == "withdraw":
            result = await orchestrator.withdraw(args.campaign_id, precheck=precheck)
            return format_result(result, decimals)

        if args.command == "close":
            result = await orchestrator.close_campaign(args.campaign_id, precheck=precheck)
            return format_result(result, decimals)

        if args.command == "refund":
            result = await orchestrator.claim_refund(args.campaign_id, precheck=precheck)
            return format_result(result, decimals)

        if args.command == "get":
            return format_record(await orchestrator.get_campaign(args.campaign_id), decimals)

        if args.command == "count":
            return {"count": await client.get_campaign_count()}

        if args.command == "contributions":
            contributions = await client.get_contributions(args.campaign_id)
            return [_format_contribution(c, decimals) for c in contributions]

        if args.command == "balance":
            address = args.address or orchestrator.address
            balance = await client.get_balance(address)
            return {"address": address, "balance": format_units(balance, decimals)}

        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await client.aclose()
        cache.close()


def _serve(args: argparse.Namespace, settings: Settings) -> int:
    host = args.host or settings.gateway_host
    port = args.port or settings.gateway_port
    logger.info("Starting ledger gateway", extra={"host": host, "port": port})
    uvicorn.run(
        "blockfund.main:app",
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    if args.network:
        settings = settings.model_copy(update={"network": NetworkName(args.network)})
    setup_logging()

    if args.command == "serve":
        return _serve(args, settings)

    try:
        output = anyio.run(_run_command, args, settings)
    except AppError as exc:
        error: dict[str, Any] = {"error": exc.code, "message": exc.message}
        campaign_id = getattr(exc, "campaign_id", None)
        if campaign_id is not None:
            error["campaignId"] = campaign_id
        print(json.dumps(error), file=sys.stderr)
        return exit_code_for(exc)

    print(json.dumps(output, indent=2))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
