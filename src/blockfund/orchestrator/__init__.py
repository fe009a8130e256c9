"""
Request orchestration: submit, await confirmation, reconcile.
"""

from blockfund.orchestrator.models import OperationResult
from blockfund.orchestrator.service import CampaignOrchestrator

__all__ = ["CampaignOrchestrator", "OperationResult"]
