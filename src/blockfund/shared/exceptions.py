"""
Custom exceptions for the application.

Ledger rejections are final: retrying cannot change their outcome.
Orchestration errors are ambiguous: the effect may or may not have landed.
"""

from enum import Enum


class LedgerErrorCode(str, Enum):
    """Rejection reasons recorded on reverted receipts."""

    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    NOT_FOUND = "NOT_FOUND"
    CAMPAIGN_NOT_ACTIVE = "CAMPAIGN_NOT_ACTIVE"
    DEADLINE_PASSED = "DEADLINE_PASSED"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    UNAUTHORIZED = "UNAUTHORIZED"
    SELF_CONTRIBUTION = "SELF_CONTRIBUTION"
    GOAL_NOT_MET = "GOAL_NOT_MET"
    ALREADY_FINALIZED = "ALREADY_FINALIZED"
    REFUND_UNAVAILABLE = "REFUND_UNAVAILABLE"
    NOTHING_TO_REFUND = "NOTHING_TO_REFUND"


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


# Ledger rejections
class LedgerRejectionError(AppError):
    """Base class for requests the ledger refused."""

    error_code: LedgerErrorCode

    def __init__(self, message: str, campaign_id: int | None = None) -> None:
        super().__init__(message, self.error_code.value)
        self.campaign_id = campaign_id


class InvalidParametersError(LedgerRejectionError):
    """Goal or deadline rejected at creation."""

    error_code = LedgerErrorCode.INVALID_PARAMETERS


class CampaignNotFoundError(LedgerRejectionError):
    """Campaign id unknown to the ledger."""

    error_code = LedgerErrorCode.NOT_FOUND

    def __init__(self, message: str | None = None, campaign_id: int | None = None) -> None:
        super().__init__(message or f"Campaign with ID {campaign_id} not found", campaign_id)


class CampaignNotActiveError(LedgerRejectionError):
    error_code = LedgerErrorCode.CAMPAIGN_NOT_ACTIVE


class DeadlinePassedError(LedgerRejectionError):
    error_code = LedgerErrorCode.DEADLINE_PASSED


class InvalidAmountError(LedgerRejectionError):
    error_code = LedgerErrorCode.INVALID_AMOUNT


class UnauthorizedError(LedgerRejectionError):
    """Caller is not allowed to perform the operation."""

    error_code = LedgerErrorCode.UNAUTHORIZED


class SelfContributionError(UnauthorizedError):
    """Creator tried to fund their own campaign."""

    error_code = LedgerErrorCode.SELF_CONTRIBUTION


class GoalNotMetError(LedgerRejectionError):
    error_code = LedgerErrorCode.GOAL_NOT_MET


class AlreadyFinalizedError(LedgerRejectionError):
    """Campaign is SUCCESSFUL or CLOSED."""

    error_code = LedgerErrorCode.ALREADY_FINALIZED


class RefundUnavailableError(LedgerRejectionError):
    """Refunds are only paid out of closed campaigns."""

    error_code = LedgerErrorCode.REFUND_UNAVAILABLE


class NothingToRefundError(LedgerRejectionError):
    error_code = LedgerErrorCode.NOTHING_TO_REFUND


_REJECTIONS: dict[LedgerErrorCode, type[LedgerRejectionError]] = {
    cls.error_code: cls
    for cls in (
        InvalidParametersError,
        CampaignNotFoundError,
        CampaignNotActiveError,
        DeadlinePassedError,
        InvalidAmountError,
        UnauthorizedError,
        SelfContributionError,
        GoalNotMetError,
        AlreadyFinalizedError,
        RefundUnavailableError,
        NothingToRefundError,
    )
}


def rejection_for(code: LedgerErrorCode) -> type[LedgerRejectionError]:
    """Return the exception class the ledger raises for a code."""
    return _REJECTIONS[code]


# Orchestration errors
class OrchestrationError(AppError):
    """Outcome of a request is unknown to the orchestrator."""

    def __init__(
        self,
        message: str,
        code: str,
        campaign_id: int | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, code)
        self.campaign_id = campaign_id
        self.request_id = request_id


class SubmissionFailedError(OrchestrationError):
    """Network or signing failure before the ledger acknowledged the request."""

    def __init__(
        self,
        message: str = "Request submission failed",
        campaign_id: int | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, "SUBMISSION_FAILED", campaign_id, request_id)


class ConfirmationTimeoutError(OrchestrationError):
    """No receipt observed within the confirmation bound."""

    def __init__(
        self,
        message: str = "Confirmation not observed in time",
        campaign_id: int | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, "TIMEOUT", campaign_id, request_id)


class LedgerUnavailableError(AppError):
    """A read against the ledger could not be completed."""

    def __init__(self, message: str = "Ledger unavailable") -> None:
        super().__init__(message, "LEDGER_UNAVAILABLE")


class NetworkConfigurationError(AppError):
    """The selected network cannot be reached with the current settings."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIGURATION")


def error_from_code(
    code: str,
    message: str | None = None,
    campaign_id: int | None = None,
) -> AppError:
    """Decode a wire error code into the matching exception instance."""
    try:
        ledger_code = LedgerErrorCode(code)
    except ValueError:
        if code == "SUBMISSION_FAILED":
            return SubmissionFailedError(message or "Request submission failed", campaign_id)
        if code == "TIMEOUT":
            return ConfirmationTimeoutError(message or "Confirmation not observed in time", campaign_id)
        return AppError(message or code, code)
    cls = rejection_for(ledger_code)
    return cls(message or ledger_code.value.replace("_", " ").capitalize(), campaign_id=campaign_id)
