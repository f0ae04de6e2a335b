"""
Shared exception definitions.

Every failure in the client layer is raised as a SurveyChainError subclass so
callers can render or retry it without inspecting transport internals.
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:  # pragma: no cover
    from surveychain.shared.progress import SubmissionProgress


class SurveyChainError(Exception):
    """Base client exception."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str = "SURVEYCHAIN_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ValidationError(SurveyChainError):
    """Client-side precondition failure; no write was issued."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None, code: str = "VALIDATION_ERROR"):
        super().__init__(message=message, code=code, details=details)


class IncompleteAnswersError(ValidationError):
    """Some questions of the survey have no answer in the answer set."""

    def __init__(self, missing_question_ids: list[int]):
        self.missing_question_ids = list(missing_question_ids)
        super().__init__(
            message="Please answer all questions",
            details={"missing_question_ids": self.missing_question_ids},
            code="INCOMPLETE_ANSWERS",
        )


class InvalidAnswerValueError(ValidationError):
    """An answer lies outside the legal domain of its question type."""

    def __init__(self, question_id: int, value: Any, allowed: str):
        self.question_id = question_id
        self.value = value
        super().__init__(
            message=f"Answer {value!r} for question {question_id} is out of range ({allowed})",
            details={"question_id": question_id, "value": value, "allowed": allowed},
            code="INVALID_ANSWER_VALUE",
        )


class InvalidDraftError(ValidationError):
    """A survey draft fails authoring preconditions."""

    def __init__(self, errors: list[dict[str, str]]):
        self.errors = list(errors)
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in self.errors)
        super().__init__(
            message=f"Invalid survey draft: {summary}",
            details={"errors": self.errors},
            code="INVALID_DRAFT",
        )


class NotFoundError(SurveyChainError):
    """Identifier out of range on the ledger."""

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="NOT_FOUND", details=details)


class AlreadyRespondedError(SurveyChainError):
    """The account already submitted a response set for this survey."""

    def __init__(self, survey_id: int, account: str, message: str | None = None):
        self.survey_id = survey_id
        self.account = account
        super().__init__(
            message=message or f"Account {account} has already responded to survey {survey_id}",
            code="ALREADY_RESPONDED",
            details={"survey_id": survey_id, "account": account},
        )


class SurveyStillActiveError(SurveyChainError):
    """Results are not readable until the survey is closed."""

    def __init__(self, survey_id: int, message: str | None = None):
        self.survey_id = survey_id
        super().__init__(
            message=message
            or "This survey is still active. Results will be available after the survey ends.",
            code="STILL_ACTIVE",
            details={"survey_id": survey_id},
        )


class DeadlineError(SurveyChainError):
    """The survey is closed or past its deadline."""

    def __init__(self, message: str = "Survey has ended", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="DEADLINE_VIOLATION", details=details)


class AuthorizationError(SurveyChainError):
    """A non-creator attempted a creator-only mutation."""

    def __init__(self, message: str = "Access denied", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="AUTHORIZATION_ERROR", details=details)


class PartialSubmissionError(SurveyChainError):
    """Only some writes of a multi-write workflow confirmed.

    The attached progress lists which steps are durable so a retry can skip
    them.
    """

    retryable = True

    def __init__(self, progress: "SubmissionProgress", cause: Exception | None = None):
        self.progress = progress
        self.cause = cause
        super().__init__(
            message=(
                f"Submission failed: {progress.confirmed} of {progress.total} "
                f"writes confirmed for survey {progress.survey_id}"
            ),
            code="PARTIAL_SUBMISSION",
            details={
                "survey_id": progress.survey_id,
                "confirmed": progress.confirmed,
                "total": progress.total,
                "confirmed_steps": sorted(progress.confirmed_steps),
                "failed_step": progress.failed_step,
                "cause": str(cause) if cause else None,
            },
        )

    @property
    def confirmed(self) -> int:
        return self.progress.confirmed

    @property
    def total(self) -> int:
        return self.progress.total


class IdExtractionFailedError(SurveyChainError):
    """The creation receipt carried no SurveyCreated event."""

    def __init__(self, tx_hash: str, log_count: int):
        self.tx_hash = tx_hash
        super().__init__(
            message="Failed to get survey ID from transaction",
            code="ID_EXTRACTION_FAILED",
            details={"tx_hash": tx_hash, "log_count": log_count},
        )


class WalletNotConnectedError(SurveyChainError):
    """A write was attempted without a connected account."""

    def __init__(self, message: str = "Please connect wallet first"):
        super().__init__(message=message, code="WALLET_NOT_CONNECTED")


class ConfigurationError(SurveyChainError):
    """Configuration error."""

    def __init__(self, message: str = "Configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="CONFIGURATION_ERROR", details=details)


class LedgerError(SurveyChainError):
    """Base exception for ledger gateway errors."""

    def __init__(
        self,
        message: str,
        code: str = "LEDGER_ERROR",
        details: Optional[Dict[str, Any]] = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message=message, code=code, details=details)
        self.original_error = original_error


class LedgerRevertError(LedgerError):
    """The ledger rejected a call with a reason this layer does not map."""

    def __init__(self, reason: str, **kwargs: Any) -> None:
        self.reason = reason
        super().__init__(reason, code="LEDGER_REVERT", **kwargs)


class LedgerTimeoutError(LedgerError):
    """A confirmation wait exceeded its execution budget."""

    retryable = True

    def __init__(self, message: str, tx_hash: str | None = None, **kwargs: Any) -> None:
        self.tx_hash = tx_hash
        super().__init__(message, code="TIMED_OUT", **kwargs)


class TransportError(LedgerError):
    """Generic network or RPC failure."""

    retryable = True

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code="TRANSPORT_ERROR", **kwargs)
