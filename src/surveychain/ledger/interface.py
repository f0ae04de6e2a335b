"""
Ledger gateway interface definition.

Every write has two suspension points: ``send_*`` returns once the
transaction is submitted, ``wait_for_confirmation`` returns once it is
included. The convenience write methods do both.
"""

from abc import ABC, abstractmethod
from typing import Any, NoReturn, Protocol, Sequence, runtime_checkable

import anyio

from surveychain.ledger.models import (
    AnswerSubmission,
    PendingTransaction,
    QuestionInfo,
    QuestionResult,
    QuestionType,
    SurveyInfo,
    TransactionReceipt,
)
from surveychain.shared.exceptions import (
    AlreadyRespondedError,
    AuthorizationError,
    DeadlineError,
    LedgerError,
    LedgerRevertError,
    LedgerTimeoutError,
    NotFoundError,
    SurveyChainError,
    SurveyStillActiveError,
)
from surveychain.shared.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class LedgerGateway(Protocol):
    """Protocol for ledger gateway implementations.

    One method per contract entry point. Implementations surface the
    ledger's failure reason verbatim and keep no local copy of ledger state.
    """

    @property
    def contract_address(self) -> str:
        ...

    # -- session support ---------------------------------------------------

    async def chain_id(self) -> int:
        ...

    async def accounts(self) -> list[str]:
        ...

    async def contract_deployed(self) -> bool:
        ...

    # -- two-phase writes --------------------------------------------------

    async def send_create_survey(
        self, title: str, description: str, duration_seconds: int, *, sender: str
    ) -> PendingTransaction:
        ...

    async def send_add_question(
        self,
        survey_id: int,
        text: str,
        question_type: QuestionType,
        option_count: int,
        *,
        sender: str,
    ) -> PendingTransaction:
        ...

    async def send_end_survey(self, survey_id: int, *, sender: str) -> PendingTransaction:
        ...

    async def send_submit_response(
        self, survey_id: int, answer: AnswerSubmission, *, sender: str
    ) -> PendingTransaction:
        ...

    async def send_submit_multiple_responses(
        self, survey_id: int, answers: Sequence[AnswerSubmission], *, sender: str
    ) -> PendingTransaction:
        ...

    async def wait_for_confirmation(
        self, pending: PendingTransaction, survey_id: int | None = None
    ) -> TransactionReceipt:
        ...

    # -- confirmed writes --------------------------------------------------

    async def create_survey(
        self, title: str, description: str, duration_seconds: int, *, sender: str
    ) -> TransactionReceipt:
        ...

    async def add_question(
        self,
        survey_id: int,
        text: str,
        question_type: QuestionType,
        option_count: int,
        *,
        sender: str,
    ) -> TransactionReceipt:
        ...

    async def end_survey(self, survey_id: int, *, sender: str) -> TransactionReceipt:
        ...

    async def submit_response(
        self, survey_id: int, answer: AnswerSubmission, *, sender: str
    ) -> TransactionReceipt:
        ...

    async def submit_multiple_responses(
        self, survey_id: int, answers: Sequence[AnswerSubmission], *, sender: str
    ) -> TransactionReceipt:
        ...

    # -- reads -------------------------------------------------------------

    async def survey_count(self) -> int:
        ...

    async def get_survey_info(self, survey_id: int) -> SurveyInfo:
        ...

    async def get_question(self, survey_id: int, question_id: int) -> QuestionInfo:
        ...

    async def get_question_result(self, survey_id: int, question_id: int) -> QuestionResult:
        ...

    async def get_total_responses(self, survey_id: int) -> int:
        ...

    async def has_user_responded(self, survey_id: int, account: str) -> bool:
        ...

    async def is_expired(self, survey_id: int) -> bool:
        ...


def map_revert(error: LedgerRevertError, survey_id: int | None = None) -> SurveyChainError:
    """Translate a ledger revert reason into the client error taxonomy.

    The reason text is kept verbatim as the error message.
    """
    reason = error.reason
    lowered = reason.lower()
    details = {"reason": reason, "survey_id": survey_id}

    if "only creator" in lowered or "not creator" in lowered or "unauthorized" in lowered:
        return AuthorizationError(reason, details=details)
    if "still active" in lowered:
        return SurveyStillActiveError(survey_id if survey_id is not None else -1, message=reason)
    if "already responded" in lowered:
        return AlreadyRespondedError(survey_id if survey_id is not None else -1, account="", message=reason)
    if "expired" in lowered or "ended" in lowered or "not active" in lowered:
        return DeadlineError(reason, details=details)
    if "does not exist" in lowered or "invalid survey" in lowered or "invalid question" in lowered or "not found" in lowered:
        return NotFoundError(reason, details=details)
    return error


def _reraise(error: LedgerRevertError, survey_id: int | None) -> NoReturn:
    mapped = map_revert(error, survey_id)
    if mapped is error:
        raise error
    raise mapped from error


class BaseLedgerAdapter(ABC):
    """Base class for ledger adapter implementations.

    Subclasses provide raw transport (``_call``, ``_send``,
    ``_wait_for_receipt``) and raise LedgerRevertError / TransportError.
    This class owns result normalization, revert mapping, confirmation
    budgets and write logging.
    """

    def __init__(
        self,
        contract_address: str,
        confirmation_timeout_seconds: float = 120.0,
    ) -> None:
        self._contract_address = contract_address
        self._confirmation_timeout_seconds = confirmation_timeout_seconds

    @property
    def contract_address(self) -> str:
        return self._contract_address

    # -- transport hooks ---------------------------------------------------

    @abstractmethod
    async def _call(self, method: str, *args: Any) -> Any:
        """Execute a view function and return its raw output."""
        raise NotImplementedError

    @abstractmethod
    async def _send(self, method: str, args: tuple[Any, ...], sender: str) -> PendingTransaction:
        """Submit a state-changing transaction."""
        raise NotImplementedError

    @abstractmethod
    async def _wait_for_receipt(self, pending: PendingTransaction) -> TransactionReceipt:
        """Block until the transaction is included."""
        raise NotImplementedError

    @abstractmethod
    async def chain_id(self) -> int:
        raise NotImplementedError

    @abstractmethod
    async def accounts(self) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    async def contract_deployed(self) -> bool:
        raise NotImplementedError

    # -- helpers -----------------------------------------------------------

    async def _read(self, method: str, *args: Any, survey_id: int | None = None) -> Any:
        try:
            return await self._call(method, *args)
        except LedgerRevertError as exc:
            _reraise(exc, survey_id)

    async def _submit(
        self, method: str, args: tuple[Any, ...], sender: str, survey_id: int | None = None
    ) -> PendingTransaction:
        try:
            pending = await self._send(method, args, sender)
        except LedgerRevertError as exc:
            _reraise(exc, survey_id)
        logger.info(
            "Transaction submitted",
            extra={"method": method, "tx_hash": pending.tx_hash, "survey_id": survey_id, "sender": sender},
        )
        return pending

    # -- two-phase writes --------------------------------------------------

    async def send_create_survey(
        self, title: str, description: str, duration_seconds: int, *, sender: str
    ) -> PendingTransaction:
        return await self._submit("createSurvey", (title, description, int(duration_seconds)), sender)

    async def send_add_question(
        self,
        survey_id: int,
        text: str,
        question_type: QuestionType,
        option_count: int,
        *,
        sender: str,
    ) -> PendingTransaction:
        return await self._submit(
            "addQuestion",
            (survey_id, text, int(question_type), int(option_count)),
            sender,
            survey_id,
        )

    async def send_end_survey(self, survey_id: int, *, sender: str) -> PendingTransaction:
        return await self._submit("endSurvey", (survey_id,), sender, survey_id)

    async def send_submit_response(
        self, survey_id: int, answer: AnswerSubmission, *, sender: str
    ) -> PendingTransaction:
        return await self._submit(
            "submitResponse",
            (survey_id, answer.question_id, answer.decoration, answer.plaintext),
            sender,
            survey_id,
        )

    async def send_submit_multiple_responses(
        self, survey_id: int, answers: Sequence[AnswerSubmission], *, sender: str
    ) -> PendingTransaction:
        return await self._submit(
            "submitMultipleResponses",
            (
                survey_id,
                [a.question_id for a in answers],
                [a.decoration for a in answers],
                [a.plaintext for a in answers],
            ),
            sender,
            survey_id,
        )

    async def wait_for_confirmation(
        self, pending: PendingTransaction, survey_id: int | None = None
    ) -> TransactionReceipt:
        """Wait for inclusion within the configured execution budget.

        Raises:
            LedgerTimeoutError: Budget exceeded. The transaction may still
                confirm later.
        """
        try:
            with anyio.fail_after(self._confirmation_timeout_seconds):
                receipt = await self._wait_for_receipt(pending)
        except TimeoutError as exc:
            logger.warning(
                "Confirmation wait timed out",
                extra={"tx_hash": pending.tx_hash, "method": pending.method},
            )
            raise LedgerTimeoutError(
                f"Timed out after {self._confirmation_timeout_seconds}s waiting for {pending.tx_hash}",
                tx_hash=pending.tx_hash,
                original_error=exc,
            ) from exc
        except LedgerRevertError as exc:
            _reraise(exc, survey_id)

        if not receipt.succeeded:
            raise LedgerRevertError("Transaction reverted", details={"tx_hash": receipt.tx_hash})

        logger.info(
            "Transaction confirmed",
            extra={
                "method": pending.method,
                "tx_hash": receipt.tx_hash,
                "block_number": receipt.block_number,
            },
        )
        return receipt

    # -- confirmed writes --------------------------------------------------

    async def create_survey(
        self, title: str, description: str, duration_seconds: int, *, sender: str
    ) -> TransactionReceipt:
        pending = await self.send_create_survey(title, description, duration_seconds, sender=sender)
        return await self.wait_for_confirmation(pending)

    async def add_question(
        self,
        survey_id: int,
        text: str,
        question_type: QuestionType,
        option_count: int,
        *,
        sender: str,
    ) -> TransactionReceipt:
        pending = await self.send_add_question(
            survey_id, text, question_type, option_count, sender=sender
        )
        return await self.wait_for_confirmation(pending, survey_id)

    async def end_survey(self, survey_id: int, *, sender: str) -> TransactionReceipt:
        pending = await self.send_end_survey(survey_id, sender=sender)
        return await self.wait_for_confirmation(pending, survey_id)

    async def submit_response(
        self, survey_id: int, answer: AnswerSubmission, *, sender: str
    ) -> TransactionReceipt:
        pending = await self.send_submit_response(survey_id, answer, sender=sender)
        return await self.wait_for_confirmation(pending, survey_id)

    async def submit_multiple_responses(
        self, survey_id: int, answers: Sequence[AnswerSubmission], *, sender: str
    ) -> TransactionReceipt:
        pending = await self.send_submit_multiple_responses(survey_id, answers, sender=sender)
        return await self.wait_for_confirmation(pending, survey_id)

    # -- reads -------------------------------------------------------------

    async def survey_count(self) -> int:
        return int(await self._read("surveyCount"))

    async def get_survey_info(self, survey_id: int) -> SurveyInfo:
        title, description, creator, created_at, deadline, is_active, question_count = await self._read(
            "getSurveyInfo", survey_id, survey_id=survey_id
        )
        return SurveyInfo(
            title=title,
            description=description,
            creator=creator,
            created_at=int(created_at),
            deadline=int(deadline),
            is_active=bool(is_active),
            question_count=int(question_count),
        )

    async def get_question(self, survey_id: int, question_id: int) -> QuestionInfo:
        text, question_type, option_count = await self._read(
            "getQuestion", survey_id, question_id, survey_id=survey_id
        )
        return QuestionInfo(
            text=text,
            question_type=QuestionType(int(question_type)),
            option_count=int(option_count),
        )

    async def get_question_result(self, survey_id: int, question_id: int) -> QuestionResult:
        total, count, average = await self._read(
            "getQuestionResult", survey_id, question_id, survey_id=survey_id
        )
        return QuestionResult(sum=int(total), count=int(count), average=int(average))

    async def get_total_responses(self, survey_id: int) -> int:
        return int(await self._read("getTotalResponses", survey_id, survey_id=survey_id))

    async def has_user_responded(self, survey_id: int, account: str) -> bool:
        return bool(await self._read("hasUserResponded", survey_id, account, survey_id=survey_id))

    async def is_expired(self, survey_id: int) -> bool:
        return bool(await self._read("isExpired", survey_id, survey_id=survey_id))


__all__ = [
    "BaseLedgerAdapter",
    "LedgerError",
    "LedgerGateway",
    "map_revert",
]
