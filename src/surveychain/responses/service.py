"""
Response submission workflow.

Validates an answer set, refuses guaranteed-to-revert submissions, then
writes one answer per question in ledger order, each awaited to
confirmation before the next is issued. Earlier confirmed writes are never
rolled back; a failure partway is reported with the exact progress so the
caller can resume with only the remaining answers.
"""

from dataclasses import dataclass, field
import time
from typing import Callable, Mapping
from uuid import uuid4

from eth_utils import keccak

from surveychain.ledger.interface import LedgerGateway
from surveychain.ledger.models import AnswerSubmission
from surveychain.responses.validation import validate_answers
from surveychain.session import WalletSession
from surveychain.shared.clock import Clock, system_clock
from surveychain.shared.exceptions import (
    AlreadyRespondedError,
    DeadlineError,
    PartialSubmissionError,
    SurveyChainError,
    ValidationError,
)
from surveychain.shared.logging import correlation_id_var, get_logger
from surveychain.shared.progress import StepStatus, SubmissionProgress
from surveychain.surveys.models import Question, Survey

logger = get_logger(__name__)

ProgressCallback = Callable[[int, StepStatus], None]


def make_decoration(plaintext: int, timestamp_ms: int | None = None) -> bytes:
    """Hash an answer with the current time.

    The result is submitted alongside the plaintext for display/audit only.
    It is not encryption: the plaintext is public on the ledger anyway.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return keccak(text=f"{plaintext}-{timestamp_ms}")


@dataclass
class SubmissionReport:
    """Outcome of a fully confirmed response submission."""

    survey_id: int
    account: str
    tx_hashes: dict[int, str] = field(default_factory=dict)
    batched: bool = False

    @property
    def answered(self) -> int:
        return len(self.tx_hashes)


class ResponseSubmissionService:
    """Submits one account's answers to one survey."""

    def __init__(
        self,
        gateway: LedgerGateway,
        session: WalletSession,
        clock: Clock = system_clock,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._gateway = gateway
        self._session = session
        self._clock = clock
        self._on_progress = on_progress

    def _notify(self, question_id: int, status: StepStatus) -> None:
        if self._on_progress is not None:
            self._on_progress(question_id, status)

    async def load_survey(self, survey_id: int) -> tuple[Survey, list[Question]]:
        """Read survey metadata and every question from the ledger."""
        info = await self._gateway.get_survey_info(survey_id)
        survey = Survey.from_info(survey_id, info)
        questions = []
        for question_id in range(survey.question_count):
            q = await self._gateway.get_question(survey_id, question_id)
            questions.append(Question.from_info(survey_id, question_id, q))
        return survey, questions

    async def _preflight(
        self,
        survey_id: int,
        answers: Mapping[int, int],
        check_responded: bool,
    ) -> tuple[str, list[Question], dict[int, int]]:
        account = self._session.require_account()
        survey, questions = await self.load_survey(survey_id)
        validated = validate_answers(questions, answers)

        if not survey.is_open(self._clock()):
            raise DeadlineError(
                "Survey is closed and no longer accepts responses",
                details={"survey_id": survey_id, "deadline": survey.deadline, "is_active": survey.is_active},
            )

        if check_responded and await self._gateway.has_user_responded(survey_id, account):
            logger.info("Submission refused, account already responded", extra={"survey_id": survey_id, "account": account})
            raise AlreadyRespondedError(survey_id, account)

        return account, questions, validated

    def _answer(self, question_id: int, plaintext: int) -> AnswerSubmission:
        return AnswerSubmission(
            question_id=question_id,
            decoration=make_decoration(plaintext),
            plaintext=plaintext,
        )

    async def submit(
        self,
        survey_id: int,
        answers: Mapping[int, int],
        resume: SubmissionProgress | None = None,
    ) -> SubmissionReport:
        """Submit one write per answer, sequentially.

        Args:
            survey_id: Target survey.
            answers: question_id -> plaintext for every question.
            resume: Progress from a previous PartialSubmissionError; only the
                unconfirmed answers are written.

        Returns:
            SubmissionReport once every answer is confirmed.

        Raises:
            IncompleteAnswersError / InvalidAnswerValueError: Before any write.
            AlreadyRespondedError: The account answered already (fresh runs only).
            DeadlineError: The survey no longer accepts responses.
            PartialSubmissionError: Some writes failed; carries the progress.
        """
        if resume is not None and resume.survey_id != survey_id:
            raise ValidationError(
                "Resume progress belongs to another survey",
                details={"survey_id": survey_id, "resume_survey_id": resume.survey_id},
            )

        token = correlation_id_var.set(str(uuid4()))
        try:
            account, questions, validated = await self._preflight(
                survey_id, answers, check_responded=resume is None
            )
            progress = resume or SubmissionProgress(
                survey_id=survey_id,
                steps=[q.question_id for q in questions],
            )

            logger.info(
                "Submitting responses",
                extra={
                    "survey_id": survey_id,
                    "account": account,
                    "total": progress.total,
                    "remaining": len(progress.remaining_steps),
                },
            )

            for question_id in progress.remaining_steps:
                await self._submit_one(survey_id, account, question_id, validated[question_id], progress, resuming=resume is not None)

            logger.info("All responses confirmed", extra={"survey_id": survey_id, "account": account})
            return SubmissionReport(survey_id=survey_id, account=account, tx_hashes=dict(progress.tx_hashes))
        finally:
            correlation_id_var.reset(token)

    async def _submit_one(
        self,
        survey_id: int,
        account: str,
        question_id: int,
        plaintext: int,
        progress: SubmissionProgress,
        resuming: bool,
    ) -> None:
        try:
            pending = await self._gateway.send_submit_response(
                survey_id, self._answer(question_id, plaintext), sender=account
            )
            self._notify(question_id, StepStatus.SUBMITTED)
            receipt = await self._gateway.wait_for_confirmation(pending, survey_id)
        except AlreadyRespondedError as exc:
            if not resuming:
                progress.mark_failed(question_id)
                self._notify(question_id, StepStatus.FAILED)
                raise PartialSubmissionError(progress, exc) from exc
            # An earlier attempt whose confirmation we lost did land.
            logger.info(
                "Answer already recorded, skipping on resume",
                extra={"survey_id": survey_id, "question_id": question_id},
            )
            progress.mark_confirmed(question_id, progress.tx_hashes.get(question_id, ""))
            self._notify(question_id, StepStatus.CONFIRMED)
            return
        except SurveyChainError as exc:
            progress.mark_failed(question_id)
            self._notify(question_id, StepStatus.FAILED)
            logger.warning(
                "Response write failed",
                extra={
                    "survey_id": survey_id,
                    "question_id": question_id,
                    "confirmed": progress.confirmed,
                    "total": progress.total,
                    "error_code": exc.code,
                },
            )
            raise PartialSubmissionError(progress, exc) from exc

        progress.mark_confirmed(question_id, receipt.tx_hash)
        self._notify(question_id, StepStatus.CONFIRMED)

    async def submit_batched(self, survey_id: int, answers: Mapping[int, int]) -> SubmissionReport:
        """Submit every answer in one atomic write.

        Either all answers are recorded or none are; there is no partial
        state to resume from.
        """
        token = correlation_id_var.set(str(uuid4()))
        try:
            account, questions, validated = await self._preflight(survey_id, answers, check_responded=True)
            batch = [self._answer(q.question_id, validated[q.question_id]) for q in questions]

            pending = await self._gateway.send_submit_multiple_responses(survey_id, batch, sender=account)
            for q in questions:
                self._notify(q.question_id, StepStatus.SUBMITTED)
            try:
                receipt = await self._gateway.wait_for_confirmation(pending, survey_id)
            except SurveyChainError:
                for q in questions:
                    self._notify(q.question_id, StepStatus.FAILED)
                raise
            for q in questions:
                self._notify(q.question_id, StepStatus.CONFIRMED)

            logger.info(
                "Batched responses confirmed",
                extra={"survey_id": survey_id, "account": account, "tx_hash": receipt.tx_hash, "answers": len(batch)},
            )
            return SubmissionReport(
                survey_id=survey_id,
                account=account,
                tx_hashes={q.question_id: receipt.tx_hash for q in questions},
                batched=True,
            )
        finally:
            correlation_id_var.reset(token)
