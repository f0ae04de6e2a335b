"""
Survey authoring workflow.

Creates a survey, recovers its ledger id from the creation receipt, then
appends each question in order. Each write is confirmed before the next is
issued; a failure after creation leaves an orphaned survey with fewer
questions, which is reported with the survey id so the remaining questions
can be added later.
"""

from dataclasses import dataclass, field
from uuid import uuid4

from surveychain.authoring.validation import QuestionDraft, SurveyDraft, validate_draft
from surveychain.ledger.events import QuestionAddedEvent, decode_receipt, extract_survey_id
from surveychain.ledger.interface import LedgerGateway
from surveychain.ledger.models import QuestionType, SurveyInfo
from surveychain.session import WalletSession
from surveychain.shared.clock import Clock, system_clock
from surveychain.shared.exceptions import (
    AuthorizationError,
    DeadlineError,
    InvalidDraftError,
    PartialSubmissionError,
    SurveyChainError,
    ValidationError,
)
from surveychain.shared.logging import correlation_id_var, get_logger
from surveychain.shared.progress import SubmissionProgress
from surveychain.surveys.models import Survey

logger = get_logger(__name__)


@dataclass
class CreationReport:
    """A survey created with all of its questions."""

    survey_id: int
    creator: str
    create_tx_hash: str
    question_tx_hashes: dict[int, str] = field(default_factory=dict)

    @property
    def question_count(self) -> int:
        return len(self.question_tx_hashes)


class SurveyAuthoringService:
    """Creates surveys, adds questions and closes surveys for the connected account."""

    def __init__(
        self,
        gateway: LedgerGateway,
        session: WalletSession,
        clock: Clock = system_clock,
    ) -> None:
        self._gateway = gateway
        self._session = session
        self._clock = clock

    async def create(
        self,
        draft: SurveyDraft,
        resume: SubmissionProgress | None = None,
    ) -> CreationReport:
        """Create a survey and add every draft question.

        Args:
            draft: Survey metadata and questions.
            resume: Progress from a previous PartialSubmissionError; the
                survey is not created again and only the questions not yet
                confirmed are added.

        Returns:
            CreationReport with the new survey id.

        Raises:
            InvalidDraftError: Before any write.
            IdExtractionFailedError: The creation receipt had no SurveyCreated event.
            PartialSubmissionError: The survey exists but some questions were not added.
        """
        account = self._session.require_account()
        draft = validate_draft(draft)

        token = correlation_id_var.set(str(uuid4()))
        try:
            if resume is None:
                receipt = await self._gateway.create_survey(
                    draft.title, draft.description, draft.duration_seconds, sender=account
                )
                survey_id = extract_survey_id(receipt, self._gateway.contract_address)
                create_tx_hash = receipt.tx_hash
                progress = SubmissionProgress(survey_id=survey_id, steps=list(range(len(draft.questions))))
                logger.info(
                    "Survey created",
                    extra={"survey_id": survey_id, "tx_hash": receipt.tx_hash, "creator": account},
                )
            else:
                if resume.total != len(draft.questions):
                    raise ValidationError(
                        "Resume progress does not match the draft's questions",
                        details={"survey_id": resume.survey_id, "expected": resume.total, "actual": len(draft.questions)},
                    )
                progress = resume
                survey_id = progress.survey_id
                create_tx_hash = ""
                info = await self._warn_if_expired(survey_id)
                self._reconcile(progress, info.question_count)

            for index in progress.remaining_steps:
                question = draft.questions[index]
                try:
                    receipt = await self._gateway.add_question(
                        survey_id,
                        question.text,
                        question.question_type,
                        question.option_count,
                        sender=account,
                    )
                except SurveyChainError as exc:
                    progress.mark_failed(index)
                    logger.warning(
                        "Adding question failed",
                        extra={
                            "survey_id": survey_id,
                            "question_index": index,
                            "confirmed": progress.confirmed,
                            "total": progress.total,
                            "error_code": exc.code,
                        },
                    )
                    raise PartialSubmissionError(progress, exc) from exc
                progress.mark_confirmed(index, receipt.tx_hash)
                logger.info(
                    "Question added",
                    extra={"survey_id": survey_id, "question_index": index, "tx_hash": receipt.tx_hash},
                )

            return CreationReport(
                survey_id=survey_id,
                creator=account,
                create_tx_hash=create_tx_hash,
                question_tx_hashes=dict(progress.tx_hashes),
            )
        finally:
            correlation_id_var.reset(token)

    @staticmethod
    def _reconcile(progress: SubmissionProgress, question_count: int) -> None:
        """Mark draft positions the ledger already holds as confirmed.

        Questions are append-only and added in draft order, so the first
        ``question_count`` positions are on the ledger even when their
        confirmation was lost.
        """
        if question_count > progress.total:
            raise ValidationError(
                "Survey already has more questions than the draft",
                details={"survey_id": progress.survey_id, "expected": progress.total, "actual": question_count},
            )
        for index in range(question_count):
            if index not in progress.confirmed_steps:
                logger.info(
                    "Question already on ledger, skipping",
                    extra={"survey_id": progress.survey_id, "question_index": index},
                )
                progress.mark_confirmed(index, progress.tx_hashes.get(index, ""))

    async def _warn_if_expired(self, survey_id: int) -> SurveyInfo:
        info = await self._gateway.get_survey_info(survey_id)
        if self._clock() >= info.deadline:
            # The ledger accepts this; respondents will never see the questions.
            logger.warning(
                "Adding questions to a survey past its deadline",
                extra={"survey_id": survey_id, "deadline": info.deadline},
            )
        return info

    async def add_question(self, survey_id: int, question: QuestionDraft) -> int:
        """Append one question to an existing survey.

        Returns:
            The new question's ordinal id.
        """
        account = self._session.require_account()
        if not question.text.strip():
            raise InvalidDraftError([{"field": "text", "message": "Question text is required"}])
        if question.question_type != QuestionType.MULTIPLE_CHOICE:
            question = question.model_copy(update={"option_count": 0})

        await self._warn_if_expired(survey_id)
        receipt = await self._gateway.add_question(
            survey_id, question.text, question.question_type, question.option_count, sender=account
        )
        question_id = next(
            (e.question_id for e in decode_receipt(receipt, self._gateway.contract_address) if isinstance(e, QuestionAddedEvent)),
            None,
        )
        if question_id is None:
            question_id = (await self._gateway.get_survey_info(survey_id)).question_count - 1
        logger.info(
            "Question added",
            extra={"survey_id": survey_id, "question_id": question_id, "tx_hash": receipt.tx_hash},
        )
        return question_id

    async def end_survey(self, survey_id: int) -> str:
        """Close a survey early. Only its creator may do so.

        Returns:
            The confirmed transaction hash.

        Raises:
            AuthorizationError: The connected account is not the creator.
            DeadlineError: The survey is already closed.
        """
        account = self._session.require_account()
        survey = Survey.from_info(survey_id, await self._gateway.get_survey_info(survey_id))

        if not survey.is_creator(account):
            raise AuthorizationError(
                "Only the survey creator can end this survey",
                details={"survey_id": survey_id, "account": account},
            )
        if not survey.is_active:
            raise DeadlineError("Survey already ended", details={"survey_id": survey_id})

        receipt = await self._gateway.end_survey(survey_id, sender=account)
        logger.info("Survey ended", extra={"survey_id": survey_id, "tx_hash": receipt.tx_hash})
        return receipt.tx_hash
