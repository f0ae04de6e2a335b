"""
Survey repository: listing and detail reads against the ledger.
"""

from typing import Protocol, Sequence

from surveychain.ledger.interface import LedgerGateway
from surveychain.shared.exceptions import NotFoundError, SurveyChainError
from surveychain.shared.logging import get_logger
from surveychain.surveys.models import ZERO_ADDRESS, Question, Survey, SurveyDetail

logger = get_logger(__name__)


class SurveyRepositoryProtocol(Protocol):
    """Protocol for survey read operations."""

    async def list_surveys(self) -> Sequence[Survey]:
        """All readable surveys, newest first."""
        ...

    async def get_survey(self, survey_id: int, refresh: bool = False) -> Survey:
        """Survey metadata only."""
        ...

    async def get_survey_detail(self, survey_id: int, refresh: bool = False) -> SurveyDetail:
        """Survey metadata plus questions 0..question_count-1."""
        ...


class SurveyRepository:
    """Reads surveys and questions from the ledger and caches them.

    Questions are immutable once added and only ever appended, so the
    question cache is extended rather than invalidated. Survey metadata
    (``is_active``, ``question_count``) can change and is re-read on
    ``refresh=True`` or after ``invalidate``.
    """

    def __init__(self, gateway: LedgerGateway) -> None:
        """Initialize repository with a ledger gateway.

        Args:
            gateway: Ledger gateway used for all reads.
        """
        self._gateway = gateway
        self._surveys: dict[int, Survey] = {}
        self._questions: dict[int, list[Question]] = {}

    def invalidate(self, survey_id: int | None = None) -> None:
        """Drop cached metadata for one survey, or for all of them."""
        if survey_id is None:
            self._surveys.clear()
        else:
            self._surveys.pop(survey_id, None)

    async def list_surveys(self) -> list[Survey]:
        """List every survey, most recently created first.

        A survey whose info read fails is logged and left out; the listing
        itself only fails if the survey count cannot be read.

        Returns:
            Surveys ordered by descending id. Empty when none exist.
        """
        count = await self._gateway.survey_count()
        if count == 0:
            logger.info("No surveys found")
            return []

        surveys: list[Survey] = []
        for survey_id in range(count):
            try:
                info = await self._gateway.get_survey_info(survey_id)
            except SurveyChainError as exc:
                logger.warning(
                    "Failed to load survey, omitting from listing",
                    extra={"survey_id": survey_id, "error_code": exc.code, "error": str(exc)},
                )
                continue
            survey = Survey.from_info(survey_id, info)
            self._surveys[survey_id] = survey
            surveys.append(survey)

        surveys.reverse()
        logger.info("Surveys listed", extra={"survey_count": count, "loaded": len(surveys)})
        return surveys

    async def get_survey(self, survey_id: int, refresh: bool = False) -> Survey:
        """Get survey metadata.

        Raises:
            NotFoundError: The id is not assigned on the ledger.
        """
        if survey_id < 0:
            raise NotFoundError(f"Survey not found: {survey_id}", details={"survey_id": survey_id})

        if not refresh and survey_id in self._surveys:
            return self._surveys[survey_id]

        info = await self._gateway.get_survey_info(survey_id)
        if info.creator == ZERO_ADDRESS:
            # Unassigned slot read back as a zeroed struct.
            raise NotFoundError(f"Survey not found: {survey_id}", details={"survey_id": survey_id})

        survey = Survey.from_info(survey_id, info)
        self._surveys[survey_id] = survey
        return survey

    async def get_survey_detail(self, survey_id: int, refresh: bool = False) -> SurveyDetail:
        """Get a survey together with its questions in ordinal order.

        Args:
            survey_id: Ledger survey id.
            refresh: Re-read metadata instead of serving it from cache.

        Returns:
            SurveyDetail with exactly ``question_count`` questions.

        Raises:
            NotFoundError: The id is not assigned on the ledger.
        """
        survey = await self.get_survey(survey_id, refresh=refresh)

        questions = self._questions.setdefault(survey_id, [])
        for question_id in range(len(questions), survey.question_count):
            info = await self._gateway.get_question(survey_id, question_id)
            questions.append(Question.from_info(survey_id, question_id, info))

        return SurveyDetail(survey=survey, questions=questions[: survey.question_count])

    async def has_responded(self, survey_id: int, account: str) -> bool:
        return await self._gateway.has_user_responded(survey_id, account)
