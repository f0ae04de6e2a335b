"""
Results aggregation for closed surveys.

Per-question sums, counts and integer averages are readable on the ledger
only once a survey is closed (ended by its creator or past its deadline).
"""

from pydantic import BaseModel, Field

from surveychain.config import LedgerSettings
from surveychain.ledger.interface import LedgerGateway
from surveychain.ledger.models import QuestionResult, QuestionType
from surveychain.shared.clock import Clock, system_clock
from surveychain.shared.exceptions import SurveyChainError, SurveyStillActiveError
from surveychain.shared.logging import get_logger
from surveychain.surveys.models import Question, Survey

logger = get_logger(__name__)

DEFAULT_PERCENTAGE_MAX = 10


def percentage_of_max(value: float, max_value: float = DEFAULT_PERCENTAGE_MAX) -> str | None:
    """Render ``value / max_value`` as a percentage with one decimal.

    >>> percentage_of_max(7, 10)
    '70.0'
    >>> percentage_of_max(3, 0) is None
    True
    """
    if max_value <= 0:
        return None
    return f"{value / max_value * 100:.1f}"


def type_denominator(question: Question) -> int:
    """Top of a question's answer scale; the option count for multiple choice."""
    if question.question_type == QuestionType.MULTIPLE_CHOICE:
        return question.option_count
    return question.answer_range.stop - 1


class QuestionResultView(BaseModel):
    """One question with its aggregate, ready for display."""

    question: Question
    result: QuestionResult
    percentage: str | None = None

    model_config = {"frozen": True}

    @property
    def has_responses(self) -> bool:
        return self.result.count > 0


class SurveyResults(BaseModel):
    """Aggregated results of a closed survey."""

    survey: Survey
    questions: list[QuestionResultView] = Field(default_factory=list)
    total_responses: int = 0

    model_config = {"frozen": True}


class ResultsAggregator:
    """Reads and shapes the results of one survey."""

    def __init__(
        self,
        gateway: LedgerGateway,
        clock: Clock = system_clock,
        settings: LedgerSettings | None = None,
        percentage_max: int | None = None,
        type_aware: bool | None = None,
    ) -> None:
        self._gateway = gateway
        self._clock = clock
        self._percentage_max = (
            percentage_max
            if percentage_max is not None
            else (settings.results_percentage_max if settings else DEFAULT_PERCENTAGE_MAX)
        )
        self._type_aware = (
            type_aware
            if type_aware is not None
            else (settings.type_aware_percentages if settings else False)
        )

    def _percentage(self, question: Question, result: QuestionResult) -> str | None:
        if result.count == 0:
            return None
        denominator = type_denominator(question) if self._type_aware else self._percentage_max
        return percentage_of_max(result.average, denominator)

    async def get_results(self, survey_id: int) -> SurveyResults:
        """Aggregate a closed survey's results.

        Raises:
            SurveyStillActiveError: The survey is still accepting responses.
            NotFoundError: The survey does not exist.
        """
        info = await self._gateway.get_survey_info(survey_id)
        survey = Survey.from_info(survey_id, info)

        if survey.is_open(self._clock()):
            logger.info("Results requested for active survey", extra={"survey_id": survey_id})
            raise SurveyStillActiveError(survey_id)

        views: list[QuestionResultView] = []
        for question_id in range(survey.question_count):
            question = Question.from_info(
                survey_id, question_id, await self._gateway.get_question(survey_id, question_id)
            )
            try:
                result = await self._gateway.get_question_result(survey_id, question_id)
            except SurveyStillActiveError:
                # The ledger's clock disagrees with ours; it is authoritative.
                logger.info(
                    "Ledger reports survey still active",
                    extra={"survey_id": survey_id, "question_id": question_id},
                )
                raise
            except SurveyChainError as exc:
                logger.warning(
                    "Failed to read question result, showing empty result",
                    extra={"survey_id": survey_id, "question_id": question_id, "error_code": exc.code},
                )
                result = QuestionResult.empty()
            views.append(
                QuestionResultView(
                    question=question,
                    result=result,
                    percentage=self._percentage(question, result),
                )
            )

        try:
            total = await self._gateway.get_total_responses(survey_id)
        except SurveyChainError as exc:
            logger.warning(
                "Failed to read total responses",
                extra={"survey_id": survey_id, "error_code": exc.code},
            )
            total = 0

        logger.info(
            "Results aggregated",
            extra={"survey_id": survey_id, "questions": len(views), "total_responses": total},
        )
        return SurveyResults(survey=survey, questions=views, total_responses=total)
