"""
Survey view models built from ledger reads.
"""

from pydantic import BaseModel, Field

from surveychain.ledger.models import QuestionInfo, QuestionType, SurveyInfo
from surveychain.shared.formatting import time_remaining

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class Question(BaseModel):
    """A question at its ledger ordinal position."""

    survey_id: int
    question_id: int = Field(ge=0)
    text: str
    question_type: QuestionType
    option_count: int = 0

    model_config = {"frozen": True}

    @classmethod
    def from_info(cls, survey_id: int, question_id: int, info: QuestionInfo) -> "Question":
        return cls(
            survey_id=survey_id,
            question_id=question_id,
            text=info.text,
            question_type=info.question_type,
            option_count=info.option_count,
        )

    @property
    def type_label(self) -> str:
        return self.question_type.label

    @property
    def answer_range(self) -> range:
        return self.question_type.answer_range(self.option_count)


class Survey(BaseModel):
    """Survey metadata as listed to users.

    ``is_active`` is the ledger flag verbatim; expiry is a separate,
    clock-dependent property.
    """

    survey_id: int
    title: str
    description: str
    creator: str
    created_at: int
    deadline: int
    is_active: bool
    question_count: int

    model_config = {"frozen": True}

    @classmethod
    def from_info(cls, survey_id: int, info: SurveyInfo) -> "Survey":
        return cls(survey_id=survey_id, **info.model_dump())

    @property
    def status_label(self) -> str:
        return "Active" if self.is_active else "Closed"

    def is_expired(self, now: int) -> bool:
        return now >= self.deadline

    def is_open(self, now: int) -> bool:
        """Accepting responses: flagged active and before the deadline."""
        return self.is_active and not self.is_expired(now)

    def results_available(self, now: int) -> bool:
        return not self.is_open(now)

    def time_remaining(self, now: int) -> str:
        return time_remaining(self.deadline, now)

    def is_creator(self, account: str | None) -> bool:
        return bool(account) and account.lower() == self.creator.lower()


class SurveyDetail(BaseModel):
    """A survey with all of its questions in ordinal order."""

    survey: Survey
    questions: list[Question] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def survey_id(self) -> int:
        return self.survey.survey_id

    @property
    def question_ids(self) -> list[int]:
        return [q.question_id for q in self.questions]
