"""
Survey draft models and authoring preconditions.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from surveychain.ledger.models import (
    MAX_CHOICE_OPTIONS,
    MAX_QUESTIONS_PER_SURVEY,
    MIN_CHOICE_OPTIONS,
    SECONDS_PER_DAY,
    QuestionType,
)
from surveychain.shared.exceptions import InvalidDraftError


class QuestionDraft(BaseModel):
    """A question as entered by the author, before it reaches the ledger."""

    text: str = ""
    question_type: QuestionType = QuestionType.YES_NO
    option_count: int = 0


class SurveyDraft(BaseModel):
    """Survey metadata plus an ordered list of questions."""

    title: str = ""
    description: str = ""
    duration_days: int = 7
    questions: List[QuestionDraft] = Field(default_factory=list)

    @property
    def duration_seconds(self) -> int:
        return self.duration_days * SECONDS_PER_DAY


@dataclass
class ValidationResult:
    """Collected draft problems; ``is_valid`` flips on the first error."""

    is_valid: bool = True
    _errors: List[Dict[str, str]] = field(default_factory=list, repr=False)

    def add_error(self, field: str, message: str) -> None:
        self.is_valid = False
        self._errors.append({"field": field, "message": message})

    @property
    def errors(self) -> List[Dict[str, str]]:
        return list(self._errors)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


def check_draft(draft: SurveyDraft) -> ValidationResult:
    """Collect every problem with a draft without raising."""
    result = ValidationResult()

    if _is_blank(draft.title):
        result.add_error("title", "Title is required")
    if _is_blank(draft.description):
        result.add_error("description", "Description is required")
    if draft.duration_days < 1:
        result.add_error("duration_days", "Duration must be at least 1 day")

    if not draft.questions:
        result.add_error("questions", "Please add at least one question")
    elif len(draft.questions) > MAX_QUESTIONS_PER_SURVEY:
        result.add_error("questions", f"At most {MAX_QUESTIONS_PER_SURVEY} questions are allowed")

    for index, question in enumerate(draft.questions):
        if _is_blank(question.text):
            result.add_error(f"questions[{index}].text", "Question text is required")
        if question.question_type == QuestionType.MULTIPLE_CHOICE and not (
            MIN_CHOICE_OPTIONS <= question.option_count <= MAX_CHOICE_OPTIONS
        ):
            result.add_error(
                f"questions[{index}].option_count",
                f"Multiple choice needs {MIN_CHOICE_OPTIONS}-{MAX_CHOICE_OPTIONS} options",
            )

    return result


def validate_draft(draft: SurveyDraft) -> SurveyDraft:
    """Validate a draft and return it normalized for submission.

    Non-multiple-choice questions are sent with an option count of 0.

    Raises:
        InvalidDraftError: Listing every failing field.
    """
    result = check_draft(draft)
    if not result.is_valid:
        raise InvalidDraftError(result.errors)

    questions = [
        q
        if q.question_type == QuestionType.MULTIPLE_CHOICE
        else q.model_copy(update={"option_count": 0})
        for q in draft.questions
    ]
    return draft.model_copy(update={"questions": questions})
