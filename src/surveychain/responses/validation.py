"""
Client-side checks on an in-progress answer set.

These mirror the ledger's own guards so an obviously invalid response set
never costs a transaction.
"""

from typing import Mapping, Sequence

from surveychain.shared.exceptions import (
    IncompleteAnswersError,
    InvalidAnswerValueError,
    ValidationError,
)
from surveychain.surveys.models import Question


def _describe(question: Question) -> str:
    allowed = question.answer_range
    if len(allowed) == 0:
        return "no legal values"
    return f"{allowed.start}..{allowed.stop - 1}"


def validate_answers(questions: Sequence[Question], answers: Mapping[int, int]) -> dict[int, int]:
    """Check an answer set against question definitions.

    Args:
        questions: Every question of the survey, in ordinal order.
        answers: question_id -> plaintext value.

    Returns:
        The answers keyed by question id, in question order.

    Raises:
        IncompleteAnswersError: A question has no answer.
        InvalidAnswerValueError: A value is outside its question's domain.
        ValidationError: An answer refers to a question the survey lacks.
    """
    known = {q.question_id for q in questions}
    unknown = sorted(qid for qid in answers if qid not in known)
    if unknown:
        raise ValidationError(
            f"Answers given for unknown questions: {unknown}",
            details={"unknown_question_ids": unknown},
        )

    missing = [q.question_id for q in questions if q.question_id not in answers]
    if missing:
        raise IncompleteAnswersError(missing)

    validated: dict[int, int] = {}
    for question in questions:
        value = answers[question.question_id]
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidAnswerValueError(question.question_id, value, _describe(question))
        if value not in question.answer_range:
            raise InvalidAnswerValueError(question.question_id, value, _describe(question))
        validated[question.question_id] = value
    return validated
