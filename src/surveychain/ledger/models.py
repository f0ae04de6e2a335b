"""
Data models for the ledger gateway.

One explicit structured type per read operation; adapters normalize whatever
shape their transport returns (tuples, named outputs) into these.
"""

from enum import IntEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

MAX_QUESTIONS_PER_SURVEY = 255
MIN_CHOICE_OPTIONS = 2
MAX_CHOICE_OPTIONS = 10
SECONDS_PER_DAY = 24 * 60 * 60


class QuestionType(IntEnum):
    """Question types as encoded on the ledger (uint8)."""

    YES_NO = 0
    RATING_1_5 = 1
    RATING_1_10 = 2
    MULTIPLE_CHOICE = 3

    @property
    def label(self) -> str:
        return QUESTION_TYPE_LABELS[self]

    def answer_range(self, option_count: int = 0) -> range:
        """Legal plaintext answers for this type."""
        if self is QuestionType.YES_NO:
            return range(0, 2)
        if self is QuestionType.RATING_1_5:
            return range(1, 6)
        if self is QuestionType.RATING_1_10:
            return range(1, 11)
        return range(0, option_count)


QUESTION_TYPE_LABELS = {
    QuestionType.YES_NO: "Yes / No",
    QuestionType.RATING_1_5: "Rating (1-5)",
    QuestionType.RATING_1_10: "Rating (1-10)",
    QuestionType.MULTIPLE_CHOICE: "Multiple Choice",
}


class SurveyInfo(BaseModel):
    """Result of getSurveyInfo."""

    title: str
    description: str
    creator: str
    created_at: int
    deadline: int
    is_active: bool
    question_count: int = Field(ge=0, le=MAX_QUESTIONS_PER_SURVEY)

    model_config = {"frozen": True}


class QuestionInfo(BaseModel):
    """Result of getQuestion."""

    text: str
    question_type: QuestionType
    option_count: int = Field(default=0, ge=0, le=255)

    model_config = {"frozen": True}


class QuestionResult(BaseModel):
    """Result of getQuestionResult: ledger-computed aggregates."""

    sum: int = 0
    count: int = 0
    average: int = 0

    model_config = {"frozen": True}

    @classmethod
    def empty(cls) -> "QuestionResult":
        return cls()


class RawLog(BaseModel):
    """An undecoded log entry from a transaction receipt."""

    address: str
    topics: list[bytes]
    data: bytes = b""
    log_index: int = 0

    model_config = {"frozen": True}

    @field_validator("topics", mode="before")
    @classmethod
    def coerce_topics(cls, v: Any) -> list[bytes]:
        return [bytes(t) for t in v]

    @field_validator("data", mode="before")
    @classmethod
    def coerce_data(cls, v: Any) -> bytes:
        if isinstance(v, str):
            return bytes.fromhex(v[2:] if v.startswith("0x") else v)
        return bytes(v)


class PendingTransaction(BaseModel):
    """A write that has been submitted but not yet confirmed."""

    tx_hash: str
    method: str
    sender: str | None = None

    model_config = {"frozen": True}


class TransactionReceipt(BaseModel):
    """A confirmed write."""

    tx_hash: str
    block_number: int
    status: int = 1
    logs: list[RawLog] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class AnswerSubmission(BaseModel):
    """One answer-carrying write payload."""

    question_id: int = Field(ge=0, le=255)
    decoration: bytes = Field(min_length=32, max_length=32)
    plaintext: int = Field(ge=0, le=255)

    model_config = {"frozen": True}
