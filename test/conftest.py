"""
Pytest configuration and shared fixtures.

Every test runs against a fresh InMemoryLedgerAdapter with a pinned clock.
"""

import os
from collections.abc import Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio

from surveychain.ledger.events import extract_survey_id
from surveychain.ledger.mock_adapter import DEFAULT_ACCOUNTS, InMemoryLedgerAdapter
from surveychain.ledger.models import QuestionType
from surveychain.session import WalletSession

CREATOR = DEFAULT_ACCOUNTS[0]
RESPONDENT = DEFAULT_ACCOUNTS[1]
OTHER = DEFAULT_ACCOUNTS[2]

DAY = 86400

SurveyFactory = Callable[..., Awaitable[int]]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's SURVEYCHAIN_* variables out of the tests."""

    for key in list(os.environ):
        if key.startswith("SURVEYCHAIN_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def ledger() -> InMemoryLedgerAdapter:
    """Fresh in-memory ledger for each test."""
    return InMemoryLedgerAdapter()


@pytest.fixture
def sample_questions() -> list[tuple[str, QuestionType, int]]:
    """One question of each kind except multiple choice, plus a 4-option MC."""
    return [
        ("Do you like it?", QuestionType.YES_NO, 0),
        ("Rate the service", QuestionType.RATING_1_10, 0),
        ("Pick a colour", QuestionType.MULTIPLE_CHOICE, 4),
    ]


@pytest.fixture
def make_survey(ledger: InMemoryLedgerAdapter) -> SurveyFactory:
    """Create a survey directly on the ledger and return its id."""

    async def _make(
        questions: list[tuple[str, QuestionType, int]],
        title: str = "Customer feedback",
        description: str = "Tell us what you think",
        duration_seconds: int = 7 * DAY,
        creator: str = CREATOR,
    ) -> int:
        receipt = await ledger.create_survey(title, description, duration_seconds, sender=creator)
        survey_id = extract_survey_id(receipt, ledger.contract_address)
        for text, question_type, option_count in questions:
            await ledger.add_question(survey_id, text, question_type, option_count, sender=creator)
        return survey_id

    return _make


@pytest_asyncio.fixture
async def creator_session(ledger: InMemoryLedgerAdapter) -> WalletSession:
    session = WalletSession(ledger)
    await session.connect(CREATOR)
    return session


@pytest_asyncio.fixture
async def respondent_session(ledger: InMemoryLedgerAdapter) -> WalletSession:
    session = WalletSession(ledger)
    await session.connect(RESPONDENT)
    return session


@pytest.fixture
def progress_events() -> list[tuple[int, Any]]:
    """Sink for on_progress callbacks."""
    return []
