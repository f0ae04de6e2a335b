"""
Tests for the response submission workflow.
"""

import pytest
import pytest_asyncio

from surveychain.ledger.mock_adapter import DEFAULT_ACCOUNTS, InMemoryLedgerAdapter
from surveychain.ledger.models import QuestionType
from surveychain.responses.service import ResponseSubmissionService, make_decoration
from surveychain.responses.validation import validate_answers
from surveychain.session import WalletSession
from surveychain.shared.exceptions import (
    AlreadyRespondedError,
    DeadlineError,
    IncompleteAnswersError,
    InvalidAnswerValueError,
    LedgerTimeoutError,
    PartialSubmissionError,
    TransportError,
    ValidationError,
    WalletNotConnectedError,
)
from surveychain.shared.progress import StepStatus
from surveychain.surveys.models import Question

CREATOR, RESPONDENT, OTHER = DEFAULT_ACCOUNTS
DAY = 86400

ANSWERS = {0: 1, 1: 7, 2: 3}


@pytest.fixture
def service(
    ledger: InMemoryLedgerAdapter,
    respondent_session: WalletSession,
    progress_events: list,
) -> ResponseSubmissionService:
    return ResponseSubmissionService(
        ledger,
        respondent_session,
        clock=ledger.clock,
        on_progress=lambda qid, status: progress_events.append((qid, status)),
    )


@pytest_asyncio.fixture
async def survey_id(make_survey, sample_questions) -> int:
    return await make_survey(sample_questions)


def _question(question_id: int, question_type: QuestionType, option_count: int = 0) -> Question:
    return Question(
        survey_id=0,
        question_id=question_id,
        text=f"Q{question_id}",
        question_type=question_type,
        option_count=option_count,
    )


class TestMakeDecoration:
    def test_is_32_bytes(self) -> None:
        assert len(make_decoration(3, 1_700_000_000_000)) == 32

    def test_depends_on_time(self) -> None:
        assert make_decoration(3, 1) != make_decoration(3, 2)

    def test_deterministic(self) -> None:
        assert make_decoration(3, 1) == make_decoration(3, 1)


class TestValidateAnswers:
    def test_valid(self) -> None:
        questions = [_question(0, QuestionType.YES_NO), _question(1, QuestionType.RATING_1_5)]
        assert validate_answers(questions, {1: 5, 0: 0}) == {0: 0, 1: 5}

    def test_missing(self) -> None:
        questions = [_question(0, QuestionType.YES_NO), _question(1, QuestionType.YES_NO)]

        with pytest.raises(IncompleteAnswersError) as exc_info:
            validate_answers(questions, {0: 1})

        assert exc_info.value.missing_question_ids == [1]

    @pytest.mark.parametrize(
        ("question_type", "option_count", "value"),
        [
            (QuestionType.YES_NO, 0, 2),
            (QuestionType.RATING_1_5, 0, 0),
            (QuestionType.RATING_1_10, 0, 11),
            (QuestionType.MULTIPLE_CHOICE, 3, 3),
        ],
    )
    def test_out_of_domain(self, question_type: QuestionType, option_count: int, value: int) -> None:
        questions = [_question(0, question_type, option_count)]

        with pytest.raises(InvalidAnswerValueError) as exc_info:
            validate_answers(questions, {0: value})

        assert exc_info.value.question_id == 0

    def test_bool_rejected(self) -> None:
        with pytest.raises(InvalidAnswerValueError):
            validate_answers([_question(0, QuestionType.YES_NO)], {0: True})

    def test_unknown_question(self) -> None:
        with pytest.raises(ValidationError):
            validate_answers([_question(0, QuestionType.YES_NO)], {0: 1, 5: 1})


class TestSubmit:
    @pytest.mark.asyncio
    async def test_success(
        self,
        ledger: InMemoryLedgerAdapter,
        service: ResponseSubmissionService,
        survey_id: int,
        progress_events: list,
    ) -> None:
        report = await service.submit(survey_id, ANSWERS)

        assert report.answered == 3
        assert report.account == RESPONDENT
        assert await ledger.has_user_responded(survey_id, RESPONDENT) is True
        writes = ledger.writes_of("submitResponse")
        assert [w.args[1] for w in writes] == [0, 1, 2]
        assert [w.args[3] for w in writes] == [1, 7, 3]
        assert all(len(w.args[2]) == 32 for w in writes)
        assert progress_events == [
            (0, StepStatus.SUBMITTED),
            (0, StepStatus.CONFIRMED),
            (1, StepStatus.SUBMITTED),
            (1, StepStatus.CONFIRMED),
            (2, StepStatus.SUBMITTED),
            (2, StepStatus.CONFIRMED),
        ]

    @pytest.mark.asyncio
    async def test_incomplete_answers_issue_no_writes(
        self, ledger: InMemoryLedgerAdapter, service: ResponseSubmissionService, survey_id: int
    ) -> None:
        attempts = ledger.write_attempts

        with pytest.raises(IncompleteAnswersError):
            await service.submit(survey_id, {0: 1, 1: 7})

        assert ledger.write_attempts == attempts

    @pytest.mark.asyncio
    async def test_invalid_value_issues_no_writes(
        self, ledger: InMemoryLedgerAdapter, service: ResponseSubmissionService, survey_id: int
    ) -> None:
        attempts = ledger.write_attempts

        with pytest.raises(InvalidAnswerValueError):
            await service.submit(survey_id, {0: 1, 1: 7, 2: 4})

        assert ledger.write_attempts == attempts

    @pytest.mark.asyncio
    async def test_already_responded(
        self, ledger: InMemoryLedgerAdapter, service: ResponseSubmissionService, survey_id: int
    ) -> None:
        await service.submit(survey_id, ANSWERS)
        attempts = ledger.write_attempts

        with pytest.raises(AlreadyRespondedError):
            await service.submit(survey_id, ANSWERS)

        assert ledger.write_attempts == attempts

    @pytest.mark.asyncio
    async def test_expired_survey(
        self, ledger: InMemoryLedgerAdapter, service: ResponseSubmissionService, survey_id: int
    ) -> None:
        ledger.advance(7 * DAY)

        with pytest.raises(DeadlineError):
            await service.submit(survey_id, ANSWERS)

        assert ledger.writes_of("submitResponse") == []

    @pytest.mark.asyncio
    async def test_requires_wallet(self, ledger: InMemoryLedgerAdapter, survey_id: int) -> None:
        service = ResponseSubmissionService(ledger, WalletSession(ledger), clock=ledger.clock)

        with pytest.raises(WalletNotConnectedError):
            await service.submit(survey_id, ANSWERS)


class TestPartialSubmission:
    @pytest.mark.asyncio
    async def test_transport_fault_on_second_write(
        self,
        ledger: InMemoryLedgerAdapter,
        service: ResponseSubmissionService,
        survey_id: int,
        progress_events: list,
    ) -> None:
        ledger.fail_write(2)

        with pytest.raises(PartialSubmissionError) as exc_info:
            await service.submit(survey_id, ANSWERS)

        error = exc_info.value
        assert error.confirmed == 1
        assert error.total == 3
        assert error.retryable is True
        assert error.progress.confirmed_steps == {0}
        assert error.progress.failed_step == 1
        assert isinstance(error.cause, TransportError)
        assert "1 of 3" in str(error)
        assert progress_events[-1] == (1, StepStatus.FAILED)
        # The confirmed answer stays on the ledger.
        assert await ledger.has_user_responded(survey_id, RESPONDENT) is True

    @pytest.mark.asyncio
    async def test_resume_completes(
        self, ledger: InMemoryLedgerAdapter, service: ResponseSubmissionService, survey_id: int
    ) -> None:
        ledger.fail_write(2)
        with pytest.raises(PartialSubmissionError) as exc_info:
            await service.submit(survey_id, ANSWERS)

        report = await service.submit(survey_id, ANSWERS, resume=exc_info.value.progress)

        assert report.answered == 3
        assert exc_info.value.progress.is_complete
        assert [w.args[1] for w in ledger.writes_of("submitResponse")] == [0, 1, 2]

        await ledger.end_survey(survey_id, sender=CREATOR)
        for question_id in range(3):
            assert (await ledger.get_question_result(survey_id, question_id)).count == 1

    @pytest.mark.asyncio
    async def test_resume_after_lost_confirmation(
        self, ledger: InMemoryLedgerAdapter, service: ResponseSubmissionService, survey_id: int
    ) -> None:
        # Second write lands on the ledger but its confirmation is lost.
        ledger.fail_write(2, phase="confirm")
        with pytest.raises(PartialSubmissionError) as exc_info:
            await service.submit(survey_id, ANSWERS)
        assert exc_info.value.confirmed == 1

        report = await service.submit(survey_id, ANSWERS, resume=exc_info.value.progress)

        assert report.answered == 3
        assert [w.args[1] for w in ledger.writes_of("submitResponse")] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_timeout_is_reported_as_partial(self, sample_questions) -> None:
        ledger = InMemoryLedgerAdapter(confirmation_timeout_seconds=0.05)
        receipt = await ledger.create_survey("T", "D", DAY, sender=CREATOR)
        for text, question_type, option_count in sample_questions:
            await ledger.add_question(0, text, question_type, option_count, sender=CREATOR)
        session = WalletSession(ledger)
        await session.connect(RESPONDENT)
        service = ResponseSubmissionService(ledger, session, clock=ledger.clock)
        ledger.stall_confirmations()

        with pytest.raises(PartialSubmissionError) as exc_info:
            await service.submit(0, ANSWERS)

        assert receipt.succeeded
        assert exc_info.value.confirmed == 0
        assert isinstance(exc_info.value.cause, LedgerTimeoutError)

    @pytest.mark.asyncio
    async def test_resume_for_other_survey_rejected(
        self, ledger: InMemoryLedgerAdapter, service: ResponseSubmissionService, survey_id: int
    ) -> None:
        ledger.fail_write(1)
        with pytest.raises(PartialSubmissionError) as exc_info:
            await service.submit(survey_id, ANSWERS)

        with pytest.raises(ValidationError):
            await service.submit(survey_id + 1, ANSWERS, resume=exc_info.value.progress)


class TestSubmitBatched:
    @pytest.mark.asyncio
    async def test_single_write(
        self, ledger: InMemoryLedgerAdapter, service: ResponseSubmissionService, survey_id: int
    ) -> None:
        report = await service.submit_batched(survey_id, ANSWERS)

        assert report.batched is True
        assert report.answered == 3
        assert ledger.writes_of("submitResponse") == []
        assert len(ledger.writes_of("submitMultipleResponses")) == 1
        assert await ledger.has_user_responded(survey_id, RESPONDENT) is True

    @pytest.mark.asyncio
    async def test_failure_records_nothing(
        self, ledger: InMemoryLedgerAdapter, service: ResponseSubmissionService, survey_id: int
    ) -> None:
        ledger.fail_write(1)

        with pytest.raises(TransportError):
            await service.submit_batched(survey_id, ANSWERS)

        assert await ledger.has_user_responded(survey_id, RESPONDENT) is False
