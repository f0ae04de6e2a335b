"""
In-memory ledger adapter for testing and local development.

Reproduces the survey contract's storage and guard clauses, emits the same
event logs, and lets tests pin the clock, switch callers and inject faults.
"""

from dataclasses import dataclass, field
from typing import Any, Callable

import anyio
from anyio.lowlevel import checkpoint
from eth_utils import keccak, to_checksum_address

from surveychain.ledger.events import encode_log
from surveychain.ledger.interface import BaseLedgerAdapter
from surveychain.ledger.models import (
    MAX_CHOICE_OPTIONS,
    MAX_QUESTIONS_PER_SURVEY,
    MIN_CHOICE_OPTIONS,
    PendingTransaction,
    QuestionType,
    RawLog,
    TransactionReceipt,
)
from surveychain.shared.exceptions import LedgerError, LedgerRevertError, TransportError
from surveychain.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
DEFAULT_ACCOUNTS = [
    "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
    "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
    "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC",
]
DEFAULT_START_TIME = 1_700_000_000
DEFAULT_CHAIN_ID = 11155111


@dataclass
class _StoredSurvey:
    title: str
    description: str
    creator: str
    created_at: int
    deadline: int
    is_active: bool = True
    questions: list[tuple[str, int, int]] = field(default_factory=list)
    sums: dict[int, int] = field(default_factory=dict)
    counts: dict[int, int] = field(default_factory=dict)
    answered: set[tuple[str, int]] = field(default_factory=set)
    respondents: set[str] = field(default_factory=set)


@dataclass
class _Fault:
    write_number: int
    error: Exception
    phase: str = "send"


@dataclass(frozen=True)
class RecordedWrite:
    method: str
    args: tuple[Any, ...]
    sender: str
    tx_hash: str


class InMemoryLedgerAdapter(BaseLedgerAdapter):
    """Deterministic in-process survey ledger."""

    def __init__(
        self,
        contract_address: str = DEFAULT_CONTRACT_ADDRESS,
        accounts: list[str] | None = None,
        chain_id: int = DEFAULT_CHAIN_ID,
        start_time: int = DEFAULT_START_TIME,
        confirmation_timeout_seconds: float = 120.0,
    ) -> None:
        super().__init__(contract_address, confirmation_timeout_seconds)
        self._accounts = [to_checksum_address(a) for a in (accounts or DEFAULT_ACCOUNTS)]
        self._chain_id = chain_id
        self._start_time = start_time
        self.reset()

    def reset(self) -> None:
        self.now: int = self._start_time
        self._surveys: list[_StoredSurvey] = []
        self._receipts: dict[str, TransactionReceipt] = {}
        self._writes: list[RecordedWrite] = []
        self._write_attempts: int = 0
        self._reads: list[tuple[str, tuple[Any, ...]]] = []
        self._faults: list[_Fault] = []
        self._confirm_faults: dict[str, Exception] = {}
        self._read_faults: dict[str, Exception] = {}
        self._stall_confirmations: bool = False
        self._deployed: bool = True
        self._block_number: int = 1

    # -- test controls -----------------------------------------------------

    def advance(self, seconds: int) -> None:
        """Move the ledger clock forward."""
        self.now += int(seconds)

    def clock(self) -> int:
        return self.now

    def fail_write(
        self,
        write_number: int,
        error: Exception | None = None,
        phase: str = "send",
    ) -> None:
        """Fail the N-th write attempt from now on (1-based).

        phase="send" rejects the write before it touches state; phase="confirm"
        applies it but reports a failure while waiting for the receipt.
        """
        self._faults.append(
            _Fault(
                write_number=self._write_attempts + write_number,
                error=error or TransportError("Simulated transport fault"),
                phase=phase,
            )
        )

    def fail_reads(self, method: str, error: Exception | None = None) -> None:
        """Make every call to a view function fail."""
        self._read_faults[method] = error or TransportError(f"Simulated read fault on {method}")

    def clear_read_faults(self) -> None:
        self._read_faults.clear()

    def stall_confirmations(self, stall: bool = True) -> None:
        self._stall_confirmations = stall

    def set_deployed(self, deployed: bool) -> None:
        self._deployed = deployed

    def set_chain_id(self, chain_id: int) -> None:
        self._chain_id = chain_id

    @property
    def writes(self) -> list[RecordedWrite]:
        return self._writes.copy()

    @property
    def reads(self) -> list[tuple[str, tuple[Any, ...]]]:
        return self._reads.copy()

    @property
    def write_attempts(self) -> int:
        return self._write_attempts

    def reads_of(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self._reads if name == method]

    def writes_of(self, method: str) -> list[RecordedWrite]:
        return [w for w in self._writes if w.method == method]

    # -- session support ---------------------------------------------------

    async def chain_id(self) -> int:
        return self._chain_id

    async def accounts(self) -> list[str]:
        return list(self._accounts)

    async def contract_deployed(self) -> bool:
        return self._deployed

    # -- transport ---------------------------------------------------------

    async def _call(self, method: str, *args: Any) -> Any:
        self._reads.append((method, args))
        if method in self._read_faults:
            raise self._read_faults[method]
        handler: Callable[..., Any] | None = getattr(self, f"_view_{method}", None)
        if handler is None:
            raise LedgerError(f"Unknown view function: {method}")
        return handler(*args)

    async def _send(self, method: str, args: tuple[Any, ...], sender: str) -> PendingTransaction:
        self._write_attempts += 1
        fault = next((f for f in self._faults if f.write_number == self._write_attempts), None)
        if fault is not None and fault.phase == "send":
            self._faults.remove(fault)
            logger.info("Mock: injected write fault", extra={"method": method, "write": self._write_attempts})
            raise fault.error

        handler: Callable[..., list[RawLog]] | None = getattr(self, f"_tx_{method}", None)
        if handler is None:
            raise LedgerError(f"Unknown write function: {method}")

        sender = to_checksum_address(sender)
        logs = handler(sender, *args)

        tx_hash = "0x" + keccak(text=f"mock-tx-{self._write_attempts}").hex()
        self._block_number += 1
        self._receipts[tx_hash] = TransactionReceipt(
            tx_hash=tx_hash,
            block_number=self._block_number,
            status=1,
            logs=logs,
        )
        self._writes.append(RecordedWrite(method=method, args=args, sender=sender, tx_hash=tx_hash))

        if fault is not None and fault.phase == "confirm":
            self._receipts.pop(tx_hash)
            self._faults.remove(fault)
            self._confirm_faults[tx_hash] = fault.error

        return PendingTransaction(tx_hash=tx_hash, method=method, sender=sender)

    async def _wait_for_receipt(self, pending: PendingTransaction) -> TransactionReceipt:
        if self._stall_confirmations:
            await anyio.sleep_forever()
        if pending.tx_hash in self._confirm_faults:
            raise self._confirm_faults.pop(pending.tx_hash)
        await checkpoint()
        return self._receipts[pending.tx_hash]

    # -- contract storage helpers -----------------------------------------

    def _survey(self, survey_id: int) -> _StoredSurvey:
        if survey_id < 0 or survey_id >= len(self._surveys):
            raise LedgerRevertError("Survey does not exist")
        return self._surveys[survey_id]

    def _log(self, name: str, args: dict[str, Any], index: int = 0) -> RawLog:
        return encode_log(name, args, self.contract_address, log_index=index)

    def _check_answer(self, survey: _StoredSurvey, question_id: int, plaintext: int) -> None:
        if question_id >= len(survey.questions):
            raise LedgerRevertError("Invalid question ID")
        _, question_type, option_count = survey.questions[question_id]
        if plaintext not in QuestionType(question_type).answer_range(option_count):
            raise LedgerRevertError("Invalid answer value")

    def _check_open(self, survey: _StoredSurvey) -> None:
        if not survey.is_active:
            raise LedgerRevertError("Survey has ended")
        if self.now >= survey.deadline:
            raise LedgerRevertError("Survey expired")

    def _record_answer(self, survey_id: int, survey: _StoredSurvey, sender: str, question_id: int, plaintext: int, index: int) -> RawLog:
        survey.answered.add((sender, question_id))
        survey.respondents.add(sender)
        survey.sums[question_id] = survey.sums.get(question_id, 0) + plaintext
        survey.counts[question_id] = survey.counts.get(question_id, 0) + 1
        return self._log(
            "ResponseSubmitted",
            {"surveyId": survey_id, "respondent": sender, "questionId": question_id},
            index,
        )

    # -- writes ------------------------------------------------------------

    def _tx_createSurvey(self, sender: str, title: str, description: str, duration: int) -> list[RawLog]:
        if not title:
            raise LedgerRevertError("Title cannot be empty")
        if duration <= 0:
            raise LedgerRevertError("Duration must be positive")
        survey_id = len(self._surveys)
        self._surveys.append(
            _StoredSurvey(
                title=title,
                description=description,
                creator=sender,
                created_at=self.now,
                deadline=self.now + duration,
            )
        )
        return [self._log("SurveyCreated", {"surveyId": survey_id, "creator": sender, "title": title})]

    def _tx_addQuestion(self, sender: str, survey_id: int, text: str, question_type: int, option_count: int) -> list[RawLog]:
        survey = self._survey(survey_id)
        if sender != survey.creator:
            raise LedgerRevertError("Only creator can add questions")
        if len(survey.questions) >= MAX_QUESTIONS_PER_SURVEY:
            raise LedgerRevertError("Too many questions")
        if question_type == QuestionType.MULTIPLE_CHOICE and not (
            MIN_CHOICE_OPTIONS <= option_count <= MAX_CHOICE_OPTIONS
        ):
            raise LedgerRevertError("Invalid option count")
        question_id = len(survey.questions)
        survey.questions.append((text, question_type, option_count))
        return [self._log("QuestionAdded", {"questionId": question_id, "questionText": text})]

    def _tx_endSurvey(self, sender: str, survey_id: int) -> list[RawLog]:
        survey = self._survey(survey_id)
        if sender != survey.creator:
            raise LedgerRevertError("Only creator can end survey")
        if not survey.is_active:
            raise LedgerRevertError("Survey already ended")
        survey.is_active = False
        return [self._log("SurveyEnded", {"surveyId": survey_id})]

    def _tx_submitResponse(self, sender: str, survey_id: int, question_id: int, decoration: bytes, plaintext: int) -> list[RawLog]:
        survey = self._survey(survey_id)
        self._check_open(survey)
        self._check_answer(survey, question_id, plaintext)
        if (sender, question_id) in survey.answered:
            raise LedgerRevertError("Already responded to this question")
        return [self._record_answer(survey_id, survey, sender, question_id, plaintext, 0)]

    def _tx_submitMultipleResponses(
        self,
        sender: str,
        survey_id: int,
        question_ids: list[int],
        decorations: list[bytes],
        plaintexts: list[int],
    ) -> list[RawLog]:
        survey = self._survey(survey_id)
        self._check_open(survey)
        if not (len(question_ids) == len(decorations) == len(plaintexts)):
            raise LedgerRevertError("Array length mismatch")
        # Validate everything before touching storage: the batch is atomic.
        for question_id, plaintext in zip(question_ids, plaintexts):
            self._check_answer(survey, question_id, plaintext)
            if (sender, question_id) in survey.answered:
                raise LedgerRevertError("Already responded to this question")
        return [
            self._record_answer(survey_id, survey, sender, question_id, plaintext, index)
            for index, (question_id, plaintext) in enumerate(zip(question_ids, plaintexts))
        ]

    # -- views -------------------------------------------------------------

    def _view_surveyCount(self) -> int:
        return len(self._surveys)

    def _view_getSurveyInfo(self, survey_id: int) -> tuple:
        s = self._survey(survey_id)
        return (s.title, s.description, s.creator, s.created_at, s.deadline, s.is_active, len(s.questions))

    def _view_getQuestion(self, survey_id: int, question_id: int) -> tuple:
        survey = self._survey(survey_id)
        if question_id < 0 or question_id >= len(survey.questions):
            raise LedgerRevertError("Invalid question ID")
        return survey.questions[question_id]

    def _view_getQuestionResult(self, survey_id: int, question_id: int) -> tuple:
        survey = self._survey(survey_id)
        if survey.is_active and self.now < survey.deadline:
            raise LedgerRevertError("Survey still active")
        if question_id < 0 or question_id >= len(survey.questions):
            raise LedgerRevertError("Invalid question ID")
        total = survey.sums.get(question_id, 0)
        count = survey.counts.get(question_id, 0)
        return (total, count, total // count if count else 0)

    def _view_getTotalResponses(self, survey_id: int) -> int:
        return len(self._survey(survey_id).respondents)

    def _view_hasUserResponded(self, survey_id: int, account: str) -> bool:
        return to_checksum_address(account) in self._survey(survey_id).respondents

    def _view_isExpired(self, survey_id: int) -> bool:
        return self.now >= self._survey(survey_id).deadline
