"""
Typed decoding of ledger events from transaction receipts.

Raw logs are matched on their topic-0 signature hash and decoded with eth-abi
into one pydantic model per event. Logs emitted by other contracts, or with
unknown signatures, are skipped rather than guessed at.
"""

from typing import Any, Type

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak, to_checksum_address
from pydantic import BaseModel

from surveychain.ledger.abi import event_abi
from surveychain.ledger.models import RawLog, TransactionReceipt
from surveychain.shared.exceptions import IdExtractionFailedError
from surveychain.shared.logging import get_logger

logger = get_logger(__name__)


class LedgerEvent(BaseModel):
    """Base class for decoded events."""

    event_name: str = ""
    model_config = {"frozen": True}


class SurveyCreatedEvent(LedgerEvent):
    event_name: str = "SurveyCreated"
    survey_id: int
    creator: str
    title: str


class QuestionAddedEvent(LedgerEvent):
    event_name: str = "QuestionAdded"
    question_id: int
    question_text: str


class ResponseSubmittedEvent(LedgerEvent):
    event_name: str = "ResponseSubmitted"
    survey_id: int
    respondent: str
    question_id: int


class SurveyEndedEvent(LedgerEvent):
    event_name: str = "SurveyEnded"
    survey_id: int


# ABI argument name -> model field name, per event
_EVENT_MODELS: dict[str, tuple[Type[LedgerEvent], dict[str, str]]] = {
    "SurveyCreated": (
        SurveyCreatedEvent,
        {"surveyId": "survey_id", "creator": "creator", "title": "title"},
    ),
    "QuestionAdded": (
        QuestionAddedEvent,
        {"questionId": "question_id", "questionText": "question_text"},
    ),
    "ResponseSubmitted": (
        ResponseSubmittedEvent,
        {"surveyId": "survey_id", "respondent": "respondent", "questionId": "question_id"},
    ),
    "SurveyEnded": (SurveyEndedEvent, {"surveyId": "survey_id"}),
}


def event_signature(name: str) -> str:
    abi = event_abi(name)
    types = ",".join(arg["type"] for arg in abi["inputs"])
    return f"{name}({types})"


def event_topic(name: str) -> bytes:
    """keccak256 of the canonical event signature (topic 0)."""
    return keccak(text=event_signature(name))


_TOPIC_TO_EVENT = {event_topic(name): name for name in _EVENT_MODELS}


def _normalize(abi_type: str, value: Any) -> Any:
    if abi_type == "address":
        return to_checksum_address(value)
    return value


def decode_log(log: RawLog, contract_address: str | None = None) -> LedgerEvent | None:
    """Decode one raw log, or return None if it is not one of ours."""
    if not log.topics:
        return None
    if contract_address and log.address.lower() != contract_address.lower():
        return None

    name = _TOPIC_TO_EVENT.get(bytes(log.topics[0]))
    if name is None:
        return None

    model, field_map = _EVENT_MODELS[name]
    inputs = event_abi(name)["inputs"]
    indexed = [arg for arg in inputs if arg["indexed"]]
    plain = [arg for arg in inputs if not arg["indexed"]]

    if len(log.topics) - 1 != len(indexed):
        logger.warning(
            "Event topic count mismatch",
            extra={"event": name, "topics": len(log.topics), "log_index": log.log_index},
        )
        return None

    values: dict[str, Any] = {}
    try:
        for arg, topic in zip(indexed, log.topics[1:]):
            (value,) = abi_decode([arg["type"]], bytes(topic))
            values[field_map[arg["name"]]] = _normalize(arg["type"], value)

        if plain:
            decoded = abi_decode([arg["type"] for arg in plain], log.data)
            for arg, value in zip(plain, decoded):
                values[field_map[arg["name"]]] = _normalize(arg["type"], value)
    except DecodingError as exc:
        logger.warning(
            "Malformed event payload",
            extra={"event": name, "log_index": log.log_index, "error": str(exc)},
        )
        return None

    return model(**values)


def decode_receipt(
    receipt: TransactionReceipt,
    contract_address: str | None = None,
) -> list[LedgerEvent]:
    """Decode every recognizable event in a receipt, in log order."""
    events: list[LedgerEvent] = []
    for log in receipt.logs:
        event = decode_log(log, contract_address)
        if event is None:
            logger.debug(
                "Skipping unrecognized log",
                extra={"tx_hash": receipt.tx_hash, "address": log.address, "log_index": log.log_index},
            )
            continue
        events.append(event)
    return events


def extract_survey_id(
    receipt: TransactionReceipt,
    contract_address: str | None = None,
) -> int:
    """Recover the id assigned by createSurvey from its SurveyCreated event.

    Raises:
        IdExtractionFailedError: No SurveyCreated event in the receipt.
    """
    for event in decode_receipt(receipt, contract_address):
        if isinstance(event, SurveyCreatedEvent):
            return event.survey_id

    logger.error(
        "No SurveyCreated event found in transaction logs",
        extra={
            "tx_hash": receipt.tx_hash,
            "logs": [
                {"address": log.address, "topics": [t.hex() for t in log.topics]}
                for log in receipt.logs
            ],
        },
    )
    raise IdExtractionFailedError(tx_hash=receipt.tx_hash, log_count=len(receipt.logs))


def encode_log(
    name: str,
    args: dict[str, Any],
    address: str,
    log_index: int = 0,
) -> RawLog:
    """Build the raw log the contract would emit for ``name``.

    Keys of ``args`` are ABI argument names (``surveyId``, ``creator``...).
    """
    inputs = event_abi(name)["inputs"]
    topics = [event_topic(name)]
    for arg in inputs:
        if arg["indexed"]:
            topics.append(abi_encode([arg["type"]], [args[arg["name"]]]))
    plain = [arg for arg in inputs if not arg["indexed"]]
    data = abi_encode([arg["type"] for arg in plain], [args[arg["name"]] for arg in plain]) if plain else b""
    return RawLog(address=address, topics=topics, data=data, log_index=log_index)

