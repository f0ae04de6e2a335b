"""
ABI of the survey ledger contract.

Parameter order matters for encoding; the contract owns this definition.
"""

from typing import Any


def _arg(name: str, type_: str, indexed: bool | None = None) -> dict[str, Any]:
    entry: dict[str, Any] = {"internalType": type_, "name": name, "type": type_}
    if indexed is not None:
        entry["indexed"] = indexed
    return entry


def _fn(name: str, inputs: list, outputs: list, mutability: str) -> dict[str, Any]:
    return {
        "inputs": inputs,
        "name": name,
        "outputs": outputs,
        "stateMutability": mutability,
        "type": "function",
    }


def _event(name: str, inputs: list) -> dict[str, Any]:
    return {"anonymous": False, "inputs": inputs, "name": name, "type": "event"}


_SURVEY_OUTPUTS = [
    _arg("title", "string"),
    _arg("description", "string"),
    _arg("creator", "address"),
    _arg("createdAt", "uint256"),
    _arg("deadline", "uint256"),
    _arg("isActive", "bool"),
    _arg("questionCount", "uint8"),
]

SURVEY_CONTRACT_ABI: list[dict[str, Any]] = [
    _fn(
        "addQuestion",
        [
            _arg("_surveyId", "uint256"),
            _arg("_questionText", "string"),
            _arg("_questionType", "uint8"),
            _arg("_optionCount", "uint8"),
        ],
        [],
        "nonpayable",
    ),
    _fn(
        "createSurvey",
        [_arg("_title", "string"), _arg("_description", "string"), _arg("_duration", "uint256")],
        [_arg("", "uint256")],
        "nonpayable",
    ),
    _fn("endSurvey", [_arg("_surveyId", "uint256")], [], "nonpayable"),
    _fn(
        "getQuestion",
        [_arg("_surveyId", "uint256"), _arg("_questionId", "uint8")],
        [_arg("questionText", "string"), _arg("questionType", "uint8"), _arg("optionCount", "uint8")],
        "view",
    ),
    _fn(
        "getQuestionResult",
        [_arg("_surveyId", "uint256"), _arg("_questionId", "uint8")],
        [_arg("sum", "uint256"), _arg("count", "uint256"), _arg("average", "uint256")],
        "view",
    ),
    _fn("getSurveyInfo", [_arg("_surveyId", "uint256")], _SURVEY_OUTPUTS, "view"),
    _fn("getTotalResponses", [_arg("_surveyId", "uint256")], [_arg("", "uint256")], "view"),
    _fn(
        "hasUserResponded",
        [_arg("_surveyId", "uint256"), _arg("_user", "address")],
        [_arg("", "bool")],
        "view",
    ),
    _fn("isExpired", [_arg("_surveyId", "uint256")], [_arg("", "bool")], "view"),
    _fn(
        "submitMultipleResponses",
        [
            _arg("_surveyId", "uint256"),
            _arg("_questionIds", "uint8[]"),
            _arg("_encryptedAnswers", "bytes32[]"),
            _arg("_plaintextForAggregation", "uint8[]"),
        ],
        [],
        "nonpayable",
    ),
    _fn(
        "submitResponse",
        [
            _arg("_surveyId", "uint256"),
            _arg("_questionId", "uint8"),
            _arg("_encryptedAnswer", "bytes32"),
            _arg("_plaintextForAggregation", "uint8"),
        ],
        [],
        "nonpayable",
    ),
    _fn("surveyCount", [], [_arg("", "uint256")], "view"),
    _fn("surveys", [_arg("", "uint256")], _SURVEY_OUTPUTS, "view"),
    _event(
        "QuestionAdded",
        [_arg("questionId", "uint8", False), _arg("questionText", "string", False)],
    ),
    _event(
        "ResponseSubmitted",
        [
            _arg("surveyId", "uint256", True),
            _arg("respondent", "address", True),
            _arg("questionId", "uint8", False),
        ],
    ),
    _event(
        "SurveyCreated",
        [
            _arg("surveyId", "uint256", True),
            _arg("creator", "address", True),
            _arg("title", "string", False),
        ],
    ),
    _event("SurveyEnded", [_arg("surveyId", "uint256", True)]),
]


def event_abi(name: str) -> dict[str, Any]:
    """Look up one event definition by name."""
    for entry in SURVEY_CONTRACT_ABI:
        if entry["type"] == "event" and entry["name"] == name:
            return entry
    raise KeyError(f"Unknown event: {name}")
