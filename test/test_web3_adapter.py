"""
Tests for the web3 adapter and gateway factory. No node is contacted.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from web3.exceptions import ContractLogicError, TimeExhausted

from surveychain.config import LedgerSettings, ProviderType
from surveychain.ledger.factory import create_ledger_gateway
from surveychain.ledger.mock_adapter import DEFAULT_ACCOUNTS, DEFAULT_CONTRACT_ADDRESS, InMemoryLedgerAdapter
from surveychain.ledger.models import PendingTransaction
from surveychain.ledger.web3_adapter import Web3LedgerAdapter, revert_reason
from surveychain.shared.exceptions import (
    ConfigurationError,
    LedgerTimeoutError,
    NotFoundError,
    SurveyStillActiveError,
    TransportError,
)


@pytest.fixture
def w3() -> MagicMock:
    return MagicMock()


@pytest.fixture
def adapter(w3: MagicMock) -> Web3LedgerAdapter:
    return Web3LedgerAdapter(
        rpc_url="http://localhost:8545",
        contract_address=DEFAULT_CONTRACT_ADDRESS.lower(),
        confirmation_timeout_seconds=5,
        web3=w3,
    )


def _contract_call(adapter: Web3LedgerAdapter, method: str, call: AsyncMock) -> None:
    getattr(adapter._contract.functions, method).return_value.call = call


class TestRevertReason:
    @pytest.mark.parametrize(
        "message",
        [
            "execution reverted: Survey still active",
            "VM Exception while processing transaction: reverted with reason string 'Survey still active'",
            "Survey still active",
        ],
    )
    def test_strips_prefixes(self, message: str) -> None:
        assert revert_reason(ContractLogicError(message)) == "Survey still active"

    def test_bare_revert(self) -> None:
        assert revert_reason(ContractLogicError("execution reverted")) == "execution reverted"


class TestWeb3Adapter:
    def test_checksums_contract_address(self, adapter: Web3LedgerAdapter) -> None:
        assert adapter.contract_address == DEFAULT_CONTRACT_ADDRESS

    @pytest.mark.asyncio
    async def test_read_normalized(self, adapter: Web3LedgerAdapter) -> None:
        _contract_call(
            adapter,
            "getSurveyInfo",
            AsyncMock(return_value=["T", "D", DEFAULT_ACCOUNTS[0], 10, 20, True, 2]),
        )

        info = await adapter.get_survey_info(0)

        assert info.title == "T"
        assert info.deadline == 20
        assert info.question_count == 2

    @pytest.mark.asyncio
    async def test_revert_mapped(self, adapter: Web3LedgerAdapter) -> None:
        _contract_call(
            adapter,
            "getQuestionResult",
            AsyncMock(side_effect=ContractLogicError("execution reverted: Survey still active")),
        )

        with pytest.raises(SurveyStillActiveError) as exc_info:
            await adapter.get_question_result(0, 0)

        assert exc_info.value.survey_id == 0

    @pytest.mark.asyncio
    async def test_not_found_mapped(self, adapter: Web3LedgerAdapter) -> None:
        _contract_call(
            adapter,
            "getSurveyInfo",
            AsyncMock(side_effect=ContractLogicError("execution reverted: Survey does not exist")),
        )

        with pytest.raises(NotFoundError):
            await adapter.get_survey_info(9)

    @pytest.mark.asyncio
    async def test_transport_error(self, adapter: Web3LedgerAdapter) -> None:
        _contract_call(adapter, "surveyCount", AsyncMock(side_effect=OSError("connection refused")))

        with pytest.raises(TransportError) as exc_info:
            await adapter.survey_count()

        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_rpc_error_reply_on_read(self, adapter: Web3LedgerAdapter) -> None:
        _contract_call(
            adapter,
            "surveyCount",
            AsyncMock(side_effect=ValueError({"code": -32005, "message": "rate limit exceeded"})),
        )

        with pytest.raises(TransportError, match="rate limit exceeded"):
            await adapter.survey_count()

    @pytest.mark.asyncio
    async def test_rpc_error_reply_on_signed_send(self, w3: MagicMock) -> None:
        adapter = Web3LedgerAdapter(
            rpc_url="http://localhost:8545",
            contract_address=DEFAULT_CONTRACT_ADDRESS,
            private_key="0x" + "11" * 32,
            web3=w3,
        )
        adapter._contract.functions.endSurvey.return_value.build_transaction = AsyncMock(
            return_value={
                "to": DEFAULT_CONTRACT_ADDRESS,
                "value": 0,
                "gas": 100000,
                "gasPrice": 1,
                "nonce": 0,
                "chainId": 11155111,
                "data": "0x",
            }
        )
        w3.eth.get_transaction_count = AsyncMock(return_value=0)
        w3.eth.send_raw_transaction = AsyncMock(
            side_effect=ValueError({"code": -32000, "message": "nonce too low"})
        )

        with pytest.raises(TransportError, match="nonce too low") as exc_info:
            await adapter.send_end_survey(0, sender=DEFAULT_ACCOUNTS[0])

        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value.original_error, ValueError)

    @pytest.mark.asyncio
    async def test_rpc_error_reply_on_node_managed_send(self, adapter: Web3LedgerAdapter) -> None:
        adapter._contract.functions.endSurvey.return_value.transact = AsyncMock(
            side_effect=ValueError({"code": -32000, "message": "insufficient funds for gas * price + value"})
        )

        with pytest.raises(TransportError, match="insufficient funds"):
            await adapter.send_end_survey(0, sender=DEFAULT_ACCOUNTS[0])

    @pytest.mark.asyncio
    async def test_receipt_timeout(self, adapter: Web3LedgerAdapter, w3: MagicMock) -> None:
        w3.eth.wait_for_transaction_receipt = AsyncMock(side_effect=TimeExhausted("not mined"))
        pending = PendingTransaction(tx_hash="0x" + "ab" * 32, method="endSurvey")

        with pytest.raises(LedgerTimeoutError) as exc_info:
            await adapter.wait_for_confirmation(pending)

        assert exc_info.value.tx_hash == pending.tx_hash

    @pytest.mark.asyncio
    async def test_contract_deployed(self, adapter: Web3LedgerAdapter, w3: MagicMock) -> None:
        w3.eth.get_code = AsyncMock(return_value=b"")
        assert await adapter.contract_deployed() is False

        w3.eth.get_code = AsyncMock(return_value=b"\x60\x80")
        assert await adapter.contract_deployed() is True


class TestFactory:
    def test_memory_backend(self) -> None:
        gateway = create_ledger_gateway(LedgerSettings(provider_type=ProviderType.MEMORY))

        assert isinstance(gateway, InMemoryLedgerAdapter)
        assert gateway.contract_address == DEFAULT_CONTRACT_ADDRESS

    def test_web3_requires_contract_address(self) -> None:
        with pytest.raises(ConfigurationError, match="SURVEYCHAIN_CONTRACT_ADDRESS"):
            create_ledger_gateway(LedgerSettings(provider_type=ProviderType.WEB3, contract_address=""))

    def test_web3_backend(self) -> None:
        gateway = create_ledger_gateway(
            LedgerSettings(provider_type=ProviderType.WEB3, contract_address=DEFAULT_CONTRACT_ADDRESS)
        )

        assert isinstance(gateway, Web3LedgerAdapter)
        assert gateway.contract_address == DEFAULT_CONTRACT_ADDRESS
