"""
web3.py adapter for the survey ledger contract.

Uses AsyncWeb3 over JSON-RPC. Writes are signed locally when a private key is
configured, otherwise sent with ``eth_sendTransaction`` from a node-managed
account.
"""

from typing import Any

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from surveychain.ledger.abi import SURVEY_CONTRACT_ABI
from surveychain.ledger.interface import BaseLedgerAdapter
from surveychain.ledger.models import PendingTransaction, RawLog, TransactionReceipt
from surveychain.shared.exceptions import LedgerRevertError, TransportError
from surveychain.shared.logging import get_logger

logger = get_logger(__name__)

_REVERT_PREFIXES = ("execution reverted: ", "execution reverted", "VM Exception while processing transaction: reverted with reason string ")


def revert_reason(error: ContractLogicError) -> str:
    """Extract the contract's require() message from a web3 error."""
    message = getattr(error, "message", None) or str(error)
    for prefix in _REVERT_PREFIXES:
        if message.startswith(prefix):
            message = message[len(prefix):]
            break
    return message.strip().strip("'\"") or "execution reverted"


# web3 6.x raises JSON-RPC error replies (nonce too low, insufficient funds,
# rate limits) as a bare ValueError wrapping the error object.
_TRANSPORT_ERRORS = (Web3Exception, OSError, ValueError)


def rpc_message(error: Exception) -> str:
    """Readable text for a node error, unwrapping a JSON-RPC error object."""
    payload = error.args[0] if error.args else None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return str(error)


def _mask(s: str, keep: int = 6) -> str:
    if not s:
        return ""
    if len(s) <= keep:
        return "*" * len(s)
    return f"{s[:keep]}***"


class Web3LedgerAdapter(BaseLedgerAdapter):
    """Survey ledger gateway backed by an Ethereum JSON-RPC node."""

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        private_key: str = "",
        confirmation_timeout_seconds: float = 120.0,
        poll_latency_seconds: float = 1.0,
        web3: AsyncWeb3 | None = None,
    ) -> None:
        checksum = Web3.to_checksum_address(contract_address)
        super().__init__(checksum, confirmation_timeout_seconds)
        self._w3 = web3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self._contract = self._w3.eth.contract(address=checksum, abi=SURVEY_CONTRACT_ABI)
        self._account = Account.from_key(private_key) if private_key else None
        self._poll_latency_seconds = poll_latency_seconds

        logger.info(
            "Web3 ledger adapter configured",
            extra={
                "rpc_url": rpc_url,
                "contract_address": checksum,
                "signer": self._account.address if self._account else "node",
                "private_key": _mask(private_key),
            },
        )

    # -- session support ---------------------------------------------------

    async def chain_id(self) -> int:
        try:
            return int(await self._w3.eth.chain_id)
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"Failed to read chain id: {rpc_message(exc)}", original_error=exc) from exc

    async def accounts(self) -> list[str]:
        if self._account is not None:
            return [self._account.address]
        try:
            return list(await self._w3.eth.accounts)
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"Failed to list accounts: {rpc_message(exc)}", original_error=exc) from exc

    async def contract_deployed(self) -> bool:
        try:
            code = await self._w3.eth.get_code(self.contract_address)
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"Failed to read contract code: {rpc_message(exc)}", original_error=exc) from exc
        return len(code) > 0

    # -- transport ---------------------------------------------------------

    async def _call(self, method: str, *args: Any) -> Any:
        try:
            return await getattr(self._contract.functions, method)(*args).call()
        except ContractLogicError as exc:
            raise LedgerRevertError(revert_reason(exc), original_error=exc) from exc
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"{method} call failed: {rpc_message(exc)}", original_error=exc) from exc

    async def _send(self, method: str, args: tuple[Any, ...], sender: str) -> PendingTransaction:
        fn = getattr(self._contract.functions, method)(*args)
        sender = Web3.to_checksum_address(sender)
        try:
            if self._account is not None:
                tx = await fn.build_transaction(
                    {
                        "from": self._account.address,
                        "nonce": await self._w3.eth.get_transaction_count(self._account.address, "pending"),
                    }
                )
                signed = self._account.sign_transaction(tx)
                raw = getattr(signed, "raw_transaction", None) or signed.rawTransaction
                tx_hash = await self._w3.eth.send_raw_transaction(raw)
            else:
                tx_hash = await fn.transact({"from": sender})
        except ContractLogicError as exc:
            raise LedgerRevertError(revert_reason(exc), original_error=exc) from exc
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"{method} submission failed: {rpc_message(exc)}", original_error=exc) from exc

        return PendingTransaction(tx_hash=Web3.to_hex(tx_hash), method=method, sender=sender)

    async def _wait_for_receipt(self, pending: PendingTransaction) -> TransactionReceipt:
        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                pending.tx_hash,
                timeout=self._confirmation_timeout_seconds,
                poll_latency=self._poll_latency_seconds,
            )
        except TimeExhausted as exc:
            raise TimeoutError(str(exc)) from exc
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"Receipt wait failed: {rpc_message(exc)}", original_error=exc) from exc

        return TransactionReceipt(
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=int(receipt["blockNumber"]),
            status=int(receipt["status"]),
            logs=[
                RawLog(
                    address=log["address"],
                    topics=log["topics"],
                    data=log["data"],
                    log_index=int(log.get("logIndex", 0)),
                )
                for log in receipt["logs"]
            ],
        )
