"""
Wallet session.

An explicit session object passed into each workflow instead of ambient
wallet globals. Lifecycle changes are delivered to subscribers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from eth_utils import to_checksum_address

from surveychain.ledger.interface import LedgerGateway
from surveychain.shared.exceptions import ConfigurationError, WalletNotConnectedError
from surveychain.shared.logging import get_logger

logger = get_logger(__name__)


class SessionEventType(str, Enum):
    CONNECTED = "connected"
    ACCOUNT_CHANGED = "account_changed"
    DISCONNECTED = "disconnected"
    CHAIN_CHANGED = "chain_changed"


@dataclass(frozen=True)
class SessionEvent:
    event_type: SessionEventType
    account: str | None
    chain_id: int | None


SessionListener = Callable[[SessionEvent], None]


class WalletSession:
    """Connected account + chain for one user of the ledger."""

    def __init__(self, gateway: LedgerGateway, expected_chain_id: int | None = None) -> None:
        self._gateway = gateway
        self._expected_chain_id = expected_chain_id
        self._account: str | None = None
        self._chain_id: int | None = None
        self._listeners: list[SessionListener] = []

    @property
    def gateway(self) -> LedgerGateway:
        return self._gateway

    @property
    def account(self) -> str | None:
        return self._account

    @property
    def chain_id(self) -> int | None:
        return self._chain_id

    @property
    def is_connected(self) -> bool:
        return self._account is not None

    def require_account(self) -> str:
        if self._account is None:
            raise WalletNotConnectedError()
        return self._account

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, event_type: SessionEventType) -> None:
        event = SessionEvent(event_type=event_type, account=self._account, chain_id=self._chain_id)
        for listener in list(self._listeners):
            listener(event)

    async def connect(self, account: str | None = None) -> str:
        """Resolve the active account and verify network and contract.

        Raises:
            ConfigurationError: Wrong chain, or no contract code at the address.
            WalletNotConnectedError: The provider exposes no accounts.
        """
        chain_id = await self._gateway.chain_id()
        if self._expected_chain_id is not None and chain_id != self._expected_chain_id:
            raise ConfigurationError(
                f"Connected to chain {chain_id}, expected {self._expected_chain_id}",
                details={"chain_id": chain_id, "expected_chain_id": self._expected_chain_id},
            )

        if not await self._gateway.contract_deployed():
            raise ConfigurationError(
                f"No contract found at address {self._gateway.contract_address} on this network",
                details={"contract_address": self._gateway.contract_address},
            )

        if account is None:
            accounts = await self._gateway.accounts()
            if not accounts:
                raise WalletNotConnectedError("No accounts available from provider")
            account = accounts[0]

        self._account = to_checksum_address(account)
        self._chain_id = chain_id
        logger.info(
            "Wallet connected",
            extra={"account": self._account, "chain_id": chain_id, "contract_address": self._gateway.contract_address},
        )
        self._emit(SessionEventType.CONNECTED)
        return self._account

    def switch_account(self, account: str | None) -> None:
        """Provider reported a new account list; empty means disconnected."""
        if not account:
            self.disconnect()
            return
        self._account = to_checksum_address(account)
        logger.info("Wallet account changed", extra={"account": self._account})
        self._emit(SessionEventType.ACCOUNT_CHANGED)

    def chain_changed(self, chain_id: int) -> None:
        """Network switched underneath the session; callers must reconnect."""
        logger.info("Chain changed, session reset", extra={"chain_id": chain_id, "previous_chain_id": self._chain_id})
        self._chain_id = chain_id
        self._account = None
        self._emit(SessionEventType.CHAIN_CHANGED)

    def disconnect(self) -> None:
        if self._account is None and self._chain_id is None:
            return
        self._account = None
        self._chain_id = None
        logger.info("Wallet disconnected")
        self._emit(SessionEventType.DISCONNECTED)
