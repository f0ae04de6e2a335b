"""
Ledger gateway factory.

Single source of truth for configuration: use LedgerSettings (pydantic
settings) which loads from OS env + .env.
"""

from __future__ import annotations

from surveychain.config import LedgerSettings, ProviderType, get_settings
from surveychain.ledger.interface import LedgerGateway
from surveychain.ledger.mock_adapter import DEFAULT_CONTRACT_ADDRESS, InMemoryLedgerAdapter
from surveychain.ledger.web3_adapter import Web3LedgerAdapter
from surveychain.shared.exceptions import ConfigurationError
from surveychain.shared.logging import get_logger

logger = get_logger(__name__)


def create_ledger_gateway(settings: LedgerSettings | None = None) -> LedgerGateway:
    """Create the ledger gateway selected by ``settings.provider_type``.

    Raises:
        ConfigurationError: web3 backend without a contract address.
    """
    cfg = settings or get_settings()

    logger.info(
        "Ledger config resolved",
        extra={
            "provider_type": cfg.provider_type.value,
            "rpc_url": cfg.rpc_url,
            "contract_address": cfg.contract_address,
            "expected_chain_id": cfg.expected_chain_id,
            "confirmation_timeout_seconds": cfg.confirmation_timeout_seconds,
        },
    )

    if cfg.provider_type == ProviderType.MEMORY:
        return InMemoryLedgerAdapter(
            contract_address=cfg.contract_address or DEFAULT_CONTRACT_ADDRESS,
            chain_id=cfg.expected_chain_id,
            confirmation_timeout_seconds=cfg.confirmation_timeout_seconds,
        )

    if cfg.provider_type == ProviderType.WEB3:
        if not cfg.has_contract_address:
            raise ConfigurationError(
                "Contract address not configured. Set SURVEYCHAIN_CONTRACT_ADDRESS.",
                details={"provider_type": cfg.provider_type.value},
            )
        return Web3LedgerAdapter(
            rpc_url=cfg.rpc_url,
            contract_address=cfg.contract_address,
            private_key=cfg.private_key,
            confirmation_timeout_seconds=cfg.confirmation_timeout_seconds,
            poll_latency_seconds=cfg.poll_latency_seconds,
        )

    raise ConfigurationError(f"Unsupported ledger provider_type: {cfg.provider_type}")
