"""
Client configuration with environment-driven settings.

Single source of truth for ledger connectivity: values load from OS env + .env
through pydantic-settings. Never read raw os.getenv("SURVEYCHAIN_*") elsewhere.
"""

from enum import Enum
from functools import lru_cache
import os
import re
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SEPOLIA_CHAIN_ID = 11155111

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


class ProviderType(str, Enum):
    """Supported ledger gateway backends."""

    WEB3 = "web3"
    MEMORY = "memory"


class LedgerSettings(BaseSettings):
    """Ledger client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SURVEYCHAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "surveychain"
    app_env: Literal["dev", "qa", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    # Gateway selection
    provider_type: ProviderType = Field(default=ProviderType.WEB3)

    # Network
    rpc_url: str = Field(
        default="http://localhost:8545",
        description="JSON-RPC endpoint of the node hosting the survey contract",
    )
    contract_address: str = Field(
        default="",
        description="Deployed survey contract address (0x + 40 hex chars)",
    )
    expected_chain_id: int = Field(
        default=SEPOLIA_CHAIN_ID,
        description="Chain the contract is deployed on",
    )
    private_key: str = Field(
        default="",
        description="Optional signing key; empty means the node's unlocked account signs",
    )

    # Confirmation waits
    confirmation_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        le=3600,
        description="Execution budget for a single confirmation wait.",
    )
    poll_latency_seconds: float = Field(
        default=1.0,
        gt=0,
        le=60,
        description="Receipt polling interval.",
    )

    # Results rendering
    results_percentage_max: int = Field(
        default=10,
        ge=1,
        description="Denominator used for percentage-of-max rendering.",
    )
    type_aware_percentages: bool = Field(
        default=False,
        description="Use per-question-type denominators instead of results_percentage_max.",
    )

    @field_validator("contract_address", mode="before")
    @classmethod
    def validate_contract_address(cls, v: str) -> str:
        """Strip whitespace and reject anything that is not a hex address."""
        value = (v or "").strip() if isinstance(v, str) else v
        if value and not _ADDRESS_RE.match(value):
            raise ValueError(f"Invalid contract address: {value!r}")
        return value

    @property
    def has_contract_address(self) -> bool:
        return bool(self.contract_address)


@lru_cache(maxsize=1)
def _get_settings_cached() -> LedgerSettings:
    return LedgerSettings()


def get_settings() -> LedgerSettings:
    # Under pytest env vars are monkeypatched per test; never serve a frozen instance.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return LedgerSettings()
    return _get_settings_cached()
