"""
Application configuration with environment-driven settings.

Every field can be overridden with a BLOCKFUND_* environment variable
or a .env file in the working directory.
"""

from enum import Enum
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from blockfund.shared.exceptions import NetworkConfigurationError


class NetworkName(str, Enum):
    """Target ledgers the orchestrator can talk to."""

    MEMORY = "memory"
    LOCALHOST = "localhost"
    SEPOLIA = "sepolia"
    MAINNET = "mainnet"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BLOCKFUND_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "blockfund"
    app_env: Literal["dev", "qa", "uat", "prod"] = "dev"
    debug: bool = False
    log_level: str = "INFO"

    # Network selection
    network: NetworkName = Field(
        default=NetworkName.MEMORY,
        description="Ledger the orchestrator submits to",
    )
    localhost_url: str = Field(
        default="http://127.0.0.1:8545",
        description="Ledger gateway of the local development node",
    )
    sepolia_url: str = Field(
        default="",
        description="Ledger gateway for the sepolia test network",
    )
    mainnet_url: str = Field(
        default="",
        description="Ledger gateway for mainnet",
    )

    # Ledger gateway (development node)
    gateway_host: str = Field(default="127.0.0.1")
    gateway_port: int = Field(default=8545, ge=1, le=65535)

    # Identity
    signer_key: str = Field(
        default="blockfund-dev-key-0",
        description="Secret the local signer derives its address from",
    )

    # Amounts
    token_decimals: int = Field(
        default=18,
        ge=0,
        le=36,
        description="Decimals between minor units and the human-facing amount",
    )

    # Orchestration
    confirmation_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound on waiting for a receipt",
    )
    poll_interval_seconds: float = Field(
        default=0.5,
        gt=0,
        description="Delay between receipt polls",
    )
    max_submit_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Submissions of one request before giving up",
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout applied to each gateway HTTP call",
    )

    # Projection cache
    projection_db_url: str = Field(
        default="sqlite:///blockfund_projections.db",
        description="SQLAlchemy URL of the campaign projection cache",
    )

    @field_validator("localhost_url", "sepolia_url", "mainnet_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def gateway_url(self, network: NetworkName | None = None) -> str:
        """Return the gateway base URL for a remote network."""
        target = network or self.network
        urls = {
            NetworkName.LOCALHOST: self.localhost_url,
            NetworkName.SEPOLIA: self.sepolia_url,
            NetworkName.MAINNET: self.mainnet_url,
        }
        if target not in urls:
            raise NetworkConfigurationError(f"Network '{target.value}' has no gateway URL")
        url = urls[target]
        if not url:
            raise NetworkConfigurationError(
                f"Gateway URL for network '{target.value}' is not configured"
            )
        return url


def get_settings() -> Settings:
    return Settings()
