"""
Configuration for the relay and ledger clients.

Values come from explicit arguments or from the environment:

    LAUNCHTUBE_TOKEN        credit token (LAUNCHTUBE_API_KEY is accepted too)
    LAUNCHTUBE_BASE_URL     relay URL (defaults per network)
    LAUNCHTUBE_ADMIN_TOKEN  privileged token for /gen (optional)
    STELLAR_NETWORK         "testnet" (default) or "mainnet"
    STELLAR_HORIZON_URL     Horizon URL (defaults per network)
    STELLAR_PRIVATE_KEY     secret seed used to sign compiled transactions (optional)
    STELLAR_BASE_FEE        base fee override in stroops (optional)

Invalid configuration raises ConfigurationError before any client is built.
"""

from __future__ import annotations

import os
from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from stellar_sdk import Network

from stellar_agent.errors import ConfigurationError

NetworkName = Literal["testnet", "mainnet"]

NETWORKS: dict[str, dict[str, str]] = {
    "testnet": {
        "passphrase": Network.TESTNET_NETWORK_PASSPHRASE,
        "horizon_url": "https://horizon-testnet.stellar.org",
        "relay_url": "https://testnet.launchtube.xyz",
    },
    "mainnet": {
        "passphrase": Network.PUBLIC_NETWORK_PASSPHRASE,
        "horizon_url": "https://horizon.stellar.org",
        "relay_url": "https://launchtube.xyz",
    },
}

# Upper bound for a transaction's validity window, in seconds
MAX_TX_TIMEOUT_SECONDS = 300


def check_base_url(url: str) -> str:
    """Return the URL without a trailing slash, or raise ValueError if it is not absolute http(s)."""
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"not an absolute http(s) URL: {url!r}")
    return url.strip().rstrip("/")


def _format_errors(title: str, error: ValidationError) -> str:
    lines = [
        f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
        for err in error.errors()
    ]
    return f"{title}:\n" + "\n".join(lines)


class RelayConfig(BaseModel):
    """Launchtube relay connection settings."""
    model_config = ConfigDict(frozen=True)

    base_url: str = NETWORKS["testnet"]["relay_url"]
    token: str = Field(min_length=1, repr=False)
    admin_token: str | None = Field(default=None, repr=False)
    timeout: float = Field(default=15.0, gt=0)
    connect_timeout: float = Field(default=5.0, gt=0)

    @field_validator("base_url")
    @classmethod
    def _valid_url(cls, value: str) -> str:
        return check_base_url(value)

    @classmethod
    def create(cls, **values: Any) -> RelayConfig:
        """Build a config, converting validation failures into ConfigurationError."""
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(
                _format_errors("Launchtube configuration validation failed", e)
            ) from None

    @classmethod
    def from_env(cls, network: str | None = None) -> RelayConfig:
        network = network or os.getenv("STELLAR_NETWORK") or "testnet"
        if network not in NETWORKS:
            raise ConfigurationError(f"Unknown STELLAR_NETWORK: {network!r}")
        values: dict[str, Any] = {
            "base_url": os.getenv("LAUNCHTUBE_BASE_URL") or NETWORKS[network]["relay_url"],
            "token": os.getenv("LAUNCHTUBE_TOKEN") or os.getenv("LAUNCHTUBE_API_KEY") or "",
            "admin_token": os.getenv("LAUNCHTUBE_ADMIN_TOKEN") or None,
        }
        return cls.create(**values)


class StellarConfig(BaseModel):
    """Ledger-side settings: network, Horizon endpoint, signing key and fee policy."""
    model_config = ConfigDict(frozen=True)

    network: NetworkName = "testnet"
    horizon_url: str | None = None
    secret_key: str | None = Field(default=None, repr=False)
    base_fee: int | None = Field(default=None, gt=0)
    timeout_seconds: int = Field(default=30, gt=0, le=MAX_TX_TIMEOUT_SECONDS)
    request_timeout: float = Field(default=15.0, gt=0)

    @field_validator("horizon_url")
    @classmethod
    def _valid_url(cls, value: str | None) -> str | None:
        return check_base_url(value) if value else None

    @property
    def network_passphrase(self) -> str:
        return NETWORKS[self.network]["passphrase"]

    @property
    def resolved_horizon_url(self) -> str:
        return self.horizon_url or NETWORKS[self.network]["horizon_url"]

    @classmethod
    def create(cls, **values: Any) -> StellarConfig:
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(
                _format_errors("Stellar configuration validation failed", e)
            ) from None

    @classmethod
    def from_env(cls) -> StellarConfig:
        values: dict[str, Any] = {
            "network": os.getenv("STELLAR_NETWORK") or "testnet",
            "horizon_url": os.getenv("STELLAR_HORIZON_URL") or None,
            "secret_key": os.getenv("STELLAR_PRIVATE_KEY") or None,
        }
        base_fee = os.getenv("STELLAR_BASE_FEE")
        if base_fee:
            values["base_fee"] = base_fee
        return cls.create(**values)
