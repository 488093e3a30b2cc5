"""
Configuration settings for the topic service client.
"""

from __future__ import annotations

import logging
import os
from decimal import Decimal, InvalidOperation

from hcsclient.common.exceptions import ConfigurationError

TINYBARS_PER_HBAR = 100_000_000

# Service limits enforced by the network; checked locally before dispatch.
MAX_MESSAGE_BYTES = 1024
MAX_MEMO_BYTES = 100

# Public network names; each resolves only through an HCS_<NAME>_URL gateway.
PUBLIC_NETWORKS = ("mainnet", "testnet", "previewnet")


def hbar(amount: float | int | str | Decimal) -> int:
    """Convert an hbar amount to tinybars."""
    try:
        return int(Decimal(str(amount)) * TINYBARS_PER_HBAR)
    except InvalidOperation as err:
        msg = f"Invalid hbar amount: {amount!r}"
        raise ValueError(msg) from err


def _env_hbar(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return hbar(raw)
    except ValueError as err:
        msg = f"{name} must be an hbar amount, got {raw!r}"
        raise ConfigurationError(msg) from err


class Config:
    """Central configuration class for all client and sandbox settings."""

    def __init__(self) -> None:
        # Operator credentials
        self.ACCOUNT_ID: str | None = os.getenv("HCS_ACCOUNT_ID")
        self.PRIVATE_KEY: str | None = os.getenv("HCS_PRIVATE_KEY")

        # Network selection
        self.NETWORK: str = os.getenv("HCS_NETWORK", "local")
        self.NODE_ACCOUNT_ID: str = os.getenv("HCS_NODE_ACCOUNT_ID", "0.0.3")
        self.SANDBOX_HOST: str = os.getenv("HCS_SANDBOX_HOST", "127.0.0.1")
        self.SANDBOX_PORT: int = int(os.getenv("HCS_SANDBOX_PORT", "8545"))
        self.NETWORKS: dict[str, str] = {
            "local": f"http://{self.SANDBOX_HOST}:{self.SANDBOX_PORT}",
        }
        for name in PUBLIC_NETWORKS:
            gateway = os.getenv(f"HCS_{name.upper()}_URL")
            if gateway:
                self.NETWORKS[name] = gateway.strip().rstrip("/")

        # Payment ceilings, in tinybars
        self.MAX_TRANSACTION_FEE: int = _env_hbar("HCS_MAX_TRANSACTION_FEE", "100")
        self.MAX_QUERY_PAYMENT: int = _env_hbar("HCS_MAX_QUERY_PAYMENT", "50")

        # Fee schedule used for local pre-checks, in tinybars
        self.FEE_SCHEDULE: dict[str, int] = {
            "consensus_create_topic": hbar("0.01"),
            "consensus_update_topic": hbar("0.00022"),
            "consensus_submit_message": hbar("0.0001"),
            "crypto_transfer": hbar("0.0001"),
        }
        self.TOPIC_INFO_QUERY_COST: int = hbar("0.0001")

        # Protocol constants
        self.API_PREFIX: str = "/api/v1"
        self.MAX_MESSAGE_BYTES: int = MAX_MESSAGE_BYTES
        self.MAX_MEMO_BYTES: int = MAX_MEMO_BYTES
        self.TRANSACTION_VALID_DURATION: int = 120  # seconds
        self.AUTO_RENEW_PERIOD: int = 7_776_000  # 90 days

        # Timing
        self.REQUEST_TIMEOUT: float = 10.0
        self.STREAM_IDLE_TIMEOUT: float = 30.0  # Read timeout on a quiet stream
        self.STREAM_KEEPALIVE_INTERVAL: float = 5.0
        self.RECEIPT_TIMEOUT: float = 30.0
        self.RECEIPT_POLL_INTERVAL: float = 0.25
        self.RECEIPT_POLL_MAX_INTERVAL: float = 2.0
        self.RECONNECT_INITIAL_BACKOFF: float = 0.25
        self.RECONNECT_MAX_BACKOFF: float = 8.0
        self.MAX_RECONNECT_ATTEMPTS: int | None = None  # None retries forever

        # Logging
        level_name = os.getenv("HCS_LOG_LEVEL", "INFO").upper()
        self.LOG_LEVEL: int = logging.getLevelName(level_name)
        if not isinstance(self.LOG_LEVEL, int):
            self.LOG_LEVEL = logging.INFO

    def get_credentials(self) -> tuple[str, str]:
        """Return the operator account id and private key, both required."""
        missing = [
            name
            for name, value in (
                ("HCS_ACCOUNT_ID", self.ACCOUNT_ID),
                ("HCS_PRIVATE_KEY", self.PRIVATE_KEY),
            )
            if not value or not value.strip()
        ]
        if missing:
            msg = f"Environment variables {' and '.join(missing)} must be present"
            raise ConfigurationError(msg)
        assert self.ACCOUNT_ID is not None
        assert self.PRIVATE_KEY is not None
        return self.ACCOUNT_ID.strip(), self.PRIVATE_KEY.strip()

    def resolve_network(self, network_target: str) -> str:
        """Map a network name or explicit URL to a base URL."""
        target = network_target.strip()
        if target.startswith(("http://", "https://")):
            return target.rstrip("/")
        if target in self.NETWORKS:
            return self.NETWORKS[target]
        if target in PUBLIC_NETWORKS:
            msg = (
                f"Network {target!r} has no gateway configured; set HCS_{target.upper()}_URL "
                "to a node gateway serving this client's HTTP API, or pass its URL directly"
            )
            raise ConfigurationError(msg)
        known = ", ".join(sorted(self.NETWORKS))
        msg = f"Unknown network {target!r}; use one of {known} or an http(s) URL"
        raise ConfigurationError(msg)
