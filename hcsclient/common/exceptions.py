"""
Custom exceptions for the topic service client.
"""

from __future__ import annotations

from typing import Any


class HcsError(Exception):
    """Base class for all client errors."""


class ConfigurationError(HcsError):
    """Missing or malformed credentials, network target or operator."""


class ValidationError(HcsError):
    """Exception for requests rejected by a local pre-check."""


class PayloadTooLargeError(ValidationError):
    """Message payload exceeds the single-message limit."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Message payload is {size} bytes, limit is {limit}")
        self.size = size
        self.limit = limit


class MemoTooLongError(ValidationError):
    """Topic memo exceeds the memo byte limit."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Topic memo is {size} bytes, limit is {limit}")
        self.size = size
        self.limit = limit


class TransactionFrozenError(ValidationError):
    """Transaction was modified or frozen again after freezing."""


class TransactionNotFrozenError(ValidationError):
    """Transaction was signed or serialized before freezing."""


class BudgetExceededError(HcsError):
    """Required fee is above the configured transaction fee ceiling."""

    def __init__(self, required: int, ceiling: int, what: str = "transaction fee") -> None:
        super().__init__(
            f"Required {what} of {required} tinybars exceeds ceiling of {ceiling}"
        )
        self.required = required
        self.ceiling = ceiling


class QueryBudgetExceededError(BudgetExceededError):
    """Query cost is above the configured query payment ceiling."""

    def __init__(self, required: int, ceiling: int) -> None:
        super().__init__(required, ceiling, "query payment")


class NetworkError(HcsError):
    """Transport failure or unexpected response from the network."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(NetworkError):
    """The requested entity is unknown to the network."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class ReceiptTimeoutError(HcsError, TimeoutError):
    """No final receipt arrived in time; the outcome is indeterminate."""

    def __init__(self, transaction_id: str, timeout: float) -> None:
        super().__init__(
            f"No receipt for {transaction_id} within {timeout:g}s; outcome unknown"
        )
        self.transaction_id = transaction_id
        self.timeout = timeout


class TransactionFailedError(HcsError):
    """The network reached a final, non-success status for a transaction."""

    def __init__(self, status: Any, transaction_id: str | None = None) -> None:
        label = getattr(status, "value", status)
        super().__init__(f"Transaction {transaction_id} failed with status {label}")
        self.status = status
        self.transaction_id = transaction_id


class UnauthorizedError(TransactionFailedError):
    """The network rejected the signatures attached to a transaction."""
