"""Client decorators for guarding network operations.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

from hcsclient.common.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def requires_operator(
    client_attr: str | None = None,
    error_message: str = "Client operator must be set before dispatching requests",
) -> Callable:
    """Decorator that refuses to run a method until an operator is configured.

    Args:
        client_attr: Attribute on self holding the LedgerClient, or None when
            self is the client
        error_message: Message for the raised ConfigurationError

    Returns:
        Decorated method that raises ConfigurationError without an operator
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            client = getattr(self, client_attr) if client_attr else self
            if not client.has_operator:
                logger.error("Refusing %s: %s", func.__name__, error_message)
                raise ConfigurationError(error_message)
            return func(self, *args, **kwargs)

        return wrapper

    return decorator
