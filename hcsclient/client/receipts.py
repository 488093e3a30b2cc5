"""
Receipt resolution for dispatched transactions.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from hcsclient.common import Configurable
from hcsclient.common.config import Config
from hcsclient.common.exceptions import (
    NetworkError,
    NotFoundError,
    ReceiptTimeoutError,
    TransactionFailedError,
    UnauthorizedError,
)
from hcsclient.common.models import Status

if TYPE_CHECKING:
    from hcsclient.common.interfaces import IReceiptSource
    from hcsclient.common.models import Receipt, TransactionResponse

logger = logging.getLogger(__name__)

UNAUTHORIZED_STATUSES = frozenset({Status.UNAUTHORIZED, Status.INVALID_SIGNATURE})


class ReceiptResolver(Configurable):
    """Waits for the network to confirm a dispatched transaction.

    Waiting never consumes the handle: after a timeout the same handle can
    be waited on again, and the network keeps processing it either way.
    """

    def __init__(self, client: IReceiptSource, config: Config | None = None, **overrides: Any):
        self.client = client
        client_config = getattr(client, "config", None)
        if config is None:
            config = client_config if isinstance(client_config, Config) else Config()
        self.config = config
        self.apply_overrides(
            overrides,
            self.config,
            ["receipt_timeout", "receipt_poll_interval", "receipt_poll_max_interval"],
        )

    def wait(self, handle: TransactionResponse, timeout: float | None = None) -> Receipt:
        """Block until a final receipt arrives and return it, whatever its status.

        Raises ReceiptTimeoutError when nothing final arrives within timeout.
        """
        timeout = self.receipt_timeout if timeout is None else timeout
        transaction_id = handle.transaction_id
        deadline = time.monotonic() + timeout
        interval = self.receipt_poll_interval

        while True:
            try:
                receipt = self.client.get_receipt(transaction_id)
            except NotFoundError:
                receipt = None
            except NetworkError as err:
                logger.warning("Receipt lookup for %s failed: %s", transaction_id, err)
                receipt = None

            if receipt is not None and receipt.status.is_final:
                logger.debug("Receipt for %s: %s", transaction_id, receipt.status)
                return receipt

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ReceiptTimeoutError(transaction_id, timeout)
            time.sleep(min(interval, remaining))
            interval = min(interval * 2, self.receipt_poll_max_interval)

    def wait_for_success(
        self, handle: TransactionResponse, timeout: float | None = None
    ) -> Receipt:
        """Like wait, but raise TransactionFailedError on any non-success status."""
        receipt = self.wait(handle, timeout)
        if receipt.status in UNAUTHORIZED_STATUSES:
            raise UnauthorizedError(receipt.status, receipt.transaction_id)
        if not receipt.is_success:
            raise TransactionFailedError(receipt.status, receipt.transaction_id)
        return receipt
