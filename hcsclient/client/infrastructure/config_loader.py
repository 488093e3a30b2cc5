"""Infrastructure layer: building the operator and client from configuration.
"""

from __future__ import annotations

import logging

from hcsclient.client.identity import SigningIdentity
from hcsclient.client.ledger_client import LedgerClient
from hcsclient.common import setup_logger
from hcsclient.common.config import Config
from hcsclient.common.models import ClientConfig


class ConfigLoader:
    """Resolves credentials and client settings from Config plus overrides.

    Credentials are checked before any client is created, so a missing or
    malformed key never reaches the network.
    """

    def __init__(self, client_config: ClientConfig | None = None, config: Config | None = None):
        client_config = client_config or ClientConfig()
        self.config: Config = config or Config()

        self.network = client_config.network or self.config.NETWORK
        self.node_account_id = client_config.node_account_id or self.config.NODE_ACCOUNT_ID
        self.max_transaction_fee = (
            client_config.max_transaction_fee
            if client_config.max_transaction_fee is not None
            else self.config.MAX_TRANSACTION_FEE
        )
        self.max_query_payment = (
            client_config.max_query_payment
            if client_config.max_query_payment is not None
            else self.config.MAX_QUERY_PAYMENT
        )
        self.request_timeout = (
            client_config.request_timeout
            if client_config.request_timeout is not None
            else self.config.REQUEST_TIMEOUT
        )
        self.receipt_timeout = (
            client_config.receipt_timeout
            if client_config.receipt_timeout is not None
            else self.config.RECEIPT_TIMEOUT
        )
        self.log_level: int = (
            client_config.log_level
            if client_config.log_level is not None
            else self.config.LOG_LEVEL
        )

        self.logger = logging.getLogger(__name__)
        setup_logger(self.logger, self.log_level)

    def load_identity(self) -> SigningIdentity:
        """Build the operator identity; raises ConfigurationError if absent or bad."""
        account_id, private_key = self.config.get_credentials()
        identity = SigningIdentity.from_credentials(account_id, private_key)
        self.logger.debug("Loaded operator identity for %s", identity.account_id)
        return identity

    def build_client(self) -> tuple[LedgerClient, SigningIdentity]:
        """Return a client with operator and ceilings applied."""
        identity = self.load_identity()
        client = LedgerClient.connect(
            self.network,
            self.config,
            node_account_id=self.node_account_id,
            request_timeout=self.request_timeout,
        )
        client.set_operator(identity)
        client.set_fee_ceiling(self.max_transaction_fee)
        client.set_query_payment_ceiling(self.max_query_payment)
        return client, identity
