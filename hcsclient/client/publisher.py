"""
Message submission into topics.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hcsclient.client.transactions import TopicMessageSubmitTransaction

if TYPE_CHECKING:
    from hcsclient.client.domain.entities import EntityId
    from hcsclient.client.identity import SigningIdentity
    from hcsclient.client.ledger_client import LedgerClient
    from hcsclient.common.models import TransactionResponse

logger = logging.getLogger(__name__)


class MessagePublisher:
    """Builds, signs and submits topic messages."""

    def __init__(self, client: LedgerClient):
        self.client = client

    def submit(
        self,
        topic_id: EntityId | str,
        payload: bytes | str,
        authorizing_identity: SigningIdentity,
    ) -> TransactionResponse:
        """Submit one message without waiting for consensus.

        Oversized payloads raise PayloadTooLargeError before anything is sent.
        """
        tx = TopicMessageSubmitTransaction(
            topic_id=topic_id,
            message=payload,
            max_message_bytes=self.client.config.MAX_MESSAGE_BYTES,
        )
        tx.freeze_with(self.client)
        tx.sign(authorizing_identity)
        handle = tx.execute(self.client)
        logger.info(
            "Submitted %d bytes to topic %s as %s",
            len(tx.message),
            tx.topic_id,
            handle.transaction_id,
        )
        return handle
