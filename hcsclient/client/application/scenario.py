"""
Application layer: the end-to-end topic walkthrough.

Create a restricted topic, read its memo back, update the memo, subscribe,
publish one message and report its status. The subscription is opened
before the message is submitted so the message cannot slip in before the
subscription's start time.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from hcsclient.client.publisher import MessagePublisher
from hcsclient.client.receipts import ReceiptResolver
from hcsclient.client.subscriber import MessageSubscriber
from hcsclient.client.topics import TopicAdministrator
from hcsclient.common.exceptions import NetworkError

if TYPE_CHECKING:
    from hcsclient.client.domain.entities import TopicMessage
    from hcsclient.client.identity import SigningIdentity
    from hcsclient.client.ledger_client import LedgerClient
    from hcsclient.common.models import Status

DEFAULT_MEMO = "first memo to go !"
DEFAULT_UPDATED_MEMO = "this is an updated memo"
DEFAULT_MESSAGE = "This is dodo!"


@dataclass
class ScenarioResult:
    topic_id: str
    memo: str
    updated_memo: str
    status: Status
    received: list[TopicMessage] = field(default_factory=list)


class TopicScenario:
    """Runs the walkthrough against one client and operator."""

    def __init__(
        self,
        client: LedgerClient,
        identity: SigningIdentity,
        receipt_timeout: float | None = None,
        delivery_timeout: float = 10.0,
    ):
        self.client = client
        self.identity = identity
        self.receipt_timeout = receipt_timeout
        self.delivery_timeout = delivery_timeout
        self.topics = TopicAdministrator(client)
        self.publisher = MessagePublisher(client)
        self.subscriber = MessageSubscriber(client)
        self.receipts = ReceiptResolver(client)
        self.logger = logging.getLogger(__name__)

    def run(
        self,
        memo: str = DEFAULT_MEMO,
        updated_memo: str = DEFAULT_UPDATED_MEMO,
        message: str = DEFAULT_MESSAGE,
    ) -> ScenarioResult:
        create = self.topics.create(self.identity, memo, submit_key=self.identity.public_key)
        receipt = self.receipts.wait_for_success(create, self.receipt_timeout)
        if receipt.topic_id is None:
            msg = f"Creation receipt {receipt.transaction_id} carries no topic id"
            raise NetworkError(msg)
        topic_id = receipt.topic_id
        self.logger.info("Your topic ID is: %s", topic_id)

        info = self.topics.get_info(topic_id)
        self.logger.info("Your memo is: %s", info.memo)

        update = self.topics.update_memo(topic_id, updated_memo, self.identity)
        self.receipts.wait_for_success(update, self.receipt_timeout)
        self.logger.info("Memo for topic ID %s updated successfully.", topic_id)
        updated_info = self.topics.get_info(topic_id)

        received: list[TopicMessage] = []
        arrived = threading.Event()

        def on_message(topic_message: TopicMessage) -> None:
            received.append(topic_message)
            self.logger.info(
                "%s Received: %s",
                topic_message.consensus_timestamp.to_datetime().isoformat(),
                topic_message.text,
            )
            arrived.set()

        subscription = self.subscriber.subscribe(topic_id, on_message)
        try:
            submit = self.publisher.submit(topic_id, message, self.identity)
            submit_receipt = self.receipts.wait(submit, self.receipt_timeout)
            self.logger.info("The message transaction status: %s", submit_receipt.status)
            if submit_receipt.is_success and not arrived.wait(self.delivery_timeout):
                self.logger.warning(
                    "Message not delivered within %.1fs", self.delivery_timeout
                )
        finally:
            subscription.cancel()

        return ScenarioResult(
            topic_id=topic_id,
            memo=info.memo,
            updated_memo=updated_info.memo,
            status=submit_receipt.status,
            received=list(received),
        )
