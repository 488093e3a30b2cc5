"""
Topic creation, metadata queries and memo updates.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from hcsclient.client.domain.entities import EntityId
from hcsclient.client.transactions import TopicCreateTransaction, TopicUpdateTransaction
from hcsclient.common.exceptions import NetworkError
from hcsclient.common.models import TopicInfo

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

    from hcsclient.client.identity import SigningIdentity
    from hcsclient.client.ledger_client import LedgerClient
    from hcsclient.common.models import TransactionResponse

logger = logging.getLogger(__name__)


class TopicAdministrator:
    """Creates topics and reads or updates their metadata."""

    def __init__(self, client: LedgerClient):
        self.client = client
        self._info_cache: dict[str, TopicInfo] = {}

    def create(
        self,
        signing_identity: SigningIdentity,
        memo: str = "",
        submit_key: Ed25519PublicKey | str | None = None,
        admin_key: Ed25519PublicKey | str | None = None,
        max_transaction_fee: int | None = None,
    ) -> TransactionResponse:
        """Dispatch a topic creation; resolve the handle to get the topic id.

        With a submit key set, the network rejects any later message that is
        not signed by the matching private key.
        """
        tx = TopicCreateTransaction(
            topic_memo=memo,
            submit_key=submit_key,
            admin_key=admin_key,
            auto_renew_period=self.client.config.AUTO_RENEW_PERIOD,
            max_transaction_fee=max_transaction_fee,
            max_memo_bytes=self.client.config.MAX_MEMO_BYTES,
        )
        tx.freeze_with(self.client)
        tx.sign(signing_identity)
        handle = tx.execute(self.client)
        logger.info("Topic creation dispatched as %s", handle.transaction_id)
        return handle

    def get_info(self, topic_id: EntityId | str) -> TopicInfo:
        """Paid query for current topic metadata.

        Raises QueryBudgetExceededError when the cost is over the ceiling and
        NotFoundError for an unknown topic.
        """
        topic = str(EntityId.parse(topic_id))
        data = self.client.execute_query("topic-info", {"topic_id": topic})
        try:
            info = TopicInfo.model_validate(data)
        except PydanticValidationError as err:
            msg = f"Malformed topic info for {topic}: {err}"
            raise NetworkError(msg) from err
        self._info_cache[topic] = info
        return info

    def cached_info(self, topic_id: EntityId | str) -> TopicInfo | None:
        """Last metadata seen for a topic, without a network call."""
        return self._info_cache.get(str(EntityId.parse(topic_id)))

    def update_memo(
        self,
        topic_id: EntityId | str,
        new_memo: str,
        authorizing_identity: SigningIdentity,
    ) -> TransactionResponse:
        """Dispatch a memo update signed by the topic's authorizing key.

        Authorization is decided by the network; a wrong key shows up as an
        UNAUTHORIZED or INVALID_SIGNATURE receipt status, never here.
        """
        tx = TopicUpdateTransaction(
            topic_id=topic_id,
            topic_memo=new_memo,
            max_memo_bytes=self.client.config.MAX_MEMO_BYTES,
        )
        tx.freeze_with(self.client)
        tx.sign(authorizing_identity)
        handle = tx.execute(self.client)
        logger.info("Memo update for %s dispatched as %s", tx.topic_id, handle.transaction_id)
        return handle
