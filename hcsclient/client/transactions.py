"""
Transaction builders with the freeze, sign and execute life cycle.

A transaction is mutable until it is frozen against a client. Freezing
captures the client's operator as payer, generates the transaction id,
picks the node and fixes the maximum fee, so the encoded body is fully
determined before anyone signs it.
"""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, Any

from hcsclient.client.domain.entities import EntityId, TransactionId
from hcsclient.common.config import MAX_MEMO_BYTES, MAX_MESSAGE_BYTES
from hcsclient.common.crypto import KeyUtils
from hcsclient.common.exceptions import (
    BudgetExceededError,
    MemoTooLongError,
    PayloadTooLargeError,
    TransactionFrozenError,
    TransactionNotFrozenError,
)
from hcsclient.common.models import (
    AccountAmount,
    CreateTopicBody,
    CryptoTransferBody,
    SignaturePair,
    SignedTransaction,
    SubmitMessageBody,
    TransactionBody,
    TransactionResponse,
    UpdateTopicBody,
)

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

    from hcsclient.client.identity import SigningIdentity
    from hcsclient.client.ledger_client import LedgerClient

logger = logging.getLogger(__name__)


def check_memo(memo: str, limit: int = MAX_MEMO_BYTES) -> str:
    size = len(memo.encode("utf-8"))
    if size > limit:
        raise MemoTooLongError(size, limit)
    return memo


class Transaction:
    """Base class for all signed transactions."""

    transaction_type: str = ""

    def __init__(self, max_transaction_fee: int | None = None, memo: str = ""):
        self._max_transaction_fee = max_transaction_fee
        self._memo = memo
        self._body: TransactionBody | None = None
        self._body_bytes: bytes | None = None
        self._payer: SigningIdentity | None = None
        self._signatures: dict[str, str] = {}

    @property
    def is_frozen(self) -> bool:
        return self._body is not None

    @property
    def transaction_id(self) -> str:
        return self._require_body().transaction_id

    @property
    def body(self) -> TransactionBody:
        return self._require_body()

    @property
    def signers(self) -> list[str]:
        return list(self._signatures)

    def _require_body(self) -> TransactionBody:
        if self._body is None:
            msg = f"{type(self).__name__} must be frozen first"
            raise TransactionNotFrozenError(msg)
        return self._body

    def _require_mutable(self) -> None:
        if self._body is not None:
            msg = f"{type(self).__name__} is frozen and can no longer change"
            raise TransactionFrozenError(msg)

    def set_max_transaction_fee(self, tinybars: int) -> Transaction:
        self._require_mutable()
        self._max_transaction_fee = tinybars
        return self

    def _build_data(self) -> Any:
        raise NotImplementedError

    def freeze_with(
        self, client: LedgerClient, payer: SigningIdentity | None = None
    ) -> Transaction:
        """Fix the payer, transaction id, node and fee against a client.

        The payer defaults to the client's operator at this moment.
        """
        self._require_mutable()
        operator = payer if payer is not None else client.operator
        ceiling = client.max_transaction_fee
        max_fee = (
            self._max_transaction_fee
            if self._max_transaction_fee is not None
            else ceiling
        )
        if max_fee > ceiling:
            raise BudgetExceededError(max_fee, ceiling)
        estimated = client.estimate_fee(self.transaction_type)
        if estimated > max_fee:
            raise BudgetExceededError(estimated, max_fee)

        self._body = TransactionBody(
            transaction_id=str(TransactionId.generate(operator.account_id)),
            node_account_id=str(client.node_account_id),
            max_transaction_fee=max_fee,
            valid_duration=client.config.TRANSACTION_VALID_DURATION,
            memo=self._memo,
            **{self.transaction_type: self._build_data()},
        )
        self._body_bytes = self._body.to_bytes()
        self._payer = operator
        logger.debug("Froze %s as %s", self.transaction_type, self._body.transaction_id)
        return self

    def sign(self, identity: SigningIdentity) -> Transaction:
        """Add a signature over the frozen body; signing twice is a no-op."""
        self._require_body()
        assert self._body_bytes is not None
        if identity.public_key_hex not in self._signatures:
            self._signatures[identity.public_key_hex] = identity.sign(
                self._body_bytes
            ).hex()
        return self

    def to_signed(self) -> SignedTransaction:
        self._require_body()
        assert self._body_bytes is not None
        return SignedTransaction(
            body_bytes=base64.b64encode(self._body_bytes).decode("ascii"),
            sig_map=[
                SignaturePair(pub_key=pub, signature=sig)
                for pub, sig in self._signatures.items()
            ],
        )

    def execute(self, client: LedgerClient) -> TransactionResponse:
        """Freeze if needed, add the payer signature and dispatch."""
        if not self.is_frozen:
            self.freeze_with(client)
        assert self._payer is not None
        self.sign(self._payer)
        return client.dispatch(self.to_signed())


class TopicCreateTransaction(Transaction):
    transaction_type = "consensus_create_topic"

    def __init__(
        self,
        topic_memo: str = "",
        submit_key: Ed25519PublicKey | str | None = None,
        admin_key: Ed25519PublicKey | str | None = None,
        auto_renew_account: EntityId | str | None = None,
        auto_renew_period: int | None = None,
        max_transaction_fee: int | None = None,
        max_memo_bytes: int = MAX_MEMO_BYTES,
    ):
        super().__init__(max_transaction_fee)
        self.topic_memo = check_memo(topic_memo, max_memo_bytes)
        self.submit_key = (
            KeyUtils.normalize_public_key(submit_key) if submit_key is not None else None
        )
        self.admin_key = (
            KeyUtils.normalize_public_key(admin_key) if admin_key is not None else None
        )
        self.auto_renew_account = (
            str(EntityId.parse(auto_renew_account)) if auto_renew_account else None
        )
        self.auto_renew_period = auto_renew_period

    def _build_data(self) -> CreateTopicBody:
        return CreateTopicBody(
            memo=self.topic_memo,
            admin_key=self.admin_key,
            submit_key=self.submit_key,
            auto_renew_period=self.auto_renew_period,
            auto_renew_account=self.auto_renew_account,
        )


class TopicUpdateTransaction(Transaction):
    transaction_type = "consensus_update_topic"

    def __init__(
        self,
        topic_id: EntityId | str,
        topic_memo: str | None = None,
        max_transaction_fee: int | None = None,
        max_memo_bytes: int = MAX_MEMO_BYTES,
    ):
        super().__init__(max_transaction_fee)
        self.topic_id = EntityId.parse(topic_id)
        self.topic_memo = (
            check_memo(topic_memo, max_memo_bytes) if topic_memo is not None else None
        )

    def _build_data(self) -> UpdateTopicBody:
        return UpdateTopicBody(topic_id=str(self.topic_id), memo=self.topic_memo)


class TopicMessageSubmitTransaction(Transaction):
    transaction_type = "consensus_submit_message"

    def __init__(
        self,
        topic_id: EntityId | str,
        message: bytes | str,
        max_transaction_fee: int | None = None,
        max_message_bytes: int = MAX_MESSAGE_BYTES,
    ):
        super().__init__(max_transaction_fee)
        self.topic_id = EntityId.parse(topic_id)
        self.message = message.encode("utf-8") if isinstance(message, str) else bytes(message)
        if len(self.message) > max_message_bytes:
            raise PayloadTooLargeError(len(self.message), max_message_bytes)

    def _build_data(self) -> SubmitMessageBody:
        return SubmitMessageBody(
            topic_id=str(self.topic_id),
            message=base64.b64encode(self.message).decode("ascii"),
        )


class TransferTransaction(Transaction):
    """Hbar transfer; used to pay for queries."""

    transaction_type = "crypto_transfer"

    def __init__(self, max_transaction_fee: int | None = None):
        super().__init__(max_transaction_fee)
        self._transfers: dict[str, int] = {}

    def add_hbar_transfer(self, account_id: EntityId | str, tinybars: int) -> TransferTransaction:
        self._require_mutable()
        key = str(EntityId.parse(account_id))
        self._transfers[key] = self._transfers.get(key, 0) + tinybars
        return self

    def _build_data(self) -> CryptoTransferBody:
        return CryptoTransferBody(
            transfers=[
                AccountAmount(account_id=account, amount=amount)
                for account, amount in sorted(self._transfers.items())
            ]
        )
