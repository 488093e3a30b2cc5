"""
In-memory topic ledger backing the sandbox node.

Transactions are checked and applied as they arrive. There is a single
sequencer, so consensus timestamps are simply a strictly increasing clock.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import threading
import time
from dataclasses import dataclass, field

from pydantic import ValidationError as PydanticValidationError

from hcsclient.client.domain.entities import EntityId, Timestamp, TransactionId
from hcsclient.common.config import Config
from hcsclient.common.crypto import KeyUtils
from hcsclient.common.exceptions import NotFoundError, ValidationError
from hcsclient.common.models import (
    Receipt,
    SignedTransaction,
    Status,
    TopicInfo,
    TopicMessageFrame,
    TransactionBody,
    TransactionResponse,
)

logger = logging.getLogger(__name__)

FIRST_TOPIC_NUM = 1001


@dataclass
class TopicRecord:
    topic_id: EntityId
    memo: str
    admin_key: str | None
    submit_key: str | None
    auto_renew_period: int | None = None
    auto_renew_account: str | None = None
    running_hash: str = ""
    messages: list[TopicMessageFrame] = field(default_factory=list)

    def info(self) -> TopicInfo:
        return TopicInfo(
            topic_id=str(self.topic_id),
            memo=self.memo,
            admin_key=self.admin_key,
            submit_key=self.submit_key,
            sequence_number=len(self.messages),
            running_hash=self.running_hash,
            auto_renew_period=self.auto_renew_period,
            auto_renew_account=self.auto_renew_account,
        )


@dataclass
class _PendingReceipt:
    receipt: Receipt
    visible_at: float


class SandboxLedger:
    """Thread-safe topic state, receipts and message sequencing."""

    def __init__(self, config: Config | None = None, receipt_delay: float = 0.0):
        self.config = config or Config()
        self.receipt_delay = receipt_delay
        self._lock = threading.Lock()
        self._topics: dict[str, TopicRecord] = {}
        self._receipts: dict[str, _PendingReceipt] = {}
        self._next_topic_num = FIRST_TOPIC_NUM
        self._last_consensus = 0
        self.closed = False

    # Transactions

    def submit(self, signed: SignedTransaction) -> TransactionResponse:
        """Accept a signed transaction and schedule its receipt."""
        try:
            body_bytes = base64.b64decode(signed.body_bytes, validate=True)
            body = TransactionBody.model_validate_json(body_bytes)
        except (ValueError, PydanticValidationError) as err:
            msg = f"Undecodable transaction body: {err}"
            raise ValidationError(msg) from err

        with self._lock:
            if body.transaction_id in self._receipts:
                status = Status.DUPLICATE_TRANSACTION
                logger.warning("Duplicate transaction %s", body.transaction_id)
            else:
                status, extra = self._apply(body, body_bytes, signed)
                receipt = Receipt(transaction_id=body.transaction_id, status=status, **extra)
                self._receipts[body.transaction_id] = _PendingReceipt(
                    receipt, time.monotonic() + self.receipt_delay
                )
                logger.info("Transaction %s -> %s", body.transaction_id, status)

        return TransactionResponse(
            transaction_id=body.transaction_id,
            node_account_id=body.node_account_id,
            transaction_hash=signed.transaction_hash(),
        )

    def receipt(self, transaction_id: str) -> Receipt:
        with self._lock:
            pending = self._receipts.get(transaction_id)
        if pending is None:
            msg = f"Unknown transaction {transaction_id}"
            raise NotFoundError(msg)
        if time.monotonic() < pending.visible_at:
            return Receipt(transaction_id=transaction_id, status=Status.UNKNOWN)
        return pending.receipt

    def _apply(
        self, body: TransactionBody, body_bytes: bytes, signed: SignedTransaction
    ) -> tuple[Status, dict]:
        signers = self._verified_signers(body_bytes, signed)
        if signers is None:
            return Status.INVALID_SIGNATURE, {}
        precheck = self._precheck(body)
        if precheck is not None:
            return precheck, {}

        kind = body.kind
        if kind == "consensus_create_topic":
            return self._create_topic(body, signers)
        if kind == "consensus_update_topic":
            return self._update_topic(body, signers)
        if kind == "consensus_submit_message":
            return self._submit_message(body, signers)
        if kind == "crypto_transfer":
            return Status.SUCCESS, {}
        return Status.INVALID_TRANSACTION_BODY, {}

    @staticmethod
    def _verified_signers(body_bytes: bytes, signed: SignedTransaction) -> set[str] | None:
        if not signed.sig_map:
            return None
        signers = set()
        for pair in signed.sig_map:
            try:
                signature = bytes.fromhex(pair.signature)
            except ValueError:
                return None
            if not KeyUtils.verify(pair.pub_key, signature, body_bytes):
                return None
            signers.add(KeyUtils.normalize_public_key(pair.pub_key))
        return signers

    def _precheck(self, body: TransactionBody) -> Status | None:
        try:
            tx_id = TransactionId.parse(body.transaction_id)
        except ValueError:
            return Status.INVALID_TRANSACTION_BODY
        now = time.time_ns()
        start = tx_id.valid_start.to_nanos()
        if start > now:
            return Status.INVALID_TRANSACTION_START
        if now > start + body.valid_duration * 1_000_000_000:
            return Status.TRANSACTION_EXPIRED
        kind = body.kind
        if kind is None:
            return Status.INVALID_TRANSACTION_BODY
        if body.max_transaction_fee < self.config.FEE_SCHEDULE[kind]:
            return Status.INSUFFICIENT_TX_FEE
        if len(body.memo.encode()) > self.config.MAX_MEMO_BYTES:
            return Status.MEMO_TOO_LONG
        return None

    def _memo_ok(self, memo: str | None) -> bool:
        return memo is None or len(memo.encode()) <= self.config.MAX_MEMO_BYTES

    def _create_topic(self, body: TransactionBody, signers: set[str]) -> tuple[Status, dict]:
        create = body.consensus_create_topic
        assert create is not None
        if not self._memo_ok(create.memo):
            return Status.MEMO_TOO_LONG, {}
        if create.admin_key is not None and create.admin_key not in signers:
            return Status.INVALID_SIGNATURE, {}
        topic_id = EntityId(0, 0, self._next_topic_num)
        self._next_topic_num += 1
        self._topics[str(topic_id)] = TopicRecord(
            topic_id=topic_id,
            memo=create.memo,
            admin_key=create.admin_key,
            submit_key=create.submit_key,
            auto_renew_period=create.auto_renew_period,
            auto_renew_account=create.auto_renew_account,
        )
        return Status.SUCCESS, {"topic_id": str(topic_id)}

    def _update_topic(self, body: TransactionBody, signers: set[str]) -> tuple[Status, dict]:
        update = body.consensus_update_topic
        assert update is not None
        topic = self._topics.get(update.topic_id)
        if topic is None:
            return Status.INVALID_TOPIC_ID, {}
        # Admin key governs updates; topics without one fall back to the submit key.
        required = topic.admin_key or topic.submit_key
        if required is None or required not in signers:
            return Status.UNAUTHORIZED, {}
        if not self._memo_ok(update.memo):
            return Status.MEMO_TOO_LONG, {}
        if update.memo is not None:
            topic.memo = update.memo
        return Status.SUCCESS, {}

    def _submit_message(self, body: TransactionBody, signers: set[str]) -> tuple[Status, dict]:
        submit = body.consensus_submit_message
        assert submit is not None
        topic = self._topics.get(submit.topic_id)
        if topic is None:
            return Status.INVALID_TOPIC_ID, {}
        if topic.submit_key is not None and topic.submit_key not in signers:
            return Status.INVALID_SIGNATURE, {}
        try:
            contents = base64.b64decode(submit.message, validate=True)
        except ValueError:
            return Status.INVALID_TOPIC_MESSAGE, {}
        if not contents:
            return Status.INVALID_TOPIC_MESSAGE, {}
        if len(contents) > self.config.MAX_MESSAGE_BYTES:
            return Status.MESSAGE_SIZE_TOO_LARGE, {}

        consensus = self._next_consensus_timestamp()
        sequence_number = len(topic.messages) + 1
        running = hashlib.sha384(
            bytes.fromhex(topic.running_hash)
            + str(topic.topic_id).encode()
            + str(consensus).encode()
            + sequence_number.to_bytes(8, "big")
            + contents
        ).hexdigest()
        topic.running_hash = running
        topic.messages.append(
            TopicMessageFrame(
                topic_id=str(topic.topic_id),
                consensus_timestamp=str(consensus),
                message=submit.message,
                sequence_number=sequence_number,
                running_hash=running,
                payer_account_id=str(TransactionId.parse(body.transaction_id).account_id),
            )
        )
        return Status.SUCCESS, {
            "topic_sequence_number": sequence_number,
            "topic_running_hash": running,
        }

    def _next_consensus_timestamp(self) -> Timestamp:
        self._last_consensus = max(time.time_ns(), self._last_consensus + 1)
        return Timestamp.from_nanos(self._last_consensus)

    # Queries

    def topic_info_cost(self, topic_id: str) -> int:
        self.topic(topic_id)
        return self.config.TOPIC_INFO_QUERY_COST

    def topic_info(self, topic_id: str, payment: SignedTransaction | None) -> TopicInfo:
        topic = self.topic(topic_id)
        self._check_payment(payment, self.config.TOPIC_INFO_QUERY_COST)
        with self._lock:
            return topic.info()

    def _check_payment(self, payment: SignedTransaction | None, cost: int) -> None:
        if payment is None:
            msg = "Query payment missing"
            raise ValidationError(msg)
        try:
            body_bytes = base64.b64decode(payment.body_bytes, validate=True)
            body = TransactionBody.model_validate_json(body_bytes)
        except (ValueError, PydanticValidationError) as err:
            msg = f"Undecodable query payment: {err}"
            raise ValidationError(msg) from err
        if body.crypto_transfer is None or self._verified_signers(body_bytes, payment) is None:
            msg = "Query payment is not a signed transfer"
            raise ValidationError(msg)
        paid = sum(
            t.amount for t in body.crypto_transfer.transfers if t.account_id == body.node_account_id
        )
        if paid < cost:
            msg = f"Query payment of {paid} is below cost {cost}"
            raise ValidationError(msg)

    def topic(self, topic_id: str) -> TopicRecord:
        with self._lock:
            topic = self._topics.get(topic_id)
        if topic is None:
            msg = f"Topic {topic_id} not found"
            raise NotFoundError(msg)
        return topic

    def messages_between(
        self,
        topic_id: str,
        start: Timestamp,
        end: Timestamp | None = None,
        limit: int | None = None,
    ) -> list[TopicMessageFrame]:
        """Messages with start <= consensus timestamp <= end, oldest first."""
        topic = self.topic(topic_id)
        with self._lock:
            frames = list(topic.messages)
        selected = []
        for frame in frames:
            ts = Timestamp.parse(frame.consensus_timestamp)
            if ts < start:
                continue
            if end is not None and ts > end:
                break
            selected.append(frame)
            if limit is not None and len(selected) >= limit:
                break
        return selected

    def close(self) -> None:
        self.closed = True
