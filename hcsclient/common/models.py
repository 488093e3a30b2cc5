"""
Pydantic models for the topic service wire contract.
"""

from __future__ import annotations

import base64
import hashlib
import json
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class Status(str, Enum):
    """Outcome codes reported by the network on receipts."""

    OK = "OK"
    UNKNOWN = "UNKNOWN"
    BUSY = "BUSY"
    SUCCESS = "SUCCESS"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOPIC_ID = "INVALID_TOPIC_ID"
    INVALID_TRANSACTION_BODY = "INVALID_TRANSACTION_BODY"
    INVALID_TRANSACTION_START = "INVALID_TRANSACTION_START"
    TRANSACTION_EXPIRED = "TRANSACTION_EXPIRED"
    DUPLICATE_TRANSACTION = "DUPLICATE_TRANSACTION"
    INSUFFICIENT_TX_FEE = "INSUFFICIENT_TX_FEE"
    MEMO_TOO_LONG = "MEMO_TOO_LONG"
    MESSAGE_SIZE_TOO_LARGE = "MESSAGE_SIZE_TOO_LARGE"
    INVALID_TOPIC_MESSAGE = "INVALID_TOPIC_MESSAGE"

    @classmethod
    def _missing_(cls, value: object) -> Status | None:
        # Codes newer than this client stay final and keep their name.
        if not isinstance(value, str) or not value:
            return None
        member = str.__new__(cls, value)
        member._name_ = value
        member._value_ = value
        return member

    @property
    def is_final(self) -> bool:
        return self not in (Status.OK, Status.UNKNOWN, Status.BUSY)

    @property
    def is_success(self) -> bool:
        return self is Status.SUCCESS

    def __str__(self) -> str:
        return self.value


class CreateTopicBody(BaseModel):
    memo: str = ""
    admin_key: str | None = None
    submit_key: str | None = None
    auto_renew_period: int | None = None
    auto_renew_account: str | None = None


class UpdateTopicBody(BaseModel):
    topic_id: str
    memo: str | None = None


class SubmitMessageBody(BaseModel):
    topic_id: str
    message: str  # base64


class AccountAmount(BaseModel):
    account_id: str
    amount: int


class CryptoTransferBody(BaseModel):
    transfers: list[AccountAmount]


class TransactionBody(BaseModel):
    transaction_id: str
    node_account_id: str
    max_transaction_fee: int = Field(ge=0)
    valid_duration: int = Field(gt=0)
    memo: str = ""
    consensus_create_topic: CreateTopicBody | None = None
    consensus_update_topic: UpdateTopicBody | None = None
    consensus_submit_message: SubmitMessageBody | None = None
    crypto_transfer: CryptoTransferBody | None = None

    @property
    def kind(self) -> str | None:
        for name in (
            "consensus_create_topic",
            "consensus_update_topic",
            "consensus_submit_message",
            "crypto_transfer",
        ):
            if getattr(self, name) is not None:
                return name
        return None

    def to_bytes(self) -> bytes:
        """Canonical encoding covered by signatures."""
        return json.dumps(
            self.model_dump(exclude_none=True), sort_keys=True, separators=(",", ":")
        ).encode()


class SignaturePair(BaseModel):
    pub_key: str
    signature: str


class SignedTransaction(BaseModel):
    body_bytes: str  # base64 of TransactionBody.to_bytes()
    sig_map: list[SignaturePair] = Field(default_factory=list)

    def body(self) -> TransactionBody:
        return TransactionBody.model_validate_json(base64.b64decode(self.body_bytes))

    def transaction_hash(self) -> str:
        encoded = json.dumps(self.model_dump(), sort_keys=True).encode()
        return hashlib.sha384(encoded).hexdigest()


class TransactionResponse(BaseModel):
    """Handle for a dispatched transaction, resolved later into a Receipt."""

    transaction_id: str
    node_account_id: str
    transaction_hash: str


class Receipt(BaseModel):
    transaction_id: str
    status: Status
    topic_id: str | None = None
    topic_sequence_number: int | None = None
    topic_running_hash: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _known_or_new_status(cls, value: object) -> object:
        return Status(value) if isinstance(value, str) else value

    @property
    def is_success(self) -> bool:
        return self.status.is_success


class QueryCostResponse(BaseModel):
    cost: int


class TopicInfoRequest(BaseModel):
    topic_id: str
    payment: SignedTransaction | None = None


class TopicInfo(BaseModel):
    topic_id: str
    memo: str
    admin_key: str | None = None
    submit_key: str | None = None
    sequence_number: int = 0
    running_hash: str = ""
    auto_renew_period: int | None = None
    auto_renew_account: str | None = None


class TopicMessageFrame(BaseModel):
    topic_id: str
    consensus_timestamp: str
    message: str  # base64
    sequence_number: int
    running_hash: str = ""
    payer_account_id: str | None = None


class ClientConfig(BaseModel):
    network: str | None = None
    node_account_id: str | None = None
    max_transaction_fee: int | None = Field(default=None, ge=0)
    max_query_payment: int | None = Field(default=None, ge=0)
    request_timeout: float | None = None
    receipt_timeout: float | None = None
    log_level: int | None = None
