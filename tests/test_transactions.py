import base64
from unittest.mock import Mock

import pytest
import requests

from hcsclient.client.identity import SigningIdentity
from hcsclient.client.ledger_client import LedgerClient
from hcsclient.client.transactions import (
    TopicCreateTransaction,
    TopicMessageSubmitTransaction,
    TopicUpdateTransaction,
)
from hcsclient.common.config import Config, hbar
from hcsclient.common.crypto import KeyUtils
from hcsclient.common.exceptions import (
    BudgetExceededError,
    MemoTooLongError,
    PayloadTooLargeError,
    TransactionFrozenError,
    TransactionNotFrozenError,
)
from hcsclient.common.models import SignedTransaction


@pytest.fixture
def session() -> Mock:
    return Mock(spec=requests.Session)


@pytest.fixture
def operator() -> SigningIdentity:
    return SigningIdentity.generate("0.0.1234")


@pytest.fixture
def client(session: Mock, operator: SigningIdentity) -> LedgerClient:
    return LedgerClient("http://ledger.test", config=Config(), session=session).set_operator(operator)


def test_freeze_fixes_payer_node_and_fee(client: LedgerClient, operator: SigningIdentity) -> None:
    tx = TopicUpdateTransaction("0.0.1001", topic_memo="new").freeze_with(client)
    body = tx.body
    assert body.transaction_id.startswith("0.0.1234@")
    assert body.node_account_id == "0.0.3"
    assert body.max_transaction_fee == client.max_transaction_fee
    assert body.valid_duration == 120  # noqa: PLR2004
    assert body.consensus_update_topic is not None
    assert body.consensus_update_topic.memo == "new"


def test_operator_captured_at_freeze(client: LedgerClient) -> None:
    tx = TopicUpdateTransaction("0.0.1001", topic_memo="a").freeze_with(client)
    client.set_operator(SigningIdentity.generate("0.0.5555"))
    assert tx.transaction_id.startswith("0.0.1234@")
    later = TopicUpdateTransaction("0.0.1001", topic_memo="b").freeze_with(client)
    assert later.transaction_id.startswith("0.0.5555@")


def test_frozen_transaction_is_immutable(client: LedgerClient) -> None:
    tx = TopicUpdateTransaction("0.0.1001", topic_memo="x").freeze_with(client)
    with pytest.raises(TransactionFrozenError):
        tx.freeze_with(client)
    with pytest.raises(TransactionFrozenError):
        tx.set_max_transaction_fee(1)


def test_sign_before_freeze_fails(operator: SigningIdentity) -> None:
    tx = TopicUpdateTransaction("0.0.1001", topic_memo="x")
    with pytest.raises(TransactionNotFrozenError):
        tx.sign(operator)
    with pytest.raises(TransactionNotFrozenError):
        tx.to_signed()


def test_signatures_cover_body_bytes(client: LedgerClient, operator: SigningIdentity) -> None:
    other = SigningIdentity.generate("0.0.77")
    tx = TopicUpdateTransaction("0.0.1001", topic_memo="x").freeze_with(client)
    tx.sign(operator).sign(other).sign(operator)

    signed = tx.to_signed()
    body_bytes = base64.b64decode(signed.body_bytes)
    assert len(signed.sig_map) == 2  # noqa: PLR2004
    for pair in signed.sig_map:
        assert KeyUtils.verify(pair.pub_key, bytes.fromhex(pair.signature), body_bytes)


def test_fee_ceiling_below_schedule_fails_locally(client: LedgerClient, session: Mock) -> None:
    client.set_fee_ceiling(hbar("0.001"))
    tx = TopicCreateTransaction(topic_memo="m")
    with pytest.raises(BudgetExceededError):
        tx.execute(client)
    session.request.assert_not_called()


def test_explicit_fee_above_ceiling_fails(client: LedgerClient) -> None:
    client.set_fee_ceiling(hbar(1))
    tx = TopicMessageSubmitTransaction("0.0.1001", b"hi", max_transaction_fee=hbar(2))
    with pytest.raises(BudgetExceededError):
        tx.freeze_with(client)


def test_explicit_fee_below_estimate_fails(client: LedgerClient) -> None:
    tx = TopicCreateTransaction(topic_memo="m", max_transaction_fee=1)
    with pytest.raises(BudgetExceededError) as excinfo:
        tx.freeze_with(client)
    assert excinfo.value.required == client.estimate_fee("consensus_create_topic")


def test_payload_limit() -> None:
    TopicMessageSubmitTransaction("0.0.1001", b"x" * 1024)
    with pytest.raises(PayloadTooLargeError) as excinfo:
        TopicMessageSubmitTransaction("0.0.1001", b"x" * 1025)
    assert excinfo.value.size == 1025  # noqa: PLR2004


def test_payload_limit_counts_utf8_bytes() -> None:
    with pytest.raises(PayloadTooLargeError):
        TopicMessageSubmitTransaction("0.0.1001", "é" * 513)


def test_memo_limit() -> None:
    TopicCreateTransaction(topic_memo="m" * 100)
    with pytest.raises(MemoTooLongError):
        TopicCreateTransaction(topic_memo="m" * 101)
    with pytest.raises(MemoTooLongError):
        TopicUpdateTransaction("0.0.1001", topic_memo="m" * 101)


def test_create_normalizes_keys(operator: SigningIdentity) -> None:
    tx = TopicCreateTransaction(
        topic_memo="m",
        submit_key=operator.public_key,
        admin_key=operator.public_key_der_hex,
    )
    assert tx.submit_key == operator.public_key_hex
    assert tx.admin_key == operator.public_key_hex


def test_execute_signs_with_payer_and_dispatches(
    client: LedgerClient, session: Mock, operator: SigningIdentity
) -> None:
    def accept(method: str, url: str, **kwargs: object) -> Mock:
        body = SignedTransaction.model_validate(kwargs["json"]).body()
        response = Mock(spec=requests.Response)
        response.status_code = 200
        response.json.return_value = {
            "transaction_id": body.transaction_id,
            "node_account_id": body.node_account_id,
            "transaction_hash": "00",
        }
        return response

    session.request.side_effect = accept
    tx = TopicMessageSubmitTransaction("0.0.1001", "hello")
    handle = tx.execute(client)

    assert handle.transaction_id == tx.transaction_id
    assert tx.signers == [operator.public_key_hex]
    assert session.request.call_count == 1
