from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from hcsclient.client.identity import SigningIdentity
from hcsclient.client.ledger_client import LedgerClient
from hcsclient.client.publisher import MessagePublisher
from hcsclient.client.receipts import ReceiptResolver
from hcsclient.client.topics import TopicAdministrator
from hcsclient.common.config import Config
from hcsclient.common.exceptions import (
    MemoTooLongError,
    NotFoundError,
    PayloadTooLargeError,
    QueryBudgetExceededError,
    TransactionFailedError,
    UnauthorizedError,
)
from hcsclient.common.models import Status
from hcsclient.sandbox import SandboxNode


@pytest.fixture
def node() -> SandboxNode:
    return SandboxNode(config=Config())


@pytest.fixture
def operator() -> SigningIdentity:
    return SigningIdentity.generate("0.0.1234")


@pytest.fixture
def topic_key() -> SigningIdentity:
    return SigningIdentity.generate("0.0.2001")


@pytest.fixture
def client(node: SandboxNode, operator: SigningIdentity) -> LedgerClient:
    ledger_client = LedgerClient("http://testserver", config=node.config, session=TestClient(node.app))
    return ledger_client.set_operator(operator)


@pytest.fixture
def resolver(client: LedgerClient) -> ReceiptResolver:
    return ReceiptResolver(client, receipt_timeout=2.0, receipt_poll_interval=0.01)


@pytest.fixture
def topic_id(client: LedgerClient, resolver: ReceiptResolver, topic_key: SigningIdentity) -> str:
    handle = TopicAdministrator(client).create(
        topic_key, memo="first memo to go !", submit_key=topic_key.public_key
    )
    receipt = resolver.wait_for_success(handle)
    assert receipt.topic_id is not None
    return receipt.topic_id


def test_create_then_get_info(client: LedgerClient, topic_id: str, topic_key: SigningIdentity) -> None:
    admin = TopicAdministrator(client)
    info = admin.get_info(topic_id)
    assert info.topic_id == topic_id
    assert info.memo == "first memo to go !"
    assert info.submit_key == topic_key.public_key_hex
    assert info.sequence_number == 0
    assert admin.cached_info(topic_id) == info


def test_topic_ids_are_distinct(
    client: LedgerClient, resolver: ReceiptResolver, operator: SigningIdentity
) -> None:
    admin = TopicAdministrator(client)
    first = resolver.wait_for_success(admin.create(operator, memo="a"))
    second = resolver.wait_for_success(admin.create(operator, memo="b"))
    assert first.topic_id != second.topic_id


def test_update_memo_is_idempotent(
    client: LedgerClient, resolver: ReceiptResolver, topic_id: str, topic_key: SigningIdentity
) -> None:
    admin = TopicAdministrator(client)
    for _ in range(2):
        receipt = resolver.wait_for_success(
            admin.update_memo(topic_id, "this is an updated memo", topic_key)
        )
        assert receipt.status == Status.SUCCESS
        assert admin.get_info(topic_id).memo == "this is an updated memo"


def test_update_memo_with_wrong_key_is_unauthorized(
    client: LedgerClient, resolver: ReceiptResolver, topic_id: str
) -> None:
    admin = TopicAdministrator(client)
    stranger = SigningIdentity.generate("0.0.4321")

    handle = admin.update_memo(topic_id, "hijacked", stranger)

    assert resolver.wait(handle).status == Status.UNAUTHORIZED
    with pytest.raises(UnauthorizedError):
        resolver.wait_for_success(handle)
    assert admin.get_info(topic_id).memo == "first memo to go !"


def test_update_unknown_topic_fails(
    client: LedgerClient, resolver: ReceiptResolver, operator: SigningIdentity
) -> None:
    handle = TopicAdministrator(client).update_memo("0.0.999999", "x", operator)
    with pytest.raises(TransactionFailedError) as excinfo:
        resolver.wait_for_success(handle)
    assert excinfo.value.status == Status.INVALID_TOPIC_ID


def test_update_memo_too_long_fails_locally(
    client: LedgerClient, topic_id: str, topic_key: SigningIdentity
) -> None:
    with pytest.raises(MemoTooLongError):
        TopicAdministrator(client).update_memo(topic_id, "m" * 101, topic_key)


def test_memo_limit_follows_client_config(operator: SigningIdentity, topic_key: SigningIdentity) -> None:
    config = Config()
    config.MAX_MEMO_BYTES = 10
    session = Mock()
    client = LedgerClient("http://ledger.test", config=config, session=session).set_operator(operator)
    admin = TopicAdministrator(client)

    with pytest.raises(MemoTooLongError) as excinfo:
        admin.create(topic_key, memo="m" * 11)
    assert excinfo.value.limit == 10  # noqa: PLR2004
    with pytest.raises(MemoTooLongError):
        admin.update_memo("0.0.1001", "m" * 11, topic_key)
    session.request.assert_not_called()


def test_get_info_unknown_topic(client: LedgerClient) -> None:
    with pytest.raises(NotFoundError):
        TopicAdministrator(client).get_info("0.0.999999")


def test_get_info_respects_query_ceiling(client: LedgerClient, topic_id: str) -> None:
    client.set_query_payment_ceiling(client.config.TOPIC_INFO_QUERY_COST - 1)
    admin = TopicAdministrator(client)
    with pytest.raises(QueryBudgetExceededError):
        admin.get_info(topic_id)
    assert admin.cached_info(topic_id) is None


def test_submit_message_sequences(
    client: LedgerClient, resolver: ReceiptResolver, topic_id: str, topic_key: SigningIdentity
) -> None:
    publisher = MessagePublisher(client)
    first = resolver.wait_for_success(publisher.submit(topic_id, "This is dodo!", topic_key))
    second = resolver.wait_for_success(publisher.submit(topic_id, b"\x00\x01", topic_key))

    assert first.topic_sequence_number == 1
    assert second.topic_sequence_number == 2  # noqa: PLR2004
    assert first.topic_running_hash != second.topic_running_hash
    assert TopicAdministrator(client).get_info(topic_id).sequence_number == 2  # noqa: PLR2004


def test_submit_without_submit_key_signature_is_rejected(
    client: LedgerClient, resolver: ReceiptResolver, topic_id: str
) -> None:
    handle = MessagePublisher(client).submit(topic_id, "spam", SigningIdentity.generate("0.0.9"))
    assert resolver.wait(handle).status == Status.INVALID_SIGNATURE


def test_oversized_payload_sends_nothing(operator: SigningIdentity) -> None:
    session = Mock()
    ledger_client = LedgerClient("http://ledger.test", config=Config(), session=session)
    ledger_client.set_operator(operator)

    with pytest.raises(PayloadTooLargeError):
        MessagePublisher(ledger_client).submit("0.0.1001", b"x" * 1025, operator)
    session.request.assert_not_called()
