import base64
import json
import time

import pytest
from fastapi.testclient import TestClient

from hcsclient.client.domain.entities import Timestamp, TransactionId
from hcsclient.client.identity import SigningIdentity
from hcsclient.common.config import Config
from hcsclient.common.exceptions import NotFoundError
from hcsclient.common.models import (
    CreateTopicBody,
    SignaturePair,
    SignedTransaction,
    Status,
    SubmitMessageBody,
    TransactionBody,
)
from hcsclient.sandbox import SandboxLedger, SandboxNode

PREFIX = "/api/v1"


@pytest.fixture
def identity() -> SigningIdentity:
    return SigningIdentity.generate("0.0.1234")


@pytest.fixture
def ledger() -> SandboxLedger:
    return SandboxLedger(Config())


@pytest.fixture
def node(ledger: SandboxLedger) -> SandboxNode:
    return SandboxNode(config=ledger.config, ledger=ledger)


@pytest.fixture
def http(node: SandboxNode) -> TestClient:
    return TestClient(node.app)


def make_body(identity: SigningIdentity, valid_start: Timestamp | None = None, **kind: object) -> TransactionBody:
    tx_id = (
        TransactionId(identity.account_id, valid_start)
        if valid_start is not None
        else TransactionId.generate(identity.account_id)
    )
    return TransactionBody(
        transaction_id=str(tx_id),
        node_account_id="0.0.3",
        max_transaction_fee=Config().MAX_TRANSACTION_FEE,
        valid_duration=120,
        **kind,
    )


def sign(body: TransactionBody, *signers: SigningIdentity) -> SignedTransaction:
    body_bytes = body.to_bytes()
    return SignedTransaction(
        body_bytes=base64.b64encode(body_bytes).decode(),
        sig_map=[
            SignaturePair(pub_key=s.public_key_hex, signature=s.sign(body_bytes).hex())
            for s in signers
        ],
    )


def create_topic(ledger: SandboxLedger, identity: SigningIdentity, **fields: object) -> str:
    body = make_body(identity, consensus_create_topic=CreateTopicBody(**fields))
    ledger.submit(sign(body, identity))
    receipt = ledger.receipt(body.transaction_id)
    assert receipt.status == Status.SUCCESS
    assert receipt.topic_id is not None
    return receipt.topic_id


def submit_message(ledger: SandboxLedger, identity: SigningIdentity, topic_id: str, text: str) -> Status:
    body = make_body(
        identity,
        consensus_submit_message=SubmitMessageBody(
            topic_id=topic_id, message=base64.b64encode(text.encode()).decode()
        ),
    )
    ledger.submit(sign(body, identity))
    return ledger.receipt(body.transaction_id).status


def test_first_topic_id(ledger: SandboxLedger, identity: SigningIdentity) -> None:
    assert create_topic(ledger, identity, memo="m") == "0.0.1001"
    assert create_topic(ledger, identity, memo="m") == "0.0.1002"


def test_unsigned_or_tampered_is_invalid_signature(ledger: SandboxLedger, identity: SigningIdentity) -> None:
    body = make_body(identity, consensus_create_topic=CreateTopicBody(memo="m"))
    ledger.submit(sign(body))
    assert ledger.receipt(body.transaction_id).status == Status.INVALID_SIGNATURE

    other = make_body(identity, consensus_create_topic=CreateTopicBody(memo="m"))
    signed = sign(other, identity)
    signed.sig_map[0].signature = identity.sign(b"something else").hex()
    ledger.submit(signed)
    assert ledger.receipt(other.transaction_id).status == Status.INVALID_SIGNATURE


def test_admin_key_must_sign_create(ledger: SandboxLedger, identity: SigningIdentity) -> None:
    admin = SigningIdentity.generate("0.0.77")
    body = make_body(identity, consensus_create_topic=CreateTopicBody(memo="m", admin_key=admin.public_key_hex))
    ledger.submit(sign(body, identity))
    assert ledger.receipt(body.transaction_id).status == Status.INVALID_SIGNATURE


def test_expired_and_future_transactions(ledger: SandboxLedger, identity: SigningIdentity) -> None:
    stale = make_body(
        identity,
        valid_start=Timestamp(int(time.time()) - 600),
        consensus_create_topic=CreateTopicBody(memo="m"),
    )
    ledger.submit(sign(stale, identity))
    assert ledger.receipt(stale.transaction_id).status == Status.TRANSACTION_EXPIRED

    future = make_body(
        identity,
        valid_start=Timestamp(int(time.time()) + 600),
        consensus_create_topic=CreateTopicBody(memo="m"),
    )
    ledger.submit(sign(future, identity))
    assert ledger.receipt(future.transaction_id).status == Status.INVALID_TRANSACTION_START


def test_insufficient_fee(ledger: SandboxLedger, identity: SigningIdentity) -> None:
    body = make_body(identity, consensus_create_topic=CreateTopicBody(memo="m"))
    body.max_transaction_fee = 1
    ledger.submit(sign(body, identity))
    assert ledger.receipt(body.transaction_id).status == Status.INSUFFICIENT_TX_FEE


def test_duplicate_keeps_first_outcome(ledger: SandboxLedger, identity: SigningIdentity) -> None:
    body = make_body(identity, consensus_create_topic=CreateTopicBody(memo="m"))
    signed = sign(body, identity)
    ledger.submit(signed)
    ledger.submit(signed)
    assert ledger.receipt(body.transaction_id).topic_id == "0.0.1001"
    assert create_topic(ledger, identity) == "0.0.1002"


def test_receipt_pending_until_delay(identity: SigningIdentity) -> None:
    ledger = SandboxLedger(Config(), receipt_delay=60)
    body = make_body(identity, consensus_create_topic=CreateTopicBody(memo="m"))
    ledger.submit(sign(body, identity))
    assert ledger.receipt(body.transaction_id).status == Status.UNKNOWN
    with pytest.raises(NotFoundError):
        ledger.receipt("0.0.1234@1.000000000")


def test_messages_sequence_and_consensus_order(ledger: SandboxLedger, identity: SigningIdentity) -> None:
    topic_id = create_topic(ledger, identity, memo="m")
    for text in ("a", "b", "c"):
        assert submit_message(ledger, identity, topic_id, text) == Status.SUCCESS

    frames = ledger.messages_between(topic_id, Timestamp(0))
    assert [f.sequence_number for f in frames] == [1, 2, 3]
    stamps = [Timestamp.parse(f.consensus_timestamp) for f in frames]
    assert stamps == sorted(set(stamps))
    assert frames[2].payer_account_id == "0.0.1234"

    after_first = ledger.messages_between(topic_id, stamps[0].plus_nanos(1), limit=1)
    assert [f.sequence_number for f in after_first] == [2]
    assert ledger.messages_between(topic_id, Timestamp(0), end=stamps[1]) == frames[:2]


def test_submit_key_enforced(ledger: SandboxLedger, identity: SigningIdentity) -> None:
    topic_id = create_topic(ledger, identity, memo="m", submit_key=identity.public_key_hex)
    stranger = SigningIdentity.generate("0.0.8")
    assert submit_message(ledger, stranger, topic_id, "x") == Status.INVALID_SIGNATURE
    assert submit_message(ledger, identity, topic_id, "x") == Status.SUCCESS


def test_empty_and_unknown_topic_messages(ledger: SandboxLedger, identity: SigningIdentity) -> None:
    topic_id = create_topic(ledger, identity)
    assert submit_message(ledger, identity, topic_id, "") == Status.INVALID_TOPIC_MESSAGE
    assert submit_message(ledger, identity, "0.0.4040", "x") == Status.INVALID_TOPIC_ID


def test_health(http: TestClient) -> None:
    response = http.get(f"{PREFIX}/network/health")
    assert response.status_code == 200  # noqa: PLR2004
    assert response.json()["status"] == "ok"


def test_submit_route_rejects_garbage(http: TestClient) -> None:
    response = http.post(f"{PREFIX}/transactions", json={"body_bytes": "not base64!", "sig_map": []})
    assert response.status_code == 400  # noqa: PLR2004


def test_submit_and_receipt_routes(http: TestClient, identity: SigningIdentity) -> None:
    body = make_body(identity, consensus_create_topic=CreateTopicBody(memo="first memo to go !"))
    response = http.post(f"{PREFIX}/transactions", json=sign(body, identity).model_dump())
    assert response.status_code == 200  # noqa: PLR2004
    assert response.json()["transaction_id"] == body.transaction_id

    receipt = http.get(f"{PREFIX}/transactions/{body.transaction_id}/receipt")
    assert receipt.json()["status"] == "SUCCESS"
    assert http.get(f"{PREFIX}/transactions/0.0.1@1.0/receipt").status_code == 404  # noqa: PLR2004


def test_topic_info_routes(http: TestClient, ledger: SandboxLedger, identity: SigningIdentity) -> None:
    topic_id = create_topic(ledger, identity, memo="m")
    cost = http.post(f"{PREFIX}/queries/topic-info/cost", json={"topic_id": topic_id})
    assert cost.json()["cost"] == ledger.config.TOPIC_INFO_QUERY_COST

    unpaid = http.post(f"{PREFIX}/queries/topic-info", json={"topic_id": topic_id})
    assert unpaid.status_code == 402  # noqa: PLR2004

    missing = http.post(f"{PREFIX}/queries/topic-info/cost", json={"topic_id": "0.0.4040"})
    assert missing.status_code == 404  # noqa: PLR2004


def test_stream_route(http: TestClient, ledger: SandboxLedger, identity: SigningIdentity) -> None:
    topic_id = create_topic(ledger, identity, memo="m")
    for text in ("one", "two", "three"):
        submit_message(ledger, identity, topic_id, text)

    response = http.get(
        f"{PREFIX}/topics/{topic_id}/messages/stream", params={"start": "0.0", "limit": 2}
    )
    assert response.status_code == 200  # noqa: PLR2004
    lines = [json.loads(line) for line in response.text.splitlines() if line.strip()]
    assert [base64.b64decode(line["message"]).decode() for line in lines] == ["one", "two"]
    assert lines[0]["topic_id"] == topic_id


def test_stream_route_unknown_topic(http: TestClient) -> None:
    response = http.get(f"{PREFIX}/topics/0.0.4040/messages/stream")
    assert response.status_code == 404  # noqa: PLR2004


def test_node_url_from_overrides() -> None:
    node = SandboxNode(config=Config(), sandbox_host="0.0.0.0", sandbox_port=9001)  # noqa: S104
    assert node.url == "http://0.0.0.0:9001"
