# Consensus topic service client

from hcsclient.client.identity import SigningIdentity
from hcsclient.client.ledger_client import LedgerClient
from hcsclient.client.publisher import MessagePublisher
from hcsclient.client.receipts import ReceiptResolver
from hcsclient.client.subscriber import MessageSubscriber, Subscription
from hcsclient.client.topics import TopicAdministrator
from hcsclient.common.models import Receipt, Status, TopicInfo

__all__ = [
    "LedgerClient",
    "MessagePublisher",
    "MessageSubscriber",
    "Receipt",
    "ReceiptResolver",
    "SigningIdentity",
    "Status",
    "Subscription",
    "TopicAdministrator",
    "TopicInfo",
]
