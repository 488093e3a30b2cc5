"""
Threaded subscription example.

This example subscribes to a topic in the background and publishes a few
messages from the main thread. The handler runs on the subscription's own
delivery thread, one message at a time.
"""

import logging
import sys
import time
from pathlib import Path

# Add the project root to the path to import hcsclient
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from hcsclient import MessagePublisher, MessageSubscriber, ReceiptResolver, TopicAdministrator
from hcsclient.client.domain.entities import TopicMessage
from hcsclient.client.infrastructure.config_loader import ConfigLoader
from hcsclient.common.exceptions import HcsError


def error_callback(error: Exception) -> None:
    """Custom error handler for subscription failures."""
    logger = logging.getLogger(__name__)
    logger.error("Subscription error: %s", error)


def on_message(message: TopicMessage) -> None:
    logger = logging.getLogger(__name__)
    logger.info(
        "#%d at %s: %s",
        message.sequence_number,
        message.consensus_timestamp.to_datetime().isoformat(),
        message.text,
    )


def main() -> None:
    # Configure logging
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    try:
        client, identity = ConfigLoader().build_client()
        receipts = ReceiptResolver(client)
        handle = TopicAdministrator(client).create(identity, "threaded example")
        topic_id = receipts.wait_for_success(handle).topic_id

        subscription = MessageSubscriber(client).subscribe(
            topic_id, on_message, error_handler=error_callback
        )
        publisher = MessagePublisher(client)
        for i in range(5):
            receipt = receipts.wait(publisher.submit(topic_id, f"message {i + 1}", identity))
            logger.info("Submission %d status: %s", i + 1, receipt.status)
            time.sleep(1)

        subscription.cancel()
        logger.info("Delivered %d messages", subscription.delivered_count)
        client.close()
    except HcsError:
        logger.exception("Error")
        sys.exit(1)


if __name__ == "__main__":
    main()
