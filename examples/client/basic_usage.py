"""
Basic usage example of the topic service client.

This example creates a topic restricted by the operator's key, reads its
memo back, updates it and waits for each receipt. Credentials come from
HCS_ACCOUNT_ID and HCS_PRIVATE_KEY; start a sandbox node first with
`hcsclient sandbox`.
"""

import logging
import sys
from pathlib import Path

# Add the project root to the path to import hcsclient
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from hcsclient import ReceiptResolver, TopicAdministrator
from hcsclient.client.infrastructure.config_loader import ConfigLoader
from hcsclient.common.exceptions import HcsError


def main() -> None:
    # Configure logging
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    try:
        client, identity = ConfigLoader().build_client()
        topics = TopicAdministrator(client)
        receipts = ReceiptResolver(client)

        handle = topics.create(identity, "first memo to go !", submit_key=identity.public_key)
        topic_id = receipts.wait_for_success(handle).topic_id
        logger.info("Created topic %s", topic_id)
        logger.info("Memo: %s", topics.get_info(topic_id).memo)

        receipts.wait_for_success(topics.update_memo(topic_id, "this is an updated memo", identity))
        logger.info("Memo now: %s", topics.get_info(topic_id).memo)

        client.close()
        logger.info("Basic usage example completed")
    except HcsError:
        logger.exception("Error")
        sys.exit(1)


if __name__ == "__main__":
    main()
