"""
Historical replay example.

This example reads every message already on a topic by subscribing with an
explicit start time and a message limit.

Usage: python replay_history.py <topic id> [limit]
"""

import logging
import sys
from pathlib import Path

# Add the project root to the path to import hcsclient
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from hcsclient import MessageSubscriber, TopicAdministrator
from hcsclient.client.domain.entities import Timestamp
from hcsclient.client.infrastructure.config_loader import ConfigLoader
from hcsclient.common.exceptions import HcsError


def main() -> None:
    # Configure logging
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    if len(sys.argv) < 2:  # noqa: PLR2004
        logger.error("Usage: replay_history.py <topic id> [limit]")
        sys.exit(2)
    topic_id = sys.argv[1]

    try:
        client, _ = ConfigLoader().build_client()
        info = TopicAdministrator(client).get_info(topic_id)
        limit = int(sys.argv[2]) if len(sys.argv) > 2 else info.sequence_number  # noqa: PLR2004
        if not limit:
            logger.info("Topic %s has no messages", topic_id)
            return

        subscription = MessageSubscriber(client).subscribe(
            topic_id,
            lambda m: logger.info("%s %s", m.consensus_timestamp, m.text),
            start_time=Timestamp(0),
            limit=limit,
        )
        if not subscription.join(30):
            subscription.cancel()
        client.close()
    except HcsError:
        logger.exception("Error")
        sys.exit(1)


if __name__ == "__main__":
    main()
