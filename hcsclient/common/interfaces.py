"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterator

    from hcsclient.client.domain.entities import EntityId, Timestamp
    from hcsclient.common.models import Receipt, TopicMessageFrame


class IMessageStream(Protocol):
    """An open server stream of topic message frames."""

    def __iter__(self) -> Iterator[TopicMessageFrame]: ...

    def close(self) -> None: ...


class IMessageStreamSource(Protocol):
    """Anything that can open a message stream for a topic."""

    def open_message_stream(
        self,
        topic_id: EntityId,
        start_time: Timestamp,
        end_time: Timestamp | None = None,
        limit: int | None = None,
    ) -> IMessageStream: ...


class IReceiptSource(Protocol):
    """Anything that can look up the receipt for a transaction id."""

    def get_receipt(self, transaction_id: str) -> Receipt | None: ...
