"""Domain layer: identifiers, timestamps and messages.
"""

from __future__ import annotations

import base64
import re
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hcsclient.common.models import TopicMessageFrame

NANOS_PER_SECOND = 1_000_000_000
VALID_START_SKEW_NS = NANOS_PER_SECOND  # Backdate to tolerate node clock drift

_ENTITY_ID_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


@dataclass(frozen=True, order=True)
class EntityId:
    """Ledger entity handle in shard.realm.num form (accounts and topics)."""

    shard: int
    realm: int
    num: int

    @classmethod
    def parse(cls, value: str | EntityId) -> EntityId:
        if isinstance(value, EntityId):
            return value
        match = _ENTITY_ID_RE.match(str(value).strip())
        if match is None:
            msg = f"Malformed entity id {value!r}, expected shard.realm.num"
            raise ValueError(msg)
        return cls(*(int(part) for part in match.groups()))

    def __str__(self) -> str:
        return f"{self.shard}.{self.realm}.{self.num}"


@dataclass(frozen=True, order=True)
class Timestamp:
    """Consensus timestamp with nanosecond precision."""

    seconds: int
    nanos: int = 0

    @classmethod
    def from_nanos(cls, total: int) -> Timestamp:
        seconds, nanos = divmod(total, NANOS_PER_SECOND)
        return cls(seconds, nanos)

    @classmethod
    def now(cls) -> Timestamp:
        return cls.from_nanos(time.time_ns())

    @classmethod
    def parse(cls, value: str) -> Timestamp:
        seconds, _, nanos = value.strip().partition(".")
        if not seconds.isdigit() or (nanos and not nanos.isdigit()):
            msg = f"Malformed timestamp {value!r}"
            raise ValueError(msg)
        return cls(int(seconds), int(nanos.ljust(9, "0")[:9]) if nanos else 0)

    @classmethod
    def from_datetime(cls, value: datetime) -> Timestamp:
        if value.tzinfo is None:
            value = value.astimezone()  # naive means local time
        seconds = int(value.timestamp())
        return cls(seconds, value.microsecond * 1000)

    def to_nanos(self) -> int:
        return self.seconds * NANOS_PER_SECOND + self.nanos

    def to_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.seconds, tz=timezone.utc).replace(
            microsecond=self.nanos // 1000
        )

    def plus_nanos(self, nanos: int) -> Timestamp:
        return Timestamp.from_nanos(self.to_nanos() + nanos)

    def __str__(self) -> str:
        return f"{self.seconds}.{self.nanos:09d}"


class _ValidStartClock:
    """Hands out strictly increasing valid-start times for this process."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def next(self) -> Timestamp:
        with self._lock:
            candidate = time.time_ns() - VALID_START_SKEW_NS
            self._last = max(candidate, self._last + 1)
            return Timestamp.from_nanos(self._last)


_valid_start_clock = _ValidStartClock()


@dataclass(frozen=True)
class TransactionId:
    """Payer account plus valid-start time; unique per transaction."""

    account_id: EntityId
    valid_start: Timestamp

    @classmethod
    def generate(cls, account_id: EntityId) -> TransactionId:
        return cls(account_id, _valid_start_clock.next())

    @classmethod
    def parse(cls, value: str) -> TransactionId:
        account, sep, start = value.partition("@")
        if not sep:
            msg = f"Malformed transaction id {value!r}"
            raise ValueError(msg)
        return cls(EntityId.parse(account), Timestamp.parse(start))

    def __str__(self) -> str:
        return f"{self.account_id}@{self.valid_start}"


@dataclass(frozen=True)
class TopicMessage:
    """A consensus-ordered message observed on a topic."""

    topic_id: EntityId
    contents: bytes
    consensus_timestamp: Timestamp
    sequence_number: int
    running_hash: str = ""

    @classmethod
    def from_frame(cls, frame: TopicMessageFrame) -> TopicMessage:
        return cls(
            topic_id=EntityId.parse(frame.topic_id),
            contents=base64.b64decode(frame.message),
            consensus_timestamp=Timestamp.parse(frame.consensus_timestamp),
            sequence_number=frame.sequence_number,
            running_hash=frame.running_hash,
        )

    @property
    def text(self) -> str:
        return self.contents.decode("utf-8", errors="replace")
