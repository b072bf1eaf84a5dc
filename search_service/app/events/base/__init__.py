"""
Search Service event consumption interfaces.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class MessageEnvelope:
    """One raw broker message, before deserialization"""

    topic: str
    partition: int
    offset: int
    key: Optional[bytes]
    value: Optional[bytes]
    timestamp_ms: Optional[int] = None

    @property
    def key_text(self) -> Optional[str]:
        return self.key.decode("utf-8", errors="replace") if self.key else None


@dataclass(frozen=True)
class DeadLetter:
    """A message parked for inspection and replay"""

    envelope: MessageEnvelope
    reason: str
    error: str
    product_id: Optional[str] = None
    failed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        value = self.envelope.value
        return {
            "reason": self.reason,
            "error": self.error,
            "productId": self.product_id,
            "failedAt": self.failed_at.isoformat(),
            "source": {
                "topic": self.envelope.topic,
                "partition": self.envelope.partition,
                "offset": self.envelope.offset,
                "timestamp": self.envelope.timestamp_ms,
                "key": self.envelope.key_text,
            },
            "payload": value.decode("utf-8", errors="replace") if value else None,
        }


class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    async def handle(self, envelope: MessageEnvelope) -> None:
        """Handle one message. Raising leaves it unacknowledged."""
        pass


class DeadLetterSink(ABC):
    """Where events that cannot be applied are parked"""

    @abstractmethod
    async def park(self, letter: DeadLetter) -> None:
        pass

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None
