"""
Catalog Service event publishing interfaces.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class EventPublisher(ABC):
    """Abstract base class for event publishers"""

    @abstractmethod
    async def start(self) -> None:
        """Connect to the broker"""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Flush and disconnect"""
        pass

    @abstractmethod
    async def publish(
        self, topic: str, key: Optional[str], payload: Optional[Dict[str, Any]]
    ) -> None:
        """Publish one message and wait for the broker acknowledgement"""
        pass

    async def health_check(self) -> bool:
        return True
