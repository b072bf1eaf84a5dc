from .event_schemas import (
    EventKind,
    ProductCreated,
    ProductDeleted,
    ProductEvent,
    ProductSnapshot,
    ProductUpdated,
    decode_event,
)

__all__ = [
    "EventKind",
    "ProductCreated",
    "ProductDeleted",
    "ProductEvent",
    "ProductSnapshot",
    "ProductUpdated",
    "decode_event",
]
