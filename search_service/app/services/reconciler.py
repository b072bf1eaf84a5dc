"""
Read-model reconciliation
=========================

Turns one decoded product event into at most one read-store mutation.

``decide`` is pure: given the event, the stored row and the live tombstone
for the same id it returns Insert, Merge, Delete or Skip. Ordering is never
taken from the broker. A write is accepted only when its ``updated_at`` is
strictly newer than both the stored row and any tombstone, and a delete
always wins over equal-or-older writes. Applying the decisions of any
permutation of a set of full-snapshot events therefore converges to the
state of the timestamp-sorted sequence, and replaying an event is a no-op.

``ReadModelReconciler`` runs read, decide and write in one transaction per
event, retries store failures with exponential backoff and parks what it
cannot apply on the dead-letter sink.
"""

import asyncio
import enum
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.exceptions import IncompleteSnapshot, StoreWriteFailed
from ..events.base import DeadLetter, DeadLetterSink, MessageEnvelope
from ..events.schemas import (
    ProductCreated,
    ProductDeleted,
    ProductEvent,
    ProductUpdated,
)
from ..events.schemas.event_schemas import PROJECTED_FIELDS
from ..models.product import ProductRow
from ..repository.product_repository import ProductReadRepository
from ..utils.logging import setup_search_logging as setup_logging

logger = setup_logging("search_service.reconciler")

NULLABLE_FIELDS = ("category", "description")


class SkipReason(str, enum.Enum):
    STALE = "stale"
    TOMBSTONED = "tombstoned"
    INCOMPLETE = "incomplete"


@dataclass(frozen=True)
class Insert:
    product_id: str
    row: Dict[str, Any]


@dataclass(frozen=True)
class Merge:
    product_id: str
    fields: Dict[str, Any]
    updated_at: datetime


@dataclass(frozen=True)
class Delete:
    product_id: str
    deleted_at: datetime


@dataclass(frozen=True)
class Skip:
    product_id: str
    reason: SkipReason
    missing: List[str] = field(default_factory=list)


Decision = Union[Insert, Merge, Delete, Skip]


def decide(
    event: ProductEvent,
    current: Optional[ProductRow],
    tombstone_deleted_at: Optional[datetime] = None,
) -> Decision:
    if isinstance(event, ProductDeleted):
        # A delete older than the stored version lost the race to a newer write
        if current is not None and event.deleted_at < current.updated_at:
            return Skip(event.product_id, SkipReason.STALE)
        deleted_at = event.deleted_at
        if tombstone_deleted_at is not None:
            deleted_at = max(deleted_at, tombstone_deleted_at)
        return Delete(event.product_id, deleted_at)

    if isinstance(event, (ProductCreated, ProductUpdated)):
        snapshot = event.snapshot
        product_id = snapshot.id

        if (
            tombstone_deleted_at is not None
            and snapshot.updated_at <= tombstone_deleted_at
        ):
            return Skip(product_id, SkipReason.TOMBSTONED)

        if current is None:
            if not snapshot.is_complete:
                return Skip(product_id, SkipReason.INCOMPLETE, snapshot.missing_fields)
            row = {f: getattr(snapshot, f) for f in PROJECTED_FIELDS}
            row["id"] = product_id
            return Insert(product_id, row)

        if snapshot.updated_at <= current.updated_at:
            return Skip(product_id, SkipReason.STALE)

        # created_at is fixed by the first accepted write
        fields = {
            name: value
            for name, value in snapshot.provided_fields.items()
            if name != "created_at" and (value is not None or name in NULLABLE_FIELDS)
        }
        fields["updated_at"] = snapshot.updated_at
        return Merge(product_id, fields, snapshot.updated_at)

    raise TypeError(f"Unsupported event type: {type(event).__name__}")


def outcome_of(decision: Decision) -> str:
    if isinstance(decision, Insert):
        return "inserted"
    if isinstance(decision, Merge):
        return "merged"
    if isinstance(decision, Delete):
        return "deleted"
    return decision.reason.value


class PipelineStats:
    """Counters and liveness for the consume-reconcile pipeline"""

    COUNTERS = (
        "inserted",
        "merged",
        "deleted",
        "stale",
        "tombstoned",
        "incomplete",
        "deserialization_failed",
        "retries",
        "dead_lettered",
        "tombstones_purged",
    )

    def __init__(self, liveness_failure_threshold: int = 10):
        self.liveness_failure_threshold = liveness_failure_threshold
        self.counters: Counter = Counter({name: 0 for name in self.COUNTERS})
        self.consecutive_store_failures = 0
        self.last_event_at: Optional[datetime] = None

    def increment(self, name: str, amount: int = 1) -> None:
        self.counters[name] += amount

    def record_store_failure(self) -> None:
        self.consecutive_store_failures += 1

    def record_store_success(self) -> None:
        self.consecutive_store_failures = 0
        self.last_event_at = datetime.now(timezone.utc)

    @property
    def is_live(self) -> bool:
        return self.consecutive_store_failures < self.liveness_failure_threshold

    def snapshot(self) -> Dict[str, Any]:
        return {
            "live": self.is_live,
            "consecutive_store_failures": self.consecutive_store_failures,
            "last_event_at": self.last_event_at.isoformat()
            if self.last_event_at
            else None,
            "counters": dict(self.counters),
        }


class ReadModelReconciler:
    """Applies product events to the read model, one transaction per event"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dead_letters: DeadLetterSink,
        stats: PipelineStats,
        max_retries: int = 5,
        retry_delay: float = 0.2,
    ):
        self.session_factory = session_factory
        self.dead_letters = dead_letters
        self.stats = stats
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def apply(
        self, event: ProductEvent, envelope: MessageEnvelope
    ) -> Optional[Decision]:
        """Reconcile one event.

        Returns the applied decision, or None when the event was parked
        because the store kept failing. Raises only if parking itself fails,
        leaving the message unacknowledged.
        """
        product_id = event.product_id
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            try:
                decision = await self._reconcile(event)
            except SQLAlchemyError as e:
                self.stats.record_store_failure()
                if attempt < attempts - 1:
                    delay = self.retry_delay * (2**attempt)
                    self.stats.increment("retries")
                    logger.warning(
                        "Read store write failed, retrying",
                        extra={
                            "product_id": product_id,
                            "topic": envelope.topic,
                            "offset": envelope.offset,
                            "attempt": attempt + 1,
                            "retry_in_seconds": delay,
                            "error": str(e),
                        },
                    )
                    await asyncio.sleep(delay)
                    continue

                failure = StoreWriteFailed(product_id, attempts, e)
                logger.error(
                    "Read store write failed after all retries, parking event",
                    extra={
                        "product_id": product_id,
                        "topic": envelope.topic,
                        "partition": envelope.partition,
                        "offset": envelope.offset,
                        "attempts": attempts,
                        "error": str(e),
                    },
                )
                await self._park(envelope, "store_write_failed", failure, product_id)
                return None

            self.stats.record_store_success()
            outcome = outcome_of(decision)
            self.stats.increment(outcome)
            logger.info(
                "Product event reconciled",
                extra={
                    "product_id": product_id,
                    "topic": envelope.topic,
                    "partition": envelope.partition,
                    "offset": envelope.offset,
                    "outcome": outcome,
                    "attempt": attempt + 1,
                },
            )

            if isinstance(decision, Skip) and decision.reason is SkipReason.INCOMPLETE:
                await self._park(
                    envelope,
                    "incomplete",
                    IncompleteSnapshot(product_id, decision.missing),
                    product_id,
                )
            return decision

        return None

    async def _reconcile(self, event: ProductEvent) -> Decision:
        async with self.session_factory() as session:
            async with session.begin():
                repository = ProductReadRepository(session)
                await repository.lock_product(event.product_id)
                current = await repository.get_for_update(event.product_id)
                tombstone = await repository.get_tombstone(event.product_id)
                decision = decide(
                    event, current, tombstone.deleted_at if tombstone else None
                )
                await self._execute(repository, decision, tombstone is not None)
        return decision

    async def _execute(
        self,
        repository: ProductReadRepository,
        decision: Decision,
        has_tombstone: bool,
    ) -> None:
        if isinstance(decision, Insert):
            await repository.upsert(decision.row)
        elif isinstance(decision, Merge):
            await repository.merge(decision.product_id, decision.fields)
        elif isinstance(decision, Delete):
            await repository.delete(decision.product_id)
            await repository.put_tombstone(decision.product_id, decision.deleted_at)
            return
        else:
            return

        # Accepted writes are newer than the tombstone, which is now obsolete
        if has_tombstone:
            await repository.clear_tombstone(decision.product_id)

    async def _park(
        self,
        envelope: MessageEnvelope,
        reason: str,
        error: Exception,
        product_id: Optional[str],
    ) -> None:
        await self.dead_letters.park(
            DeadLetter(
                envelope=envelope,
                reason=reason,
                error=str(error),
                product_id=product_id,
            )
        )
        self.stats.increment("dead_lettered")
        logger.warning(
            "Event parked on dead-letter path",
            extra={
                "product_id": product_id,
                "reason": reason,
                "topic": envelope.topic,
                "partition": envelope.partition,
                "offset": envelope.offset,
            },
        )

    async def purge_tombstones(self, grace_seconds: int) -> int:
        """Forget deletes recorded longer than ``grace_seconds`` ago"""
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=grace_seconds)
        async with self.session_factory() as session:
            async with session.begin():
                purged = await ProductReadRepository(session).purge_tombstones(cutoff)
        if purged:
            self.stats.increment("tombstones_purged", purged)
            logger.info(
                "Purged expired tombstones",
                extra={"purged": purged, "cutoff": cutoff.isoformat()},
            )
        return purged
