import itertools
from datetime import datetime
from typing import Dict, Optional

import pytest

from search_service.app.models.product import ProductRow, join_tags
from search_service.app.services.reconciler import (
    Delete,
    Insert,
    Merge,
    Skip,
    SkipReason,
    decide,
)

from ..fakes import T0, at, created, deleted, partial_update, updated


def row(product_id: str, updated_at: datetime, **fields) -> ProductRow:
    values = {
        "id": product_id,
        "name": "Trail Shoe",
        "price": 1000,
        "stock": 5,
        "tags": join_tags(["outdoor", "running"]),
        "category": "shoes",
        "description": None,
        "user_id": "user-1",
        "created_at": T0,
        "updated_at": updated_at,
    }
    values.update(fields)
    return ProductRow(**values)


class InMemoryProjection:
    """Applies decisions to dicts the same way the read store does"""

    def __init__(self):
        self.rows: Dict[str, ProductRow] = {}
        self.tombstones: Dict[str, datetime] = {}

    def apply(self, event):
        product_id = event.product_id
        decision = decide(event, self.rows.get(product_id), self.tombstones.get(product_id))
        if isinstance(decision, Insert):
            values = dict(decision.row)
            values["tags"] = join_tags(values["tags"])
            self.rows[product_id] = ProductRow(**values)
            self.tombstones.pop(product_id, None)
        elif isinstance(decision, Merge):
            current = self.rows[product_id]
            for name, value in decision.fields.items():
                if name == "tags":
                    value = join_tags(value)
                setattr(current, name, value)
            self.tombstones.pop(product_id, None)
        elif isinstance(decision, Delete):
            self.rows.pop(product_id, None)
            self.tombstones[product_id] = decision.deleted_at
        return decision

    def state(self, product_id: str) -> Optional[dict]:
        current = self.rows.get(product_id)
        if current is None:
            return None
        return {
            column: getattr(current, column)
            for column in (
                "name",
                "price",
                "stock",
                "tags",
                "category",
                "description",
                "user_id",
                "created_at",
                "updated_at",
            )
        }


class TestCreated:
    def test_absent_row_is_inserted(self):
        decision = decide(created("p-1", at(1)), None)
        assert isinstance(decision, Insert)
        assert decision.row["id"] == "p-1"
        assert decision.row["created_at"] == T0

    def test_duplicate_delivery_is_stale(self):
        decision = decide(created("p-1", at(1)), row("p-1", at(1)))
        assert decision == Skip("p-1", SkipReason.STALE)

    def test_older_created_after_update_is_stale(self):
        decision = decide(created("p-1", at(1)), row("p-1", at(2), price=900))
        assert decision.reason is SkipReason.STALE


class TestUpdated:
    def test_newer_update_merges_and_keeps_created_at(self):
        decision = decide(updated("p-1", at(2), price=900, createdAt=at(2).isoformat()), row("p-1", at(1)))

        assert isinstance(decision, Merge)
        assert decision.fields["price"] == 900
        assert decision.fields["updated_at"] == at(2)
        assert "created_at" not in decision.fields

    @pytest.mark.parametrize("stored", [1, 2])
    def test_equal_or_older_update_is_stale(self, stored):
        decision = decide(updated("p-1", at(1), price=1), row("p-1", at(stored)))
        assert decision.reason is SkipReason.STALE

    def test_partial_update_only_touches_provided_fields(self):
        decision = decide(partial_update("p-1", at(2), price=900), row("p-1", at(1)))
        assert decision == Merge("p-1", {"price": 900, "updated_at": at(2)}, at(2))

    def test_partial_update_may_clear_nullable_fields_only(self):
        decision = decide(
            partial_update("p-1", at(2), category=None, name=None),
            row("p-1", at(1)),
        )
        assert decision.fields == {"category": None, "updated_at": at(2)}

    def test_full_update_for_absent_row_is_inserted(self):
        assert isinstance(decide(updated("p-1", at(2)), None), Insert)

    def test_partial_update_for_absent_row_is_incomplete(self):
        decision = decide(partial_update("p-1", at(2), price=900), None)
        assert decision.reason is SkipReason.INCOMPLETE
        assert "name" in decision.missing


class TestDeleted:
    @pytest.mark.parametrize("stored", [1, 2])
    def test_delete_wins_over_equal_or_older_row(self, stored):
        decision = decide(deleted("p-1", at(2)), row("p-1", at(stored)))
        assert decision == Delete("p-1", at(2))

    def test_delete_older_than_row_is_stale(self):
        decision = decide(deleted("p-1", at(2)), row("p-1", at(3)))
        assert decision == Skip("p-1", SkipReason.STALE)

    def test_delete_of_absent_row_keeps_later_tombstone(self):
        decision = decide(deleted("p-1", at(2)), None, at(5))
        assert decision == Delete("p-1", at(5))

    @pytest.mark.parametrize("written", [1, 2])
    def test_tombstone_blocks_equal_or_older_writes(self, written):
        decision = decide(created("p-1", at(written)), None, at(2))
        assert decision.reason is SkipReason.TOMBSTONED

    def test_newer_write_passes_tombstone(self):
        assert isinstance(decide(updated("p-1", at(3)), None, at(2)), Insert)


class TestProjectionProperties:
    def test_idempotent_replay(self):
        once, many = InMemoryProjection(), InMemoryProjection()
        once.apply(created("p-1", at(1)))
        for _ in range(5):
            many.apply(created("p-1", at(1)))
        assert many.state("p-1") == once.state("p-1")

    def test_last_writer_wins(self):
        projection = InMemoryProjection()
        projection.apply(created("p-1", at(1)))
        projection.apply(updated("p-1", at(3), price=300))
        projection.apply(updated("p-1", at(2), price=200))
        assert projection.state("p-1")["price"] == 300

    def test_partial_merge_preserves_unset_fields(self):
        projection = InMemoryProjection()
        projection.apply(created("p-1", at(1)))
        projection.apply(partial_update("p-1", at(2), price=750))

        state = projection.state("p-1")
        assert state["price"] == 750
        assert state["name"] == "Trail Shoe"
        assert state["tags"] == join_tags(["outdoor", "running"])
        assert state["stock"] == 5

    def test_delete_wins_over_late_stale_create(self):
        projection = InMemoryProjection()
        projection.apply(deleted("p-1", at(5)))
        projection.apply(created("p-1", at(1)))
        assert projection.state("p-1") is None

    def test_redelivered_created_after_update(self):
        projection = InMemoryProjection()
        projection.apply(created("P1", at(1), price=1000, stock=5))
        projection.apply(updated("P1", at(2), price=900))
        projection.apply(created("P1", at(1), price=1000, stock=5))
        assert projection.state("P1")["price"] == 900

    def test_delete_arriving_before_its_create(self):
        projection = InMemoryProjection()
        projection.apply(deleted("P2", at(2)))
        projection.apply(created("P2", at(1)))
        assert projection.state("P2") is None

    @pytest.mark.parametrize(
        "events",
        [
            [
                created("p-1", at(1)),
                updated("p-1", at(2), price=800),
                updated("p-1", at(3), name="Road Shoe", tags=["road"]),
            ],
            [
                created("p-1", at(1)),
                updated("p-1", at(2), stock=0),
                deleted("p-1", at(3)),
            ],
            [
                created("p-1", at(1)),
                deleted("p-1", at(2)),
                updated("p-1", at(4), price=10),
            ],
        ],
    )
    def test_out_of_order_delivery_converges(self, events):
        def time_of(event):
            return getattr(event, "deleted_at", None) or event.snapshot.updated_at

        expected = InMemoryProjection()
        for event in sorted(events, key=time_of):
            expected.apply(event)

        for permutation in itertools.permutations(events):
            projection = InMemoryProjection()
            for event in permutation:
                projection.apply(event)
            assert projection.state("p-1") == expected.state("p-1")
