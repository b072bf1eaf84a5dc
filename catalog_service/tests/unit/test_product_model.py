import uuid
from datetime import datetime, timedelta, timezone

import pytest

from catalog_service.app.core.exceptions import ProductValidationError
from catalog_service.app.models.product import Product, new_product_id


class TestProductId:
    def test_ids_are_version_7_uuids(self):
        parsed = uuid.UUID(new_product_id())
        assert parsed.version == 7
        assert parsed.variant == uuid.RFC_4122

    def test_ids_embed_creation_time(self):
        before = int(datetime.now(timezone.utc).timestamp() * 1000)
        embedded_ms = uuid.UUID(new_product_id()).int >> 80
        # Same-millisecond ids may borrow the next millisecond to stay ordered
        assert before <= embedded_ms < before + 60_000

    def test_ids_from_a_tight_loop_sort_in_creation_order(self):
        ids = [new_product_id() for _ in range(2000)]

        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)


class TestProductCreate:
    def test_create_sets_identity_and_timestamps(self, sample_product):
        assert sample_product.created_at == sample_product.updated_at
        assert sample_product.created_at.tzinfo is not None
        assert sample_product.created_at.microsecond % 1000 == 0
        assert sample_product.user_id == "user-1"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"name": " "},
            {"name": "x"},
            {"name": "x" * 101},
            {"tags": []},
            {"tags": ["a", "b", "c", "d", "e", "f"]},
            {"price": -1},
            {"stock": -5},
        ],
    )
    def test_create_rejects_rule_violations(self, overrides):
        fields = {
            "name": "Desk Lamp",
            "price": 2500,
            "stock": 3,
            "tags": ["lighting"],
            "user_id": "user-1",
        }
        fields.update(overrides)
        with pytest.raises(ProductValidationError):
            Product.create(**fields)


class TestProductUpdate:
    def test_update_keeps_identity_and_advances_updated_at(self, sample_product):
        updated = sample_product.with_updated_details({"price": 9999})

        assert updated.id == sample_product.id
        assert updated.created_at == sample_product.created_at
        assert updated.user_id == sample_product.user_id
        assert updated.price == 9999
        assert updated.updated_at > sample_product.updated_at

    def test_update_is_monotonic_when_clock_is_behind(self, sample_product):
        future = sample_product.model_copy(
            update={"updated_at": sample_product.updated_at + timedelta(days=1)}
        )
        updated = future.with_updated_details({"stock": 1})
        assert updated.updated_at == future.updated_at + timedelta(milliseconds=1)

    def test_update_rejects_immutable_fields(self, sample_product):
        with pytest.raises(ProductValidationError):
            sample_product.with_updated_details({"user_id": "someone-else"})

    def test_update_revalidates(self, sample_product):
        with pytest.raises(ProductValidationError):
            sample_product.with_updated_details({"tags": []})


def test_document_round_trip_restores_utc(sample_product):
    document = sample_product.to_document()
    assert document["_id"] == sample_product.id
    assert "id" not in document

    document["created_at"] = document["created_at"].replace(tzinfo=None)
    restored = Product.from_document(document)
    assert restored.created_at.tzinfo == timezone.utc
    assert restored == sample_product
