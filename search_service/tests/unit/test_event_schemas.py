import json
from datetime import datetime, timezone

import pytest

from search_service.app.core.exceptions import DeserializationFailed
from search_service.app.events.schemas import (
    EventKind,
    ProductCreated,
    ProductDeleted,
    ProductUpdated,
    decode_event,
)

from ..fakes import T0, at, snapshot_payload


def encode(value) -> bytes:
    return json.dumps(value).encode("utf-8")


class TestSnapshotDecoding:
    def test_created_event_from_catalog_payload(self):
        event = decode_event(
            EventKind.CREATED,
            "product-created",
            b"p-1",
            encode(snapshot_payload("p-1", at(1))),
        )

        assert isinstance(event, ProductCreated)
        assert event.product_id == "p-1"
        assert event.snapshot.user_id == "user-1"
        assert event.snapshot.updated_at == at(1)
        assert event.snapshot.tags == ["outdoor", "running"]

    @pytest.mark.parametrize(
        "created_key, updated_key, user_key",
        [
            ("createAt", "updateAt", "userId"),
            ("created_at", "updated_at", "user_id"),
        ],
    )
    def test_alternative_field_spellings(self, created_key, updated_key, user_key):
        payload = snapshot_payload("p-1", at(1))
        payload[created_key] = payload.pop("createdAt")
        payload[updated_key] = payload.pop("updatedAt")
        payload[user_key] = payload.pop("userId")

        event = decode_event(EventKind.CREATED, "product-created", None, encode(payload))

        assert event.snapshot.created_at == T0
        assert event.snapshot.updated_at == at(1)
        assert event.snapshot.user_id == "user-1"

    def test_unknown_fields_are_ignored(self):
        payload = snapshot_payload("p-1", at(1), eventId="abc", rating=4.5)
        event = decode_event(EventKind.CREATED, "product-created", None, encode(payload))
        assert event.product_id == "p-1"

    def test_naive_timestamps_are_utc(self):
        payload = snapshot_payload("p-1", at(1), updatedAt="2024-03-01T12:00:01")
        event = decode_event(EventKind.UPDATED, "product-updated", None, encode(payload))
        assert event.snapshot.updated_at == datetime(
            2024, 3, 1, 12, 0, 1, tzinfo=timezone.utc
        )

    def test_created_missing_projected_field_is_rejected(self):
        payload = snapshot_payload("p-1", at(1))
        del payload["userId"]
        with pytest.raises(DeserializationFailed) as exc_info:
            decode_event(EventKind.CREATED, "product-created", None, encode(payload))
        assert "user_id" in exc_info.value.reason

    def test_created_with_null_field_is_rejected(self):
        payload = snapshot_payload("p-1", at(1), name=None)
        with pytest.raises(DeserializationFailed):
            decode_event(EventKind.CREATED, "product-created", None, encode(payload))

    def test_partial_update_tracks_provided_fields(self):
        payload = {"id": "p-1", "price": 900, "category": None, "updatedAt": at(2).isoformat()}
        event = decode_event(EventKind.UPDATED, "product-updated", None, encode(payload))

        assert isinstance(event, ProductUpdated)
        assert event.snapshot.provided_fields == {
            "price": 900,
            "category": None,
            "updated_at": at(2),
        }
        assert not event.snapshot.is_complete

    @pytest.mark.parametrize(
        "value",
        [
            None,
            b"",
            b"{not json",
            b"\xff\xfe",
            encode(["p-1"]),
            encode({"id": "p-1", "price": 900}),
            encode({"id": "p-1", "price": -1, "updatedAt": T0.isoformat()}),
        ],
    )
    def test_malformed_updates_are_rejected(self, value):
        with pytest.raises(DeserializationFailed):
            decode_event(EventKind.UPDATED, "product-updated", b"p-1", value)


class TestDeletedDecoding:
    def test_object_payload(self):
        event = decode_event(
            EventKind.DELETED,
            "product-deleted",
            b"p-1",
            encode({"id": "p-1", "deletedAt": at(5).isoformat()}),
        )
        assert event == ProductDeleted(product_id="p-1", deleted_at=at(5))

    def test_bare_string_payload_uses_message_timestamp(self):
        timestamp_ms = int(at(7).timestamp() * 1000)
        event = decode_event(
            EventKind.DELETED, "product-deleted", None, encode("p-1"), timestamp_ms
        )
        assert event == ProductDeleted(product_id="p-1", deleted_at=at(7))

    @pytest.mark.parametrize("value", [None, b"", b"null"])
    def test_empty_payload_takes_id_from_key(self, value):
        timestamp_ms = int(at(3).timestamp() * 1000)
        event = decode_event(
            EventKind.DELETED, "product-deleted", b"p-9", value, timestamp_ms
        )
        assert event.product_id == "p-9"
        assert event.deleted_at == at(3)

    def test_delete_without_id_is_rejected(self):
        with pytest.raises(DeserializationFailed):
            decode_event(EventKind.DELETED, "product-deleted", None, None, 1000)

    def test_delete_without_any_time_is_rejected(self):
        with pytest.raises(DeserializationFailed):
            decode_event(EventKind.DELETED, "product-deleted", b"p-1", None, None)

    def test_undecodable_key_is_rejected(self):
        with pytest.raises(DeserializationFailed) as exc_info:
            decode_event(EventKind.DELETED, "product-deleted", b"\xff\xfe", None, 1000)
        assert "key" in exc_info.value.reason

    def test_out_of_range_timestamp_is_rejected(self):
        with pytest.raises(DeserializationFailed):
            decode_event(
                EventKind.DELETED, "product-deleted", b"p-1", None, 10**20
            )
