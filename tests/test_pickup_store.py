from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.models import Pickup, PickupStatus
from app.repositories import PickupRepository
from app.services.errors import DuplicateReference, NotFound, StoreError

from tests.conftest import NOW


def test_create_forces_pending_and_normalizes_reference(store):
    pickup = store.create(
        {
            "reference_number": "  ref-100 ",
            "company": "Acme",
            "scheduled_date": NOW,
            "goods_description": "Steel pipes",
            "status": "COMPLETED",
        }
    )

    assert pickup.id is not None
    assert pickup.reference_number == "REF-100"
    assert pickup.status == PickupStatus.PENDING.value
    assert pickup.created_at == NOW
    assert pickup.updated_at == NOW


def test_duplicate_reference_fails_and_keeps_original(store, make_pickup):
    original = make_pickup(reference_number="REF-001", company="Acme")

    with pytest.raises(DuplicateReference):
        make_pickup(reference_number="ref-001", company="Other Oy")

    again = store.get_by_id(original.id)
    assert again.company == "Acme"
    assert store.count() == 1


def test_lookup_by_id_and_reference(store, make_pickup):
    pickup = make_pickup(reference_number="REF-777")

    assert store.find_by_id(pickup.id).reference_number == "REF-777"
    assert store.find_by_reference("ref-777").id == pickup.id
    assert store.find_by_reference("missing") is None
    assert store.find_by_id(9999) is None
    with pytest.raises(NotFound):
        store.get_by_reference("missing")


def test_update_merges_fields_and_stamps_updated_at(store, make_pickup, clock):
    pickup = make_pickup()
    clock.advance(minutes=5)

    updated = store.update(pickup.id, {"notes": "Ramp 2", "quantity": 7})

    assert updated.notes == "Ramp 2"
    assert updated.quantity == 7
    assert updated.updated_at == NOW + timedelta(minutes=5)
    assert updated.created_at == NOW


def test_update_missing_id_raises_not_found(store):
    with pytest.raises(NotFound):
        store.update(4242, {"notes": "x"})


def test_query_orders_and_filters(store, make_pickup):
    early = make_pickup(scheduled_date=NOW - timedelta(days=2), company="Nordic Steel")
    late = make_pickup(scheduled_date=NOW + timedelta(days=2), company="Acme")
    middle = make_pickup(scheduled_date=NOW, company="ACME Logistics")

    assert [p.id for p in store.query()] == [late.id, middle.id, early.id]
    assert [p.id for p in store.query(ascending=True)] == [early.id, middle.id, late.id]
    assert {p.id for p in store.query(company="acme")} == {late.id, middle.id}
    assert [p.id for p in store.query(start=NOW - timedelta(hours=1), end=NOW)] == [middle.id]
    assert store.query(start=NOW - timedelta(hours=1), end=NOW, end_inclusive=False) == []


def test_upsert_by_provenance_creates_then_updates_only_calendar_fields(store):
    pickup, created = store.upsert_by_provenance(
        "evt-1",
        {
            "reference_number": "REF-500",
            "company": "Acme",
            "scheduled_date": NOW,
            "goods_description": "Pipes",
        },
        {},
    )
    assert created is True
    assert pickup.outlook_event_id == "evt-1"

    store.update(pickup.id, {"status": "RESERVED", "truck_plate": "ABC-123"})

    again, created = store.upsert_by_provenance(
        "evt-1",
        {"reference_number": "REF-500"},
        {
            "company": "Acme Oy",
            "scheduled_date": NOW + timedelta(hours=1),
            "goods_description": "Beams",
            "status": "PENDING",
            "truck_plate": None,
        },
    )

    assert created is False
    assert again.id == pickup.id
    assert again.company == "Acme Oy"
    assert again.goods_description == "Beams"
    assert again.scheduled_date == NOW + timedelta(hours=1)
    assert again.status == "RESERVED"
    assert again.truck_plate == "ABC-123"
    assert store.count() == 1


def test_transition_if_writes_only_from_expected_status(store, make_pickup):
    pickup = make_pickup()

    assert store.transition_if(pickup.id, [PickupStatus.RESERVED], {"status": PickupStatus.LOADING}) is False
    assert store.get_by_id(pickup.id).status == "PENDING"

    assert store.transition_if(pickup.id, [PickupStatus.PENDING], {"status": PickupStatus.RESERVED}) is True
    assert store.get_by_id(pickup.id).status == "RESERVED"


def test_transition_if_honours_extra_criteria(store, make_pickup):
    pickup = make_pickup(scheduled_date=NOW + timedelta(days=1))

    written = store.transition_if(
        pickup.id,
        [PickupStatus.PENDING],
        {"status": PickupStatus.RESERVED},
        extra_criteria=[Pickup.scheduled_date < datetime(2026, 10, 20)],
    )

    assert written is False
    assert store.get_by_id(pickup.id).status == "PENDING"


def test_counts_and_latest_ingested(store, make_pickup, clock):
    make_pickup()
    assert store.latest_ingested_at() is None

    clock.advance(hours=1)
    store.upsert_by_provenance(
        "evt-9",
        {"reference_number": "REF-900", "company": "A", "scheduled_date": NOW, "goods_description": "G"},
        {},
    )

    assert store.count() == 2
    assert store.count(status="PENDING") == 2
    assert store.count(status="LOADED") == 0
    assert store.latest_ingested_at() == NOW + timedelta(hours=1)


def _connection_lost(*args, **kwargs):
    raise OperationalError("SELECT pickups", {}, Exception("connection lost"))


def test_read_failures_become_store_errors(store, make_pickup, monkeypatch):
    pickup = make_pickup(reference_number="REF-950")
    monkeypatch.setattr(PickupRepository, "get_by_reference", _connection_lost)
    monkeypatch.setattr(PickupRepository, "search", _connection_lost)
    monkeypatch.setattr(PickupRepository, "count", _connection_lost)

    with pytest.raises(StoreError):
        store.find_by_reference("REF-950")
    with pytest.raises(StoreError):
        store.query()
    with pytest.raises(StoreError):
        store.count()
    with pytest.raises(StoreError):
        make_pickup(reference_number="REF-951")

    monkeypatch.undo()
    assert store.get_by_id(pickup.id).reference_number == "REF-950"
