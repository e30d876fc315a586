from datetime import date, datetime, timedelta

import pytest

from app.services.dto import PickupFilters
from app.services.errors import DuplicateReference, ValidationError

from tests.conftest import NOW


@pytest.fixture
def admin(services):
    return services.admin


def _create_fields(**overrides):
    fields = {
        "reference_number": "ref-9001",
        "company": "Acme",
        "scheduled_date": "2026-10-19T14:00:00",
        "goods_description": "Steel pipes",
        "pickup_location": "Dock 1",
        "quantity": "25",
    }
    fields.update(overrides)
    return fields


def test_create_returns_pending_pickup(admin):
    result = admin.create(_create_fields(notes="  "))

    assert result.success is True
    pickup = result.pickup
    assert pickup.reference_number == "REF-9001"
    assert pickup.status == "PENDING"
    assert pickup.scheduled_date == datetime(2026, 10, 19, 14, 0)
    assert pickup.quantity == 25
    assert pickup.notes is None


def test_create_duplicate_reference_is_distinct_error(admin):
    admin.create(_create_fields())

    result = admin.create(_create_fields(company="Other Oy"))

    assert result.success is False
    assert isinstance(result.error, DuplicateReference)
    assert result.error.code == "duplicate_reference"


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"company": "   "}, "company"),
        ({"pickup_location": None}, "pickup_location"),
        ({"scheduled_date": "tomorrow"}, "scheduled_date"),
        ({"quantity": "-3"}, "quantity"),
        ({"quantity": "many"}, "quantity"),
    ],
)
def test_create_validates_fields(admin, overrides, field):
    result = admin.create(_create_fields(**overrides))

    assert result.success is False
    assert isinstance(result.error, ValidationError)
    assert result.error.field == field
    assert admin.store.count() == 0


def test_list_filtered_by_single_day_overrides_range(admin, make_pickup):
    today = make_pickup(scheduled_date=datetime(2026, 10, 19, 23, 59, 59))
    make_pickup(scheduled_date=datetime(2026, 10, 20, 0, 0))
    make_pickup(scheduled_date=datetime(2026, 10, 18, 12, 0))

    filters = PickupFilters(
        date=date(2026, 10, 19),
        start_date=datetime(2026, 10, 1),
        end_date=datetime(2026, 10, 31),
    )

    assert [p.id for p in admin.list_filtered(filters)] == [today.id]


def test_list_filtered_by_range_status_and_company(admin, make_pickup, services):
    a = make_pickup(scheduled_date=NOW - timedelta(days=1), company="Nordic Steel")
    b = make_pickup(scheduled_date=NOW, company="nordic steel ab")
    make_pickup(scheduled_date=NOW + timedelta(days=5), company="Nordic Steel")
    services.lifecycle.reserve(b.reference_number, "ABC-123")

    in_range = admin.list_filtered(
        PickupFilters(start_date=NOW - timedelta(days=2), end_date=NOW, company="NORDIC")
    )
    assert [p.id for p in in_range] == [b.id, a.id]

    reserved = admin.list_filtered(PickupFilters(status="reserved"))
    assert [p.id for p in reserved] == [b.id]


def test_list_filtered_rejects_unknown_status(admin):
    with pytest.raises(ValidationError):
        admin.list_filtered(PickupFilters(status="SHIPPED"))


def test_filters_from_query_args():
    filters = PickupFilters.from_query_args(
        {"status": "pending", "startDate": "2026-10-01", "end_date": "2026-10-31", "company": " acme "}
    )

    assert filters.status == "pending"
    assert filters.start_date == datetime(2026, 10, 1)
    assert filters.end_date == datetime(2026, 10, 31)
    assert filters.company == "acme"
    assert filters.window() == (datetime(2026, 10, 1), datetime(2026, 10, 31), True)


def test_list_today_groups_by_status(admin, make_pickup, services):
    first = make_pickup(scheduled_date=NOW.replace(hour=8))
    second = make_pickup(scheduled_date=NOW.replace(hour=15))
    make_pickup(scheduled_date=NOW + timedelta(days=1))
    services.lifecycle.reserve(second.reference_number, "ABC-123")

    overview = admin.list_today()

    assert overview.total == 2
    assert [p.id for p in overview.pickups] == [first.id, second.id]
    assert [p.id for p in overview.grouped["pending"]] == [first.id]
    assert [p.id for p in overview.grouped["reserved"]] == [second.id]
    assert overview.grouped["loaded"] == []


def test_stats_counts_today_and_overall(admin, make_pickup, services):
    empty = admin.stats()
    assert empty["today"]["total"] == 0
    assert empty["overall"]["pending"] == 0

    today = make_pickup()
    make_pickup(scheduled_date=NOW + timedelta(days=3))
    services.lifecycle.reserve(today.reference_number, "ABC-123")

    stats = admin.stats()
    assert stats["today"] == {
        "total": 1,
        "pending": 0,
        "reserved": 1,
        "loading": 0,
        "loaded": 0,
        "completed": 0,
    }
    assert stats["overall"]["total"] == 2
    assert stats["overall"]["pending"] == 1


def test_confirm_loading_legacy_runs_three_steps(admin, make_pickup, services, document_generator):
    pickup = make_pickup()
    services.lifecycle.reserve(pickup.reference_number, "ABC-123")

    result = admin.confirm_loading_legacy(pickup.id, "18", notes="ok")

    assert result.success is True
    assert result.pickup.status == "COMPLETED"
    assert result.pickup.quantity == 18
    assert result.pdf_path == result.pickup.pdf_path
    assert document_generator.calls[0]["status"] == "LOADED"


def test_confirm_loading_legacy_rejects_bad_quantity(admin, make_pickup, services, document_generator):
    pickup = make_pickup()
    services.lifecycle.reserve(pickup.reference_number, "ABC-123")

    result = admin.confirm_loading_legacy(pickup.id, 0)

    assert result.success is False
    assert isinstance(result.error, ValidationError)
    assert services.store.get_by_id(pickup.id).status == "RESERVED"
    assert document_generator.calls == []


def test_confirm_loading_legacy_wrong_status_skips_generation(admin, make_pickup, document_generator):
    pickup = make_pickup()

    result = admin.confirm_loading_legacy(pickup.id, 5)

    assert result.success is False
    assert result.error.current_status == "PENDING"
    assert document_generator.calls == []


def test_confirm_loading_legacy_document_failure_stops_before_completion(
    admin, make_pickup, services, document_generator
):
    pickup = make_pickup()
    services.lifecycle.reserve(pickup.reference_number, "ABC-123")
    document_generator.fail = True

    result = admin.confirm_loading_legacy(pickup.id, 10)

    assert result.success is False
    assert result.pickup.status == "LOADED"
    stored = services.store.get_by_id(pickup.id)
    assert stored.status == "LOADED"
    assert stored.pdf_path is None


def test_generate_document_recovers_driver_path(admin, make_pickup, services, document_generator):
    pickup = make_pickup()
    services.lifecycle.reserve(pickup.reference_number, "ABC-123")
    services.lifecycle.start_loading(pickup.id)
    document_generator.fail = True
    services.reservation.confirm_loaded(pickup.id)
    document_generator.fail = False

    result = admin.generate_document(pickup.id)

    assert result.success is True
    assert result.pickup.status == "LOADED"
    assert result.pickup.pdf_path == result.pdf_path


def test_generate_document_completes_legacy_loaded(admin, make_pickup, services, document_generator):
    pickup = make_pickup()
    services.lifecycle.reserve(pickup.reference_number, "ABC-123")
    document_generator.fail = True
    admin.confirm_loading_legacy(pickup.id, 10)
    document_generator.fail = False

    result = admin.generate_document(pickup.id)

    assert result.success is True
    assert result.pickup.status == "COMPLETED"


def test_generate_document_refuses_unloaded(admin, make_pickup, document_generator):
    pickup = make_pickup()

    result = admin.generate_document(pickup.id)

    assert result.success is False
    assert result.error.code == "wrong_status"
    assert document_generator.calls == []


def test_generate_document_missing_pickup(admin):
    result = admin.generate_document(999)

    assert result.success is False
    assert result.error.code == "not_found"


@pytest.mark.parametrize("quantity", [True, False])
def test_boolean_quantity_is_rejected(admin, make_pickup, services, quantity):
    pickup = make_pickup()
    services.lifecycle.reserve(pickup.reference_number, "ABC-123")

    result = admin.confirm_loading_legacy(pickup.id, quantity)

    assert result.success is False
    assert result.error.field == "quantity"
    assert services.store.get_by_id(pickup.id).status == "RESERVED"
