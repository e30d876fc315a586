from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.repositories import PickupRepository
from app.services.calendar_feed import CalendarEvent
from app.services.errors import CalendarConfigError, InvalidEvent
from app.services.ingestion_service import DEFAULT_GOODS, parse_event, strip_html

from tests.conftest import NOW

START = datetime(2026, 10, 21, 8, 0)


def _event(event_id="evt-1", subject="", body="", start=START):
    return CalendarEvent(id=event_id, subject=subject, body=body, start=start)


class FakeFeed:
    def __init__(self, events):
        self.events = events
        self.windows = []

    def fetch_events(self, start, end):
        self.windows.append((start, end))
        return iter(self.events)


# --- parse_event ------------------------------------------------------------


def test_parse_subject_with_three_parts():
    candidate = parse_event(_event(subject="ref-12345 | Acme Oy | Steel beams"))

    assert candidate.reference_number == "REF-12345"
    assert candidate.company == "Acme Oy"
    assert candidate.goods_description == "Steel beams"
    assert candidate.scheduled_date == START


def test_parse_subject_without_goods_uses_default():
    candidate = parse_event(_event(subject="REF-777 | Nordic Steel"))

    assert candidate.goods_description == DEFAULT_GOODS


def test_parse_subject_with_short_reference_is_skipped():
    assert parse_event(_event(subject="AB | Acme")) is None


def test_parse_body_labels():
    body = (
        "<html><body><p>REF: p-4411</p>"
        "<p>Company: <b>Nordic&nbsp;Steel</b></p>"
        "<div>Goods: Copper wire</div></body></html>"
    )

    candidate = parse_event(_event(subject="Weekly pickup", body=body))

    assert candidate.reference_number == "P-4411"
    assert candidate.company == "Nordic Steel"
    assert candidate.goods_description == "Copper wire"


def test_parse_body_without_company_is_skipped():
    assert parse_event(_event(subject="Meeting", body="REF: X-100")) is None


def test_parse_unrelated_event_is_skipped():
    assert parse_event(_event(subject="Team lunch", body="<p>Pizza</p>")) is None


def test_parse_requires_id_and_start():
    with pytest.raises(InvalidEvent):
        parse_event(_event(event_id=None, subject="REF-1 | Acme"))
    with pytest.raises(InvalidEvent):
        parse_event(_event(subject="REF-100 | Acme", start=None))


def test_strip_html_keeps_inline_text_together():
    assert strip_html("Company: <b>Acme</b> Oy<br>Goods: pipes") == "Company: Acme Oy\nGoods: pipes"


# --- sync_batch ---------------------------------------------------------------


def test_sync_is_idempotent_and_preserves_lifecycle(services):
    ingestion = services.ingestion
    today = NOW.replace(hour=13, minute=0)
    event = _event(subject="REF-200 | Acme | Pipes", start=today)

    first = ingestion.sync_batch(events=[event])
    assert first.synced == 1

    services.lifecycle.reserve("REF-200", "ABC-123", driver_name="John")

    moved = _event(subject="REF-200 | Acme Oy | Beams", start=today + timedelta(hours=1))
    second = ingestion.sync_batch(events=[moved])

    assert second.synced == 1
    assert services.store.count() == 1
    pickup = services.store.get_by_reference("REF-200")
    assert pickup.company == "Acme Oy"
    assert pickup.goods_description == "Beams"
    assert pickup.scheduled_date == today + timedelta(hours=1)
    assert pickup.status == "RESERVED"
    assert pickup.truck_plate == "ABC-123"
    assert pickup.driver_name == "John"


def test_sync_counts_skips_and_keeps_going_after_errors(services, make_pickup):
    make_pickup(reference_number="REF-300")
    events = [
        _event("evt-a", subject="Team lunch"),
        _event("evt-b", subject="REF-300 | Acme"),
        _event("evt-c", subject="REF-301 | Acme"),
        _event("evt-d", subject="REF-302 | Acme", start=None),
    ]

    result = services.ingestion.sync_batch(events=events)

    assert result.synced == 1
    assert result.skipped == 1
    assert len(result.errors) == 2
    assert services.store.find_by_reference("REF-301") is not None
    assert services.store.count() == 2


def test_sync_reads_feed_window(services):
    feed = FakeFeed([_event(subject="REF-400 | Acme")])
    services.ingestion.feed = feed

    result = services.ingestion.sync_batch(window_days=7)

    assert result.synced == 1
    start, end = feed.windows[0]
    assert start == datetime(2026, 10, 19)
    assert end.date() == datetime(2026, 10, 26).date()


def test_sync_without_feed_raises_config_error(services):
    services.ingestion.feed = None

    with pytest.raises(CalendarConfigError):
        services.ingestion.sync_batch()


def test_sync_status(services, clock, make_pickup):
    make_pickup()
    status = services.ingestion.get_sync_status()
    assert status.last_sync_time is None
    assert status.total_count == 1
    assert status.pending_count == 1

    clock.advance(minutes=3)
    services.ingestion.sync_batch(events=[_event(subject="REF-500 | Acme")])

    status = services.ingestion.get_sync_status()
    assert status.last_sync_time == NOW + timedelta(minutes=3)
    assert status.total_count == 2
    assert status.to_dict()["last_sync_time"] == (NOW + timedelta(minutes=3)).isoformat()


def test_sync_survives_store_failure_on_one_event(services, monkeypatch):
    original_lookup = PickupRepository.get_by_outlook_event_id

    def flaky_lookup(self, event_id):
        if event_id == "evt-bad":
            raise OperationalError("SELECT pickups", {}, Exception("connection lost"))
        return original_lookup(self, event_id)

    monkeypatch.setattr(PickupRepository, "get_by_outlook_event_id", flaky_lookup)

    result = services.ingestion.sync_batch(
        events=[
            _event("evt-bad", subject="REF-600 | Acme"),
            _event("evt-ok", subject="REF-601 | Acme"),
        ]
    )

    assert result.synced == 1
    assert len(result.errors) == 1
    assert "REF-600" in result.errors[0]
    assert services.store.find_by_reference("REF-601") is not None
    assert services.store.find_by_reference("REF-600") is None
