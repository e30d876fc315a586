# tests/conftest.py
from datetime import datetime, timedelta

import pytest

from app import create_app
from app.extensions import db
from app.services import build_services
from app.services.errors import GenerationError
from config import TestConfig

NOW = datetime(2026, 10, 19, 9, 30, 0)


class FrozenClock:
    """Orologio controllabile: ritorna sempre lo stesso istante finché non viene avanzato."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeQrGenerator:
    def __init__(self):
        self.calls = []
        self.fail = False

    def generate(self, key):
        self.calls.append(key)
        if self.fail:
            raise GenerationError("qr down")
        return f"data:image/svg+xml;base64,QR-{key}"


class FakeDocumentGenerator:
    def __init__(self):
        self.calls = []
        self.fail = False

    def generate(self, pickup):
        # Snapshot dello stato al momento della chiamata
        self.calls.append(
            {
                "reference_number": pickup.reference_number,
                "status": pickup.status,
                "qr_code": pickup.qr_code,
                "loading_end_time": pickup.loading_end_time,
            }
        )
        if self.fail:
            raise GenerationError("pdf down")
        return f"/storage/waybills/rahtikirja_{pickup.reference_number}_{len(self.calls)}.pdf"


@pytest.fixture
def app(tmp_path):
    app = create_app(
        TestConfig,
        overrides={
            "LOG_DIR": str(tmp_path / "logs"),
            "WAYBILL_STORAGE_PATH": str(tmp_path / "waybills"),
            "AZURE_CLIENT_SECRET": "",
            "OUTLOOK_USER_EMAIL": "",
        },
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def qr_generator():
    return FakeQrGenerator()


@pytest.fixture
def document_generator():
    return FakeDocumentGenerator()


@pytest.fixture
def services(app, clock, qr_generator, document_generator):
    return build_services(
        db.session,
        document_generator=document_generator,
        qr_generator=qr_generator,
        clock=clock,
    )


@pytest.fixture
def store(services):
    return services.store


@pytest.fixture
def make_pickup(store):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "reference_number": f"REF-{counter['n']:03d}",
            "company": "Acme",
            "scheduled_date": NOW.replace(hour=10, minute=0, second=0),
            "goods_description": "Steel pipes",
            "pickup_location": "Dock 4",
        }
        fields.update(overrides)
        return store.create(fields)

    return _make
