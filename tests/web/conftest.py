"""Web test fixtures: TestClient with shared in-memory SQLite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

from rentflow.notifications.service import NotificationService
from rentflow.notifications.whatsapp import WhatsAppDispatcher
from rentflow.payments.razorpay import RazorpayGateway
from rentflow.services.pdf_service import PdfService
from rentflow.storage.local import LocalStorage
from tests.conftest import create_schema, make_settings, seed_occupancy


def _make_test_engine():
    """Create a fresh in-memory SQLite engine with shared connection pool."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    with engine.connect() as conn:
        create_schema(conn)

    return engine


def seed_in_db(engine, **tenant_overrides):
    """Create a building, room and tenant. Shared helper for web route tests."""
    with engine.connect() as conn:
        return seed_occupancy(conn, **tenant_overrides)


@pytest.fixture()
def web_settings(tmp_path):
    return make_settings(
        storage_local_path=str(tmp_path / "invoices"),
        razorpay_key_id="rzp_test_key",
        razorpay_key_secret="rzp_test_secret",
    )


@pytest.fixture()
def notifications(web_settings):
    """Real notification service with delivery replaced by a mock."""
    service = NotificationService(web_settings, dispatcher=WhatsAppDispatcher([]))
    service.send_bill = AsyncMock()
    return service


@pytest.fixture()
def razorpay_requests():
    return []


@pytest.fixture()
def payment_gateway(web_settings, razorpay_requests):
    """Razorpay gateway whose orders API is answered in-process."""

    def handler(request: httpx.Request) -> httpx.Response:
        razorpay_requests.append(request)
        return httpx.Response(200, json={"id": f"order_TEST{len(razorpay_requests)}", "status": "created"})

    return RazorpayGateway(web_settings, httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.fixture(autouse=True)
def web_test_db(monkeypatch, web_settings, notifications, payment_gateway):
    """Set up in-memory DB and patch the web app to use it."""
    engine = _make_test_engine()

    import web.deps as deps_module

    monkeypatch.setattr(deps_module, "get_engine", lambda: engine)

    import web.app as app_module

    monkeypatch.setattr(app_module, "initialize_db", lambda: None)
    monkeypatch.setattr(
        app_module,
        "build_pdf_service",
        lambda settings: PdfService(LocalStorage(web_settings.storage_local_path), web_settings),
    )
    monkeypatch.setattr(app_module, "build_notification_service", lambda settings: notifications)
    monkeypatch.setattr(app_module, "build_payment_gateway", lambda settings: payment_gateway)

    yield engine

    engine.dispose()


@pytest.fixture()
def test_engine(web_test_db):
    """Expose the test engine for helpers that need direct DB access."""
    return web_test_db


@pytest.fixture()
def occupancy(test_engine):
    return seed_in_db(test_engine)


@pytest.fixture()
def client():
    from starlette.testclient import TestClient

    from web.app import app

    with TestClient(app) as test_client:
        yield test_client
