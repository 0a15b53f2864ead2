from __future__ import annotations

import logging

from fastapi import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from rentflow.db import get_engine
from rentflow.notifications.service import NotificationService
from rentflow.repositories.sqlalchemy import (
    SQLAlchemyBillRepository,
    SQLAlchemyRoomRepository,
    SQLAlchemyTenantRepository,
)
from rentflow.services.bill_service import BillService
from rentflow.services.payment_service import PaymentService

logger = logging.getLogger(__name__)


class DBConnectionMiddleware:
    """Pure ASGI middleware, one DB connection per request at most."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        request.state.db_conn = None
        try:
            await self.app(scope, receive, send)
        finally:
            conn = getattr(request.state, "db_conn", None)
            if conn is not None:
                conn.close()
                logger.debug("DB connection closed for %s %s", request.method, request.url.path)


def _get_conn(request: Request):
    """Lazy per-request connection, created on first use and closed by the middleware."""
    if request.state.db_conn is None:
        logger.debug("Creating DB connection for %s %s", request.method, request.url.path)
        request.state.db_conn = get_engine().connect()
    return request.state.db_conn


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notifications


def get_bill_service(request: Request) -> BillService:
    conn = _get_conn(request)
    return BillService(
        SQLAlchemyBillRepository(conn),
        SQLAlchemyTenantRepository(conn),
        SQLAlchemyRoomRepository(conn),
        request.app.state.pdf_service,
        get_notification_service(request),
    )


def get_payment_service(request: Request) -> PaymentService:
    return PaymentService(get_bill_service(request), request.app.state.payment_gateway)
