from __future__ import annotations

import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rentflow.db import dispose_engine, initialize_db
from rentflow.exceptions import (
    BillAlreadyPaidError,
    BillNotFoundError,
    DuplicateBillError,
    PaymentError,
    PaymentGatewayError,
    PaymentGatewayUnavailableError,
    PdfStorageError,
)
from rentflow.logging import configure_logging, reconfigure
from rentflow.notifications.service import build_notification_service
from rentflow.payments.razorpay import build_payment_gateway
from rentflow.services.pdf_service import build_pdf_service
from rentflow.settings import settings
from web.deps import DBConnectionMiddleware
from web.routes.bill import router as bill_router
from web.routes.notifications import router as notifications_router
from web.routes.payments import router as payments_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    initialize_db()
    # Re-apply logging config, Alembic's fileConfig may have overridden it
    reconfigure()
    app.state.pdf_service = build_pdf_service(settings)
    app.state.notifications = build_notification_service(settings)
    app.state.payment_gateway = build_payment_gateway(settings)
    logger.info("Application started")
    try:
        yield
    finally:
        await app.state.notifications.aclose()
        await app.state.payment_gateway.aclose()
        dispose_engine()
        logger.info("Application stopped")


app = FastAPI(title="rentflow", redoc_url=None, lifespan=lifespan)

app.add_middleware(DBConnectionMiddleware)

app.include_router(bill_router)
app.include_router(notifications_router)
app.include_router(payments_router)


@app.exception_handler(BillNotFoundError)
async def not_found_handler(request: Request, exc: BillNotFoundError):
    return JSONResponse({"detail": str(exc)}, status_code=404)


@app.exception_handler(DuplicateBillError)
@app.exception_handler(BillAlreadyPaidError)
async def conflict_handler(request: Request, exc: Exception):
    return JSONResponse({"detail": str(exc)}, status_code=409)


@app.exception_handler(PaymentError)
async def payment_rejected_handler(request: Request, exc: PaymentError):
    return JSONResponse({"detail": str(exc)}, status_code=400)


@app.exception_handler(PaymentGatewayUnavailableError)
async def payment_unavailable_handler(request: Request, exc: PaymentGatewayUnavailableError):
    return JSONResponse({"detail": str(exc)}, status_code=503)


@app.exception_handler(PaymentGatewayError)
async def payment_gateway_handler(request: Request, exc: PaymentGatewayError):
    logger.error("Payment gateway failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"detail": "Payment provider error"}, status_code=502)


@app.exception_handler(PdfStorageError)
async def pdf_unavailable_handler(request: Request, exc: PdfStorageError):
    logger.error("PDF unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"detail": "PDF is temporarily unavailable"}, status_code=503)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception on %s %s:\n%s",
        request.method,
        request.url.path,
        traceback.format_exc(),
    )
    return JSONResponse({"detail": "Internal Server Error"}, status_code=500)


@app.get("/health")
async def health():
    return {"status": "ok"}
