"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config.settings import settings
from src.mp_admin.api.router import router as admin_router
from src.mp_common.database import async_session_factory, engine, ping_database
from src.mp_common.errors import AppError, ValidationError
from src.mp_common.redis_client import close_redis, ping_redis
from src.mp_common.response import error_response
from src.mp_gateway.middleware.rate_limit import RateLimitMiddleware
from src.mp_gateway.middleware.request_log import RequestLogMiddleware
from src.mp_invoice.api.router import router as invoice_router
from src.mp_order.api.admin_router import router as admin_order_router
from src.mp_order.api.checkout_router import router as checkout_router
from src.mp_order.api.router import router as order_router
from src.mp_order.api.webhook_router import router as webhook_router
from src.mp_payout.api.router import router as payout_router
from src.mp_wallet.api.router import router as wallet_router
from src.mp_wallet.application.service import WalletApplicationService


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, make sure the platform wallet exists. Shutdown: dispose."""
    await ping_database()
    await ping_redis()
    async with async_session_factory() as session:
        await WalletApplicationService().ensure_platform_account(session)
    yield
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()))
    err = ValidationError(f"{location}: {first.get('msg', 'invalid request')}")
    return await app_error_handler(request, err)


app.include_router(wallet_router, prefix="/api/v1")
app.include_router(checkout_router, prefix="/api/v1")
app.include_router(order_router, prefix="/api/v1")
app.include_router(admin_order_router, prefix="/api/v1")
app.include_router(webhook_router, prefix="/api/v1")
app.include_router(invoice_router, prefix="/api/v1")
app.include_router(payout_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
