"""FastAPI application entry point."""

import json
import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware

from gastro.api.routes import api_router
from gastro.core.config import settings
from gastro.core.rate_limit import limiter
from gastro.core.rbac import context_from_payload
from gastro.core.security import decode_access_token
from gastro.db.base import Base
from gastro.db.session import SessionLocal, engine
from gastro.services.exceptions import (
    ConcurrentModificationError,
    GastroError,
    InsufficientStockError,
    NotFoundError,
    OrderStateError,
    PermissionDeniedError,
    ValidationError,
)
from gastro.services.realtime import notifier

import gastro.models  # noqa: F401  (register tables on Base.metadata)


class JSONFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging() -> None:
    """JSON lines in production, human-readable in debug."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))
    root_logger.handlers.clear()

    if settings.debug:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)


configure_logging()
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging all HTTP requests and responses."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in ["/health", "/docs", "/openapi.json"]:
            return await call_next(request)

        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
        except Exception as e:
            request_logger.error(
                f"Error: {request.method} {request.url.path} - "
                f"Exception: {e} - Time: {time.time() - start_time:.3f}s - Client: {client_ip}"
            )
            raise

        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        request_logger.log(
            log_level,
            f"{request.method} {request.url.path} - Status: {response.status_code} - "
            f"Time: {time.time() - start_time:.3f}s - Client: {client_ip}",
        )
        return response


ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    OrderStateError: status.HTTP_409_CONFLICT,
    InsufficientStockError: status.HTTP_409_CONFLICT,
    ConcurrentModificationError: status.HTTP_409_CONFLICT,
}


async def gastro_error_handler(request: Request, exc: GastroError) -> JSONResponse:
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    logger.info(f"{request.method} {request.url.path} -> {status_code} {exc.code}: {exc.message}")
    content = {"detail": exc.message, "code": exc.code}
    if exc.details is not None:
        content["details"] = exc.details
    if isinstance(exc, ConcurrentModificationError):
        content["retryable"] = True
    return JSONResponse(status_code=status_code, content=content)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting gastro API")
    if settings.database_url.startswith("sqlite"):
        # Migrations manage other backends
        Base.metadata.create_all(bind=engine)
    yield
    logger.info("Shutting down gastro API")


app = FastAPI(
    title="Gastro API",
    description="Restaurant orders, stock ledger and reporting",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(GastroError, gastro_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Liveness plus a database round trip."""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        database = "error"
    finally:
        db.close()
    return {"status": "ok" if database == "ok" else "degraded", "database": database}


@app.websocket("/ws/changes")
async def changes_websocket(websocket: WebSocket, token: str = Query(...)):
    """Refresh triggers for one restaurant. The token picks the restaurant."""
    ctx = context_from_payload(decode_access_token(token))
    if ctx is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    if not await notifier.connect(websocket, ctx.restaurant_id):
        return
    try:
        while True:
            # Clients only listen; anything they send is treated as a keepalive
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        notifier.disconnect(websocket, ctx.restaurant_id)
