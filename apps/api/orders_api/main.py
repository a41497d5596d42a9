import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from orders_api.config import allowed_origins, ensure_secure_runtime_settings, settings
from orders_api.db.migration_check import prepare_schema
from orders_api.db.session import engine
from orders_api.errors import OrderServiceError
from orders_api.integrations.errors import IntegrationError
from orders_api.observability import configure_logging, log_event, metrics_store, set_request_id
from orders_api.routers.health import router as health_router
from orders_api.routers.metrics import router as metrics_router
from orders_api.routers.notifications import router as notifications_router
from orders_api.routers.orders import router as orders_router
from orders_api.services.notification_hub import NotificationHub


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if not settings.testing:
        configure_logging()
    ensure_secure_runtime_settings()
    prepare_schema(engine)
    yield


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Order lifecycle for the marketplace: payment, delivery, extensions, approval",
    lifespan=lifespan,
)
app.state.notification_hub = NotificationHub()

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    set_request_id(request_id)

    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start

    response.headers["X-Request-ID"] = request_id
    metrics_store.increment("http_requests_total")
    metrics_store.observe("http_request_duration_seconds", elapsed)
    log_event(
        f"{request.method} {request.url.path} {response.status_code}",
        order_id=request.path_params.get("order_id"),
    )
    return response


@app.exception_handler(OrderServiceError)
async def order_service_error_handler(_request: Request, err: OrderServiceError) -> JSONResponse:
    metrics_store.increment(f"order_errors_{err.code.lower()}_total")
    return JSONResponse(status_code=err.status_code, content={"detail": err.as_detail()})


@app.exception_handler(IntegrationError)
async def integration_error_handler(_request: Request, err: IntegrationError) -> JSONResponse:
    code = status.HTTP_503_SERVICE_UNAVAILABLE if err.retryable else status.HTTP_502_BAD_GATEWAY
    return JSONResponse(
        status_code=code,
        content={"detail": err.as_detail()},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, _err: Exception) -> JSONResponse:
    log_event(
        f"unhandled error on {request.method} {request.url.path}",
        order_id=request.path_params.get("order_id"),
        level=logging.ERROR,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": {
                "code": "INTERNAL_ERROR",
                "message": "Internal server error",
                "retryable": False,
            }
        },
    )


app.include_router(health_router)
app.include_router(orders_router)
app.include_router(notifications_router)
app.include_router(metrics_router)
