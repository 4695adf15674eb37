"""
# Club Sphere - Main Application Module

Entry point and lifecycle orchestrator for the Club Sphere FastAPI application.

## Architecture Overview

```
┌──────────────────────────────────────────────────────────┐
│                   FastAPI Application                     │
│  ┌────────────┐  ┌──────────────┐  ┌──────────────────┐  │
│  │ Middleware │  │   Routers    │  │   app.state      │  │
│  │ - CORS     │  │ - Users      │  │ - settings       │  │
│  │ - Metrics  │  │ - Clubs      │  │ - db_manager     │  │
│  │            │  │ - Payments   │  │ - identity       │  │
│  │            │  │ - Events     │  │ - payment gateway│  │
│  └────────────┘  └──────────────┘  └──────────────────┘  │
└──────────────────────────────────────────────────────────┘
          │                 │                   │
          ▼                 ▼                   ▼
     ┌─────────┐     ┌─────────────┐     ┌────────────┐
     │ MongoDB │     │  Firebase   │     │  Razorpay  │
     │         │     │  ID tokens  │     │  payments  │
     └─────────┘     └─────────────┘     └────────────┘
```

## Lifespan

**Startup:**
1. **Database**: connect to MongoDB (with retries) and ensure indexes.
2. **Collaborators**: build the identity verifier and payment gateway unless the
   caller of `create_app()` supplied them.

**Shutdown:**
1. Close the identity verifier's HTTP client.
2. Disconnect from MongoDB.

## Error Responses

All failures are rendered as `{"message": "..."}`:

| Source | Status |
|--------|--------|
| `ClubSphereError` subclasses | the class' `status_code` |
| Request body / query validation | 400 |
| Anything else | 500 `"Server error"` (details only in the log) |

## Running

```bash
uvicorn club_sphere.main:app --reload --port 3000
# or
python -m club_sphere.main
```

Prometheus metrics are exposed at `/metrics` when `METRICS_ENABLED` is true.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_fastapi_instrumentator import Instrumentator

from club_sphere.config import Settings, settings as default_settings
from club_sphere.database.manager import DatabaseManager
from club_sphere.errors import ClubSphereError
from club_sphere.managers.logging_manager import configure_logging, get_logger
from club_sphere.routes import clubs_router, events_router, payments_router, users_router
from club_sphere.services.identity_service import IdentityVerifier
from club_sphere.services.payment_gateway import PaymentGateway

logger = get_logger(prefix="[MAIN]")
lifecycle_logger = get_logger(prefix="[LIFECYCLE]")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Collaborators already present on `app.state` are used as-is; missing ones are
    built from the application settings.
    """
    startup_start_time = time.time()
    app_settings: Settings = app.state.settings
    lifecycle_logger.info(f"Startup initiated (debug={app_settings.DEBUG})")

    if app.state.db_manager is None:
        app.state.db_manager = DatabaseManager(app_settings)
    db_manager: DatabaseManager = app.state.db_manager

    await db_manager.connect()
    await db_manager.create_indexes()
    lifecycle_logger.info(f"Database ready: {app_settings.MONGODB_DATABASE}")

    if app.state.identity_verifier is None:
        app.state.identity_verifier = IdentityVerifier(app_settings.identity_project_id)
    if app.state.payment_gateway is None:
        app.state.payment_gateway = PaymentGateway(
            app_settings.RAZORPAY_KEY_ID, app_settings.RAZORPAY_KEY_SECRET.get_secret_value()
        )

    lifecycle_logger.info(f"Startup completed in {time.time() - startup_start_time:.3f}s")

    yield

    shutdown_start_time = time.time()
    lifecycle_logger.info("Shutdown initiated")
    verifier = app.state.identity_verifier
    if isinstance(verifier, IdentityVerifier):
        await verifier.aclose()
    await db_manager.disconnect()
    lifecycle_logger.info(f"Shutdown completed in {time.time() - shutdown_start_time:.3f}s")


async def handle_club_sphere_error(request: Request, exc: ClubSphereError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Rejected {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request", "errors": jsonable_errors(exc)},
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Server error"},
    )


def jsonable_errors(exc: RequestValidationError):
    return [{"loc": list(error.get("loc", ())), "msg": error.get("msg")} for error in exc.errors()]


def create_app(
    settings: Optional[Settings] = None,
    db_manager: Optional[DatabaseManager] = None,
    identity_verifier: Optional[IdentityVerifier] = None,
    payment_gateway: Optional[PaymentGateway] = None,
) -> FastAPI:
    """
    Build the application.

    Every external collaborator can be injected; whatever is left as `None` is
    constructed from `settings` during startup.
    """
    app_settings = settings or default_settings

    app = FastAPI(
        title="Club Sphere API",
        description="Club discovery, paid memberships and event registration.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.db_manager = db_manager
    app.state.identity_verifier = identity_verifier
    app.state.payment_gateway = payment_gateway

    app.add_exception_handler(ClubSphereError, handle_club_sphere_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    cors_origins = app_settings.cors_origin_list
    logger.info(f"Configuring CORS with origins: {cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials="*" not in cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
        max_age=3600,
    )

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    async def root():
        return "club-sphere server available"

    @app.get("/health", tags=["Health"])
    async def health(request: Request):
        manager: Optional[DatabaseManager] = request.app.state.db_manager
        database_ok = manager is not None and await manager.health_check()
        body = {"status": "healthy" if database_ok else "unhealthy", "database": database_ok}
        return JSONResponse(
            status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body,
        )

    for router in (users_router, clubs_router, payments_router, events_router):
        app.include_router(router)

    if app_settings.METRICS_ENABLED:
        instrumentator = Instrumentator(
            should_group_status_codes=True,
            should_ignore_untemplated=True,
            should_respect_env_var=False,
            should_instrument_requests_inprogress=True,
        )
        instrumentator.instrument(app).expose(app, include_in_schema=False, endpoint="/metrics")
        logger.info("Prometheus metrics exposed at /metrics")

    return app


configure_logging()
app = create_app()


def run() -> None:
    uvicorn.run(
        "club_sphere.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.DEBUG,
        log_level=default_settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
