"""
# Club Admin API - Main Application Module

This module is the **entry point** and **lifecycle orchestrator** of the Club Admin API FastAPI
application.

## Architecture Overview

```
┌─────────────────────────────────────────────────────────────┐
│                    FastAPI Application                       │
│  ┌───────────────────────────────────────────────────────┐  │
│  │             Lifespan Context Manager                  │  │
│  │  ┌─────────┐  ┌──────────┐  ┌─────────────────────┐  │  │
│  │  │ Startup │─▶│ Running  │─▶│     Shutdown        │  │  │
│  │  └─────────┘  └──────────┘  └─────────────────────┘  │  │
│  └───────────────────────────────────────────────────────┘  │
│                                                              │
│  ┌──────────────┐  ┌──────────────────────────────────────┐ │
│  │  Middleware  │  │   Routers (/api/...)                 │ │
│  │  - CORS      │  │  auth, password-reset, admin, clubs, │ │
│  │  - Logging   │  │  events, users, first-login          │ │
│  └──────────────┘  └──────────────────────────────────────┘ │
└─────────────────────────────────────────────────────────────┘
                              │
                              ▼
                        ┌──────────┐
                        │ MongoDB  │
                        └──────────┘
```

## Lifespan

**Startup:**
1. **Database Connection**: connects to MongoDB with retries.
2. **Index Creation**: creates or verifies the unique, text and audit log indexes.
3. **Bootstrap**: seeds the default administrator when `AUTO_CREATE_ADMIN` is on and none exists.

**Shutdown:** disconnects from MongoDB.

## Error Responses

Every error leaves the API as `{"success": false, "message": ...}`:

- `ClubAdminError` subclasses keep their own status code (400, 401, 403, 404, 500).
- `HTTPException` keeps its status and headers (`WWW-Authenticate` on 401).
- Request validation errors answer **400** with the first problem as the message.
- Anything else answers a generic **500** without internal details.

## Usage Example

```bash
uvicorn club_admin_api.main:app --reload --host 0.0.0.0 --port 3000
```

- **Swagger UI**: `http://localhost:3000/docs`
- **Prometheus Metrics**: `http://localhost:3000/metrics`

## Global Module Attributes

Attributes:
    logger (Logger): Main application logger.
    app (FastAPI): The ASGI application.
"""

from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from club_admin_api import __version__
from club_admin_api.config import settings
from club_admin_api.database import db_manager
from club_admin_api.errors import ClubAdminError
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.routes import clubs, events, first_login, password_reset, users
from club_admin_api.routes.admin import management_router as admin_management_router
from club_admin_api.routes.admin import router as admin_router
from club_admin_api.routes.auth import router as auth_router
from club_admin_api.services.admin_service import admin_service
from club_admin_api.utils.logging_utils import (
    RequestLoggingMiddleware,
    get_client_ip,
    log_application_lifecycle,
    log_error_with_context,
)

logger = get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Connect to MongoDB, prepare indexes and seed the default administrator, then clean up.

    Raises:
        Exception: Startup failures are logged with context and re-raised so the server stops.
    """
    startup_start_time = time.time()
    log_application_lifecycle(
        "startup_initiated",
        {
            "app_name": "Club Admin API",
            "version": __version__,
            "environment": "production" if settings.is_production else "development",
            "debug_mode": settings.DEBUG,
        },
    )

    try:
        db_connect_start = time.time()
        logger.info("Initiating database connection...")
        await db_manager.connect()
        log_application_lifecycle(
            "database_connected",
            {
                "connection_duration": f"{time.time() - db_connect_start:.3f}s",
                "database_name": settings.MONGODB_DATABASE,
                "connection_url": (
                    settings.MONGODB_URL.split("@")[-1] if "@" in settings.MONGODB_URL else settings.MONGODB_URL
                ),
            },
        )

        indexes_start = time.time()
        logger.info("Creating/verifying database indexes...")
        await db_manager.create_indexes()
        log_application_lifecycle("database_indexes_ready", {"indexes_duration": f"{time.time() - indexes_start:.3f}s"})

        if settings.AUTO_CREATE_ADMIN:
            admin_id = await admin_service.ensure_default_admin()
            log_application_lifecycle("default_admin_checked", {"created": admin_id is not None})

    except Exception as e:
        log_error_with_context(e, {"operation": "application_startup"})
        raise

    log_application_lifecycle("startup_completed", {"startup_duration": f"{time.time() - startup_start_time:.3f}s"})

    yield

    shutdown_start_time = time.time()
    log_application_lifecycle("shutdown_initiated", {})
    try:
        logger.info("Disconnecting from database...")
        await db_manager.disconnect()
        log_application_lifecycle("database_disconnected", {})
    except Exception as e:
        log_error_with_context(e, {"operation": "database_disconnection"})

    log_application_lifecycle(
        "shutdown_completed", {"total_shutdown_duration": f"{time.time() - shutdown_start_time:.3f}s"}
    )


app = FastAPI(
    title="Club Admin API",
    description="""
    ## Club Admin API

    Administrative backend of the student-club platform.

    ### Features
    - **Multi-role authentication**: administrators, clubs and staff users share one login
    - **Club management**: creation, review, profiles and first-login onboarding
    - **Events**: proposal by clubs, validation by administrators, public agenda
    - **Audit log**: every significant action, browsable and maintainable by administrators
    """,
    version=__version__,
    lifespan=lifespan,
    redirect_slashes=False,
    openapi_tags=[
        {"name": "auth", "description": "Login, logout, token verification and password change"},
        {"name": "password-reset", "description": "Password recovery by emailed link"},
        {"name": "admin", "description": "Dashboard, audit log, club and event review"},
        {"name": "clubs", "description": "Club directory, management and club profile space"},
        {"name": "events", "description": "Event agenda, proposal and validation"},
        {"name": "users", "description": "Staff user management"},
        {"name": "first-login", "description": "Club onboarding on first login"},
        {"name": "System", "description": "Service information and health"},
    ],
)


# Exception handlers


@app.exception_handler(ClubAdminError)
async def club_admin_error_handler(request: Request, exc: ClubAdminError):
    if exc.status_code >= 500:
        log_error_with_context(exc, {"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": str(error.get("msg", "")).removeprefix("Value error, "),
        }
        for error in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Données invalides"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"success": False, "message": message, "errors": errors}
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log_error_with_context(
        exc, {"path": request.url.path, "method": request.method, "client_ip": get_client_ip(request)}
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Erreur interne du serveur"},
    )


# Middleware

cors_origins = ["http://localhost:3000", "http://localhost:5173", settings.FRONTEND_URL, *settings.cors_origin_list]
cors_origins = list(dict.fromkeys(cors_origins))
logger.info("Configuring CORS with origins: %s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    max_age=3600,
)
app.add_middleware(RequestLoggingMiddleware)
log_application_lifecycle(
    "middleware_configured", {"middleware": ["CORSMiddleware", "RequestLoggingMiddleware"], "cors_origins": cors_origins}
)


# Routers

routers_config = [
    ("auth", auth_router, "Authentication endpoints"),
    ("password_reset", password_reset.router, "Password recovery endpoints"),
    ("admin", admin_router, "Administrator dashboard, audit log and review endpoints"),
    ("admin_management", admin_management_router, "Administrator account bootstrap and maintenance endpoints"),
    ("clubs", clubs.router, "Club directory and management endpoints"),
    ("events", events.router, "Event endpoints"),
    ("users", users.router, "Staff user management endpoints"),
    ("first_login", first_login.router, "Club onboarding endpoints"),
]

for router_name, router, description in routers_config:
    app.include_router(router)
    logger.info("Included %s router: %s", router_name, description)

log_application_lifecycle("routers_configured", {"routers": [name for name, _, _ in routers_config]})


@app.get("/", tags=["System"])
async def root():
    return {
        "success": True,
        "message": "API Club Admin - Esprit Student",
        "version": __version__,
        "endpoints": {
            "auth": "/api/auth",
            "passwordReset": "/api/password-reset",
            "admin": "/api/admin",
            "adminManagement": "/api/admin-management",
            "clubs": "/api/clubs",
            "events": "/api/events",
            "users": "/api/users",
            "firstLogin": "/api/first-login",
        },
    }


@app.get("/health", tags=["System"])
async def health():
    """Liveness plus a MongoDB ping. Answers 503 while the database is unreachable."""
    database_ok = await db_manager.health_check()
    body = {"success": database_ok, "status": "ok" if database_ok else "degraded", "database": database_ok}
    return JSONResponse(status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE, content=body)


logger.info("Setting up Prometheus metrics instrumentation...")
instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    should_respect_env_var=False,
    should_instrument_requests_inprogress=True,
)
instrumentator.instrument(app).expose(app, include_in_schema=False, endpoint="/metrics")
log_application_lifecycle("prometheus_configured", {"metrics_endpoint": "/metrics"})


def run():
    """Console entry point."""
    uvicorn.run("club_admin_api.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG, log_level="info")


if __name__ == "__main__":
    run()
