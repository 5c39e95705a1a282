from contextlib import asynccontextmanager
import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator

from . import __version__
from .api.errors import register_exception_handlers
from .api.router import api_router
from .auth import AuthService
from .config import Settings, settings as default_settings
from .guard import AccessGuard
from .ids import IdGenerator
from .logging_utils import kv, setup_logging
from .store import CredentialStore, TaskStore
from .tasks import TaskService

logger = logging.getLogger("taskboard")

tags_metadata = [
    {"name": "auth", "description": "Authentication: register, login, profile, logout."},
    {"name": "tasks", "description": "Task management: per-user CRUD and progress summary."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """App startup/shutdown lifecycle."""
    # --- Startup ---
    setup_logging(app.state.settings.LOG_LEVEL)
    app.state.auth_service.start()
    logger.info(
        "startup %s",
        kv(hash_workers=app.state.settings.HASH_WORKERS, bcrypt_rounds=app.state.settings.BCRYPT_ROUNDS),
    )
    try:
        yield
    finally:
        # --- Shutdown ---
        app.state.auth_service.close()
        logger.info("shutdown complete")


def _wire_services(app: FastAPI, settings: Settings) -> None:
    """Build the stores and services once and hang them on app.state."""
    ids = IdGenerator()
    users = CredentialStore()
    tasks = TaskStore()
    auth_service = AuthService(users, ids, settings)

    app.state.settings = settings
    app.state.users = users
    app.state.tasks = tasks
    app.state.auth_service = auth_service
    app.state.access_guard = AccessGuard(auth_service)
    app.state.task_service = TaskService(tasks, ids, users, settings)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title="Taskboard API",
        version=__version__,
        description=(
            "JSON API for a personal task board. "
            "Register or log in to obtain a Bearer token and access the protected endpoints."
        ),
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    _wire_services(app, settings)

    @app.get("/health")
    def health():
        """Simple healthcheck endpoint."""
        return {"status": "ok"}

    @app.get("/live")
    def live():
        return {"status": "live"}

    @app.get("/ready")
    def ready(request: Request):
        state = request.app.state
        return {"status": "ready", "users": state.users.count(), "tasks": state.tasks.count()}

    app.include_router(api_router)

    # Unified error handlers
    register_exception_handlers(app)

    # Request ID + access log middleware
    @app.middleware("http")
    async def request_id_and_logging(request: Request, call_next):
        start = time.perf_counter()
        incoming = request.headers.get(settings.REQUEST_ID_HEADER)
        req_id = incoming or uuid.uuid4().hex
        request.state.request_id = req_id
        response = await call_next(request)
        response.headers.setdefault(settings.REQUEST_ID_HEADER, req_id)
        duration_ms = int((time.perf_counter() - start) * 1000)
        logging.getLogger("taskboard.request").info(
            "method=%s path=%s status=%s duration_ms=%s request_id=%s",
            request.method,
            request.url.path,
            getattr(response, "status_code", "-"),
            duration_ms,
            req_id,
        )
        return response

    # --- Security: CORS and security headers ---

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault(
            "Permissions-Policy",
            "camera=(), microphone=(), geolocation=()",
        )
        path = request.url.path
        # Swagger/ReDoc pull their assets from a CDN; leave CSP off those pages
        if settings.SECURITY_CSP and not (path.startswith("/docs") or path.startswith("/redoc")):
            response.headers["Content-Security-Policy"] = settings.SECURITY_CSP
        if settings.SECURITY_ENABLE_HSTS:
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=15552000; includeSubDomains; preload"
            )
        return response

    # Prometheus metrics at /metrics; own registry so several apps can coexist (tests)
    Instrumentator(registry=CollectorRegistry()).instrument(app).expose(app, include_in_schema=False)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the default app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "taskboard.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_level=default_settings.LOG_LEVEL.lower(),
    )
