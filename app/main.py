from typing import Optional

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from app.core.config import Settings
from app.core.database.engine import Database
from app.features.permissions.dependencies import get_authorization_header
from app.features.permissions.routes import create_router
from app.features.permissions.service import PermissionService
from app.features.permissions.store import GrantStore, SqlAlchemyGrantStore
from app.utils import configure_logging, get_logger


log = get_logger(__name__)

VERSION = "0.1.0"


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.app.features."), timing=timing, tags=tags))


def create_app(settings: Settings, store: Optional[GrantStore] = None) -> FastAPI:
    """
    Build the API for the given settings.

    Args:
        settings: Startup configuration
        store: Grant store to use instead of the SQL store behind
            `settings.connection_string` (tests pass an in-memory one)
    """
    configure_logging(settings.log_level)
    log.info("Initializing server")

    app = FastAPI(
        title="Permission Ledger",
        description="Grants, revokes and checks permissions held by identities per service",
        version=VERSION,
        docs_url="/docs" if settings.enable_docs else None,
        redoc_url="/redoc" if settings.enable_docs else None,
        openapi_url="/openapi.json" if settings.enable_docs else None
    )

    database = Database(settings.connection_string) if store is None else None
    if store is None:
        store = SqlAlchemyGrantStore(database.sessions)

    app.state.settings = settings
    app.state.database = database
    app.state.permission_service = PermissionService(store, strict_templates=settings.strict_templates)

    limiter = Limiter(key_func=get_authorization_header)
    app.state.limiter = limiter

    app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

    if settings.enable_docs:
        log.warning("Docs enabled")
    if settings.allow_origin:
        log.warning("Setting allow origin to %s", settings.allow_origin)
        origins = [settings.allow_origin]
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError):
        errors = dict()
        for error in exc.errors():
            if "loc" not in error or "msg" not in error:
                continue
            key = error["loc"][-1]
            if key == "__root__":
                key = "root"
            errors[key] = error["msg"]
        log.info("Request validation error %s", errors)
        return JSONResponse(status_code=400, content=jsonable_encoder(errors))

    @app.exception_handler(RateLimitExceeded)
    def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
        return JSONResponse({"error": "You are going too fast"}, status_code=429)

    @app.on_event("startup")
    async def startup():
        """Create the ledger tables on application startup."""
        if database is not None:
            await database.init()
            log.info("Database initialized successfully")

    @app.on_event("shutdown")
    async def shutdown():
        if database is not None:
            await database.dispose()

    @app.get("/")
    async def root():
        """Root endpoint - API health check."""
        return {
            "message": "Permission Ledger API",
            "version": VERSION,
            "status": "online",
            "docs": "/docs" if settings.enable_docs else None,
            "authentication": {
                "info": "Permission endpoints require a Bearer token naming the creator",
                "creator_claim": settings.creator_claim,
            },
            "endpoints": [
                "POST /permissions/give",
                "DELETE /permissions/lose",
                "POST /permissions/has",
                "POST /permissions/get",
            ],
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    # Permission ledger routes
    app.include_router(create_router(limiter, settings.rate_limit), prefix="/permissions", tags=["permissions"])

    return app


app = create_app(Settings.from_env())
