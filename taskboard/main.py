import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from taskboard.config import settings
from taskboard.core.context import create_context
from taskboard.core.errors import TaskboardError
from taskboard.database.supabase_client import SupabaseClient
from taskboard.modules.accounts import routes as accounts_routes
from taskboard.modules.auth import routes as auth_routes
from taskboard.modules.events import routes as events_routes
from taskboard.modules.files import routes as files_routes
from taskboard.modules.identity import routes as identity_routes
from taskboard.modules.invites import routes as invites_routes
from taskboard.modules.tasks import routes as tasks_routes
from taskboard.modules.users import routes as users_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup")
    # Tests install their own context before the app starts
    owns_context = getattr(app.state, "context", None) is None
    if owns_context:
        app.state.context = create_context(
            settings,
            SupabaseClient.get_client(),
            SupabaseClient.get_service_client(),
        )
    try:
        yield
    finally:
        if owns_context:
            app.state.context.close()
            app.state.context = None
        logger.info("Application shutdown")


limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
    lifespan=lifespan,
)
app.state.limiter = limiter
app.state.context = None
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(TaskboardError)
async def taskboard_exception_handler(request: Request, exc: TaskboardError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(APIError)
async def database_exception_handler(request: Request, exc: APIError):
    logger.error(f"Database request failed on {request.url.path}: {exc.message}")
    if settings.is_production:
        return JSONResponse(status_code=502, content={"detail": "Database request failed"})
    return JSONResponse(status_code=502, content={"detail": exc.message or str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(identity_routes.router, prefix="/api/v1")
app.include_router(accounts_routes.router, prefix="/api/v1")
app.include_router(invites_routes.router, prefix="/api/v1")
app.include_router(tasks_routes.router, prefix="/api/v1")
app.include_router(users_routes.router, prefix="/api/v1")
app.include_router(files_routes.router, prefix="/api/v1")
app.include_router(events_routes.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.app_name}", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: the application context is wired"""
    if getattr(app.state, "context", None) is None:
        return JSONResponse(status_code=503, content={"status": "starting"})
    return {"status": "ready"}
