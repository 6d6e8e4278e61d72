"""FastAPI application initialization."""

import traceback
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from techhive import __version__
from techhive.api.auth import router as auth_router
from techhive.api.middleware import (
    REQUEST_ID_HEADER,
    RequestIdMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from techhive.api.responses import build_envelope, error_response, request_id_of
from techhive.api.routes import router
from techhive.api.users import router as users_router
from techhive.config import Settings, get_settings
from techhive.errors import ApiError, InvalidJson, ValidationFailed
from techhive.services.auth_service import (
    AccountRegistry,
    CredentialIssuer,
    TokenAuthenticator,
    TokenRevocationList,
)
from techhive.services.logging_service import (
    RequestLogFile,
    configure_logging,
    get_logger,
)
from techhive.services.rate_limiter import AllowAllRateLimiter, RateLimiter
from techhive.services.user_service import UserService
from techhive.services.user_store import UserStore, demo_users


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)
    logger = get_logger("main")

    logger.info(
        "application_started",
        version=__version__,
        environment=settings.environment,
        users=len(app.state.user_store),
        accounts=len(app.state.accounts),
    )

    yield

    logger.info("application_shutdown", revoked_count=len(app.state.revocations))


def _validation_messages(exc: RequestValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error.get("loc", ["unknown"]))
        messages.append(f"Field '{field}': {error.get('msg', 'Validation failed')}")
    return messages or ["Request validation failed"]


def _fallback_headers(request: Request) -> dict:
    # Runs outside the middleware stack, so the headers it would add are set here.
    headers = dict(SecurityHeadersMiddleware.HEADERS)
    request_id = request_id_of(request)
    if request_id:
        headers[REQUEST_ID_HEADER] = request_id
    return headers


def register_exception_handlers(app: FastAPI) -> None:
    """Map every failure onto the standard error envelope."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        structlog.get_logger().info(
            "api_error",
            code=exc.code,
            status_code=exc.status_code,
            path=request.url.path,
        )
        return error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request parsing errors.

        Malformed JSON bodies report INVALID_JSON; anything else the
        framework rejects is reported as VALIDATION_ERROR with one message
        per problem.
        """
        if any(error.get("type") == "json_invalid" for error in exc.errors()):
            return error_response(request, InvalidJson())

        messages = _validation_messages(exc)
        structlog.get_logger().warning(
            "validation_error", path=request.url.path, errors=messages
        )
        return error_response(request, ValidationFailed(messages))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:
            message = f"Route {request.method} {request.url.path} not found"
            code = "ROUTE_NOT_FOUND"
        elif exc.status_code == 405:
            message = f"Method {request.method} not allowed on {request.url.path}"
            code = "METHOD_NOT_ALLOWED"
        else:
            message = str(exc.detail)
            code = "HTTP_ERROR"
        return JSONResponse(
            status_code=exc.status_code,
            content=build_envelope(request, success=False, error=message, code=code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Last-resort handler: generic 500, stack only outside production."""
        structlog.get_logger().error(
            "unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        stack = None
        if not app.state.settings.is_production:
            stack = "".join(traceback.format_exception(exc))
        return JSONResponse(
            status_code=500,
            content=build_envelope(
                request,
                success=False,
                error="Internal server error",
                code="INTERNAL_ERROR",
                stack=stack,
            ),
            headers=_fallback_headers(request),
        )


def create_app(
    settings: Optional[Settings] = None,
    *,
    user_store: Optional[UserStore] = None,
    accounts: Optional[AccountRegistry] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """Build the application with its own store, registry and revocation list.

    Args:
        settings: Settings to use; defaults to the cached environment settings
        user_store: Store to serve; defaults to one seeded per settings
        accounts: Credential registry; defaults to the built-in accounts
        rate_limiter: Login rate limiter; defaults to one that allows everything
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="TechHive User Management API",
        description="User records with token authentication and role-based access",
        version=__version__,
        lifespan=lifespan,
    )

    if user_store is None:
        user_store = UserStore(demo_users() if settings.seed_demo_data else None)
    if accounts is None:
        accounts = AccountRegistry.from_seeds(rounds=settings.bcrypt_rounds)
    revocations = TokenRevocationList()

    app.state.settings = settings
    app.state.user_store = user_store
    app.state.accounts = accounts
    app.state.revocations = revocations
    app.state.user_service = UserService(user_store)
    app.state.credential_issuer = CredentialIssuer(settings, accounts)
    app.state.authenticator = TokenAuthenticator(settings, accounts, revocations)
    app.state.rate_limiter = rate_limiter or AllowAllRateLimiter()

    register_exception_handlers(app)

    # Added innermost first: the request ID middleware wraps everything.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RequestLoggingMiddleware,
        log_file=RequestLogFile(settings.log_dir) if settings.request_log_enabled else None,
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(router)
    app.include_router(auth_router)
    app.include_router(users_router)

    return app


app = create_app()
