import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi import APIRouter

from .config import Settings, get_settings
# API routers
from .api.v1.auth import router as auth_router
from .api.v1.chat import router as chat_router
from .api.v1.chat_rooms import router as chat_rooms_router
from .api.v1.logs import router as logs_router
from .api.v1.messages import router as messages_router
from .api.v1.stats import router as stats_router
from .core.auth import RevokedTokens
from .core.errors import ChatError, ErrorKind
from .core.identity import LocalIdentityProvider
from .core.logging import setup_logging
from .core.memory_store import MemoryStore
from .db.base import ChatBackend
from .db.session import Database
from .db.sql_store import SqlStore
from .providers.base import CompletionProvider, IdentityProvider
from .providers.firebase_auth import FirebaseIdentityProvider
from .providers.openai import OpenAIProvider

logger = logging.getLogger(__name__)

HTTP_CODES = {
    400: ErrorKind.VALIDATION.code,
    401: ErrorKind.AUTH.code,
    404: ErrorKind.NOT_FOUND.code,
    422: ErrorKind.VALIDATION.code,
    429: "resource-exhausted",
}


def _error(status: int, code: str, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": {"code": code, "message": message}}, headers=headers)


def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[ChatBackend] = None,
    completion_provider: Optional[CompletionProvider] = None,
    identity_provider: Optional[IdentityProvider] = None,
) -> FastAPI:
    settings = settings or get_settings()
    # Setup logging early
    setup_logging(settings.log_level)
    app = FastAPI(title="RexChat Server", version="0.1.0")

    database: Optional[Database] = None
    if backend is None:
        if settings.memory_mode:
            backend = MemoryStore()
        else:
            database = Database(settings.database_url)
            backend = SqlStore(database)
    if identity_provider is None:
        if settings.firebase_api_key:
            identity_provider = FirebaseIdentityProvider(settings.firebase_api_key)
        else:
            logger.warning("No Firebase key configured; using in-process accounts")
            identity_provider = LocalIdentityProvider()

    app.state.settings = settings
    app.state.backend = backend
    app.state.completion_provider = completion_provider or OpenAIProvider(settings)
    app.state.identity_provider = identity_provider
    app.state.revoked_tokens = RevokedTokens()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(o).rstrip("/") for o in settings.allowed_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChatError)
    async def _chat_error(request: Request, exc: ChatError) -> JSONResponse:
        if exc.kind in (ErrorKind.STORE, ErrorKind.MODEL):
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc.__cause__)
        return _error(exc.http_status, exc.code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = HTTP_CODES.get(exc.status_code, ErrorKind.STORE.code)
        return _error(exc.status_code, code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, ErrorKind.VALIDATION.code, "Invalid request payload")

    # Mount API v1
    api_v1 = APIRouter()
    api_v1.include_router(auth_router, prefix="/v1")
    api_v1.include_router(chat_router, prefix="/v1")
    api_v1.include_router(chat_rooms_router, prefix="/v1")
    api_v1.include_router(messages_router, prefix="/v1")
    api_v1.include_router(stats_router, prefix="/v1")
    api_v1.include_router(logs_router, prefix="/v1")
    app.include_router(api_v1, prefix="/api")

    @app.on_event("startup")
    async def _startup() -> None:
        if database is not None:
            # Ensure tables exist
            await database.init()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        if database is not None:
            await database.dispose()

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/")
    def root():
        return {"service": "rexchat", "version": "0.1.0"}

    return app


app = create_app()
