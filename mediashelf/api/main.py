import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mediashelf.api.routers import admin, auth, library, lists, media, recommendations, reviews, system, watchlist
from mediashelf.core.exceptions import (
    AuthenticationError,
    ExternalAPIError,
    InviteCodeError,
    MediaShelfError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ValidationError,
)
from mediashelf.core.logging import setup_logging

logger = logging.getLogger(__name__)

# most specific first
STATUS_CODES: list[tuple[type[MediaShelfError], int]] = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (PermissionDeniedError, 403),
    (AuthenticationError, 401),
    (InviteCodeError, 400),
    (RateLimitError, 429),
    (ExternalAPIError, 502),
]


def status_for(exc: MediaShelfError) -> int:
    for cls, code in STATUS_CODES:
        if isinstance(exc, cls):
            return code
    return 500


async def mediashelf_error_handler(request: Request, exc: MediaShelfError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    else:
        logger.info("%s %s -> %d: %s", request.method, request.url.path, status, exc)

    headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimitError) else None
    detail = exc.user_message if status < 500 or isinstance(exc, ExternalAPIError) else "Something went wrong, please try again"
    return JSONResponse(status_code=status, content={"detail": detail}, headers=headers)


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="MediaShelf API",
        description="Watchlists, libraries, reviews and recommendations between friends",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MediaShelfError, mediashelf_error_handler)

    app.include_router(auth.router)
    app.include_router(watchlist.router)
    app.include_router(library.router)
    app.include_router(reviews.router)
    app.include_router(recommendations.router)
    app.include_router(lists.router)
    app.include_router(media.router)
    app.include_router(admin.router)
    app.include_router(system.router)

    @app.get("/")
    async def root():
        return {"status": "ok", "message": "MediaShelf API"}

    return app


app = create_app()
