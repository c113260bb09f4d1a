"""Map InstaClone exceptions to HTTP responses"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from instaclone.utils.exceptions import (
    DailyLimitExceeded,
    DuplicateError,
    InvalidCredentialsError,
    LockTimeoutError,
    MediaUploadError,
    NotFoundError,
    NotInvitedError,
    OAuthError,
    PermissionDeniedError,
    StorageError,
    TotalLimitReachedNeedsConfirmation,
)
from instaclone.utils.logger import get_logger

logger = get_logger(__name__)


def _detail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": message})


async def _daily_limit(request: Request, exc: DailyLimitExceeded) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_429_TOO_MANY_REQUESTS, content=exc.to_dict())


async def _total_limit(request: Request, exc: TotalLimitReachedNeedsConfirmation) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=exc.to_dict())


async def _not_invited(request: Request, exc: NotInvitedError) -> JSONResponse:
    return _detail(status.HTTP_403_FORBIDDEN, str(exc))


async def _invalid_credentials(request: Request, exc: InvalidCredentialsError) -> JSONResponse:
    return _detail(status.HTTP_401_UNAUTHORIZED, str(exc))


async def _oauth(request: Request, exc: OAuthError) -> JSONResponse:
    logger.warning("OAuth failure", code=exc.code, error=str(exc))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc), "code": exc.code})


async def _duplicate(request: Request, exc: DuplicateError) -> JSONResponse:
    return _detail(status.HTTP_400_BAD_REQUEST, str(exc))


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return _detail(status.HTTP_404_NOT_FOUND, str(exc))


async def _forbidden(request: Request, exc: PermissionDeniedError) -> JSONResponse:
    return _detail(status.HTTP_403_FORBIDDEN, str(exc))


async def _media(request: Request, exc: MediaUploadError) -> JSONResponse:
    return _detail(exc.status_code or status.HTTP_502_BAD_GATEWAY, str(exc))


async def _storage(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure", path=request.url.path, error=str(exc))
    return _detail(status.HTTP_500_INTERNAL_SERVER_ERROR, "Storage unavailable")


async def _lock_timeout(request: Request, exc: LockTimeoutError) -> JSONResponse:
    logger.warning("Request gave up waiting for lock", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Another upload is in progress, try again shortly"},
        headers={"Retry-After": "5"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DailyLimitExceeded, _daily_limit)
    app.add_exception_handler(TotalLimitReachedNeedsConfirmation, _total_limit)
    app.add_exception_handler(NotInvitedError, _not_invited)
    app.add_exception_handler(InvalidCredentialsError, _invalid_credentials)
    app.add_exception_handler(OAuthError, _oauth)
    app.add_exception_handler(DuplicateError, _duplicate)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(PermissionDeniedError, _forbidden)
    app.add_exception_handler(MediaUploadError, _media)
    app.add_exception_handler(StorageError, _storage)
    app.add_exception_handler(LockTimeoutError, _lock_timeout)
