"""
Global error handling.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from wallet_login.core.errors import WalletLoginError

logger = logging.getLogger(__name__)

STATUS_CODE_MAP = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "SIGNATURE_FORMAT_ERROR": status.HTTP_400_BAD_REQUEST,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ALREADY_EXISTS": status.HTTP_409_CONFLICT,
    "AUTHENTICATION_ERROR": status.HTTP_401_UNAUTHORIZED,
}


async def wallet_login_exception_handler(
    request: Request, exc: WalletLoginError
) -> JSONResponse:
    """
    Convert domain exceptions to HTTP responses.

    Anything without an explicit mapping is an internal error and keeps its
    details in the log only.
    """
    status_code = STATUS_CODE_MAP.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    headers = None

    if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "internal error on %s %s", request.method, request.url.path, exc_info=exc
        )
        detail = "Internal error"
    else:
        detail = exc.message

    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(status_code=status_code, content={"detail": detail}, headers=headers)


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies are plain bad requests."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request body"},
    )
