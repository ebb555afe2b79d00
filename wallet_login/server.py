"""
FastAPI application factory.

Builds the registry, token provider and nonce generator once and wires them into
a single AuthService stored on ``app.state``. Nothing here is module-global, so
tests can build as many isolated apps as they like.
"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from wallet_login.api.endpoints import auth, health, user
from wallet_login.api.errors import (
    request_validation_exception_handler,
    wallet_login_exception_handler,
)
from wallet_login.core.config import Settings
from wallet_login.core.config import settings as default_settings
from wallet_login.core.errors import WalletLoginError
from wallet_login.core.jwt_utils import TokenProvider
from wallet_login.core.logging_config import setup_logging
from wallet_login.core.nonce import NonceGenerator
from wallet_login.db.registry import UserRegistry
from wallet_login.services.authentication import AuthService

logger = logging.getLogger(__name__)


def build_auth_service(settings: Settings) -> AuthService:
    if not settings.ENCODE_KEY:
        raise RuntimeError("ENCODE_KEY is not configured")

    tokens = TokenProvider(
        secret=settings.ENCODE_KEY,
        issuer=settings.TOKEN_ISSUER,
        ttl=timedelta(seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS),
        algorithm=settings.ENCODE_ALGORITHM,
    )
    return AuthService(registry=UserRegistry(), tokens=tokens, nonces=NonceGenerator())


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory - creates and configures FastAPI app.

    Args:
        settings: Optional Settings instance (for testing)

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = default_settings

    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
    )
    app.state.auth_service = build_auth_service(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    app.add_exception_handler(WalletLoginError, wallet_login_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(user.router)

    logger.info("%s %s ready", settings.PROJECT_NAME, settings.VERSION)
    return app
