"""
FastAPI Authentication Dependencies
This module provides FastAPI dependency functions that can be injected into route handlers
to reach the AuthService and to resolve the bearer token into a user record.
Usage in endpoints:
    @router.get("/protected")
    def protected_route(user: UserRecord = Depends(get_current_user)):
        # user is the registry record the token's subject resolves to
        return {"user": user.address}
Flow:
1. Client sends request with Authorization: Bearer <token> header
2. FastAPI calls get_current_user() dependency
3. _extract_token() extracts token from header
4. AuthService.authorize() validates the JWT and looks the subject up in the registry
5. Returns the UserRecord to the route handler
"""

from typing import Optional

from fastapi import Depends, Header, Request

from wallet_login.core.errors import AuthError
from wallet_login.models.users import UserRecord
from wallet_login.services.authentication import AuthService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _extract_token(authorization: Optional[str]) -> str:
    """
    Extract JWT token from Authorization header.
    Args:
        authorization: The Authorization header value (e.g., "Bearer eyJ...")
    Returns:
        The extracted token string
    Raises:
        AuthError: If Authorization header is missing or not a bearer token
    """
    if not authorization:
        raise AuthError()

    authorization = authorization.strip()
    if not authorization.lower().startswith("bearer "):
        raise AuthError()
    token = authorization[7:].strip()
    if not token:
        raise AuthError()

    return token


def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    service: AuthService = Depends(get_auth_service),
) -> UserRecord:
    """
    returning the authorized user record.
    """
    return service.authorize(_extract_token(authorization))
