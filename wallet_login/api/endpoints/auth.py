from typing import List

from fastapi import APIRouter, Depends, status

from wallet_login.core.dependencies import get_auth_service
from wallet_login.core.errors import AuthError, NotFoundError
from wallet_login.services.authentication import AuthService
import wallet_login.schemas.auth as schemas

router = APIRouter()
group_tags: List[str] = ["Auth"]


@router.post(
    "/register",
    tags=group_tags,
    response_model=schemas.RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    body: schemas.RegisterRequest, service: AuthService = Depends(get_auth_service)
) -> schemas.RegisterResponse:
    """Register an account address and assign it a fresh nonce."""
    user = service.register(body.address)
    return schemas.RegisterResponse(address=user.address)


@router.get(
    "/users/{address}/nonce",
    tags=group_tags,
    response_model=schemas.NonceResponse,
)
def user_nonce(
    address: str, service: AuthService = Depends(get_auth_service)
) -> schemas.NonceResponse:
    """Return the nonce the account must sign for its next sign-in."""
    return schemas.NonceResponse(nonce=service.get_nonce(address))


@router.post(
    "/signin",
    tags=group_tags,
    response_model=schemas.SigninResponse,
)
def signin(
    body: schemas.SigninRequest, service: AuthService = Depends(get_auth_service)
) -> schemas.SigninResponse:
    """Verify a signed nonce and return an access token."""
    try:
        token = service.sign_in(body.address, body.nonce, body.sig)
    except NotFoundError:
        # unknown accounts get the same answer as a bad signature
        raise AuthError()
    return schemas.SigninResponse(access=token)
