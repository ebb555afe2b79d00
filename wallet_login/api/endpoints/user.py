from typing import List

from fastapi import APIRouter, Depends

from wallet_login.core.dependencies import get_current_user
from wallet_login.models.users import UserRecord
from wallet_login.schemas.auth import WelcomeResponse

router = APIRouter()
group_tags: List[str] = ["user"]


@router.get("/welcome", tags=group_tags, response_model=WelcomeResponse)
def welcome(user: UserRecord = Depends(get_current_user)) -> WelcomeResponse:
    """Protected greeting; requires a bearer token."""
    return WelcomeResponse(msg=f"Congrats {user.address} you made it")
