"""Authentication endpoints for local dev accounts.

In Firebase mode clients sign in with Firebase Authentication directly and
send the ID token; these endpoints are only served in local dev mode.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field

from candle.dependencies import _check_local_mode, get_user_service, local_create_user, local_login
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.users import UserService
from candle.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# Request Models
class SignupRequest(RequestModel):
    """Request model for user signup."""
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6)
    name: str = Field(default="", max_length=100)
    referral_code: Optional[str] = None


class LoginRequest(RequestModel):
    """Request model for user login."""
    email: str
    password: str


def _require_local_mode() -> None:
    if not _check_local_mode():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Sign in with Firebase Authentication",
        )


@router.post("/signup", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    users: UserService = Depends(get_user_service),
) -> ApiResponse:
    """Create a local account and its user profile."""
    _require_local_mode()

    auth_result = local_create_user(request.email, request.password, request.name)
    if auth_result is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use")

    user = users.create(auth_result["uid"], auth_result["email"], request.name, request.referral_code)
    logger.info(f"New user created: {user.email} (uid: {user.id})")

    return ApiResponse.success_response(
        {"uid": user.id, "email": user.email, "name": user.name, "token": auth_result["token"]},
        "Signup successful",
    )


@router.post("/login", response_model=ApiResponse)
async def login(request: LoginRequest) -> ApiResponse:
    """Authenticate with email and password."""
    _require_local_mode()

    auth_result = local_login(request.email, request.password)
    if auth_result is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    return ApiResponse.success_response(
        {"uid": auth_result["uid"], "email": auth_result["email"], "token": auth_result["token"]},
        "Login successful",
    )
