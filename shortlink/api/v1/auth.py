"""Authentication endpoints: register, login and current user."""

import structlog
from fastapi import APIRouter, status

from shortlink.core.database import AsyncSessionDep
from shortlink.core.deps import CurrentUser
from shortlink.core.security import create_access_token
from shortlink.schemas.user import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserResponse,
)
from shortlink.services import user as user_service

logger = structlog.get_logger()

router = APIRouter(tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, session: AsyncSessionDep) -> RegisterResponse:
    """Create an account with email and password."""
    user = await user_service.register_user(session, body)
    return RegisterResponse(
        message="User created successfully",
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, session: AsyncSessionDep) -> TokenResponse:
    """Exchange credentials for a bearer token."""
    user = await user_service.authenticate_user(session, body)
    token = create_access_token(user_id=user.id, email=user.email)
    logger.info("User logged in", user_id=user.id)
    return TokenResponse(token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(user: CurrentUser) -> UserResponse:
    """Get current authenticated user's information."""
    return UserResponse.model_validate(user)
