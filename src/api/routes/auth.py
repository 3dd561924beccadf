"""
Authentication routes for user registration and login.
Both issue a JWT bearer access token.
"""

import logging

from fastapi import APIRouter, status

from src.api.deps import Users
from src.core.exceptions import AuthenticationError, ValidationError
from src.core.security import create_access_token, hash_password, verify_password
from src.schemas.auth import TokenResponse, User, UserCreate, UserLogin


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_response(user: User) -> TokenResponse:
    issued = create_access_token(user.id)
    return TokenResponse(access_token=issued.token, expires_in=issued.expires_in, user=user)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, users: Users) -> TokenResponse:
    """
    Registers a new user account and signs it in.

    Args:
        user_data: Registration details (username, display name, password)
        users: User repository

    Returns:
        JWT access token and user data
    """
    if await users.get_user_by_username(user_data.username):
        raise ValidationError("Username already taken")

    user = await users.create_user(
        username=user_data.username,
        display_name=user_data.display_name,
        password_hash=hash_password(user_data.password),
        avatar_url=user_data.avatar_url,
    )
    logger.info(f"Registered user {user.username} ({user.id})")
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(credentials: UserLogin, users: Users) -> TokenResponse:
    """
    Authenticates a user and returns an access token.
    Seeded demo users have no password and cannot log in.
    """
    stored = await users.get_user_credentials(credentials.username)
    if stored is None:
        raise AuthenticationError("Invalid username or password")

    user, password_hash = stored
    if not password_hash or not verify_password(credentials.password, password_hash):
        raise AuthenticationError("Invalid username or password")

    return _token_response(user)
