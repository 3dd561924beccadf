"""
Registration, login and token bodies.
"""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator


USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_.\-]+")


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    display_name: str = Field(..., min_length=1, max_length=100)
    # bcrypt reads at most 72 bytes; longer UTF-8 input is refused by hash_password
    password: str = Field(..., min_length=8, max_length=72)
    avatar_url: str | None = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not USERNAME_PATTERN.fullmatch(v):
            raise ValueError("Username may only contain letters, digits, '_', '.' and '-'")
        return v


class UserLogin(BaseModel):
    username: str
    password: str


class User(BaseModel):
    """Public profile; the password hash never leaves the repository layer."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    display_name: str
    avatar_url: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: User
