"""
This module defines the Pydantic models for registered users and the
authentication request bodies.
"""

from typing import Optional

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    """Registration request. Fields are validated by the user store."""
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class UserPublic(BaseModel):
    """User data safe to return to clients and keep in the session."""
    id: str
    name: str
    email: str
    createdAt: Optional[str] = None


class UserInDB(UserPublic):
    """User record as persisted in the users file."""
    password: str = Field(..., description="bcrypt hash of the password")

    def public(self) -> UserPublic:
        return UserPublic(**self.model_dump(exclude={"password"}))
