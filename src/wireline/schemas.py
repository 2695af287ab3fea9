"""Request and response bodies exchanged over the HTTP API."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    """Request body for registering a new user."""

    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=255)
    role: str = "user"


class AdminUserCreate(UserCreate):
    """Request body for an admin creating an account with a given role."""

    role: Literal["user", "admin"] = "user"


class UserLogin(BaseModel):
    """Request body for user login."""

    username: str
    password: str


class PasswordChange(BaseModel):
    """Request body for changing the caller's own password."""

    current_password: str
    new_password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    """JWT access and refresh tokens."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """Public view of a user record; never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    full_name: str
    email: str
    role: str
    status: int
    created_at: Optional[datetime] = None
    deletion_scheduled_at: Optional[datetime] = None


class AdminUserResponse(UserResponse):
    is_scheduled_for_deletion: bool = False
    days_to_deletion: Optional[int] = None


class ScheduledUser(BaseModel):
    id: int
    username: str
    email: str
    deletion_scheduled_at: datetime
    days_remaining: int


class CleanupStatusResponse(BaseModel):
    schedule_frequency: int
    scheduled_users: List[ScheduledUser]


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    version: str
