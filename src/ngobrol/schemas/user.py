"""Pydantic schemas for accounts and authentication.

Learn: Pydantic v2 models validate request/response data. Separate
"Create" schemas (input) from "Read" schemas (output) for clean APIs.
UserRead is the public projection; it never carries the password hash.
"""

import enum
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"


class Status(str, enum.Enum):
    """Presence status shown to other users."""

    ONLINE = "online"
    OFFLINE = "offline"
    AWAY = "away"
    BUSY = "busy"


def _normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    display_name: Optional[str] = Field(None, max_length=100)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class UserUpdate(BaseModel):
    """Partial profile update — only fields present in the payload change.

    Learn: `model_dump(exclude_unset=True)` gives exactly the fields the
    client sent, which is what the store applies. Sending null is allowed
    for the nullable columns (clears them) but not for username/status.
    """

    username: Optional[str] = Field(None, min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    display_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=2048)
    status: Optional[Status] = None

    @model_validator(mode="after")
    def reject_null_required(self):
        for field in ("username", "status"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def changes(self) -> dict:
        values = self.model_dump(exclude_unset=True)
        if "status" in values:
            values["status"] = Status(values["status"]).value
        return values


class UserRead(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    status: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    user: UserRead
    token: str
    token_type: str = "bearer"


class MessageResponse(BaseModel):
    message: str
