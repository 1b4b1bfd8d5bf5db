"""
Database and API schemas for the Signals & Feed API.

Stored documents use snake_case field names in three MongoDB collections:
- User -> "users"
- Signal -> "signals"
- FeedPost -> "feedposts" (comments embedded)

API bodies use camelCase (isPremium, imageUrl, createdAt, createdBy)
through the ApiModel alias generator.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from bson import ObjectId
from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Role = Literal["user", "admin"]
SignalType = Literal["free", "premium"]
SIGNAL_TYPES = ("free", "premium")


# ----------------- Stored documents -----------------

class User(BaseModel):
    email: str = Field(..., description="Email address, stored exactly as submitted")
    password_hash: str = Field(..., description="bcrypt hash of the password")
    is_premium: bool = Field(False, description="Premium tier flag")
    role: Role = Field("user", description="Role for permissions")


class Signal(BaseModel):
    title: Optional[str] = Field(None, description="Signal headline")
    description: Optional[str] = Field(None, description="Signal body")
    type: SignalType = Field(..., description="Visibility tier")
    created_by: str = Field(..., description="User ID of creator")


class Comment(BaseModel):
    id: str = Field(default_factory=lambda: str(ObjectId()), description="Comment ID")
    user: str = Field(..., description="User ID of commenter")
    text: str = Field(..., description="Comment text")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FeedPost(BaseModel):
    image_url: str = Field(..., description="Image URL")
    caption: str = Field(..., description="Post caption")
    likes: List[str] = Field(default_factory=list, description="User IDs that liked the post, each at most once")
    comments: List[Comment] = Field(default_factory=list, description="Append-only comments")
    created_by: str = Field(..., description="User ID of creator")


# ----------------- API models -----------------

class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def check_email(value: str) -> str:
    """Validate email syntax but keep the address exactly as given.

    Special-use domains such as .test and .local are accepted.
    """
    try:
        validate_email(value, check_deliverability=False, globally_deliverable=False)
    except EmailNotValidError:
        raise ValueError("Invalid email")
    return value


def as_utc(value: datetime) -> datetime:
    # MongoDB hands back naive UTC datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SignupRequest(ApiModel):
    email: str
    password: str = Field(..., min_length=6)

    @field_validator("email")
    @classmethod
    def email_syntax(cls, value: str) -> str:
        return check_email(value)


class UserSignupRequest(SignupRequest):
    # null is accepted and means "not premium"
    is_premium: Optional[bool] = None


class LoginRequest(ApiModel):
    email: str
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def email_syntax(cls, value: str) -> str:
        return check_email(value)


class AuthUser(ApiModel):
    id: str
    email: str
    is_premium: Optional[bool] = None
    role: Optional[Role] = None


class AuthResponse(ApiModel):
    token: str
    user: AuthUser


class MessageResponse(ApiModel):
    message: str


class UserRef(ApiModel):
    id: str
    email: str


class SignalCreate(ApiModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None


class SignalOut(ApiModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    type: SignalType
    created_by: Optional[UserRef] = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class FeedPostCreate(ApiModel):
    image_url: Optional[str] = None
    caption: Optional[str] = None


class CommentCreate(ApiModel):
    text: Optional[str] = None


class CommentOut(ApiModel):
    id: str
    user: Optional[UserRef] = None
    text: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class FeedPostOut(ApiModel):
    id: str
    image_url: str
    caption: str
    likes: List[str] = []
    comments: List[CommentOut] = []
    created_by: Optional[UserRef] = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, value: datetime) -> datetime:
        return as_utc(value)
