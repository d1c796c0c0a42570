"""
User model for the identity users collection.
"""
import base64
import secrets
from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mongo_identity.models.records import (
    IdentityUserClaim,
    IdentityUserLogin,
    IdentityUserRole,
    IdentityUserToken,
)

TKey = TypeVar("TKey")


def new_concurrency_stamp() -> str:
    """Fresh version token for optimistic concurrency."""
    return str(uuid4())


def new_security_stamp() -> str:
    """Fresh credential invalidation marker."""
    return base64.b32encode(secrets.token_bytes(20)).decode("ascii")


def default_key() -> str:
    """Default primary key generator for string keyed entities."""
    return str(uuid4())


class IdentityUser(BaseModel, Generic[TKey]):
    """
    User document model for the identity users collection.

    Claims, logins, tokens and role memberships are embedded, so a user and
    everything it owns are written by a single document operation.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[TKey] = Field(None, alias="_id", description="Primary key, immutable once created")
    user_name: Optional[str] = Field(None, description="Display user name")
    normalized_user_name: Optional[str] = Field(None, description="Lookup form of user_name, unique")
    email: Optional[str] = Field(None, description="Email address")
    normalized_email: Optional[str] = Field(None, description="Lookup form of email")
    email_confirmed: bool = Field(default=False, description="Whether the email was confirmed")
    password_hash: Optional[str] = Field(None, description="Opaque password hash")
    security_stamp: Optional[str] = Field(
        None,
        description="Changes whenever credentials change"
    )
    concurrency_stamp: str = Field(
        default_factory=new_concurrency_stamp,
        description="Version token checked on every write"
    )
    phone_number: Optional[str] = Field(None, description="Phone number")
    phone_number_confirmed: bool = Field(default=False, description="Whether the phone was confirmed")
    two_factor_enabled: bool = Field(default=False, description="Whether two factor auth is on")
    lockout_end: Optional[datetime] = Field(None, description="Locked out until this UTC time")
    lockout_enabled: bool = Field(default=False, description="Whether the user can be locked out")
    access_failed_count: int = Field(default=0, description="Consecutive failed credential checks")

    claims: list[IdentityUserClaim] = Field(default_factory=list)
    logins: list[IdentityUserLogin] = Field(default_factory=list)
    tokens: list[IdentityUserToken] = Field(default_factory=list)
    roles: list[IdentityUserRole] = Field(default_factory=list, description="Role memberships")

    @field_validator("lockout_end")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # MongoDB hands back naive datetimes unless the client is tz_aware
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def __str__(self) -> str:
        return self.user_name or ""
