"""
Pydantic models for identity documents.
"""
from mongo_identity.models.records import (
    IdentityClaimRecord,
    IdentityRoleClaim,
    IdentityUserClaim,
    IdentityUserLogin,
    IdentityUserRole,
    IdentityUserToken,
)
from mongo_identity.models.role import IdentityRole
from mongo_identity.models.user import (
    IdentityUser,
    default_key,
    new_concurrency_stamp,
    new_security_stamp,
)

__all__ = [
    "IdentityUser",
    "IdentityRole",
    "IdentityClaimRecord",
    "IdentityUserClaim",
    "IdentityRoleClaim",
    "IdentityUserLogin",
    "IdentityUserRole",
    "IdentityUserToken",
    "default_key",
    "new_concurrency_stamp",
    "new_security_stamp",
]
