"""
Value objects shared by stores, validators and managers.
"""
from mongo_identity.schemas.claims import Claim, UserLoginInfo
from mongo_identity.schemas.result import IdentityError, IdentityResult

__all__ = [
    "Claim",
    "UserLoginInfo",
    "IdentityError",
    "IdentityResult",
]
