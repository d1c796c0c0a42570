"""
mongo_identity - user and role identity management on MongoDB.
"""
from mongo_identity.bootstrap import create_managers
from mongo_identity.config import Settings, get_settings
from mongo_identity.core.errors import IdentityErrorDescriber
from mongo_identity.core.exceptions import (
    ArgumentNullError,
    IdentityException,
    NotSupportedError,
    ObjectDisposedError,
    RoleNotFoundError,
    StoreConfigurationError,
)
from mongo_identity.models import IdentityRole, IdentityUser
from mongo_identity.schemas import Claim, IdentityError, IdentityResult, UserLoginInfo
from mongo_identity.services import RoleManager, UserManager
from mongo_identity.stores import MongoRoleStore, MongoUserStore

__version__ = "1.0.0"

__all__ = [
    "create_managers",
    "Settings",
    "get_settings",
    "IdentityErrorDescriber",
    "IdentityException",
    "ArgumentNullError",
    "ObjectDisposedError",
    "NotSupportedError",
    "StoreConfigurationError",
    "RoleNotFoundError",
    "IdentityUser",
    "IdentityRole",
    "Claim",
    "UserLoginInfo",
    "IdentityError",
    "IdentityResult",
    "UserManager",
    "RoleManager",
    "MongoUserStore",
    "MongoRoleStore",
]
