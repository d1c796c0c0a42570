"""
Services module - user and role managers.
"""
from mongo_identity.services.role_manager import RoleManager
from mongo_identity.services.user_manager import UserManager

__all__ = [
    "UserManager",
    "RoleManager",
]
