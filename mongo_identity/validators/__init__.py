"""
Validators run by the managers before every create and update.
"""
from mongo_identity.validators.password import PasswordValidator
from mongo_identity.validators.role import RoleValidator
from mongo_identity.validators.user import UserValidator, is_valid_email

__all__ = [
    "UserValidator",
    "RoleValidator",
    "PasswordValidator",
    "is_valid_email",
]
