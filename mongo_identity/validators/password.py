"""
Password policy validation.
"""
import string
from typing import TYPE_CHECKING, Optional

from mongo_identity.core.exceptions import ArgumentNullError
from mongo_identity.models.user import IdentityUser
from mongo_identity.schemas.result import IdentityError, IdentityResult

if TYPE_CHECKING:
    from mongo_identity.services.user_manager import UserManager

ALPHANUMERIC = string.ascii_letters + string.digits


class PasswordValidator:
    """Checks a candidate password against the manager's password options."""

    async def validate(
        self, manager: "UserManager", user: Optional[IdentityUser], password: str
    ) -> IdentityResult:
        """
        Validate a password.

        All broken rules are reported together.

        Raises:
            ArgumentNullError: If manager or password is None
        """
        if manager is None:
            raise ArgumentNullError("manager")
        if password is None:
            raise ArgumentNullError("password")

        options = manager.options
        describer = manager.error_describer
        errors: list[IdentityError] = []

        if len(password) < options.required_length:
            errors.append(describer.password_too_short(options.required_length))
        if options.require_non_letter_or_digit and all(char in ALPHANUMERIC for char in password):
            errors.append(describer.password_requires_non_alphanumeric())
        if options.require_digit and not any(char in string.digits for char in password):
            errors.append(describer.password_requires_digit())
        if options.require_lowercase and not any(char in string.ascii_lowercase for char in password):
            errors.append(describer.password_requires_lower())
        if options.require_uppercase and not any(char in string.ascii_uppercase for char in password):
            errors.append(describer.password_requires_upper())
        if options.required_unique_chars >= 1 and len(set(password)) < options.required_unique_chars:
            errors.append(describer.password_requires_unique_chars(options.required_unique_chars))

        if errors:
            return IdentityResult.failed(*errors)
        return IdentityResult.success()
