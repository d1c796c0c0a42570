"""
User validation: user name characters and uniqueness, email shape and uniqueness.
"""
from typing import TYPE_CHECKING

from email_validator import EmailNotValidError, validate_email

from mongo_identity.core.exceptions import ArgumentNullError
from mongo_identity.models.user import IdentityUser
from mongo_identity.schemas.result import IdentityError, IdentityResult

if TYPE_CHECKING:
    from mongo_identity.services.user_manager import UserManager


def is_valid_email(email: str) -> bool:
    """Bare address shape check; display name forms and DNS lookups are out."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


class UserValidator:
    """Validates users before they are created or updated."""

    async def validate(self, manager: "UserManager", user: IdentityUser) -> IdentityResult:
        """
        Validate a user.

        Args:
            manager: Manager owning the user; supplies options and lookups
            user: User to validate

        Returns:
            Success, or a failure listing every broken rule

        Raises:
            ArgumentNullError: If manager or user is None
        """
        if manager is None:
            raise ArgumentNullError("manager")
        if user is None:
            raise ArgumentNullError("user")

        errors: list[IdentityError] = []
        await self._validate_user_name(manager, user, errors)

        options = manager.options
        if options.require_unique_email:
            await self._validate_email(manager, user, errors)
        elif options.require_valid_email and user.email and not is_valid_email(user.email):
            errors.append(manager.error_describer.invalid_email(user.email))

        if errors:
            return IdentityResult.failed(*errors)
        return IdentityResult.success()

    async def _validate_user_name(
        self, manager: "UserManager", user: IdentityUser, errors: list[IdentityError]
    ) -> None:
        describer = manager.error_describer
        user_name = user.user_name
        allowed = manager.options.allowed_user_name_characters

        if user_name is None or not user_name.strip():
            errors.append(describer.invalid_user_name(user_name))
        elif allowed is not None and any(char not in allowed for char in user_name):
            errors.append(describer.invalid_user_name(user_name))
        else:
            owner = await manager.find_by_name(user_name)
            if owner is not None and owner.id != user.id:
                errors.append(describer.duplicate_user_name(user_name))

    async def _validate_email(
        self, manager: "UserManager", user: IdentityUser, errors: list[IdentityError]
    ) -> None:
        describer = manager.error_describer
        email = user.email

        if email is None or not email.strip() or not is_valid_email(email):
            errors.append(describer.invalid_email(email))
            return

        owner = await manager.find_by_email(email)
        if owner is not None and owner.id != user.id:
            errors.append(describer.duplicate_email(email))
