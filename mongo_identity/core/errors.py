"""
Error describer: the single source of identity error codes and messages.

Subclass and override methods to localize or reword descriptions; codes are
part of the contract and should stay stable.
"""
from typing import Optional

from mongo_identity.schemas.result import IdentityError


class IdentityErrorDescriber:
    """Builds IdentityError values for every failure the engine reports."""

    def default_error(self) -> IdentityError:
        return IdentityError(code="DefaultError", description="An unknown failure has occurred.")

    def concurrency_failure(self) -> IdentityError:
        return IdentityError(
            code="ConcurrencyFailure",
            description="Optimistic concurrency failure, object has been modified.",
        )

    def password_mismatch(self) -> IdentityError:
        return IdentityError(code="PasswordMismatch", description="Incorrect password.")

    def invalid_token(self) -> IdentityError:
        return IdentityError(code="InvalidToken", description="Invalid token.")

    def login_already_associated(self) -> IdentityError:
        return IdentityError(
            code="LoginAlreadyAssociated",
            description="A user with this login already exists.",
        )

    def invalid_user_name(self, user_name: Optional[str]) -> IdentityError:
        return IdentityError(
            code="InvalidUserName",
            description=f"User name '{user_name}' is invalid, can only contain letters or digits.",
        )

    def invalid_email(self, email: Optional[str]) -> IdentityError:
        return IdentityError(code="InvalidEmail", description=f"Email '{email}' is invalid.")

    def duplicate_user_name(self, user_name: Optional[str]) -> IdentityError:
        return IdentityError(
            code="DuplicateUserName",
            description=f"User name '{user_name}' is already taken.",
        )

    def duplicate_email(self, email: Optional[str]) -> IdentityError:
        return IdentityError(code="DuplicateEmail", description=f"Email '{email}' is already taken.")

    def invalid_role_name(self, role: Optional[str]) -> IdentityError:
        return IdentityError(code="InvalidRoleName", description=f"Role name '{role}' is invalid.")

    def duplicate_role_name(self, role: Optional[str]) -> IdentityError:
        return IdentityError(code="DuplicateRoleName", description=f"Role name '{role}' is already taken.")

    def role_not_found(self, role: str) -> IdentityError:
        return IdentityError(code="RoleNotFound", description=f"Role '{role}' does not exist.")

    def user_already_has_password(self) -> IdentityError:
        return IdentityError(
            code="UserAlreadyHasPassword",
            description="User already has a password set.",
        )

    def user_lockout_not_enabled(self) -> IdentityError:
        return IdentityError(
            code="UserLockoutNotEnabled",
            description="Lockout is not enabled for this user.",
        )

    def user_already_in_role(self, role: str) -> IdentityError:
        return IdentityError(code="UserAlreadyInRole", description=f"User already in role '{role}'.")

    def user_not_in_role(self, role: str) -> IdentityError:
        return IdentityError(code="UserNotInRole", description=f"User is not in role '{role}'.")

    def password_too_short(self, length: int) -> IdentityError:
        return IdentityError(
            code="PasswordTooShort",
            description=f"Passwords must be at least {length} characters.",
        )

    def password_requires_unique_chars(self, unique_chars: int) -> IdentityError:
        return IdentityError(
            code="PasswordRequiresUniqueChars",
            description=f"Passwords must use at least {unique_chars} different characters.",
        )

    def password_requires_non_alphanumeric(self) -> IdentityError:
        return IdentityError(
            code="PasswordRequiresNonAlphanumeric",
            description="Passwords must have at least one non alphanumeric character.",
        )

    def password_requires_digit(self) -> IdentityError:
        return IdentityError(
            code="PasswordRequiresDigit",
            description="Passwords must have at least one digit ('0'-'9').",
        )

    def password_requires_lower(self) -> IdentityError:
        return IdentityError(
            code="PasswordRequiresLower",
            description="Passwords must have at least one lowercase ('a'-'z').",
        )

    def password_requires_upper(self) -> IdentityError:
        return IdentityError(
            code="PasswordRequiresUpper",
            description="Passwords must have at least one uppercase ('A'-'Z').",
        )
