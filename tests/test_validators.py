"""
Tests for user, role and password validators.

Validators only talk to the manager, so a MagicMock manager with real
options and a real error describer is enough.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from mongo_identity.core.errors import IdentityErrorDescriber
from mongo_identity.core.exceptions import ArgumentNullError
from mongo_identity.models.role import IdentityRole
from mongo_identity.models.user import IdentityUser
from mongo_identity.validators import PasswordValidator, RoleValidator, UserValidator, is_valid_email


@pytest.fixture
def manager(identity_settings):
    """Manager double exposing options, error_describer and lookups."""
    manager = MagicMock()
    manager.options = identity_settings
    manager.error_describer = IdentityErrorDescriber()
    manager.find_by_name = AsyncMock(return_value=None)
    manager.find_by_email = AsyncMock(return_value=None)
    return manager


# =============================================================================
# UserValidator Tests
# =============================================================================

class TestUserValidator:
    """Tests for UserValidator."""

    @pytest.mark.asyncio
    async def test_null_arguments_raise(self, manager):
        validator = UserValidator()

        with pytest.raises(ArgumentNullError) as exc:
            await validator.validate(None, IdentityUser(user_name="a"))
        assert exc.value.param_name == "manager"

        with pytest.raises(ArgumentNullError) as exc:
            await validator.validate(manager, None)
        assert exc.value.param_name == "user"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_name", [None, "", "   "])
    async def test_blank_user_name_fails(self, manager, user_name):
        result = await UserValidator().validate(manager, IdentityUser(user_name=user_name))

        assert result.succeeded is False
        assert result.error_codes == ["InvalidUserName"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_name,expected", [
        ("test_email@foo.com", True),
        ("hao", True),
        ("test123", True),
        ("!noway", False),
        ("foo bar", False),
        ("hao!", False),
    ])
    async def test_default_allowed_characters(self, manager, user_name, expected):
        """Letters, digits and -._@+ are allowed by default."""
        result = await UserValidator().validate(manager, IdentityUser(user_name=user_name))

        assert result.succeeded is expected

    @pytest.mark.asyncio
    async def test_no_character_restriction_when_allowed_is_none(self, manager):
        manager.options.allowed_user_name_characters = None

        result = await UserValidator().validate(manager, IdentityUser(user_name="!no way?"))

        assert result.succeeded is True

    @pytest.mark.asyncio
    async def test_duplicate_user_name_fails(self, manager):
        """Another user owning the name is a duplicate."""
        manager.find_by_name.return_value = IdentityUser(id="other", user_name="bob")

        result = await UserValidator().validate(manager, IdentityUser(id="me", user_name="bob"))

        assert result.error_codes == ["DuplicateUserName"]
        manager.find_by_name.assert_awaited_once_with("bob")

    @pytest.mark.asyncio
    async def test_own_user_name_is_not_duplicate(self, manager):
        manager.find_by_name.return_value = IdentityUser(id="me", user_name="bob")

        result = await UserValidator().validate(manager, IdentityUser(id="me", user_name="bob"))

        assert result.succeeded is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", [None, "", "not-an-email"])
    async def test_unique_email_requires_valid_email(self, manager, email):
        manager.options.require_unique_email = True

        result = await UserValidator().validate(manager, IdentityUser(user_name="bob", email=email))

        assert result.error_codes == ["InvalidEmail"]

    @pytest.mark.asyncio
    async def test_duplicate_email_fails(self, manager):
        manager.options.require_unique_email = True
        manager.find_by_email.return_value = IdentityUser(id="other", email="bob@contoso.com")

        result = await UserValidator().validate(
            manager, IdentityUser(id="me", user_name="bob", email="bob@contoso.com")
        )

        assert result.error_codes == ["DuplicateEmail"]

    @pytest.mark.asyncio
    async def test_errors_are_accumulated(self, manager):
        """A bad name and a bad email are both reported."""
        manager.options.require_unique_email = True

        result = await UserValidator().validate(manager, IdentityUser(user_name="!bad", email="nope"))

        assert result.error_codes == ["InvalidUserName", "InvalidEmail"]

    @pytest.mark.asyncio
    async def test_email_shape_checked_without_uniqueness(self, manager):
        manager.options.require_valid_email = True

        bad = await UserValidator().validate(manager, IdentityUser(user_name="bob", email="nope"))
        missing = await UserValidator().validate(manager, IdentityUser(user_name="bob"))

        assert bad.error_codes == ["InvalidEmail"]
        assert missing.succeeded is True

    @pytest.mark.asyncio
    async def test_email_not_checked_by_default(self, manager):
        result = await UserValidator().validate(manager, IdentityUser(user_name="bob", email="nope"))

        assert result.succeeded is True
        manager.find_by_email.assert_not_awaited()

    def test_is_valid_email(self):
        assert is_valid_email("bob@contoso.com") is True
        assert is_valid_email("bob") is False
        assert is_valid_email("Foo <foo@bar.com>") is False


# =============================================================================
# RoleValidator Tests
# =============================================================================

class TestRoleValidator:
    """Tests for RoleValidator."""

    @pytest.mark.asyncio
    async def test_null_arguments_raise(self, manager):
        with pytest.raises(ArgumentNullError):
            await RoleValidator().validate(None, IdentityRole(name="a"))
        with pytest.raises(ArgumentNullError):
            await RoleValidator().validate(manager, None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", [None, "", " "])
    async def test_blank_name_fails(self, manager, name):
        result = await RoleValidator().validate(manager, IdentityRole(name=name))

        assert result.error_codes == ["InvalidRoleName"]

    @pytest.mark.asyncio
    async def test_duplicate_name_fails(self, manager):
        manager.find_by_name.return_value = IdentityRole(id="other", name="Admin")

        result = await RoleValidator().validate(manager, IdentityRole(id="me", name="admin"))

        assert result.error_codes == ["DuplicateRoleName"]

    @pytest.mark.asyncio
    async def test_valid_role(self, manager):
        result = await RoleValidator().validate(manager, IdentityRole(name="Admin"))

        assert result.succeeded is True


# =============================================================================
# PasswordValidator Tests
# =============================================================================

class TestPasswordValidator:
    """Tests for PasswordValidator."""

    @pytest.mark.asyncio
    async def test_null_password_raises(self, manager):
        with pytest.raises(ArgumentNullError) as exc:
            await PasswordValidator().validate(manager, None, None)
        assert exc.value.param_name == "password"

    @pytest.mark.asyncio
    async def test_valid_password(self, manager, valid_password):
        result = await PasswordValidator().validate(manager, None, valid_password)

        assert result.succeeded is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("password,code", [
        ("Pa0!", "PasswordTooShort"),
        ("Passw0rd", "PasswordRequiresNonAlphanumeric"),
        ("Password!", "PasswordRequiresDigit"),
        ("PASSW0RD!", "PasswordRequiresLower"),
        ("passw0rd!", "PasswordRequiresUpper"),
    ])
    async def test_single_rule_failures(self, manager, password, code):
        result = await PasswordValidator().validate(manager, None, password)

        assert result.error_codes == [code]

    @pytest.mark.asyncio
    async def test_all_failures_reported(self, manager):
        result = await PasswordValidator().validate(manager, None, "")

        assert result.error_codes == [
            "PasswordTooShort",
            "PasswordRequiresNonAlphanumeric",
            "PasswordRequiresDigit",
            "PasswordRequiresLower",
            "PasswordRequiresUpper",
            "PasswordRequiresUniqueChars",
        ]

    @pytest.mark.asyncio
    async def test_unique_chars(self, manager):
        manager.options.required_unique_chars = 5

        result = await PasswordValidator().validate(manager, None, "aA1!aA1!")

        assert result.error_codes == ["PasswordRequiresUniqueChars"]

    @pytest.mark.asyncio
    async def test_rules_can_be_disabled(self, manager):
        options = manager.options
        options.require_non_letter_or_digit = False
        options.require_digit = False
        options.require_lowercase = False
        options.require_uppercase = False
        options.required_length = 1

        result = await PasswordValidator().validate(manager, None, "x")

        assert result.succeeded is True
