"""
Tests for value objects.

These tests cover:
- IdentityResult (defaults, combine, string form)
- IdentityErrorDescriber codes
- Claim matching
- Key normalization
"""

import pytest
from pydantic import ValidationError

from mongo_identity.core.errors import IdentityErrorDescriber
from mongo_identity.core.normalizer import normalize_key, upper_invariant
from mongo_identity.schemas.claims import Claim, UserLoginInfo
from mongo_identity.schemas.result import IdentityError, IdentityResult


# =============================================================================
# IdentityResult Tests
# =============================================================================

class TestIdentityResult:
    """Tests for IdentityResult."""

    def test_default_is_failed_without_errors(self):
        """A bare result is a failure with no errors."""
        result = IdentityResult()

        assert result.succeeded is False
        assert result.errors == []

    def test_failed_without_errors(self):
        """failed() with no errors is still a failure."""
        result = IdentityResult.failed()

        assert result.succeeded is False
        assert result.errors == []

    def test_success(self):
        result = IdentityResult.success()

        assert result.succeeded is True
        assert str(result) == "Succeeded"

    def test_failed_keeps_all_errors(self):
        """Errors are kept in order and listed in the string form."""
        result = IdentityResult.failed(
            IdentityError(code="a", description="A"),
            IdentityError(code="b", description="B"),
        )

        assert result.error_codes == ["a", "b"]
        assert str(result) == "Failed : a,b"

    def test_combine_all_success(self):
        result = IdentityResult.combine([IdentityResult.success(), IdentityResult.success()])

        assert result.succeeded is True

    def test_combine_concatenates_errors(self):
        """One failure fails the whole and errors accumulate."""
        describer = IdentityErrorDescriber()
        result = IdentityResult.combine([
            IdentityResult.failed(describer.invalid_user_name("x")),
            IdentityResult.success(),
            IdentityResult.failed(describer.invalid_email("y")),
        ])

        assert result.succeeded is False
        assert result.error_codes == ["InvalidUserName", "InvalidEmail"]


# =============================================================================
# Error Describer Tests
# =============================================================================

class TestIdentityErrorDescriber:
    """Error codes are stable."""

    @pytest.mark.parametrize("method,args,code", [
        ("default_error", (), "DefaultError"),
        ("concurrency_failure", (), "ConcurrencyFailure"),
        ("password_mismatch", (), "PasswordMismatch"),
        ("invalid_token", (), "InvalidToken"),
        ("login_already_associated", (), "LoginAlreadyAssociated"),
        ("invalid_user_name", ("bad name",), "InvalidUserName"),
        ("invalid_email", ("bad",), "InvalidEmail"),
        ("duplicate_user_name", ("bob",), "DuplicateUserName"),
        ("duplicate_email", ("bob@example.com",), "DuplicateEmail"),
        ("invalid_role_name", ("",), "InvalidRoleName"),
        ("duplicate_role_name", ("Admin",), "DuplicateRoleName"),
        ("role_not_found", ("Admin",), "RoleNotFound"),
        ("user_already_has_password", (), "UserAlreadyHasPassword"),
        ("user_lockout_not_enabled", (), "UserLockoutNotEnabled"),
        ("user_already_in_role", ("Admin",), "UserAlreadyInRole"),
        ("user_not_in_role", ("Admin",), "UserNotInRole"),
        ("password_too_short", (6,), "PasswordTooShort"),
        ("password_requires_unique_chars", (3,), "PasswordRequiresUniqueChars"),
        ("password_requires_non_alphanumeric", (), "PasswordRequiresNonAlphanumeric"),
        ("password_requires_digit", (), "PasswordRequiresDigit"),
        ("password_requires_lower", (), "PasswordRequiresLower"),
        ("password_requires_upper", (), "PasswordRequiresUpper"),
    ])
    def test_codes(self, method, args, code):
        error = getattr(IdentityErrorDescriber(), method)(*args)

        assert error.code == code
        assert error.description

    def test_description_mentions_subject(self):
        error = IdentityErrorDescriber().duplicate_user_name("bob")

        assert "bob" in error.description


# =============================================================================
# Claim Tests
# =============================================================================

class TestClaim:
    """Tests for Claim and UserLoginInfo value objects."""

    def test_matches_without_issuer_only_matches_without_issuer(self):
        """A claim without issuer matches only claims without issuer."""
        wanted = Claim(type="role", value="admin")

        assert wanted.matches(Claim(type="role", value="admin"))
        assert not wanted.matches(Claim(type="role", value="admin", issuer="idp"))

    def test_matches_requires_issuer_when_set(self):
        wanted = Claim(type="role", value="admin", issuer="idp")

        assert wanted.matches(Claim(type="role", value="admin", issuer="idp"))
        assert not wanted.matches(Claim(type="role", value="admin", issuer="other"))
        assert not wanted.matches(Claim(type="role", value="admin"))

    def test_matches_type_and_value(self):
        wanted = Claim(type="role", value="admin")

        assert not wanted.matches(Claim(type="role", value="user"))
        assert not wanted.matches(Claim(type="scope", value="admin"))

    def test_value_objects_are_frozen(self):
        """Claims and logins are immutable and hashable."""
        claim = Claim(type="a", value="b")
        login = UserLoginInfo(login_provider="google", provider_key="123")

        with pytest.raises(ValidationError):
            claim.value = "c"

        assert len({claim, Claim(type="a", value="b")}) == 1
        assert hash(login) == hash(UserLoginInfo(login_provider="google", provider_key="123"))


# =============================================================================
# Key Normalizer Tests
# =============================================================================

class TestUpperInvariant:
    """Tests for the default key normalizer."""

    def test_upper_cases_ascii_and_accents(self):
        assert upper_invariant("bob@contoso.com") == "BOB@CONTOSO.COM"
        assert upper_invariant("élodie") == "ÉLODIE"

    def test_expanding_characters_are_kept(self):
        """Characters with multi-character upper case forms map to themselves."""
        assert upper_invariant("straße") == "STRAßE"
        assert upper_invariant("ﬁle") == "ﬁLE"
        assert upper_invariant("strasse") != upper_invariant("straße")

    def test_normalize_key_passthrough(self):
        assert normalize_key(None, "Bob") == "Bob"
        assert normalize_key(upper_invariant, None) is None
