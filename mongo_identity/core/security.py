"""
Credential capabilities: password hashing and purpose token providers.

Managers only depend on the PasswordHasher and TokenProvider protocols; the
passlib and python-jose implementations below are the defaults.
"""
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Protocol

from jose import JWTError, jwt
from passlib.context import CryptContext

from mongo_identity.config import Settings, get_settings

if TYPE_CHECKING:
    from mongo_identity.models.user import IdentityUser


class PasswordVerificationResult(str, Enum):
    """Outcome of checking a password against a stored hash."""
    FAILED = "failed"
    SUCCESS = "success"
    SUCCESS_REHASH_NEEDED = "success_rehash_needed"


class PasswordHasher(Protocol):
    """Password hashing/verification contract."""

    def hash_password(self, user: "IdentityUser", password: str) -> str:
        """Hash plaintext password for storage."""

    def verify_hashed_password(
        self, user: "IdentityUser", hashed_password: str, provided_password: str
    ) -> PasswordVerificationResult:
        """Verify plaintext password against stored hash."""


class TokenProvider(Protocol):
    """Purpose token (email confirmation, password reset, ...) contract."""

    async def generate(self, purpose: str, manager: Any, user: "IdentityUser") -> str:
        """Create a token bound to the user and purpose."""

    async def validate(self, purpose: str, token: str, manager: Any, user: "IdentityUser") -> bool:
        """Check a token previously produced by generate."""


class PasslibPasswordHasher:
    """Password hasher backed by a passlib CryptContext (bcrypt by default)."""

    def __init__(self, schemes: Optional[list[str]] = None):
        if schemes is None:
            schemes = get_settings().password_hash_schemes
        self.context = CryptContext(schemes=schemes, deprecated="auto")

    def hash_password(self, user: "IdentityUser", password: str) -> str:
        """
        Hash a plain password.

        Args:
            user: The user the password belongs to (unused by passlib)
            password: The plain text password to hash

        Returns:
            Hashed password string
        """
        return self.context.hash(password)

    def verify_hashed_password(
        self, user: "IdentityUser", hashed_password: str, provided_password: str
    ) -> PasswordVerificationResult:
        """
        Verify a plain password against a stored hash.

        Hashes produced by a deprecated scheme verify as SUCCESS_REHASH_NEEDED
        so the manager can upgrade them.
        """
        try:
            valid, new_hash = self.context.verify_and_update(provided_password, hashed_password)
        except ValueError:
            # Unrecognized or malformed hash
            return PasswordVerificationResult.FAILED

        if not valid:
            return PasswordVerificationResult.FAILED
        if new_hash is not None:
            return PasswordVerificationResult.SUCCESS_REHASH_NEEDED
        return PasswordVerificationResult.SUCCESS


class JwtTokenProvider:
    """
    Signed purpose tokens.

    The token carries the user id, the purpose and the user's security stamp,
    so regenerating the stamp invalidates every outstanding token.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        lifespan: Optional[timedelta] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.secret_key = secret_key or settings.token_secret_key
        self.algorithm = algorithm or settings.token_algorithm
        self.lifespan = lifespan or timedelta(minutes=settings.token_lifespan_minutes)

    async def generate(self, purpose: str, manager: Any, user: "IdentityUser") -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "purpose": purpose,
            "stamp": user.security_stamp or "",
            "exp": now + self.lifespan,
            "iat": now,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    async def validate(self, purpose: str, token: str, manager: Any, user: "IdentityUser") -> bool:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return False

        return (
            payload.get("sub") == str(user.id)
            and payload.get("purpose") == purpose
            and payload.get("stamp") == (user.security_stamp or "")
        )
