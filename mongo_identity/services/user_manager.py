"""
User manager: the public API for user accounts.

Every mutating call normalizes lookup fields, runs the validators, and only
then hands the user to the store. Failures come back as IdentityResult values;
None arguments and use after dispose raise.
"""
import copy
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Generic, Iterable, Optional

from mongo_identity.config import Settings, get_settings
from mongo_identity.core.errors import IdentityErrorDescriber
from mongo_identity.core.exceptions import (
    ArgumentNullError,
    NotSupportedError,
    ObjectDisposedError,
    RoleNotFoundError,
)
from mongo_identity.core.normalizer import KeyNormalizer, normalize_key, upper_invariant
from mongo_identity.core.security import (
    JwtTokenProvider,
    PasslibPasswordHasher,
    PasswordHasher,
    PasswordVerificationResult,
    TokenProvider,
)
from mongo_identity.models.records import IdentityUserToken
from mongo_identity.models.user import new_security_stamp
from mongo_identity.schemas.claims import Claim, UserLoginInfo
from mongo_identity.schemas.result import IdentityResult
from mongo_identity.stores.base import QueryableUserStore, TUser, UserStore
from mongo_identity.validators.password import PasswordValidator
from mongo_identity.validators.user import UserValidator

DEFAULT_TOKEN_PROVIDER = "Default"
RESET_PASSWORD_PURPOSE = "ResetPassword"
CONFIRM_EMAIL_PURPOSE = "EmailConfirmation"


class UserManager(Generic[TUser]):
    """Manages user accounts on top of a UserStore."""

    def __init__(
        self,
        store: UserStore[TUser],
        options: Optional[Settings] = None,
        password_hasher: Optional[PasswordHasher] = None,
        user_validators: Optional[Iterable[UserValidator]] = None,
        password_validators: Optional[Iterable[PasswordValidator]] = None,
        key_normalizer: Optional[KeyNormalizer] = upper_invariant,
        error_describer: Optional[IdentityErrorDescriber] = None,
        token_providers: Optional[dict[str, TokenProvider]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize with a user store.

        Args:
            store: Persistence for users
            options: Identity options; copied so changes stay local to this manager
            password_hasher: Hashing capability, passlib by default
            user_validators: Run before create/update, UserValidator by default
            password_validators: Run before a password is set
            key_normalizer: Maps names/emails to lookup keys; None disables
            error_describer: Source of error codes
            token_providers: Purpose token providers by name
            logger: Logger for operation outcomes

        Raises:
            ArgumentNullError: If store is None
        """
        if store is None:
            raise ArgumentNullError("store")

        self.store = store
        self.options = (options or get_settings()).model_copy()
        self.password_hasher = password_hasher or PasslibPasswordHasher(
            self.options.password_hash_schemes
        )
        self.user_validators = (
            list(user_validators) if user_validators is not None else [UserValidator()]
        )
        self.password_validators = (
            list(password_validators) if password_validators is not None else [PasswordValidator()]
        )
        self.key_normalizer = key_normalizer
        self.error_describer = error_describer or IdentityErrorDescriber()
        self.token_providers = (
            dict(token_providers)
            if token_providers is not None
            else {DEFAULT_TOKEN_PROVIDER: JwtTokenProvider(settings=self.options)}
        )
        self.logger = logger or logging.getLogger(__name__)
        self._disposed = False

    # ==================== Lifecycle ====================

    def dispose(self) -> None:
        """Release the manager and its store. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self.store.dispose()

    def __enter__(self) -> "UserManager[TUser]":
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()

    def _throw_if_disposed(self) -> None:
        if self._disposed:
            raise ObjectDisposedError(type(self).__name__)

    def _check(self, **arguments: Any) -> None:
        """
        Disposed check first, then required arguments in order.

        This is the reverse of a null-first order: a disposed manager raises
        ObjectDisposedError even when called with None arguments.
        """
        self._throw_if_disposed()
        for name, value in arguments.items():
            if value is None:
                raise ArgumentNullError(name)

    @property
    def supports_queryable_users(self) -> bool:
        self._throw_if_disposed()
        return isinstance(self.store, QueryableUserStore)

    def query_users(self, filter: Optional[dict[str, Any]] = None) -> AsyncIterator[TUser]:
        """
        Iterate users matching a MongoDB filter.

        Raises:
            NotSupportedError: If the store cannot run queries
        """
        if not self.supports_queryable_users:
            raise NotSupportedError("Store does not implement QueryableUserStore.")
        return self.store.query(filter)

    # ==================== Normalization ====================

    def normalize_name(self, name: Optional[str]) -> Optional[str]:
        return normalize_key(self.key_normalizer, name)

    def normalize_email(self, email: Optional[str]) -> Optional[str]:
        return normalize_key(self.key_normalizer, email)

    def update_normalized_user_name(self, user: TUser) -> None:
        user.normalized_user_name = self.normalize_name(user.user_name)

    def update_normalized_email(self, user: TUser) -> None:
        user.normalized_email = self.normalize_email(user.email)

    # ==================== Validation pipeline ====================

    async def _validate_user(self, user: TUser) -> IdentityResult:
        results = [await validator.validate(self, user) for validator in self.user_validators]
        result = IdentityResult.combine(results)
        if not result.succeeded:
            self.logger.warning(
                f"User {user.id} validation failed: {';'.join(result.error_codes)}."
            )
        return result

    async def _validate_password(self, user: TUser, password: str) -> IdentityResult:
        results = [
            await validator.validate(self, user, password)
            for validator in self.password_validators
        ]
        result = IdentityResult.combine(results)
        if not result.succeeded:
            self.logger.warning(
                f"User {user.id} password validation failed: {';'.join(result.error_codes)}."
            )
        return result

    async def _update_user(self, user: TUser) -> IdentityResult:
        result = await self._validate_user(user)
        if not result.succeeded:
            return result

        self.update_normalized_user_name(user)
        self.update_normalized_email(user)
        result = await self.store.update(user)
        if result.succeeded:
            self.logger.info(f"User {user.id} updated.")
        else:
            self.logger.warning(f"User {user.id} update failed: {';'.join(result.error_codes)}.")
        return result

    @staticmethod
    def _snapshot(user: TUser, *fields: str) -> dict[str, Any]:
        return {name: copy.deepcopy(getattr(user, name)) for name in fields}

    @staticmethod
    def _restore(user: TUser, snapshot: dict[str, Any]) -> None:
        for name, value in snapshot.items():
            setattr(user, name, value)

    async def _update_user_or_restore(self, user: TUser, snapshot: dict[str, Any]) -> IdentityResult:
        """
        Persist an in-memory change, or put the snapshotted fields back.

        A rejected update leaves the user as it was before the call, so a
        later successful update cannot save half of a failed one.
        """
        try:
            result = await self._update_user(user)
        except BaseException:
            self._restore(user, snapshot)
            raise
        if not result.succeeded:
            self._restore(user, snapshot)
        return result

    def _update_security_stamp_internal(self, user: TUser) -> None:
        user.security_stamp = new_security_stamp()

    # ==================== User CRUD ====================

    async def create(self, user: TUser, password: Optional[str] = None) -> IdentityResult:
        """
        Create a user, optionally with a password.

        Args:
            user: New user; its id is assigned by the store when missing
            password: Optional plain password, validated and hashed first

        Returns:
            IdentityResult with every validation error on failure
        """
        self._check(user=user)

        if password is not None:
            result = await self._update_password_hash(user, password)
            if not result.succeeded:
                return result

        self._update_security_stamp_internal(user)
        result = await self._validate_user(user)
        if not result.succeeded:
            return result

        if self.options.lockout_allowed_for_new_users:
            user.lockout_enabled = True
        self.update_normalized_user_name(user)
        self.update_normalized_email(user)

        result = await self.store.create(user)
        if result.succeeded:
            self.logger.info(f"User {user.id} created.")
        else:
            self.logger.warning(f"User {user.id} create failed: {';'.join(result.error_codes)}.")
        return result

    async def update(self, user: TUser) -> IdentityResult:
        self._check(user=user)
        return await self._update_user(user)

    async def delete(self, user: TUser) -> IdentityResult:
        """Delete a user with its claims, logins, tokens and role memberships."""
        self._check(user=user)
        result = await self.store.delete(user)
        if result.succeeded:
            self.logger.info(f"User {user.id} deleted.")
        else:
            self.logger.warning(f"User {user.id} delete failed: {';'.join(result.error_codes)}.")
        return result

    async def find_by_id(self, user_id: Any) -> Optional[TUser]:
        self._check(user_id=user_id)
        return await self.store.find_by_id(user_id)

    async def find_by_name(self, user_name: str) -> Optional[TUser]:
        self._check(user_name=user_name)
        return await self.store.find_by_name(self.normalize_name(user_name))

    async def find_by_email(self, email: str) -> Optional[TUser]:
        self._check(email=email)
        return await self.store.find_by_email(self.normalize_email(email))

    async def find_by_login(self, login_provider: str, provider_key: str) -> Optional[TUser]:
        self._check(login_provider=login_provider, provider_key=provider_key)
        return await self.store.find_by_login(login_provider, provider_key)

    async def get_user_id(self, user: TUser) -> Any:
        self._check(user=user)
        return user.id

    async def get_user_name(self, user: TUser) -> Optional[str]:
        self._check(user=user)
        return user.user_name

    async def set_user_name(self, user: TUser, user_name: Optional[str]) -> IdentityResult:
        self._check(user=user)
        user.user_name = user_name
        self._update_security_stamp_internal(user)
        return await self._update_user(user)

    # ==================== Passwords ====================

    async def _update_password_hash(
        self, user: TUser, new_password: Optional[str], validate: bool = True
    ) -> IdentityResult:
        if validate and new_password is not None:
            result = await self._validate_password(user, new_password)
            if not result.succeeded:
                return result

        user.password_hash = (
            self.password_hasher.hash_password(user, new_password)
            if new_password is not None
            else None
        )
        self._update_security_stamp_internal(user)
        return IdentityResult.success()

    def _verify_password(self, user: TUser, password: str) -> PasswordVerificationResult:
        if user.password_hash is None:
            return PasswordVerificationResult.FAILED
        return self.password_hasher.verify_hashed_password(user, user.password_hash, password)

    async def has_password(self, user: TUser) -> bool:
        self._check(user=user)
        return user.password_hash is not None

    async def add_password(self, user: TUser, password: str) -> IdentityResult:
        self._check(user=user, password=password)
        if user.password_hash is not None:
            self.logger.warning(f"User {user.id} already has a password.")
            return IdentityResult.failed(self.error_describer.user_already_has_password())

        result = await self._update_password_hash(user, password)
        if not result.succeeded:
            return result
        return await self._update_user(user)

    async def remove_password(self, user: TUser) -> IdentityResult:
        self._check(user=user)
        await self._update_password_hash(user, None, validate=False)
        return await self._update_user(user)

    async def change_password(
        self, user: TUser, current_password: str, new_password: str
    ) -> IdentityResult:
        """
        Change a password after verifying the current one.

        Returns:
            PasswordMismatch failure if current_password is wrong
        """
        self._check(user=user, current_password=current_password, new_password=new_password)
        if self._verify_password(user, current_password) == PasswordVerificationResult.FAILED:
            self.logger.warning(f"Change password failed for user {user.id}.")
            return IdentityResult.failed(self.error_describer.password_mismatch())

        result = await self._update_password_hash(user, new_password)
        if not result.succeeded:
            return result
        return await self._update_user(user)

    async def check_password(self, user: Optional[TUser], password: str) -> bool:
        """
        Verify a password, upgrading the stored hash when the hasher asks for it.
        """
        self._throw_if_disposed()
        if user is None:
            return False

        result = self._verify_password(user, password)
        if result == PasswordVerificationResult.SUCCESS_REHASH_NEEDED:
            await self._update_password_hash(user, password, validate=False)
            await self._update_user(user)

        success = result != PasswordVerificationResult.FAILED
        if not success:
            self.logger.warning(f"Invalid password for user {user.id}.")
        return success

    async def reset_password(self, user: TUser, token: str, new_password: str) -> IdentityResult:
        self._check(user=user, token=token, new_password=new_password)
        if not await self.verify_user_token(
            user, DEFAULT_TOKEN_PROVIDER, RESET_PASSWORD_PURPOSE, token
        ):
            return IdentityResult.failed(self.error_describer.invalid_token())

        result = await self._update_password_hash(user, new_password)
        if not result.succeeded:
            return result
        return await self._update_user(user)

    # ==================== Security stamp ====================

    async def get_security_stamp(self, user: TUser) -> Optional[str]:
        self._check(user=user)
        return user.security_stamp

    async def update_security_stamp(self, user: TUser) -> IdentityResult:
        """Regenerate the security stamp, invalidating outstanding tokens."""
        self._check(user=user)
        self._update_security_stamp_internal(user)
        return await self._update_user(user)

    # ==================== Email & phone ====================

    async def get_email(self, user: TUser) -> Optional[str]:
        self._check(user=user)
        return user.email

    async def set_email(self, user: TUser, email: Optional[str]) -> IdentityResult:
        self._check(user=user)
        user.email = email
        user.email_confirmed = False
        self._update_security_stamp_internal(user)
        return await self._update_user(user)

    async def is_email_confirmed(self, user: TUser) -> bool:
        self._check(user=user)
        return user.email_confirmed

    async def generate_email_confirmation_token(self, user: TUser) -> str:
        return await self.generate_user_token(user, DEFAULT_TOKEN_PROVIDER, CONFIRM_EMAIL_PURPOSE)

    async def confirm_email(self, user: TUser, token: str) -> IdentityResult:
        self._check(user=user, token=token)
        if not await self.verify_user_token(
            user, DEFAULT_TOKEN_PROVIDER, CONFIRM_EMAIL_PURPOSE, token
        ):
            return IdentityResult.failed(self.error_describer.invalid_token())

        user.email_confirmed = True
        return await self._update_user(user)

    async def set_phone_number(self, user: TUser, phone_number: Optional[str]) -> IdentityResult:
        self._check(user=user)
        user.phone_number = phone_number
        user.phone_number_confirmed = False
        self._update_security_stamp_internal(user)
        return await self._update_user(user)

    async def set_two_factor_enabled(self, user: TUser, enabled: bool) -> IdentityResult:
        self._check(user=user)
        user.two_factor_enabled = enabled
        self._update_security_stamp_internal(user)
        return await self._update_user(user)

    # ==================== Lockout ====================

    async def is_locked_out(self, user: TUser) -> bool:
        self._check(user=user)
        if not user.lockout_enabled or user.lockout_end is None:
            return False
        return user.lockout_end >= datetime.now(timezone.utc)

    async def set_lockout_enabled(self, user: TUser, enabled: bool) -> IdentityResult:
        self._check(user=user)
        user.lockout_enabled = enabled
        return await self._update_user(user)

    async def set_lockout_end_date(
        self, user: TUser, lockout_end: Optional[datetime]
    ) -> IdentityResult:
        self._check(user=user)
        if not user.lockout_enabled:
            self.logger.warning(f"Lockout for user {user.id} failed because lockout is not enabled.")
            return IdentityResult.failed(self.error_describer.user_lockout_not_enabled())

        user.lockout_end = lockout_end
        return await self._update_user(user)

    async def access_failed(self, user: TUser) -> IdentityResult:
        """
        Record a failed credential check.

        Reaching lockout_max_failed_access_attempts locks the user out for
        lockout_default_duration and resets the counter.
        """
        self._check(user=user)
        user.access_failed_count += 1
        if user.access_failed_count < self.options.lockout_max_failed_access_attempts:
            return await self._update_user(user)

        self.logger.warning(f"User {user.id} is locked out.")
        user.lockout_end = datetime.now(timezone.utc) + self.options.lockout_default_duration
        user.access_failed_count = 0
        return await self._update_user(user)

    async def reset_access_failed_count(self, user: TUser) -> IdentityResult:
        self._check(user=user)
        if user.access_failed_count == 0:
            return IdentityResult.success()
        user.access_failed_count = 0
        return await self._update_user(user)

    async def get_access_failed_count(self, user: TUser) -> int:
        self._check(user=user)
        return user.access_failed_count

    # ==================== Claims ====================

    async def add_claim(self, user: TUser, claim: Claim) -> IdentityResult:
        self._check(user=user, claim=claim)
        return await self.add_claims(user, [claim])

    async def add_claims(self, user: TUser, claims: Iterable[Claim]) -> IdentityResult:
        self._check(user=user, claims=claims)
        snapshot = self._snapshot(user, "claims")
        await self.store.add_claims(user, list(claims))
        return await self._update_user_or_restore(user, snapshot)

    async def replace_claim(self, user: TUser, claim: Claim, new_claim: Claim) -> IdentityResult:
        """Replace every claim of the user matching claim's type and value."""
        self._check(user=user, claim=claim, new_claim=new_claim)
        snapshot = self._snapshot(user, "claims")
        await self.store.replace_claim(user, claim, new_claim)
        return await self._update_user_or_restore(user, snapshot)

    async def remove_claim(self, user: TUser, claim: Claim) -> IdentityResult:
        self._check(user=user, claim=claim)
        return await self.remove_claims(user, [claim])

    async def remove_claims(self, user: TUser, claims: Iterable[Claim]) -> IdentityResult:
        self._check(user=user, claims=claims)
        snapshot = self._snapshot(user, "claims")
        await self.store.remove_claims(user, list(claims))
        return await self._update_user_or_restore(user, snapshot)

    async def get_claims(self, user: TUser) -> list[Claim]:
        self._check(user=user)
        return await self.store.get_claims(user)

    async def get_users_for_claim(self, claim: Claim) -> list[TUser]:
        self._check(claim=claim)
        return await self.store.get_users_for_claim(claim)

    # ==================== Logins ====================

    async def add_login(self, user: TUser, login: UserLoginInfo) -> IdentityResult:
        """
        Attach an external login.

        Returns:
            LoginAlreadyAssociated failure if any user already owns the login
        """
        self._check(user=user, login=login)
        existing = await self.find_by_login(login.login_provider, login.provider_key)
        if existing is not None:
            self.logger.warning(
                f"AddLogin for user {user.id} failed because it was already associated with another user."
            )
            return IdentityResult.failed(self.error_describer.login_already_associated())

        snapshot = self._snapshot(user, "logins")
        await self.store.add_login(user, login)
        return await self._update_user_or_restore(user, snapshot)

    async def remove_login(
        self, user: TUser, login_provider: str, provider_key: str
    ) -> IdentityResult:
        self._check(user=user, login_provider=login_provider, provider_key=provider_key)
        snapshot = self._snapshot(user, "logins", "security_stamp")
        await self.store.remove_login(user, login_provider, provider_key)
        self._update_security_stamp_internal(user)
        return await self._update_user_or_restore(user, snapshot)

    async def get_logins(self, user: TUser) -> list[UserLoginInfo]:
        self._check(user=user)
        return await self.store.get_logins(user)

    # ==================== Roles ====================

    def _already_in_role(self, user: TUser, role: str) -> IdentityResult:
        self.logger.warning(f"User {user.id} is already in role {role}.")
        return IdentityResult.failed(self.error_describer.user_already_in_role(role))

    def _not_in_role(self, user: TUser, role: str) -> IdentityResult:
        self.logger.warning(f"User {user.id} is not in role {role}.")
        return IdentityResult.failed(self.error_describer.user_not_in_role(role))

    def _role_not_found(self, user: TUser, role: str) -> IdentityResult:
        self.logger.warning(f"Role {role} does not exist, cannot add user {user.id}.")
        return IdentityResult.failed(self.error_describer.role_not_found(role))

    async def add_to_role(self, user: TUser, role: str) -> IdentityResult:
        """
        Add the user to a role.

        Returns:
            UserAlreadyInRole if the user already holds the role,
            RoleNotFound if the role does not exist
        """
        self._check(user=user, role=role)
        return await self.add_to_roles(user, [role])

    async def add_to_roles(self, user: TUser, roles: Iterable[str]) -> IdentityResult:
        """
        Add the user to several roles; repeated names in roles are ignored.

        Either every role is added or, on the first failure, none is.
        """
        self._check(user=user, roles=roles)
        snapshot = self._snapshot(user, "roles")
        for role in dict.fromkeys(roles):
            normalized = self.normalize_name(role)
            if await self.store.is_in_role(user, normalized):
                self._restore(user, snapshot)
                return self._already_in_role(user, role)
            try:
                await self.store.add_to_role(user, normalized)
            except RoleNotFoundError:
                self._restore(user, snapshot)
                return self._role_not_found(user, role)
        return await self._update_user_or_restore(user, snapshot)

    async def remove_from_role(self, user: TUser, role: str) -> IdentityResult:
        self._check(user=user, role=role)
        return await self.remove_from_roles(user, [role])

    async def remove_from_roles(self, user: TUser, roles: Iterable[str]) -> IdentityResult:
        """Remove the user from several roles, all or nothing."""
        self._check(user=user, roles=roles)
        snapshot = self._snapshot(user, "roles")
        for role in roles:
            normalized = self.normalize_name(role)
            if not await self.store.is_in_role(user, normalized):
                self._restore(user, snapshot)
                return self._not_in_role(user, role)
            await self.store.remove_from_role(user, normalized)
        return await self._update_user_or_restore(user, snapshot)

    async def get_roles(self, user: TUser) -> list[str]:
        self._check(user=user)
        return await self.store.get_roles(user)

    async def is_in_role(self, user: TUser, role: str) -> bool:
        self._check(user=user, role=role)
        return await self.store.is_in_role(user, self.normalize_name(role))

    async def get_users_in_role(self, role_name: str) -> list[TUser]:
        self._check(role_name=role_name)
        return await self.store.get_users_in_role(self.normalize_name(role_name))

    # ==================== Authentication tokens ====================

    async def get_authentication_token(
        self, user: TUser, login_provider: str, token_name: str
    ) -> Optional[str]:
        self._check(user=user, login_provider=login_provider, token_name=token_name)
        return await self.store.get_token(user, login_provider, token_name)

    async def set_authentication_token(
        self, user: TUser, login_provider: str, token_name: str, token_value: Optional[str]
    ) -> IdentityResult:
        self._check(user=user, login_provider=login_provider, token_name=token_name)
        snapshot = self._snapshot(user, "tokens")
        await self.store.set_token(user, login_provider, token_name, token_value)
        return await self._update_user_or_restore(user, snapshot)

    async def remove_authentication_token(
        self, user: TUser, login_provider: str, token_name: str
    ) -> IdentityResult:
        self._check(user=user, login_provider=login_provider, token_name=token_name)
        snapshot = self._snapshot(user, "tokens")
        await self.store.remove_token(user, login_provider, token_name)
        return await self._update_user_or_restore(user, snapshot)

    async def get_authentication_tokens(self, user: TUser) -> list[IdentityUserToken]:
        self._check(user=user)
        return await self.store.get_tokens(user)

    # ==================== Purpose tokens ====================

    def _token_provider(self, name: str) -> TokenProvider:
        provider = self.token_providers.get(name)
        if provider is None:
            raise NotSupportedError(f"No token provider named '{name}' is registered.")
        return provider

    async def generate_user_token(self, user: TUser, token_provider: str, purpose: str) -> str:
        self._check(user=user, token_provider=token_provider, purpose=purpose)
        return await self._token_provider(token_provider).generate(purpose, self, user)

    async def verify_user_token(
        self, user: TUser, token_provider: str, purpose: str, token: str
    ) -> bool:
        self._check(user=user, token_provider=token_provider, purpose=purpose, token=token)
        valid = await self._token_provider(token_provider).validate(purpose, token, self, user)
        if not valid:
            self.logger.warning(f"Token verification with purpose {purpose} failed for user {user.id}.")
        return valid

    async def generate_password_reset_token(self, user: TUser) -> str:
        return await self.generate_user_token(user, DEFAULT_TOKEN_PROVIDER, RESET_PASSWORD_PURPOSE)
