"""
MongoDB user store.

Users live in one collection; claims, logins, tokens and role memberships are
embedded in the user document, so deleting a user removes everything it owns
and every sub-collection change lands with a single document replace.
"""
import logging
from typing import Any, AsyncIterator, Callable, Generic, Optional, get_args

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from mongo_identity.config import Settings, get_settings
from mongo_identity.core.errors import IdentityErrorDescriber
from mongo_identity.core.exceptions import (
    ArgumentNullError,
    ObjectDisposedError,
    RoleNotFoundError,
    StoreConfigurationError,
)
from mongo_identity.database.indexes import USER_EMAIL_INDEX, USER_LOGIN_INDEX
from mongo_identity.models.records import (
    IdentityUserClaim,
    IdentityUserLogin,
    IdentityUserRole,
    IdentityUserToken,
)
from mongo_identity.models.user import IdentityUser, default_key, new_concurrency_stamp
from mongo_identity.schemas.claims import Claim, UserLoginInfo
from mongo_identity.schemas.result import IdentityError, IdentityResult
from mongo_identity.stores.base import TUser

logger = logging.getLogger(__name__)

ClaimFactory = Callable[[Any, Claim], Any]
LoginFactory = Callable[[Any, UserLoginInfo], Any]
TokenFactory = Callable[[Any, str, str, Optional[str]], Any]
RoleFactory = Callable[[Any, str], Any]


def record_type(model_cls: type, field_name: str, fallback: type) -> type:
    """Item type declared for a list field, e.g. list[MyClaim] -> MyClaim."""
    field = model_cls.model_fields.get(field_name)
    if field is None:
        return fallback
    args = get_args(field.annotation)
    return args[0] if args else fallback


class MongoUserStore(Generic[TUser]):
    """User store backed by a motor database."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        user_cls: type = IdentityUser,
        *,
        claim_factory: Optional[ClaimFactory] = None,
        login_factory: Optional[LoginFactory] = None,
        token_factory: Optional[TokenFactory] = None,
        role_factory: Optional[RoleFactory] = None,
        key_factory: Optional[Callable[[], Any]] = default_key,
        error_describer: Optional[IdentityErrorDescriber] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize with the identity database.

        Args:
            db: Database holding the users and roles collections
            user_cls: IdentityUser subclass documents are loaded into
            claim_factory: Builds a claim record from (user, claim)
            login_factory: Builds a login record from (user, login info)
            token_factory: Builds a token record from (user, provider, name, value)
            role_factory: Builds a role membership record from (user, normalized role name)
            key_factory: Generates ids for users created without one
            error_describer: Source of failure codes
            settings: Collection names

        Raises:
            ArgumentNullError: If db is None
            StoreConfigurationError: If user_cls is not an IdentityUser type
        """
        if db is None:
            raise ArgumentNullError("db")
        if not (isinstance(user_cls, type) and issubclass(user_cls, IdentityUser)):
            raise StoreConfigurationError(
                f"MongoUserStore can only be used with IdentityUser subclasses, got {user_cls!r}."
            )

        settings = settings or get_settings()
        self.db = db
        self.users = db[settings.users_collection]
        self.roles = db[settings.roles_collection]
        self.user_cls = user_cls
        self.key_factory = key_factory
        self.error_describer = error_describer or IdentityErrorDescriber()

        claim_cls = record_type(user_cls, "claims", IdentityUserClaim)
        login_cls = record_type(user_cls, "logins", IdentityUserLogin)
        token_cls = record_type(user_cls, "tokens", IdentityUserToken)
        role_cls = record_type(user_cls, "roles", IdentityUserRole)
        self.claim_factory = claim_factory or (
            lambda user, claim: claim_cls(
                claim_type=claim.type, claim_value=claim.value, issuer=claim.issuer
            )
        )
        self.login_factory = login_factory or (
            lambda user, login: login_cls(
                login_provider=login.login_provider,
                provider_key=login.provider_key,
                provider_display_name=login.provider_display_name,
            )
        )
        self.token_factory = token_factory or (
            lambda user, login_provider, name, value: token_cls(
                login_provider=login_provider, name=name, value=value
            )
        )
        self.role_factory = role_factory or (
            lambda user, normalized_role_name: role_cls(role_name=normalized_role_name)
        )
        self._disposed = False

    # ==================== Lifecycle ====================

    def dispose(self) -> None:
        self._disposed = True

    def _throw_if_disposed(self) -> None:
        if self._disposed:
            raise ObjectDisposedError(type(self).__name__)

    def _to_document(self, user: TUser) -> dict[str, Any]:
        return user.model_dump(by_alias=True)

    def _to_user(self, doc: Optional[dict[str, Any]]) -> Optional[TUser]:
        if doc is None:
            return None
        return self.user_cls.model_validate(doc)

    def _duplicate_error(self, user: TUser, error: DuplicateKeyError) -> IdentityError:
        message = str(error)
        if USER_EMAIL_INDEX in message or "normalized_email" in message:
            return self.error_describer.duplicate_email(user.email)
        if USER_LOGIN_INDEX in message or "logins." in message:
            return self.error_describer.login_already_associated()
        return self.error_describer.duplicate_user_name(user.user_name)

    # ==================== User CRUD ====================

    async def create(self, user: TUser) -> IdentityResult:
        """
        Insert a new user, assigning an id when it has none.

        Returns:
            Success, or DuplicateUserName / DuplicateEmail when a unique
            index rejects the document
        """
        self._throw_if_disposed()
        if user is None:
            raise ArgumentNullError("user")

        if user.id is None:
            if self.key_factory is None:
                raise ValueError("User has no id and the store has no key factory")
            user.id = self.key_factory()

        try:
            await self.users.insert_one(self._to_document(user))
        except DuplicateKeyError as e:
            logger.debug(f"Insert of user {user.id} rejected by unique index: {e}")
            return IdentityResult.failed(self._duplicate_error(user, e))

        return IdentityResult.success()

    async def update(self, user: TUser) -> IdentityResult:
        """
        Replace the stored user if nobody else wrote it since it was read.

        The replace is filtered on the id and the caller's concurrency stamp
        and writes a fresh stamp. The in-memory stamp only advances on success,
        so a loser can re-read and retry.
        """
        self._throw_if_disposed()
        if user is None:
            raise ArgumentNullError("user")

        expected_stamp = user.concurrency_stamp
        new_stamp = new_concurrency_stamp()
        document = self._to_document(user)
        document["concurrency_stamp"] = new_stamp

        try:
            result = await self.users.replace_one(
                {"_id": user.id, "concurrency_stamp": expected_stamp},
                document,
            )
        except DuplicateKeyError as e:
            logger.debug(f"Update of user {user.id} rejected by unique index: {e}")
            return IdentityResult.failed(self._duplicate_error(user, e))

        if result.matched_count == 0:
            logger.debug(f"Concurrency stamp mismatch updating user {user.id}")
            return IdentityResult.failed(self.error_describer.concurrency_failure())

        user.concurrency_stamp = new_stamp
        return IdentityResult.success()

    async def delete(self, user: TUser) -> IdentityResult:
        """Delete the user document together with its embedded data."""
        self._throw_if_disposed()
        if user is None:
            raise ArgumentNullError("user")

        result = await self.users.delete_one(
            {"_id": user.id, "concurrency_stamp": user.concurrency_stamp}
        )
        if result.deleted_count == 0:
            return IdentityResult.failed(self.error_describer.concurrency_failure())
        return IdentityResult.success()

    async def find_by_id(self, user_id: Any) -> Optional[TUser]:
        self._throw_if_disposed()
        return self._to_user(await self.users.find_one({"_id": user_id}))

    async def find_by_name(self, normalized_user_name: str) -> Optional[TUser]:
        self._throw_if_disposed()
        return self._to_user(
            await self.users.find_one({"normalized_user_name": normalized_user_name})
        )

    async def find_by_email(self, normalized_email: str) -> Optional[TUser]:
        self._throw_if_disposed()
        return self._to_user(await self.users.find_one({"normalized_email": normalized_email}))

    async def query(self, filter: Optional[dict[str, Any]] = None) -> AsyncIterator[TUser]:
        """Iterate users matching a MongoDB filter (all users by default)."""
        self._throw_if_disposed()
        async for doc in self.users.find(filter or {}):
            yield self._to_user(doc)

    async def _find_many(self, query: dict[str, Any]) -> list[TUser]:
        return [self._to_user(doc) async for doc in self.users.find(query)]

    # ==================== Claims ====================

    async def get_claims(self, user: TUser) -> list[Claim]:
        self._throw_if_disposed()
        return [record.to_claim() for record in user.claims]

    async def add_claims(self, user: TUser, claims: list[Claim]) -> None:
        self._throw_if_disposed()
        for claim in claims:
            user.claims.append(self.claim_factory(user, claim))

    async def replace_claim(self, user: TUser, claim: Claim, new_claim: Claim) -> None:
        """
        Replace every claim with claim's type and value.

        The stored issuer is kept unless new_claim names one.
        """
        self._throw_if_disposed()
        for record in user.claims:
            if record.claim_type == claim.type and record.claim_value == claim.value:
                record.claim_type = new_claim.type
                record.claim_value = new_claim.value
                if new_claim.issuer is not None:
                    record.issuer = new_claim.issuer

    async def remove_claims(self, user: TUser, claims: list[Claim]) -> None:
        self._throw_if_disposed()
        user.claims = [
            record for record in user.claims
            if not any(record.matches(claim) for claim in claims)
        ]

    async def get_users_for_claim(self, claim: Claim) -> list[TUser]:
        self._throw_if_disposed()
        match: dict[str, Any] = {"claim_type": claim.type, "claim_value": claim.value}
        if claim.issuer is not None:
            match["issuer"] = claim.issuer
        return await self._find_many({"claims": {"$elemMatch": match}})

    # ==================== Logins ====================

    async def add_login(self, user: TUser, login: UserLoginInfo) -> None:
        self._throw_if_disposed()
        user.logins.append(self.login_factory(user, login))

    async def remove_login(self, user: TUser, login_provider: str, provider_key: str) -> None:
        self._throw_if_disposed()
        user.logins = [
            record for record in user.logins
            if not (record.login_provider == login_provider and record.provider_key == provider_key)
        ]

    async def find_by_login(self, login_provider: str, provider_key: str) -> Optional[TUser]:
        self._throw_if_disposed()
        doc = await self.users.find_one({
            "logins": {
                "$elemMatch": {"login_provider": login_provider, "provider_key": provider_key}
            }
        })
        return self._to_user(doc)

    async def get_logins(self, user: TUser) -> list[UserLoginInfo]:
        self._throw_if_disposed()
        return [record.to_login_info() for record in user.logins]

    # ==================== Tokens ====================

    def _find_token(self, user: TUser, login_provider: str, name: str):
        for record in user.tokens:
            if record.login_provider == login_provider and record.name == name:
                return record
        return None

    async def set_token(
        self, user: TUser, login_provider: str, name: str, value: Optional[str]
    ) -> None:
        self._throw_if_disposed()
        record = self._find_token(user, login_provider, name)
        if record is None:
            user.tokens.append(self.token_factory(user, login_provider, name, value))
        else:
            record.value = value

    async def get_token(self, user: TUser, login_provider: str, name: str) -> Optional[str]:
        self._throw_if_disposed()
        record = self._find_token(user, login_provider, name)
        return record.value if record is not None else None

    async def remove_token(self, user: TUser, login_provider: str, name: str) -> None:
        self._throw_if_disposed()
        user.tokens = [
            record for record in user.tokens
            if not (record.login_provider == login_provider and record.name == name)
        ]

    async def get_tokens(self, user: TUser) -> list[IdentityUserToken]:
        self._throw_if_disposed()
        return list(user.tokens)

    # ==================== Roles ====================

    async def _role_exists(self, normalized_role_name: str) -> bool:
        doc = await self.roles.find_one({"normalized_name": normalized_role_name}, {"_id": 1})
        return doc is not None

    @staticmethod
    def _role_names(user: TUser) -> list[str]:
        return [record.role_name for record in user.roles]

    async def add_to_role(self, user: TUser, normalized_role_name: str) -> None:
        """
        Record a role membership by normalized role name.

        Raises:
            RoleNotFoundError: If no role has that normalized name
        """
        self._throw_if_disposed()
        if not await self._role_exists(normalized_role_name):
            raise RoleNotFoundError(normalized_role_name)
        if normalized_role_name not in self._role_names(user):
            user.roles.append(self.role_factory(user, normalized_role_name))

    async def remove_from_role(self, user: TUser, normalized_role_name: str) -> None:
        self._throw_if_disposed()
        user.roles = [record for record in user.roles if record.role_name != normalized_role_name]

    async def is_in_role(self, user: TUser, normalized_role_name: str) -> bool:
        """Membership of a role that still exists; names of deleted roles read as False."""
        self._throw_if_disposed()
        if normalized_role_name not in self._role_names(user):
            return False
        return await self._role_exists(normalized_role_name)

    async def get_roles(self, user: TUser) -> list[str]:
        """Display names of the user's existing roles, in membership order."""
        self._throw_if_disposed()
        memberships = self._role_names(user)
        if not memberships:
            return []

        names = {}
        async for doc in self.roles.find({"normalized_name": {"$in": memberships}}):
            names[doc["normalized_name"]] = doc.get("name")
        return [names[role] for role in memberships if role in names]

    async def get_users_in_role(self, normalized_role_name: str) -> list[TUser]:
        self._throw_if_disposed()
        if not await self._role_exists(normalized_role_name):
            return []
        return await self._find_many({"roles.role_name": normalized_role_name})
