"""
MongoDB role store.

Users reference roles by normalized name, so renaming or deleting a role
rewrites those references in the users collection. The role write and the
user rewrite are two separate operations without a transaction: if the second
fails the role change stands, and user stores resolve memberships against the
roles collection, so a leftover name never counts as membership.
"""
import logging
from typing import Any, AsyncIterator, Callable, Generic, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from mongo_identity.config import Settings, get_settings
from mongo_identity.core.errors import IdentityErrorDescriber
from mongo_identity.core.exceptions import (
    ArgumentNullError,
    ObjectDisposedError,
    StoreConfigurationError,
)
from mongo_identity.models.records import IdentityRoleClaim
from mongo_identity.models.role import IdentityRole
from mongo_identity.models.user import default_key, new_concurrency_stamp
from mongo_identity.schemas.claims import Claim
from mongo_identity.schemas.result import IdentityResult
from mongo_identity.stores.base import TRole
from mongo_identity.stores.user_store import record_type

logger = logging.getLogger(__name__)

RoleClaimFactory = Callable[[Any, Claim], Any]


class MongoRoleStore(Generic[TRole]):
    """Role store backed by a motor database."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        role_cls: type = IdentityRole,
        *,
        claim_factory: Optional[RoleClaimFactory] = None,
        key_factory: Optional[Callable[[], Any]] = default_key,
        error_describer: Optional[IdentityErrorDescriber] = None,
        settings: Optional[Settings] = None,
    ):
        if db is None:
            raise ArgumentNullError("db")
        if not (isinstance(role_cls, type) and issubclass(role_cls, IdentityRole)):
            raise StoreConfigurationError(
                f"MongoRoleStore can only be used with IdentityRole subclasses, got {role_cls!r}."
            )

        settings = settings or get_settings()
        self.db = db
        self.roles = db[settings.roles_collection]
        self.users = db[settings.users_collection]
        self.role_cls = role_cls
        self.key_factory = key_factory
        self.error_describer = error_describer or IdentityErrorDescriber()

        claim_cls = record_type(role_cls, "claims", IdentityRoleClaim)
        self.claim_factory = claim_factory or (
            lambda role, claim: claim_cls(
                claim_type=claim.type, claim_value=claim.value, issuer=claim.issuer
            )
        )
        self._disposed = False

    def dispose(self) -> None:
        self._disposed = True

    def _throw_if_disposed(self) -> None:
        if self._disposed:
            raise ObjectDisposedError(type(self).__name__)

    def _to_role(self, doc: Optional[dict[str, Any]]) -> Optional[TRole]:
        if doc is None:
            return None
        return self.role_cls.model_validate(doc)

    # ==================== Role CRUD ====================

    async def create(self, role: TRole) -> IdentityResult:
        self._throw_if_disposed()
        if role is None:
            raise ArgumentNullError("role")

        if role.id is None:
            if self.key_factory is None:
                raise ValueError("Role has no id and the store has no key factory")
            role.id = self.key_factory()

        try:
            await self.roles.insert_one(role.model_dump(by_alias=True))
        except DuplicateKeyError as e:
            logger.debug(f"Insert of role {role.id} rejected by unique index: {e}")
            return IdentityResult.failed(self.error_describer.duplicate_role_name(role.name))

        return IdentityResult.success()

    async def update(self, role: TRole) -> IdentityResult:
        """
        Replace the stored role under optimistic concurrency.

        When the normalized name changed, user memberships are moved to the
        new name after the role itself is written.
        """
        self._throw_if_disposed()
        if role is None:
            raise ArgumentNullError("role")

        new_stamp = new_concurrency_stamp()
        document = role.model_dump(by_alias=True)
        document["concurrency_stamp"] = new_stamp

        try:
            previous = await self.roles.find_one_and_replace(
                {"_id": role.id, "concurrency_stamp": role.concurrency_stamp},
                document,
                return_document=ReturnDocument.BEFORE,
            )
        except DuplicateKeyError as e:
            logger.debug(f"Update of role {role.id} rejected by unique index: {e}")
            return IdentityResult.failed(self.error_describer.duplicate_role_name(role.name))

        if previous is None:
            logger.debug(f"Concurrency stamp mismatch updating role {role.id}")
            return IdentityResult.failed(self.error_describer.concurrency_failure())

        role.concurrency_stamp = new_stamp

        old_name = previous.get("normalized_name")
        if old_name is not None and old_name != role.normalized_name:
            await self._rename_memberships(old_name, role.normalized_name)

        return IdentityResult.success()

    async def delete(self, role: TRole) -> IdentityResult:
        """Delete the role, then drop its name from every user's roles."""
        self._throw_if_disposed()
        if role is None:
            raise ArgumentNullError("role")

        deleted = await self.roles.find_one_and_delete(
            {"_id": role.id, "concurrency_stamp": role.concurrency_stamp}
        )
        if deleted is None:
            return IdentityResult.failed(self.error_describer.concurrency_failure())

        name = deleted.get("normalized_name")
        if name is not None:
            result = await self.users.update_many(
                {"roles.role_name": name},
                {
                    "$pull": {"roles": {"role_name": name}},
                    "$set": {"concurrency_stamp": new_concurrency_stamp()},
                },
            )
            logger.debug(f"Removed role {name} from {result.modified_count} users")

        return IdentityResult.success()

    async def _rename_memberships(self, old_name: str, new_name: Optional[str]) -> None:
        stamp = {"concurrency_stamp": new_concurrency_stamp()}
        pull_old = {"$pull": {"roles": {"role_name": old_name}}, "$set": stamp}
        if new_name is None:
            await self.users.update_many({"roles.role_name": old_name}, pull_old)
            return

        # users already holding the new name only lose the old record
        await self.users.update_many(
            {"$and": [{"roles.role_name": old_name}, {"roles.role_name": new_name}]},
            pull_old,
        )
        await self.users.update_many(
            {"roles.role_name": old_name},
            {"$set": {"roles.$.role_name": new_name, **stamp}},
        )

    async def find_by_id(self, role_id: Any) -> Optional[TRole]:
        self._throw_if_disposed()
        return self._to_role(await self.roles.find_one({"_id": role_id}))

    async def find_by_name(self, normalized_role_name: str) -> Optional[TRole]:
        self._throw_if_disposed()
        return self._to_role(await self.roles.find_one({"normalized_name": normalized_role_name}))

    async def query(self, filter: Optional[dict[str, Any]] = None) -> AsyncIterator[TRole]:
        """Iterate roles matching a MongoDB filter (all roles by default)."""
        self._throw_if_disposed()
        async for doc in self.roles.find(filter or {}):
            yield self._to_role(doc)

    # ==================== Claims ====================

    async def get_claims(self, role: TRole) -> list[Claim]:
        self._throw_if_disposed()
        return [record.to_claim() for record in role.claims]

    async def add_claim(self, role: TRole, claim: Claim) -> None:
        self._throw_if_disposed()
        role.claims.append(self.claim_factory(role, claim))

    async def remove_claim(self, role: TRole, claim: Claim) -> None:
        self._throw_if_disposed()
        role.claims = [record for record in role.claims if not record.matches(claim)]
