"""
Role manager: the public API for roles.
"""
import logging
from typing import Any, AsyncIterator, Generic, Iterable, Optional

from mongo_identity.core.errors import IdentityErrorDescriber
from mongo_identity.core.exceptions import (
    ArgumentNullError,
    NotSupportedError,
    ObjectDisposedError,
)
from mongo_identity.core.normalizer import KeyNormalizer, normalize_key, upper_invariant
from mongo_identity.schemas.claims import Claim
from mongo_identity.schemas.result import IdentityResult
from mongo_identity.stores.base import QueryableRoleStore, RoleStore, TRole
from mongo_identity.validators.role import RoleValidator


class RoleManager(Generic[TRole]):
    """Manages roles on top of a RoleStore."""

    def __init__(
        self,
        store: RoleStore[TRole],
        role_validators: Optional[Iterable[RoleValidator]] = None,
        key_normalizer: Optional[KeyNormalizer] = upper_invariant,
        error_describer: Optional[IdentityErrorDescriber] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize with a role store.

        Args:
            store: Persistence for roles
            role_validators: Run before create/update, RoleValidator by default
            key_normalizer: Maps role names to lookup keys; None disables
            error_describer: Source of error codes
            logger: Logger for operation outcomes

        Raises:
            ArgumentNullError: If store is None
        """
        if store is None:
            raise ArgumentNullError("store")

        self.store = store
        self.role_validators = (
            list(role_validators) if role_validators is not None else [RoleValidator()]
        )
        self.key_normalizer = key_normalizer
        self.error_describer = error_describer or IdentityErrorDescriber()
        self.logger = logger or logging.getLogger(__name__)
        self._disposed = False

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self.store.dispose()

    def __enter__(self) -> "RoleManager[TRole]":
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()

    def _throw_if_disposed(self) -> None:
        if self._disposed:
            raise ObjectDisposedError(type(self).__name__)

    def _check(self, **arguments: Any) -> None:
        """Disposed check first, then required arguments in order."""
        self._throw_if_disposed()
        for name, value in arguments.items():
            if value is None:
                raise ArgumentNullError(name)

    @property
    def supports_queryable_roles(self) -> bool:
        self._throw_if_disposed()
        return isinstance(self.store, QueryableRoleStore)

    def query_roles(self, filter: Optional[dict[str, Any]] = None) -> AsyncIterator[TRole]:
        """
        Iterate roles matching a MongoDB filter.

        Raises:
            NotSupportedError: If the store cannot run queries
        """
        if not self.supports_queryable_roles:
            raise NotSupportedError("Store does not implement QueryableRoleStore.")
        return self.store.query(filter)

    def normalize_key(self, name: Optional[str]) -> Optional[str]:
        return normalize_key(self.key_normalizer, name)

    async def update_normalized_role_name(self, role: TRole) -> None:
        self._check(role=role)
        role.normalized_name = self.normalize_key(role.name)

    async def _validate_role(self, role: TRole) -> IdentityResult:
        results = [await validator.validate(self, role) for validator in self.role_validators]
        result = IdentityResult.combine(results)
        if not result.succeeded:
            self.logger.warning(
                f"Role {role.id} validation failed: {';'.join(result.error_codes)}."
            )
        return result

    async def _update_role(self, role: TRole) -> IdentityResult:
        result = await self._validate_role(role)
        if not result.succeeded:
            return result

        await self.update_normalized_role_name(role)
        result = await self.store.update(role)
        if result.succeeded:
            self.logger.info(f"Role {role.id} updated.")
        else:
            self.logger.warning(f"Role {role.id} update failed: {';'.join(result.error_codes)}.")
        return result

    # ==================== Role CRUD ====================

    async def create(self, role: TRole) -> IdentityResult:
        """
        Validate, normalize and store a new role.

        Returns:
            IdentityResult with every validation error on failure
        """
        self._check(role=role)
        result = await self._validate_role(role)
        if not result.succeeded:
            return result

        await self.update_normalized_role_name(role)
        result = await self.store.create(role)
        if result.succeeded:
            self.logger.info(f"Role {role.id} created.")
        else:
            self.logger.warning(f"Role {role.id} create failed: {';'.join(result.error_codes)}.")
        return result

    async def update(self, role: TRole) -> IdentityResult:
        self._check(role=role)
        return await self._update_role(role)

    async def delete(self, role: TRole) -> IdentityResult:
        """Delete a role; users holding it lose the membership."""
        self._check(role=role)
        result = await self.store.delete(role)
        if result.succeeded:
            self.logger.info(f"Role {role.id} deleted.")
        else:
            self.logger.warning(f"Role {role.id} delete failed: {';'.join(result.error_codes)}.")
        return result

    async def role_exists(self, role_name: str) -> bool:
        self._check(role_name=role_name)
        return await self.store.find_by_name(self.normalize_key(role_name)) is not None

    async def find_by_id(self, role_id: Any) -> Optional[TRole]:
        self._check(role_id=role_id)
        return await self.store.find_by_id(role_id)

    async def find_by_name(self, role_name: str) -> Optional[TRole]:
        self._check(role_name=role_name)
        return await self.store.find_by_name(self.normalize_key(role_name))

    async def get_role_id(self, role: TRole) -> Any:
        self._check(role=role)
        return role.id

    async def get_role_name(self, role: TRole) -> Optional[str]:
        self._check(role=role)
        return role.name

    async def set_role_name(self, role: TRole, name: Optional[str]) -> IdentityResult:
        """Rename a role; users holding the old name follow the rename."""
        self._check(role=role)
        role.name = name
        return await self._update_role(role)

    # ==================== Claims ====================

    async def add_claim(self, role: TRole, claim: Claim) -> IdentityResult:
        self._check(role=role, claim=claim)
        await self.store.add_claim(role, claim)
        return await self._update_role(role)

    async def remove_claim(self, role: TRole, claim: Claim) -> IdentityResult:
        self._check(role=role, claim=claim)
        await self.store.remove_claim(role, claim)
        return await self._update_role(role)

    async def get_claims(self, role: TRole) -> list[Claim]:
        self._check(role=role)
        return await self.store.get_claims(role)
