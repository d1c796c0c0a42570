"""
Role validation.
"""
from typing import TYPE_CHECKING

from mongo_identity.core.exceptions import ArgumentNullError
from mongo_identity.models.role import IdentityRole
from mongo_identity.schemas.result import IdentityResult

if TYPE_CHECKING:
    from mongo_identity.services.role_manager import RoleManager


class RoleValidator:
    """Role names must be present and unique after normalization."""

    async def validate(self, manager: "RoleManager", role: IdentityRole) -> IdentityResult:
        if manager is None:
            raise ArgumentNullError("manager")
        if role is None:
            raise ArgumentNullError("role")

        describer = manager.error_describer
        name = role.name
        if name is None or not name.strip():
            return IdentityResult.failed(describer.invalid_role_name(name))

        owner = await manager.find_by_name(name)
        if owner is not None and owner.id != role.id:
            return IdentityResult.failed(describer.duplicate_role_name(name))

        return IdentityResult.success()
