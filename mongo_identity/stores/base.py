"""
Store contracts consumed by the managers.

Any backing technology can stand in for MongoDB by satisfying these
protocols; managers never reach past them.
"""
from typing import Any, AsyncIterator, Optional, Protocol, TypeVar, runtime_checkable

from mongo_identity.models.records import IdentityUserToken
from mongo_identity.models.role import IdentityRole
from mongo_identity.models.user import IdentityUser
from mongo_identity.schemas.claims import Claim, UserLoginInfo
from mongo_identity.schemas.result import IdentityResult

TUser = TypeVar("TUser", bound=IdentityUser)
TRole = TypeVar("TRole", bound=IdentityRole)


class UserStore(Protocol[TUser]):
    """
    Async user store contract.

    Claim, login, token and role methods mutate the user in memory; the
    caller persists the change with update().
    """

    async def create(self, user: TUser) -> IdentityResult:
        """Insert a new user."""

    async def update(self, user: TUser) -> IdentityResult:
        """Write the whole user if its concurrency stamp is still current."""

    async def delete(self, user: TUser) -> IdentityResult:
        """Remove the user and everything it owns."""

    async def find_by_id(self, user_id: Any) -> Optional[TUser]:
        """Return user by primary key or None."""

    async def find_by_name(self, normalized_user_name: str) -> Optional[TUser]:
        """Return user by normalized user name or None."""

    async def find_by_email(self, normalized_email: str) -> Optional[TUser]:
        """Return user by normalized email or None."""

    async def get_claims(self, user: TUser) -> list[Claim]:
        """Return the user's claims."""

    async def add_claims(self, user: TUser, claims: list[Claim]) -> None:
        """Append claims to the user."""

    async def replace_claim(self, user: TUser, claim: Claim, new_claim: Claim) -> None:
        """Replace every claim matching claim's type and value."""

    async def remove_claims(self, user: TUser, claims: list[Claim]) -> None:
        """Remove exact claim matches from the user."""

    async def get_users_for_claim(self, claim: Claim) -> list[TUser]:
        """Return users holding the claim."""

    async def add_login(self, user: TUser, login: UserLoginInfo) -> None:
        """Attach an external login."""

    async def remove_login(self, user: TUser, login_provider: str, provider_key: str) -> None:
        """Detach an external login."""

    async def find_by_login(self, login_provider: str, provider_key: str) -> Optional[TUser]:
        """Return the user owning the external login or None."""

    async def get_logins(self, user: TUser) -> list[UserLoginInfo]:
        """Return the user's external logins."""

    async def set_token(self, user: TUser, login_provider: str, name: str, value: Optional[str]) -> None:
        """Insert or overwrite an authentication token."""

    async def get_token(self, user: TUser, login_provider: str, name: str) -> Optional[str]:
        """Return a token value or None."""

    async def remove_token(self, user: TUser, login_provider: str, name: str) -> None:
        """Remove an authentication token."""

    async def get_tokens(self, user: TUser) -> list[IdentityUserToken]:
        """Return all authentication tokens."""

    async def add_to_role(self, user: TUser, normalized_role_name: str) -> None:
        """Add a role membership; raises RoleNotFoundError for unknown roles."""

    async def remove_from_role(self, user: TUser, normalized_role_name: str) -> None:
        """Drop a role membership."""

    async def is_in_role(self, user: TUser, normalized_role_name: str) -> bool:
        """Whether the user holds an existing role."""

    async def get_roles(self, user: TUser) -> list[str]:
        """Return display names of the user's roles."""

    async def get_users_in_role(self, normalized_role_name: str) -> list[TUser]:
        """Return the members of a role."""

    def dispose(self) -> None:
        """Release the store; idempotent."""


class RoleStore(Protocol[TRole]):
    """Async role store contract."""

    async def create(self, role: TRole) -> IdentityResult:
        """Insert a new role."""

    async def update(self, role: TRole) -> IdentityResult:
        """Write the whole role if its concurrency stamp is still current."""

    async def delete(self, role: TRole) -> IdentityResult:
        """Remove the role."""

    async def find_by_id(self, role_id: Any) -> Optional[TRole]:
        """Return role by primary key or None."""

    async def find_by_name(self, normalized_role_name: str) -> Optional[TRole]:
        """Return role by normalized name or None."""

    async def get_claims(self, role: TRole) -> list[Claim]:
        """Return the role's claims."""

    async def add_claim(self, role: TRole, claim: Claim) -> None:
        """Append a claim to the role."""

    async def remove_claim(self, role: TRole, claim: Claim) -> None:
        """Remove exact claim matches from the role."""

    def dispose(self) -> None:
        """Release the store; idempotent."""


@runtime_checkable
class QueryableUserStore(Protocol):
    """Stores that can run ad hoc queries over all users."""

    def query(self, filter: Optional[dict[str, Any]] = None) -> AsyncIterator[IdentityUser]:
        """Iterate users matching a MongoDB filter."""


@runtime_checkable
class QueryableRoleStore(Protocol):
    """Stores that can run ad hoc queries over all roles."""

    def query(self, filter: Optional[dict[str, Any]] = None) -> AsyncIterator[IdentityRole]:
        """Iterate roles matching a MongoDB filter."""
