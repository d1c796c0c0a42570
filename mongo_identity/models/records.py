"""
Sub-documents embedded in user and role documents.

Subclass these to persist extra fields and hand the store a factory that
builds the subclass; the owning model must declare its list field with the
subclass so the extra fields round-trip.
"""
from typing import Optional

from pydantic import BaseModel, Field

from mongo_identity.schemas.claims import Claim, UserLoginInfo


class IdentityClaimRecord(BaseModel):
    """Stored form of a claim."""
    claim_type: str = Field(..., description="Claim type")
    claim_value: str = Field(..., description="Claim value")
    issuer: Optional[str] = Field(None, description="Claim issuer")

    def to_claim(self) -> Claim:
        return Claim(type=self.claim_type, value=self.claim_value, issuer=self.issuer)

    def initialize_from_claim(self, claim: Claim) -> None:
        self.claim_type = claim.type
        self.claim_value = claim.value
        self.issuer = claim.issuer

    def matches(self, claim: Claim) -> bool:
        return claim.matches(self.to_claim())


class IdentityUserClaim(IdentityClaimRecord):
    """A claim owned by a user."""


class IdentityRoleClaim(IdentityClaimRecord):
    """A claim owned by a role."""


class IdentityUserLogin(BaseModel):
    """An external login attached to a user."""
    login_provider: str = Field(..., description="Login provider name")
    provider_key: str = Field(..., description="User key at the provider")
    provider_display_name: Optional[str] = Field(None, description="Provider display name")

    def to_login_info(self) -> UserLoginInfo:
        return UserLoginInfo(
            login_provider=self.login_provider,
            provider_key=self.provider_key,
            provider_display_name=self.provider_display_name,
        )


class IdentityUserRole(BaseModel):
    """A user's membership of a role, keyed by the normalized role name."""
    role_name: str = Field(..., description="Normalized role name")


class IdentityUserToken(BaseModel):
    """An authentication token stored for a user, keyed by provider and name."""
    login_provider: str = Field(..., description="Provider the token came from")
    name: str = Field(..., description="Token name")
    value: Optional[str] = Field(None, description="Opaque token value")
