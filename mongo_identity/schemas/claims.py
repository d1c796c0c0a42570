"""
Claim and external login value objects.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Claim(BaseModel):
    """A statement about a principal, compared on type, value and issuer."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Claim type")
    value: str = Field(..., description="Claim value")
    issuer: Optional[str] = Field(None, description="Authority that issued the claim")

    def matches(self, other: "Claim") -> bool:
        """Exact type, value and issuer equality; a missing issuer only matches a missing issuer."""
        return (self.type, self.value, self.issuer) == (other.type, other.value, other.issuer)


class UserLoginInfo(BaseModel):
    """An external login (provider plus the provider's key for the user)."""

    model_config = ConfigDict(frozen=True)

    login_provider: str = Field(..., description="Provider name, e.g. 'Google'")
    provider_key: str = Field(..., description="Unique user key at the provider")
    provider_display_name: Optional[str] = Field(None, description="Display name for the provider")
