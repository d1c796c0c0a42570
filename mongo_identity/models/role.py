"""
Role model for the identity roles collection.
"""
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from mongo_identity.models.records import IdentityRoleClaim
from mongo_identity.models.user import new_concurrency_stamp

TKey = TypeVar("TKey")


class IdentityRole(BaseModel, Generic[TKey]):
    """Role document model. Users reference roles by normalized_name."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[TKey] = Field(None, alias="_id", description="Primary key")
    name: Optional[str] = Field(None, description="Display role name")
    normalized_name: Optional[str] = Field(None, description="Lookup form of name, unique")
    concurrency_stamp: str = Field(default_factory=new_concurrency_stamp)
    claims: list[IdentityRoleClaim] = Field(default_factory=list)

    def __str__(self) -> str:
        return self.name or ""
