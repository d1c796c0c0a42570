"""
Index definitions for the identity collections.

Uniqueness of normalized names and external logins is enforced here; the
validators check the same rules first so callers get readable errors.
"""
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from mongo_identity.config import Settings, get_settings

USER_NAME_INDEX = "ux_normalized_user_name"
USER_EMAIL_INDEX = "ux_normalized_email"
USER_LOGIN_INDEX = "ux_login_provider_key"
USER_ROLES_INDEX = "ix_roles"
ROLE_NAME_INDEX = "ux_normalized_name"


async def create_indexes(db: AsyncIOMotorDatabase, settings: Optional[Settings] = None) -> None:
    """Create the indexes the user and role stores rely on."""
    settings = settings or get_settings()

    users = db[settings.users_collection]
    await users.create_index("normalized_user_name", unique=True, name=USER_NAME_INDEX)
    if settings.require_unique_email:
        await users.create_index(
            "normalized_email",
            unique=True,
            name=USER_EMAIL_INDEX,
            partialFilterExpression={"normalized_email": {"$type": "string"}},
        )
    await users.create_index(
        [("logins.login_provider", ASCENDING), ("logins.provider_key", ASCENDING)],
        unique=True,
        name=USER_LOGIN_INDEX,
        partialFilterExpression={"logins.provider_key": {"$exists": True}},
    )
    await users.create_index("roles.role_name", name=USER_ROLES_INDEX)

    roles = db[settings.roles_collection]
    await roles.create_index("normalized_name", unique=True, name=ROLE_NAME_INDEX)
