"""
Wiring helpers: build stores and managers over one MongoDB database.
"""
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from mongo_identity.config import Settings, get_settings
from mongo_identity.database.connections import get_database
from mongo_identity.database.indexes import create_indexes
from mongo_identity.models.role import IdentityRole
from mongo_identity.models.user import IdentityUser
from mongo_identity.services.role_manager import RoleManager
from mongo_identity.services.user_manager import UserManager
from mongo_identity.stores.role_store import MongoRoleStore
from mongo_identity.stores.user_store import MongoUserStore

logger = logging.getLogger(__name__)


async def create_managers(
    db: Optional[AsyncIOMotorDatabase] = None,
    settings: Optional[Settings] = None,
    user_cls: type = IdentityUser,
    role_cls: type = IdentityRole,
    ensure_indexes: bool = True,
) -> tuple[UserManager, RoleManager]:
    """
    Create a user manager and a role manager sharing one database.

    Args:
        db: Database to use; the configured identity database by default
        settings: Identity settings; cached settings by default
        user_cls: IdentityUser subclass stored in the users collection
        role_cls: IdentityRole subclass stored in the roles collection
        ensure_indexes: Create the unique indexes before returning

    Returns:
        (UserManager, RoleManager)
    """
    settings = settings or get_settings()
    if db is None:
        db = await get_database(settings.database_name)

    if ensure_indexes:
        await create_indexes(db, settings)
        logger.info(f"Identity indexes ensured for {settings.users_collection} and {settings.roles_collection}")

    user_store = MongoUserStore(db, user_cls, settings=settings)
    role_store = MongoRoleStore(db, role_cls, settings=settings)
    return UserManager(user_store, options=settings), RoleManager(role_store)
