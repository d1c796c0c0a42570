"""
Persistence layer: store contracts and their MongoDB implementations.
"""
from mongo_identity.stores.base import (
    QueryableRoleStore,
    QueryableUserStore,
    RoleStore,
    UserStore,
)
from mongo_identity.stores.role_store import MongoRoleStore
from mongo_identity.stores.user_store import MongoUserStore

__all__ = [
    "UserStore",
    "RoleStore",
    "QueryableUserStore",
    "QueryableRoleStore",
    "MongoUserStore",
    "MongoRoleStore",
]
