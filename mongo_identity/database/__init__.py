"""
Database module - MongoDB connection and index management.
"""
from mongo_identity.database.connections import (
    get_mongo_client,
    close_connections,
    get_database,
)
from mongo_identity.database.indexes import create_indexes

__all__ = [
    "get_mongo_client",
    "close_connections",
    "get_database",
    "create_indexes",
]
