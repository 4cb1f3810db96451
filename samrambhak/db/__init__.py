"""
Database module - relational store and MongoDB activity log.
"""
from samrambhak.db.postgres import get_db_session, fetch_one, fetch_all, test_postgres_connection
from samrambhak.db.mongodb import get_mongo_db, test_mongo_connection

__all__ = [
    "get_db_session",
    "fetch_one",
    "fetch_all",
    "test_postgres_connection",
    "get_mongo_db",
    "test_mongo_connection"
]
