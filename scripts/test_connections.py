#!/usr/bin/env python3
"""
Connection Test Script

Run this to verify the database connections and email settings.
Usage: python scripts/test_connections.py
"""
import sys
sys.path.insert(0, '.')

from samrambhak.db.postgres import test_postgres_connection
from samrambhak.db.mongodb import test_mongo_connection
from samrambhak.core.config import get_settings


def main():
    settings = get_settings()
    print("=" * 50)
    print("SAMRAMBHAK - CONNECTION TEST")
    print("=" * 50)

    # Test PostgreSQL
    print("\n[1] Testing PostgreSQL...")
    if settings.database_url:
        print(f"    URL: {settings.database_url.split('@')[-1]}")
    else:
        print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    if test_postgres_connection():
        print("    ✅ PostgreSQL: CONNECTED")
    else:
        print("    ❌ PostgreSQL: FAILED")

    # Test MongoDB
    print("\n[2] Testing MongoDB (activity log)...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    if test_mongo_connection():
        print("    ✅ MongoDB: CONNECTED")
    else:
        print("    ❌ MongoDB: FAILED")

    # Email is only checked for configuration; nothing is sent
    print("\n[3] Checking email (Resend)...")
    if settings.email_enabled:
        print(f"    Sender: {settings.email_from}")
        print(f"    Links point at: {settings.public_app_url}")
        print("    ✅ Email: CONFIGURED")
    else:
        print("    ⚠️  Email: RESEND_API_KEY not configured (verification emails disabled)")

    print("\n" + "=" * 50)
    print("Connection test complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
