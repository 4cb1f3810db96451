#!/usr/bin/env python3
"""
Create the relational schema and the activity log indexes.

Safe to run repeatedly: existing tables are left alone.
Usage: python scripts/init_db.py
"""
import sys
sys.path.insert(0, '.')

from samrambhak.db.postgres import get_engine
from samrambhak.db.schema import init_schema, metadata
from samrambhak.db.mongodb import init_mongo_indexes, test_mongo_connection


def main():
    engine = get_engine()
    print(f"Creating tables on {engine.url.render_as_string(hide_password=True)} ...")
    init_schema(engine)
    print(f"    ✅ {len(metadata.tables)} tables ready")

    if test_mongo_connection():
        init_mongo_indexes()
        print("    ✅ MongoDB indexes ready")
    else:
        print("    ⚠️  MongoDB not reachable, skipped activity log indexes")


if __name__ == "__main__":
    main()
