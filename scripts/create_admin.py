#!/usr/bin/env python3
"""
Grant an admin role to an existing user.

Usage: python scripts/create_admin.py <mobile_number> [super_admin|content_moderator|category_manager]
"""
import sys
sys.path.insert(0, '.')

from sqlalchemy import text

from samrambhak.core.auth import ADMIN_ROLES, SUPER_ADMIN
from samrambhak.db.postgres import get_db_session, fetch_one


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    mobile_number = sys.argv[1].strip()
    role = sys.argv[2] if len(sys.argv) > 2 else SUPER_ADMIN
    if role not in ADMIN_ROLES:
        print(f"❌ Unknown role '{role}'. Choose one of: {', '.join(ADMIN_ROLES)}")
        sys.exit(1)

    with get_db_session() as db:
        user = fetch_one(db, "SELECT user_id FROM users WHERE mobile_number = :m", {"m": mobile_number})
        if not user:
            print(f"❌ No user with mobile number {mobile_number}")
            sys.exit(1)

        existing = fetch_one(
            db, "SELECT role_id FROM user_roles WHERE user_id = :uid AND role = :role",
            {"uid": user["user_id"], "role": role}
        )
        if existing:
            print(f"⚠️  User {user['user_id']} already has role {role}")
            return

        db.execute(
            text("INSERT INTO user_roles (user_id, role) VALUES (:uid, :role)"),
            {"uid": user["user_id"], "role": role}
        )

    print(f"✅ Granted {role} to user {user['user_id']}")


if __name__ == "__main__":
    main()
