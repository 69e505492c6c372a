#!/usr/bin/env python3
"""
Grants the admin role to a user by writing a `user_roles` row (role='admin').

Usage: python grant_admin_role.py <user_email>
"""
import sys

from firebase_admin import auth

from tesland.config import get_db, get_firebase_app
from tesland.repositories import roles


def grant_admin_role(user_email: str) -> bool:
    try:
        user = auth.get_user_by_email(user_email, app=get_firebase_app())
    except auth.UserNotFoundError:
        print(f"❌ User not found: {user_email}")
        return False
    print(f"✅ User found: {user.uid} - {user.email}")

    doc_id = roles.grant_admin(get_db(), user.uid)
    print(f"✅ user_roles/{doc_id} -> admin")
    return roles.is_admin(get_db(), user.uid)


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python grant_admin_role.py <user_email>")
        sys.exit(1)

    if grant_admin_role(sys.argv[1]):
        print("🎉 Admin role granted. It applies on the user's next auth event.")
    else:
        print("💥 Failed to grant admin role")
        sys.exit(1)
