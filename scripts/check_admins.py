"""List admin accounts.

Usage: python -m scripts.check_admins
"""
from app.core.database import SessionLocal
from app.services.auth import AuthService

with SessionLocal() as db:
    admins = AuthService(db).list_admins()
    print(f"Found {len(admins)} admin(s):\n")

    for index, admin in enumerate(admins, start=1):
        primary = " (primary)" if admin.is_primary_admin else ""
        print(f"Admin #{index}{primary}:")
        print(f"  Name: {admin.name}")
        print(f"  Email: {admin.email}")
        print(f"  Admin ID: {admin.login_id}")
        print(f"  Created: {admin.created_at}")
        print("")
