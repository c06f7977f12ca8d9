"""Create the primary admin account from PRIMARY_ADMIN_* settings.

Usage: python -m scripts.seed_admin
"""
import sys

from app.core.config import settings
from app.core.database import SessionLocal
from app.services.auth import AuthService


def main() -> int:
    if not settings.PRIMARY_ADMIN_LOGIN_ID or not settings.PRIMARY_ADMIN_PASSWORD:
        print("Set PRIMARY_ADMIN_LOGIN_ID and PRIMARY_ADMIN_PASSWORD first")
        return 1

    with SessionLocal() as db:
        admin, created = AuthService(db).ensure_primary_admin(
            name=settings.PRIMARY_ADMIN_NAME,
            email=settings.PRIMARY_ADMIN_EMAIL,
            login_id=settings.PRIMARY_ADMIN_LOGIN_ID,
            password=settings.PRIMARY_ADMIN_PASSWORD,
        )
        db.commit()

        if created:
            print(f"Admin created successfully (ID: {admin.login_id})")
        else:
            print(f"Admin already exists ({admin.email}); marked as primary")
    return 0


if __name__ == "__main__":
    sys.exit(main())
