"""Create a superadmin, or promote an existing account to superadmin.

Usage:
    python -m app.scripts.seed_admin --email=admin@example.com --password=SecurePass123!

Credentials are passed on the command line, never stored here.
"""

import argparse
import asyncio
import sys

from app.core.config import settings
from app.core.database import async_session
from app.core.seed import seed_roles
from app.models.role import RoleType
from app.models.user import User
from app.services.auth import AuthService, hash_password, normalize_email


async def create_or_promote_superadmin(email: str, password: str, phone_number: str | None = None) -> User:
    """Make ``email`` an active superadmin with the given password.

    A soft-deleted account with that email is restored.
    """
    async with async_session() as db:
        await seed_roles(db)
        auth = AuthService(db, settings)
        role = await auth.get_role(RoleType.SUPERADMIN)
        user = await auth.get_user_by_email(email, include_deleted=True)

        if user:
            print(f"User {user.email} exists ({user.role_name}), promoting to superadmin...")
            user.role_id = role.id
            user.role = role
            user.is_deleted = False
            user.deleted_at = None
            user.is_active = True
            user.is_verified = True
            user.hashed_password = hash_password(password)
            if phone_number:
                user.phone_number = phone_number
        else:
            print(f"Creating superadmin {email}...")
            user = User(
                first_name="Super",
                last_name="Admin",
                email=normalize_email(email),
                phone_number=phone_number,
                hashed_password=hash_password(password),
                role_id=role.id,
                role=role,
                is_active=True,
                is_verified=True,
                is_adult=True,
                has_accepted_terms=True,
            )
            db.add(user)

        await db.commit()
        print(f"Superadmin ready: {user.email}")
        return user


def main():
    parser = argparse.ArgumentParser(description="Create or promote a superadmin for the arcade portal")
    parser.add_argument("--email", required=True, help="Account email address")
    parser.add_argument("--password", required=True, help="Password (hashed before storing)")
    parser.add_argument("--phone", default=None, help="Phone number in E.164 format for SMS codes")
    args = parser.parse_args()

    if "@" not in args.email:
        print("Error: invalid email address.", file=sys.stderr)
        sys.exit(1)
    if len(args.password) < 8:
        print("Error: password must be at least 8 characters.", file=sys.stderr)
        sys.exit(1)

    asyncio.run(create_or_promote_superadmin(args.email, args.password, args.phone))


if __name__ == "__main__":
    main()
