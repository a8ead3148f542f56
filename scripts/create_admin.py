import argparse
import asyncio
import getpass
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from api.auth import hash_password
from database.crud import CRUDUser
from database.database import AsyncSessionLocal, init_db
from models import Role


async def create_admin(email: str, password: str, first_name: str, last_name: str) -> int:
    await init_db()

    async with AsyncSessionLocal() as db:
        existing = await CRUDUser.get_by_email(db, email)
        if existing:
            print(f"User with email {email} already exists (role: {existing.role})")
            return 1

        admin = await CRUDUser.create(
            db,
            email=email,
            password_hash=hash_password(password),
            role=Role.ADMIN.value,
            first_name=first_name,
            last_name=last_name,
        )
        print(f"Admin created: id={admin.id} email={admin.email}")
        return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("email")
    parser.add_argument("--first-name", default="Admin")
    parser.add_argument("--last-name", default="User")
    args = parser.parse_args()

    password = getpass.getpass("Password: ")
    if len(password) < 6:
        print("Password must be at least 6 characters")
        return 1

    return asyncio.run(create_admin(args.email, password, args.first_name, args.last_name))


if __name__ == "__main__":
    sys.exit(main())
