#!/usr/bin/env python3
"""
Provision a staff account with a role.

Usage:
    python scripts/create_user.py admin@clinic.example "s3cret-pass" --role admin --name "Clinic Admin"
"""

import argparse
import asyncio
import sys

from dotenv import load_dotenv

load_dotenv()

from medclinic.core.access_control import Role  # noqa: E402
from medclinic.core.exceptions import ConflictException  # noqa: E402
from medclinic.database import AsyncSessionLocal, engine  # noqa: E402
from medclinic.schemas.users import UserCreate  # noqa: E402
from medclinic.services.user_service import UserService  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a MedClinic user account")
    parser.add_argument("email", help="Login email")
    parser.add_argument("password", help="Password (at least 8 characters)")
    parser.add_argument(
        "--role",
        choices=[role.value for role in Role],
        default=Role.STAFF.value,
        help="Role granting the account its permissions (default: staff)",
    )
    parser.add_argument("--name", dest="full_name", default=None, help="Full name")
    return parser.parse_args(argv)


async def create_user(args: argparse.Namespace) -> int:
    """Create the user, returning a process exit code."""
    data = UserCreate(
        email=args.email,
        password=args.password,
        full_name=args.full_name,
        role=Role(args.role),
    )

    try:
        async with AsyncSessionLocal() as session:
            user = await UserService(session).create_user(data)
    except ConflictException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        await engine.dispose()

    print(f"Created {user['role']} user {user['email']} ({user['id']})")
    return 0


def main() -> None:
    sys.exit(asyncio.run(create_user(parse_args())))


if __name__ == "__main__":
    main()
