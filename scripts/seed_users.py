"""
Seed Users Script - Creates one demo user per role for local runs
Run: python -m scripts.seed_users [--tokens]
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
from datetime import timedelta

import jwt

from helpdesk.config.settings import settings
from helpdesk.repositories.mongo_client import get_database, create_indexes
from helpdesk.repositories.user_repo import UserRepository
from helpdesk.domain.models import User
from helpdesk.domain.enums import Role
from helpdesk.utils.idgen import generate_user_id
from helpdesk.utils.time import utc_now

DEMO_USERS = [
    ("employee@example.com", "Demo Employee", Role.EMPLOYEE, "Finance"),
    ("agent@example.com", "Demo Agent", Role.AGENT, "IT Support"),
    ("supervisor@example.com", "Demo Supervisor", Role.SUPERVISOR, "IT Support"),
    ("admin@example.com", "Demo Admin", Role.ADMIN, "IT"),
]


def seed_users(repo: UserRepository):
    """Create or refresh the demo users"""
    users = []
    for email, display_name, role, department in DEMO_USERS:
        user = repo.upsert_user(User(
            user_id=generate_user_id(),
            email=email,
            display_name=display_name,
            role=role,
            department=department,
            created_at=utc_now()
        ))
        print(f"  {role.value:<11} {user.user_id}  {user.email}")
        users.append(user)
    return users


def dev_token(user: User, hours: int = 24) -> str:
    """Short-lived HS256 token signed with the configured secret"""
    now = utc_now()
    return jwt.encode(
        {"sub": user.user_id, "iat": now, "exp": now + timedelta(hours=hours)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm
    )


def main():
    parser = argparse.ArgumentParser(description="Seed demo helpdesk users")
    parser.add_argument("--tokens", action="store_true", help="Print a dev token for each user")
    args = parser.parse_args()

    print("=== Seeding users ===")
    print("-" * 40)

    create_indexes()
    users = seed_users(UserRepository(get_database()))

    if args.tokens:
        print("-" * 40)
        for user in users:
            print(f"{user.role.value}: {dev_token(user)}")

    print("-" * 40)
    print("Done!")


if __name__ == "__main__":
    main()
