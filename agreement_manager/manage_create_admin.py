"""Create an administrator account for the Agreement Manager.

Run: `python -m agreement_manager.manage_create_admin --username admin --email admin@example.com --password changeme`
"""

import argparse
from typing import List, Optional

from .auth.jwt import get_password_hash
from .config import get_settings
from .constants import ROLE_ADMIN
from .database import Database
from .models.models import User


def create_admin(database: Database, username: str, email: str, password: str, full_name: Optional[str] = None) -> Optional[int]:
    """Insert an admin user, or promote the existing account with that username/email.

    Returns the id of the admin account, or None when nothing changed.
    """
    with database.session_scope() as db:
        existing = (
            db.query(User)
            .filter((User.username == username) | (User.email == email))
            .first()
        )
        if existing:
            if existing.role == ROLE_ADMIN:
                return None
            existing.role = ROLE_ADMIN
            db.flush()
            return existing.id

        user = User(
            username=username,
            email=email,
            full_name=full_name,
            hashed_password=get_password_hash(password),
            role=ROLE_ADMIN,
        )
        db.add(user)
        db.flush()
        return user.id


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Create an Agreement Manager administrator")
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--full-name", default="Administrator")
    parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL from the environment")
    args = parser.parse_args(argv)

    database = Database(args.database_url or get_settings().database_url)
    try:
        database.create_all()
        user_id = create_admin(database, args.username, args.email, args.password, args.full_name)
    finally:
        database.dispose()

    if user_id is None:
        print("An admin with that username or email already exists.")
    else:
        print(f"Admin user ready with id {user_id}")


if __name__ == "__main__":
    main()
