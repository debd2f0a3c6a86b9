"""
Create tables and, optionally, the owner account.

    python -m app.init_db                      # tables only
    python -m app.init_db --owner admin admin@ecospine.com 'Admin123!' 'System Administrator'
"""

import argparse
import sys

from sqlalchemy.exc import IntegrityError

import app.models  # noqa: F401  registers every model on Base.metadata
from app.crud import crud_user
from app.database import Base, SessionLocal, engine


def create_tables() -> None:
    Base.metadata.create_all(bind=engine)
    print("✅ Tables created successfully")


def create_owner(username: str, email: str, password: str, full_name: str) -> int:
    """Create the single owner account. Returns a process exit code."""
    db = SessionLocal()
    try:
        existing = crud_user.get_owner(db)
        if existing is not None:
            print(f"❌ Owner already exists: {existing.username}")
            return 1

        owner = crud_user.create_owner(
            db, username=username, email=email, password=password, full_name=full_name
        )
        print("🎉 Owner created successfully!")
        print(f"   ID: {owner.id}")
        print(f"   Username: {owner.username}")
        print(f"   Email: {owner.email}")
        print(f"   Full Name: {owner.full_name}")
        return 0
    except IntegrityError:
        print("❌ Username or email already exists. Try different credentials.")
        return 1
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Initialize the marketplace database")
    parser.add_argument(
        "--owner",
        nargs=4,
        metavar=("USERNAME", "EMAIL", "PASSWORD", "FULL_NAME"),
        help="also create the owner account",
    )
    args = parser.parse_args(argv)

    create_tables()
    if args.owner:
        return create_owner(*args.owner)
    return 0


if __name__ == "__main__":
    sys.exit(main())
