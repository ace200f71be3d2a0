#!/usr/bin/env python3
# scripts/setup_clinic.py
"""
Clinic setup.
This script is safe to run many times (idempotent).

Login flows live outside this service, so the script can also print a
bearer token for an existing user (local testing, service accounts).

Examples:
  # Create missing tables (fresh local SQLite database)
  python -m scripts.setup_clinic --create-tables

  # Ensure an admin exists
  python -m scripts.setup_clinic --ensure-user --email admin@clinic.local --role admin

  # Ensure a doctor and print a token for it
  python -m scripts.setup_clinic --ensure-user --email doctor@clinic.local --role doctor \
    --first-name Amina --last-name Benali --issue-token
"""

from __future__ import annotations

import argparse
import logging
import sys

from sqlalchemy.orm import Session

from clinic_api.core.database import SessionLocal, engine
from clinic_api.core.security import create_access_token
from clinic_api.models.base import RecordState
from clinic_api.models.domain import create_clinic_tables
from clinic_api.models.user import RoleName, User

logger = logging.getLogger(__name__)


def ensure_user(
    db: Session,
    *,
    email: str,
    role: RoleName,
    first_name: str = "Clinic",
    last_name: str = "User",
) -> User:
    """
    Ensure a user with this email exists, is active and carries role.

    Behavior:
    - If user exists: reactivate it and update role and names.
    - If missing: create it.
    """
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        existing.role = role
        existing.first_name = first_name
        existing.last_name = last_name
        existing.state = RecordState.ACTIVE
        db.commit()
        db.refresh(existing)
        print(f"User updated: {email} ({role.value})")
        return existing

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        state=RecordState.ACTIVE,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"User created: {email} ({role.value})")
    return user


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Clinic API setup")
    p.add_argument("--create-tables", action="store_true", help="Create missing clinic tables")
    p.add_argument("--ensure-user", action="store_true", help="Ensure a user exists with the given role")
    p.add_argument("--issue-token", action="store_true", help="Print a bearer token for the ensured user")

    p.add_argument("--email", type=str, help="User email")
    p.add_argument("--role", type=RoleName, default=RoleName.ADMIN, help="Role name, e.g. admin, doctor")
    p.add_argument("--first-name", type=str, default="Clinic")
    p.add_argument("--last-name", type=str, default="User")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    if not args.create_tables and not args.ensure_user:
        print("Nothing to do. Use --create-tables and/or --ensure-user.")
        sys.exit(1)

    if args.ensure_user and not args.email:
        raise SystemExit("--email is required with --ensure-user")

    if args.create_tables:
        create_clinic_tables(engine)
        print("Clinic tables ready")

    if not args.ensure_user:
        return

    db: Session = SessionLocal()
    try:
        user = ensure_user(
            db,
            email=args.email,
            role=args.role,
            first_name=args.first_name,
            last_name=args.last_name,
        )
        if args.issue_token:
            print(create_access_token(subject=user.id, role=user.role.value))
    except Exception:
        db.rollback()
        logger.exception("Clinic setup failed")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
