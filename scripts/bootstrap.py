"""
Bootstrap script: seed the lookup tables and create the first admin.

Usage (local):
    python scripts/bootstrap.py

Prompts for the admin's name, email and password. If the email already
belongs to a profile, that profile is promoted to admin instead.
Idempotent: safe to re-run.
"""

import sys
import os

# Ensure the project root is on the path when run directly
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from getpass import getpass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from expense_api.database import SessionLocal
from expense_api.lookups.seed import seed_lookups
from expense_api.models.profile import Profile, Role
from expense_api.services.auth import hash_password, validate_password_strength


def prompt(label: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    value = input(f"{label}{suffix}: ").strip()
    return value or default


def main() -> None:
    print("\n=== Expense API: Bootstrap ===\n")

    db = SessionLocal()
    try:
        # ── Lookups ───────────────────────────────────────────────────────────
        counts = seed_lookups(db)
        print(f"✓ Lookups: {counts['events']} events, {counts['categories']} categories added")

        # ── Admin profile ─────────────────────────────────────────────────────
        print("\n── Admin profile ────────────────────────")
        admin_email = prompt("Admin email").lower()
        if not admin_email:
            print("ERROR: email is required.")
            sys.exit(1)

        existing = db.scalar(select(Profile).where(Profile.email == admin_email))
        if existing:
            if existing.role == Role.ADMIN:
                print(f"✓ '{admin_email}' is already an admin, skipping.")
            else:
                existing.role = Role.ADMIN
                db.commit()
                print(f"✓ '{admin_email}' promoted to admin.")
            return

        admin_name = prompt("Admin name", "Administrator")
        admin_password = getpass("Admin password: ")
        problems = validate_password_strength(admin_password)
        if problems:
            for problem in problems:
                print(f"ERROR: {problem}.")
            sys.exit(1)

        confirm = getpass("Confirm password: ")
        if admin_password != confirm:
            print("ERROR: passwords do not match.")
            sys.exit(1)

        db.add(
            Profile(
                email=admin_email,
                name=admin_name,
                password_hash=hash_password(admin_password),
                role=Role.ADMIN,
            )
        )
        db.commit()
        print(f"✓ Admin '{admin_email}' created")
        print("\n✅ Bootstrap complete. You can now log in at /api/auth/login\n")

    except IntegrityError as e:
        db.rollback()
        print(f"\nERROR: Database integrity error: {e.orig}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
