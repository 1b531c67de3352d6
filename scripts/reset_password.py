"""
Reset a profile's password from the command line.

Usage:
    python scripts/reset_password.py user@example.com
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from getpass import getpass

from sqlalchemy import select

from expense_api.database import SessionLocal
from expense_api.models.profile import Profile
from expense_api.services.auth import hash_password, validate_password_strength


def main(email: str) -> None:
    db = SessionLocal()
    try:
        profile = db.scalar(select(Profile).where(Profile.email == email.lower()))
        if profile is None:
            print(f"ERROR: no profile with email '{email}'.")
            sys.exit(1)

        password = getpass("New password: ")
        problems = validate_password_strength(password)
        if problems:
            for problem in problems:
                print(f"ERROR: {problem}.")
            sys.exit(1)
        if password != getpass("Confirm password: "):
            print("ERROR: passwords do not match.")
            sys.exit(1)

        profile.password_hash = hash_password(password)
        db.commit()
        print(f"✓ Password reset for '{profile.email}'")
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    main(sys.argv[1])
