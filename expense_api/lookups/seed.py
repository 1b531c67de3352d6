"""
Lookup seeder: idempotent insert of the default events and categories.

Run via:
  python -m expense_api.lookups.seed
  alembic upgrade head && python -m expense_api.lookups.seed

Safe to run multiple times: existing keys are left untouched so labels
edited or rows deactivated by an admin survive a re-seed.
"""

import logging
import sys

from sqlalchemy import select

from expense_api.database import SessionLocal
from expense_api.lookups.constants import CATEGORIES, EVENTS
from expense_api.models.lookup import Category, Event

logger = logging.getLogger(__name__)


def _insert_missing(session, model, rows: list[dict]) -> int:
    existing = set(session.scalars(select(model.key)).all())
    missing = [row for row in rows if row["key"] not in existing]
    for row in missing:
        session.add(model(key=row["key"], label=row["label"], is_active=True))
    return len(missing)


def seed_lookups(session=None) -> dict[str, int]:
    """
    Insert any default event/category not yet in the DB.
    Returns the number of rows inserted per table.
    Uses a session if provided (for testability); opens its own otherwise.
    """
    _owns_session = session is None
    if _owns_session:
        session = SessionLocal()

    try:
        counts = {
            "events": _insert_missing(session, Event, EVENTS),
            "categories": _insert_missing(session, Category, CATEGORIES),
        }
        session.commit()
        logger.info(
            "Lookup seed complete: %d events, %d categories inserted.",
            counts["events"],
            counts["categories"],
        )
        return counts
    except Exception:
        session.rollback()
        raise
    finally:
        if _owns_session:
            session.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    try:
        result = seed_lookups()
        print(f"✓ Lookups seeded: {result['events']} events, {result['categories']} categories")
        sys.exit(0)
    except Exception as e:
        print(f"✗ Lookup seed failed: {e}", file=sys.stderr)
        sys.exit(1)
