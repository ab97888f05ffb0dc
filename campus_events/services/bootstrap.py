"""
Create the initial admin accounts.

    python -m campus_events.services.bootstrap

Reads BOOTSTRAP_EVENT_ADMIN_EMAIL, BOOTSTRAP_ACADEMIC_ADMIN_EMAIL and
BOOTSTRAP_ADMIN_PASSWORD from the environment (or .env). Existing accounts
are left untouched.
"""

import logging
import sys

from campus_events.core.config import settings
from campus_events.core.db import Base, SessionLocal, engine
from campus_events.models.enums import UserRole
from campus_events.services.user_service import UserService

logger = logging.getLogger(__name__)


def bootstrap_admins(db) -> int:
    """Returns the number of accounts created"""
    if not settings.BOOTSTRAP_ADMIN_PASSWORD:
        raise SystemExit("BOOTSTRAP_ADMIN_PASSWORD is not set")

    created = 0
    for email, role in (
        (settings.BOOTSTRAP_EVENT_ADMIN_EMAIL, UserRole.EVENT_ADMIN),
        (settings.BOOTSTRAP_ACADEMIC_ADMIN_EMAIL, UserRole.ACADEMIC_ADMIN),
    ):
        if not email:
            logger.info("No email configured for %s; skipping", role.value)
            continue
        if UserService.ensure_admin(db, email, role, settings.BOOTSTRAP_ADMIN_PASSWORD):
            created += 1
        else:
            logger.info("%s account %s already exists", role.value, email)
    return created


def main() -> int:
    logging.basicConfig(level=settings.LOG_LEVEL)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = bootstrap_admins(db)
    finally:
        db.close()
    print(f"Created {created} admin account(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
