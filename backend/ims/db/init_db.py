"""Create all tables. Run on app startup.

On an empty database a first SUPER_ADMIN is created with a random password,
printed once to the log. Change it after the first login.
"""
import logging
import os
import secrets

from ims.core.security import get_password_hash
from ims.db.session import Database
from ims.models.user import AccountStatus, User, UserRole

logger = logging.getLogger(__name__)


def init_db(database: Database) -> None:
    database.create_all()

    db = database.session()
    try:
        if db.query(User).count() == 0:
            username = os.getenv("INITIAL_ADMIN_USERNAME", "admin")
            default_password = secrets.token_urlsafe(16)

            db.add(
                User(
                    username=username,
                    email=os.getenv("INITIAL_ADMIN_EMAIL", "admin@example.com"),
                    name="Administrator",
                    hashed_password=get_password_hash(default_password),
                    role=UserRole.SUPER_ADMIN,
                    account_status=AccountStatus.ACTIVE,
                )
            )
            db.commit()

            logger.warning(
                "\n" + "=" * 70
                + "\nDEFAULT SUPER_ADMIN CREATED"
                + f"\nUsername: {username}"
                + f"\nPassword: {default_password}"
                + "\nChange this password immediately after first login."
                + "\n" + "=" * 70
            )
    finally:
        db.close()
