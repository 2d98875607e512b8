"""Create the first administrator account.

Usage:
  python scripts/create_admin.py --username admin --email admin@acme.io --password 'S3cure!pass' [--company-id 1]

Values not passed as flags are read from ADMIN_USERNAME, ADMIN_EMAIL and
ADMIN_PASSWORD, then prompted for.
"""
import argparse
import logging
import os
from getpass import getpass

from inventory_core.app.db import SessionLocal, create_db_and_tables
from inventory_core.app.logging_config import setup_logging
from inventory_core.app.services.common import ServiceError
from inventory_core.app.services.user_service import UserService

logger = logging.getLogger("inventory_core.scripts.create_admin")


def _value(flag_value, env_name, prompt, secret=False):
    value = flag_value or os.getenv(env_name)
    if value:
        return value
    return getpass(prompt) if secret else input(prompt).strip()


def parse_args():
    parser = argparse.ArgumentParser(description="Create an administrator account")
    parser.add_argument("--username")
    parser.add_argument("--email")
    parser.add_argument("--password")
    parser.add_argument("--company-id", type=int, action="append", default=[],
                        help="Company to assign; repeat for several")
    return parser.parse_args()


def main():
    args = parse_args()
    setup_logging(fmt="text")

    data = {
        "username": _value(args.username, "ADMIN_USERNAME", "Username: ").lower(),
        "email": _value(args.email, "ADMIN_EMAIL", "Email: "),
        "password": _value(args.password, "ADMIN_PASSWORD", "Password: ", secret=True),
        "first_name": "Admin",
        "is_admin": True,
        "company_ids": args.company_id,
    }

    create_db_and_tables()
    db = SessionLocal()
    try:
        user = UserService.create(db, data)
        db.commit()
        logger.info("Created administrator %s (id %s)", user.username, user.user_id)
    except ServiceError as e:
        db.rollback()
        details = "; ".join(e.errors or [])
        raise SystemExit(f"Could not create administrator: {e.message} {details}".strip())
    finally:
        db.close()


if __name__ == "__main__":
    main()
