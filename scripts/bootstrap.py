"""Create the database schema and seed application settings.

Run any time after configuring your .env, e.g.:
    python scripts/bootstrap.py --setting maintenance=off --group admins="Administrators"
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from sqlalchemy import select

# Ensure the project root is on sys.path so `carrier` imports resolve
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from carrier.core.config import get_settings
from carrier.db.models import Base, PermissionGroup
from carrier.db.repositories import AppSettingRepository, PermissionGroupRepository
from carrier.db.session import create_database_engine, create_session_factory


def split_pair(raw: str) -> Tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f'Expected KEY=VALUE, got "{raw}".')
    return key.strip(), value.strip()


def ensure_group(repository: PermissionGroupRepository, short_name: str, full_name: str) -> bool:
    """Create the permission group unless one with that short name exists."""
    existing = repository.db.scalar(select(PermissionGroup).where(PermissionGroup.short_name == short_name))
    if existing:
        return False
    repository.insert(PermissionGroup(short_name=short_name, full_name=full_name or short_name))
    return True


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Setup database tables and seed application data.")
    parser.add_argument(
        "--setting",
        action="append",
        type=split_pair,
        default=[],
        metavar="KEY=VALUE",
        help="Application setting to store (repeatable).",
    )
    parser.add_argument(
        "--group",
        action="append",
        type=split_pair,
        default=[],
        metavar="SHORT=FULL NAME",
        help="Internal permission group to create if missing (repeatable).",
    )
    parser.add_argument(
        "--skip-tables",
        action="store_true",
        help="Skip creating tables (useful when migrations manage them).",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    # Ensure settings are loaded so environment variables are validated early.
    settings = get_settings()
    print(f"Using database: {settings.database_url}")
    engine = create_database_engine(settings)

    if not args.skip_tables:
        print("Creating database tables (no-op if already present)...")
        Base.metadata.create_all(bind=engine)
        print("Tables ensured.")
    else:
        print("Skipping table creation.")

    with create_session_factory(engine)() as db:
        settings_repository = AppSettingRepository(db)
        for key, value in args.setting:
            settings_repository.set_value(key, value)
            print(f"Setting {key} stored.")

        groups_repository = PermissionGroupRepository(db)
        for short_name, full_name in args.group:
            if ensure_group(groups_repository, short_name, full_name):
                print(f"Permission group {short_name} created.")
            else:
                print(f"Permission group {short_name} already exists. No changes applied.")

    print("Bootstrap complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
