#!/usr/bin/env python
"""
Manage the performers table in Snowflake.

Subcommands:
  create   Create the table if it does not exist
  check    Print the table's columns and flag anything missing or outdated
  migrate  Criteria v2: add bonus/penalty/event columns and rename the
           "guests" criterion to "creativity" in stored rubrics

Usage:
    python -m djrank.scripts.manage_schema create
    python -m djrank.scripts.manage_schema check
    python -m djrank.scripts.manage_schema migrate --dry-run
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from djrank.config import get_settings
from djrank.repositories.base import BaseRepository, FLAG_COLUMNS, PERFORMER_COLUMNS

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

# Columns added by the criteria v2 migration
V2_COLUMNS: Dict[str, str] = {
    **{column: "BOOLEAN DEFAULT FALSE" for column in FLAG_COLUMNS},
    "event_venue": "TEXT",
    "event_city": "TEXT",
    "event_date": "DATE",
    "event_type": "TEXT",
    "event_slot": "TEXT",
    "set_duration": "TEXT",
}


def create_table_sql(table_name: str) -> str:
    flag_columns = ",\n".join(f"    {column} BOOLEAN DEFAULT FALSE" for column in FLAG_COLUMNS)
    return f"""
CREATE TABLE IF NOT EXISTS {table_name} (
    id VARCHAR(64) PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    bio TEXT,
    image TEXT,
    soundcloud_url TEXT,
    spotify_url TEXT,
    apple_music_url TEXT,
    tier VARCHAR(1),
    criteria TEXT,
    notes TEXT,
    photos TEXT,
    videos TEXT,
{flag_columns},
    event_venue TEXT,
    event_city TEXT,
    event_date DATE,
    event_type TEXT,
    event_slot TEXT,
    set_duration TEXT,
    created_at TIMESTAMP_TZ DEFAULT CURRENT_TIMESTAMP(),
    updated_at TIMESTAMP_TZ DEFAULT CURRENT_TIMESTAMP()
)
"""


def migrate_criteria(criteria: Dict[str, Any]) -> Dict[str, Any]:
    """Rename "guests" to "creativity"; an existing creativity rating wins."""
    if "guests" not in criteria:
        return criteria
    migrated = {k: v for k, v in criteria.items() if k != "guests"}
    if migrated.get("creativity") is None:
        migrated["creativity"] = criteria.get("guests") or 0
    return migrated


class SchemaManager(BaseRepository):
    """DDL and data migrations for the performers table."""

    def __init__(self, table_name: Optional[str] = None):
        self.table_name = table_name or get_settings().PERFORMERS_TABLE

    def create_table(self) -> None:
        self.execute_query(create_table_sql(self.table_name), commit=True)
        logger.info(f"Table {self.table_name} ready")

    def columns(self) -> List[Dict[str, Any]]:
        sql = """
            SELECT column_name, data_type, is_nullable
            FROM information_schema.columns
            WHERE table_name = %s
            ORDER BY ordinal_position
        """
        rows = self.execute_query(sql, (self.table_name.upper(),), fetch_all=True) or []
        return [self.row_to_dict(row) for row in rows]

    def missing_columns(self) -> List[str]:
        present = {row["column_name"].lower() for row in self.columns()}
        return [column for column in PERFORMER_COLUMNS if column not in present]

    def legacy_rows(self) -> List[Dict[str, Any]]:
        sql = f"SELECT id, criteria FROM {self.table_name} WHERE criteria LIKE %s"
        rows = self.execute_query(sql, ('%"guests"%',), fetch_all=True) or []
        return [self.row_to_dict(row) for row in rows]

    def add_v2_columns(self) -> None:
        for column, definition in V2_COLUMNS.items():
            self.execute_query(
                f"ALTER TABLE {self.table_name} ADD COLUMN IF NOT EXISTS {column} {definition}",
                commit=True,
            )
        logger.info(f"Ensured {len(V2_COLUMNS)} criteria v2 columns")

    def migrate_legacy_criteria(self, dry_run: bool = False) -> int:
        migrated = 0
        for row in self.legacy_rows():
            try:
                criteria = json.loads(row["criteria"])
            except (TypeError, ValueError):
                logger.warning(f"Skipping performer {row['id']}: unreadable criteria")
                continue
            if not isinstance(criteria, dict) or "guests" not in criteria:
                continue
            if not dry_run:
                self.execute_query(
                    f"UPDATE {self.table_name} SET criteria = %s WHERE id = %s",
                    (json.dumps(migrate_criteria(criteria)), row["id"]),
                    commit=True,
                )
            migrated += 1
        return migrated


def run_check(manager: SchemaManager) -> int:
    columns = manager.columns()
    if not columns:
        logger.error(f"Table {manager.table_name} not found")
        return 1

    for col in columns:
        nullable = "NULL" if col.get("is_nullable") == "YES" else "NOT NULL"
        logger.info(f"  {col['column_name'].lower():<25} {col['data_type']:<20} {nullable}")

    missing = manager.missing_columns()
    legacy = manager.legacy_rows()
    if missing:
        logger.warning(f"Missing columns: {', '.join(missing)} (run 'migrate')")
    if legacy:
        logger.warning(f"{len(legacy)} performers still rate 'guests' (run 'migrate')")
    if not missing and not legacy:
        logger.info("Schema is up to date")
    return 0 if not missing and not legacy else 2


def run_migrate(manager: SchemaManager, dry_run: bool = False) -> int:
    if dry_run:
        logger.info("Dry run: no changes will be written")
    else:
        manager.add_v2_columns()
    count = manager.migrate_legacy_criteria(dry_run=dry_run)
    logger.info(f"{'Would migrate' if dry_run else 'Migrated'} {count} performer rubrics (guests -> creativity)")

    remaining = [] if dry_run else manager.legacy_rows()
    if remaining:
        logger.warning(f"{len(remaining)} performers still rate 'guests'")
        return 2
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage the performers table in Snowflake")
    parser.add_argument("--table", default=None, help="Table name (default: PERFORMERS_TABLE)")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("create", help="Create the performers table")
    subparsers.add_parser("check", help="Show columns and pending migrations")
    migrate = subparsers.add_parser("migrate", help="Apply the criteria v2 migration")
    migrate.add_argument("--dry-run", action="store_true", help="Report without writing")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    manager = SchemaManager(args.table)

    if args.command == "create":
        manager.create_table()
        return 0
    if args.command == "check":
        return run_check(manager)
    return run_migrate(manager, dry_run=args.dry_run)


if __name__ == "__main__":
    sys.exit(main())
