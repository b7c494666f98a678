"""Command line entry points for the migration engine."""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .models.migration import MigrationConfig, MigrationOptions
from .models.record import count_records
from .orchestrator import DatabaseMigration

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = "./migration_output"

EXAMPLES = """\
Examples:
  # Full migration
  migrate --source-url=https://old.supabase.co --source-key=key1 \\
          --target-url=https://new.supabase.co --target-key=key2

  # Schema only
  migrate --source-url=https://old.supabase.co --source-key=key1 --schema-only=true

  # With storage migration
  migrate --source-url=https://old.supabase.co --source-key=key1 --source-service-key=service1 \\
          --target-url=https://new.supabase.co --target-key=key2 --target-service-key=service2 \\
          --include-storage=true

Every credential flag can also be set through the environment, e.g.
MIGRATE_SOURCE_URL or MIGRATE_TARGET_SERVICE_KEY.
"""

QUICK_HELP = """\
Database Migration Helper

Use --help for detailed information.

Quick start:
1. Prepare the target project and keep its URL and keys at hand
2. Export the schema:   migrate --source-url=... --source-key=... --schema-only=true
3. Apply schema.sql on the target database
4. Migrate the data:    migrate --source-url=... --source-key=... --target-url=... --target-key=... --data-only=true
"""

DETAILED_HELP = """\
Database Migration Tool

Migrates a whole backend project (database and storage) into another one.

Features:
  - Schema export: tables, functions and row level security policies
  - Data export to data.json, optionally as re-runnable SQL (--export-sql)
  - Data import in foreign-key order, batch by batch
  - Recursive copy of every storage bucket and file
  - Connection checks before any data is moved

What gets migrated:
  - Tables: properties, categories, amenities, brokers, profiles and the rest
  - Data: all records from all tables
  - Storage: all buckets and files (requires service keys)
  - Functions and policies: as part of schema.sql

Configuration needed:
  - Source URL and anon key
  - Target URL and anon key
  - Service keys for both projects (optional, for storage migration)

Admin API:
  uvicorn realty_migrate.api.main:app
  then POST /api/migrations/runs to start a tracked run.

Programmatic usage:
  from realty_migrate import DatabaseMigration, MigrationConfig

  migration = DatabaseMigration(MigrationConfig(
      source_url="https://old-project.supabase.co",
      source_key="your-source-key",
      target_url="https://new-project.supabase.co",
      target_key="your-target-key",
  ))
  migration.migrate()

Important notes:
  - Always back up your data before migrating
  - The target database should be empty or prepared
  - Apply the schema SQL manually before migrating data
  - Service keys are required for storage migration

Run `migrate --help` for the full list of flags.
"""


def str2bool(value: str) -> bool:
    """Parse ``--flag=value``; anything but an explicit false is true."""
    return value.strip().lower() not in ("false", "0", "no", "off")


def _env(name: str) -> Optional[str]:
    return os.environ.get(f"MIGRATE_{name}") or None


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for ``migrate``."""
    parser = argparse.ArgumentParser(
        prog="migrate",
        description="Database Migration Tool - Migrate schema, data and storage between projects",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--source-url", default=_env("SOURCE_URL"), help="Source project URL")
    parser.add_argument("--source-key", default=_env("SOURCE_KEY"), help="Source anon key")
    parser.add_argument(
        "--source-service-key",
        default=_env("SOURCE_SERVICE_KEY"),
        help="Source service role key (optional, for storage)",
    )
    parser.add_argument("--target-url", default=_env("TARGET_URL"), help="Target project URL")
    parser.add_argument("--target-key", default=_env("TARGET_KEY"), help="Target anon key")
    parser.add_argument(
        "--target-service-key",
        default=_env("TARGET_SERVICE_KEY"),
        help="Target service role key (optional, for storage)",
    )

    # Boolean flags accept both `--flag` and `--flag=false`
    for flag, help_text in [
        ("--include-storage", "Include storage migration (requires service keys)"),
        ("--schema-only", "Export schema only, don't migrate data"),
        ("--data-only", "Migrate data only, skip schema export"),
        ("--export-sql", "Also write data/<table>.sql with INSERT statements"),
    ]:
        parser.add_argument(flag, type=str2bool, nargs="?", const=True, default=False, help=help_text)

    parser.add_argument("--batch-size", type=int, default=100, help="Batch size for data import (default: 100)")
    parser.add_argument("--storage-bucket", help="Only migrate this storage bucket")
    parser.add_argument(
        "--output-dir",
        default=DEFAULT_OUTPUT_DIR,
        help=f"Directory to save exported files (default: {DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    return parser


def save_file(output_dir: Path, filename: str, content: str) -> Path:
    """Write ``content`` under ``output_dir`` and print the path."""
    path = output_dir / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    print(f"Saved: {path}")
    return path


def run_migration(args) -> int:
    """Run the phases selected by ``args``; returns the process exit code."""
    if args.schema_only and args.data_only:
        print("--schema-only and --data-only are mutually exclusive", file=sys.stderr)
        return 1

    config = MigrationConfig(
        source_url=args.source_url or "",
        source_key=args.source_key or "",
        target_url=args.target_url or "",
        target_key=args.target_key or "",
        source_service_key=args.source_service_key,
        target_service_key=args.target_service_key,
        include_storage=args.include_storage,
        storage_bucket=args.storage_bucket,
    )

    errors = config.validate(schema_only=args.schema_only)
    if errors:
        print(f"Configuration error: {', '.join(errors)}", file=sys.stderr)
        print("Use --help for usage information")
        return 1

    options = MigrationOptions(
        batch_size=args.batch_size,
        include_schema=not args.data_only,
        include_data=not args.schema_only,
        include_storage=args.include_storage and not args.schema_only,
    )

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    try:
        print("Starting database migration...")
        print(
            f"Options: Schema: {options.include_schema}, Data: {options.include_data}, "
            f"Storage: {options.include_storage}"
        )

        migration = DatabaseMigration(config)

        if options.include_data:
            result = migration.test_connections()
            if not result.ok:
                print(f"Connection failed - {result.summary()}", file=sys.stderr)
                for hint in result.hints():
                    print(hint)
                return 1
            print("Connections tested successfully")

        if options.include_schema:
            save_file(output_dir, "schema.sql", migration.export_schema())
            print("Schema exported")

        if options.include_data:
            records = migration.export_data(options)
            save_file(output_dir, "data.json", json.dumps(records, indent=2, default=str))
            print(f"Data exported: {count_records(records)} records")

            if args.export_sql:
                from .services.sql_generator import SQLGenerator
                for table, sql in SQLGenerator().generate(records).items():
                    save_file(output_dir, f"data/{table}.sql", sql)

            results = migration.import_data(records, options)
            failed = sum(r.total_failed for r in results.values())
            if failed:
                print(f"Data imported with {failed} failed records")
            else:
                print("Data imported successfully")

            if options.include_storage:
                storage = migration.migrate_storage()
                if storage.skipped:
                    print("Storage migration skipped (service keys required)")
                else:
                    print(
                        f"Storage migrated: {storage.files_copied} files, "
                        f"{storage.files_failed} failed"
                    )

    except Exception as e:
        print(f"Migration failed: {e}", file=sys.stderr)
        logger.debug("Migration failure details", exc_info=True)
        return 1

    print("Migration completed successfully!")
    print(f"Output files saved to: {output_dir}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for ``migrate``."""
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout
    )

    return run_migration(args)


def help_main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for ``migrate-help``; prints guidance only."""
    argv = sys.argv[1:] if argv is None else argv

    if "--help" in argv or "-h" in argv:
        print(DETAILED_HELP)
    else:
        print(QUICK_HELP)
    return 0


if __name__ == "__main__":
    sys.exit(main())
