# app/cli/retention.py
"""
CLI commands for dataset retention.

Usage:
    python -m app.cli.retention status
    python -m app.cli.retention run --dry-run
    python -m app.cli.retention run --confirm
    python -m app.cli.retention set-policy --enable --days 90 --mode archive
    python -m app.cli.retention ensure-archive

A cron job (or any external timer) drives periodic retention by calling
`run --confirm` every interval_hours.
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()


def get_db_session():
    """Get a database session."""
    from app.database import SessionLocal

    return SessionLocal()


def _print_policy(policy):
    print(f"  Enabled: {policy.enabled}")
    print(f"  Retention days: {policy.retention_days}")
    print(f"  Mode: {policy.mode.value}")
    print(f"  Delete files: {policy.delete_files}")
    print(f"  Interval hours: {policy.interval_hours}")


def cmd_status(args):
    """Show the current retention policy and what a run would affect."""
    from app.services.retention import load_policy, run_retention

    db = get_db_session()
    try:
        policy = load_policy(db)
        print("\n=== Retention Status ===\n")
        _print_policy(policy)

        preview = run_retention(db, dry_run=True)
        print()
        if preview.skipped_reason:
            print(f"Retention skipped: {preview.skipped_reason}")
        else:
            print(f"Cutoff: {preview.cutoff.isoformat()}")
            print(f"Datasets eligible: {preview.files_found}")
        print()
    finally:
        db.close()


def cmd_run(args):
    """Run retention (archive/delete expired datasets)."""
    from app.services.retention import run_retention

    # Safety check
    if not args.dry_run and not args.confirm:
        print("Error: Retention run requires --confirm flag for non-dry-run operations")
        print("Use --dry-run to preview what would be deleted")
        sys.exit(1)

    db = get_db_session()
    try:
        print(f"\n{'DRY RUN - ' if args.dry_run else ''}Running dataset retention...\n")

        try:
            result = run_retention(db, dry_run=args.dry_run)
        except Exception as e:
            print(f"Error: retention failed, no datasets were affected: {e}")
            sys.exit(1)

        if result.skipped_reason:
            print(f"Skipped: {result.skipped_reason}")
            return

        print(f"Mode: {result.mode.value}")
        print(f"Cutoff: {result.cutoff.isoformat()}")
        print(f"Found: {result.files_found}")
        print(f"Archived: {result.files_archived}")
        print(f"Deleted: {result.files_deleted}")
        print(f"Files removed from disk: {result.disk_files_deleted}")

        if result.rows_archived or result.columns_archived:
            print("\nArchived records:")
            print(f"  rows: {result.rows_archived}")
            print(f"  columns: {result.columns_archived}")
            print(f"  quality scores: {result.quality_archived}")
            print(f"  profiles: {result.profiles_archived}")

        if result.related_records_deleted:
            print("\nRelated records deleted:")
            for table, count in result.related_records_deleted.items():
                print(f"  {table}: {count}")
    finally:
        db.close()


def cmd_set_policy(args):
    """Update the retention policy; omitted options keep their current value."""
    from app.models import RetentionMode
    from app.services.retention import load_policy, save_policy

    db = get_db_session()
    try:
        policy = load_policy(db)

        if args.enabled is not None:
            policy.enabled = args.enabled
        if args.days is not None:
            policy.retention_days = args.days
        if args.mode is not None:
            policy.mode = RetentionMode(args.mode)
        if args.delete_files is not None:
            policy.delete_files = args.delete_files
        if args.interval_hours is not None:
            policy.interval_hours = args.interval_hours

        policy = save_policy(db, policy)
        print("Saved retention policy:")
        _print_policy(policy)
    finally:
        db.close()


def cmd_ensure_archive(args):
    """Create the archive tables ahead of time."""
    from app.database import engine
    from app.services.retention import ensure_archive_schema

    with engine.begin() as connection:
        ensure_archive_schema(connection)
    print("Archive tables are present")


def build_parser() -> argparse.ArgumentParser:
    from app.models import RetentionMode

    parser = argparse.ArgumentParser(
        description="Dataset Retention CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check current status
  python -m app.cli.retention status

  # Preview what would be deleted
  python -m app.cli.retention run --dry-run

  # Run retention (from cron)
  python -m app.cli.retention run --confirm

  # Archive datasets older than 90 days
  python -m app.cli.retention set-policy --enable --days 90 --mode archive
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # status command
    status_parser = subparsers.add_parser("status", help="Show retention status")
    status_parser.set_defaults(func=cmd_status)

    # run command
    run_parser = subparsers.add_parser("run", help="Archive/delete expired datasets")
    run_parser.add_argument("--dry-run", action="store_true", help="Preview only, don't delete")
    run_parser.add_argument("--confirm", action="store_true", help="Confirm retention run")
    run_parser.set_defaults(func=cmd_run)

    # set-policy command
    policy_parser = subparsers.add_parser("set-policy", help="Update retention policy")
    enabled_group = policy_parser.add_mutually_exclusive_group()
    enabled_group.add_argument("--enable", dest="enabled", action="store_true", default=None)
    enabled_group.add_argument("--disable", dest="enabled", action="store_false")
    policy_parser.add_argument("--days", type=int, help="Retention window in days")
    policy_parser.add_argument(
        "--mode",
        choices=[m.value for m in RetentionMode],
        help="delete or archive",
    )
    files_group = policy_parser.add_mutually_exclusive_group()
    files_group.add_argument("--delete-files", dest="delete_files", action="store_true", default=None)
    files_group.add_argument("--keep-files", dest="delete_files", action="store_false")
    policy_parser.add_argument("--interval-hours", type=int, help="Advisory scheduler interval")
    policy_parser.set_defaults(func=cmd_set_policy, enabled=None, delete_files=None)

    # ensure-archive command
    archive_parser = subparsers.add_parser("ensure-archive", help="Create archive tables if missing")
    archive_parser.set_defaults(func=cmd_ensure_archive)

    return parser


def main(argv=None):
    from app.config import get_settings
    from app.logging_config import configure_logging

    settings = get_settings()
    configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

    args = build_parser().parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
