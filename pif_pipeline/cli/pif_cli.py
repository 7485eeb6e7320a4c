"""
Command line interface for the PIF submission pipeline.

Usage:
    python -m pif_pipeline.cli.pif_cli validate --workbook <path> --site <site> [options]
    python -m pif_pipeline.cli.pif_cli submit --workbook <path> --site <site> [options]
    python -m pif_pipeline.cli.pif_cli promote --site <site>
    python -m pif_pipeline.cli.pif_cli archive --site <site>
    python -m pif_pipeline.cli.pif_cli reconcile --workbook <path> --site <site> [--yes]
    python -m pif_pipeline.cli.pif_cli log [--site <site>] [--limit N]

Connection settings come from PIF_* environment variables (optionally loaded
from --env-file).
"""

import argparse
import sys

from pif_pipeline.config import PipelineSettings
from pif_pipeline.core.models import OperationResult
from pif_pipeline.observability.logger import get_logger, set_log_level
from pif_pipeline.pipeline import SubmissionService
from pif_pipeline.surface.workbook import WorkbookSurface
from pif_pipeline.warehouse.audit import query_submission_log

logger = get_logger(__name__)


def print_result(result: OperationResult, show_issues: bool = True) -> int:
    """Print an OperationResult; returns the process exit code."""
    print(f"\n{result.message}")
    if result.counts:
        for name, count in result.counts.items():
            print(f"  {name:<22} {count:>8}")
    if show_issues and result.report is not None and not result.report.is_clean:
        print(f"\n{'Row':>6}  {'Type':<22} Message")
        print(f"{'-' * 80}")
        for issue in result.report.issues:
            print(f"{issue.row_number:>6}  {issue.error_type:<22} {issue.message}")
    print(f"\nElapsed: {result.elapsed_seconds:.1f}s")
    return 0 if result.success else 1


def build_service(args) -> SubmissionService:
    settings = PipelineSettings.from_env(args.env_file)
    if args.layout:
        settings = settings.model_copy(update={"layout_path": args.layout})
    return SubmissionService(settings)


def open_surface(args) -> WorkbookSurface:
    return WorkbookSurface(args.workbook, sheet=args.sheet)


def validate_command(args) -> int:
    """Validate a workbook and highlight rows with issues."""
    service = build_service(args)
    surface = open_surface(args)
    result = service.validate(surface, service.context(args.site, surface.name))
    if args.save:
        surface.save()
    return print_result(result)


def submit_command(args) -> int:
    """Validate, stage and commit a workbook to inflight."""
    service = build_service(args)
    surface = open_surface(args)
    result = service.submit(surface, service.context(args.site, surface.name))
    if args.save:
        surface.save()
    return print_result(result)


def promote_command(args) -> int:
    """Commit the current staging contents to inflight."""
    service = build_service(args)
    return print_result(service.commit(service.context(args.site)))


def archive_command(args) -> int:
    """Archive approved inflight records."""
    service = build_service(args)
    return print_result(service.archive(service.context(args.site)))


def reconcile_command(args) -> int:
    """Delete workbook rows already present in the archive."""
    service = build_service(args)
    surface = open_surface(args)

    def confirm(count: int) -> bool:
        if args.yes:
            return True
        answer = input(f"Delete {count} archived row(s) from {surface.name}? [y/N] ")
        return answer.strip().lower() in ("y", "yes")

    result = service.reconcile(surface, service.context(args.site, surface.name), confirm)
    if result.counts.get("deleted"):
        surface.save()
    return print_result(result)


def log_command(args) -> int:
    """Show recent submission log entries."""
    service = build_service(args)
    entries = query_submission_log(service.pool, site=args.site, limit=args.limit)
    if not entries:
        print("\nNo submissions logged.")
        return 0

    print(f"\n{'When':<20} {'Site':<5} {'Transition':<20} {'Records':>8}  {'By':<15} Source")
    print(f"{'-' * 90}")
    for entry in entries:
        when = entry.submitted_at.strftime("%Y-%m-%d %H:%M:%S")
        print(
            f"{when:<20} {entry.site:<5} {entry.transition:<20} {entry.record_count:>8}  "
            f"{entry.submitted_by:<15} {entry.source_file or '-'}"
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the PIF CLI."""
    parser = argparse.ArgumentParser(
        description="PIF submission pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Optional .env file with PIF_* settings"
    )
    parser.add_argument(
        "--layout",
        default=None,
        help="Layout YAML file (default: PIF_LAYOUT_PATH or the built-in layout)"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: LOG_LEVEL or INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_workbook_args(sub):
        sub.add_argument("--workbook", required=True, help="Path to the .xlsx entry workbook")
        sub.add_argument("--sheet", default=None, help="Worksheet name (default: active sheet)")

    def add_site_arg(sub, required=True):
        sub.add_argument("--site", required=required, default=None, help="Site code (1-4 characters)")

    validate_parser = subparsers.add_parser("validate", help="Validate workbook rows")
    add_workbook_args(validate_parser)
    add_site_arg(validate_parser)
    validate_parser.add_argument("--save", action="store_true", help="Save highlights and status")

    submit_parser = subparsers.add_parser("submit", help="Validate, stage and commit to inflight")
    add_workbook_args(submit_parser)
    add_site_arg(submit_parser)
    submit_parser.add_argument("--save", action="store_true", help="Save highlights and status")

    promote_parser = subparsers.add_parser("promote", help="Commit staged data to inflight")
    add_site_arg(promote_parser)

    archive_parser = subparsers.add_parser("archive", help="Archive approved inflight records")
    add_site_arg(archive_parser)

    reconcile_parser = subparsers.add_parser("reconcile", help="Remove archived rows from the workbook")
    add_workbook_args(reconcile_parser)
    add_site_arg(reconcile_parser)
    reconcile_parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    log_parser = subparsers.add_parser("log", help="Show the submission log")
    add_site_arg(log_parser, required=False)
    log_parser.add_argument("--limit", type=int, default=20, help="Entries to show (default: 20)")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.log_level:
        set_log_level(args.log_level)

    handlers = {
        "validate": validate_command,
        "submit": submit_command,
        "promote": promote_command,
        "archive": archive_command,
        "reconcile": reconcile_command,
        "log": log_command,
    }

    try:
        return handlers[args.command](args)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid input: {e}")
        print(f"\nError: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
