from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from importflow.adapters.registry_file import load_registry
from importflow.app import run_agreement_import, run_registry_sync
from importflow.config import configure_logging
from importflow.domain.errors import UnsupportedDocumentError
from importflow.domain.ports.observer import LoggingObserver

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from importflow.app import WorkflowRun

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Review and apply staged imports")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    agreement = subparsers.add_parser(
        "agreement-import",
        help="Extract articles from an agreement document and import them",
    )
    agreement.add_argument("document", type=Path, help="Text document to analyze")
    agreement.add_argument(
        "--agreement-id",
        type=str,
        required=True,
        help="Agreement the extracted articles belong to",
    )
    agreement.add_argument(
        "--company-id",
        type=str,
        required=True,
        help="Company owning the derived enforcement rules",
    )
    agreement.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="ARTICLE",
        help="Article number to leave out (repeatable)",
    )
    agreement.add_argument(
        "--dry-run",
        action="store_true",
        help="Only show what would be imported",
    )

    registry = subparsers.add_parser(
        "registry-sync",
        help="Sync the feature registry into the stored feature catalogue",
    )
    registry.add_argument(
        "--registry",
        type=Path,
        required=True,
        help="JSON file with the feature registry",
    )
    registry.add_argument(
        "--module",
        action="append",
        default=[],
        metavar="CODE",
        help="Limit the scan to a module (repeatable; default: all modules)",
    )
    registry.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="CODE",
        help="Feature code to leave out (repeatable)",
    )
    registry.add_argument(
        "--release-id",
        type=str,
        help="Link every synced feature to this release",
    )
    registry.add_argument(
        "--include-updates",
        action="store_true",
        help="Also write changed fields of existing features",
    )
    registry.add_argument(
        "--dry-run",
        action="store_true",
        help="Only show what would be synced",
    )

    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    if args.command == "agreement-import":
        if not args.agreement_id.strip() or not args.company_id.strip():
            raise ValueError("Agreement and company ids must not be blank")
        if not args.document.is_file():
            raise ValueError(f"Document not found: {args.document}")
    elif args.command == "registry-sync" and not args.registry.is_file():
        raise ValueError(f"Registry file not found: {args.registry}")


def _report(run: WorkflowRun) -> None:
    proposal = run.proposal
    if proposal is not None:
        summary = proposal.summary
        log.info(
            "Proposal: %s new, %s updated, %s unchanged",
            summary.new,
            summary.updated,
            summary.unchanged,
        )
        for name, value in summary.aggregates.items():
            log.info("  %s: %s", name.replace("_", " "), value)
        for name, value in summary.details.items():
            log.info("  %s: %s", name.replace("_", " "), value)
        for highlight in summary.highlights:
            log.info("  * %s", highlight)
        for group, items in proposal.groups().items():
            log.info("[%s]", group)
            for item in items:
                changes = f" ({', '.join(item.changes)})" if item.changes else ""
                log.info("  %-9s %s%s", item.status, item.label, changes)

    result = run.result
    if result is not None:
        log.info(
            "Result: %s created, %s updated, %s skipped, %s dependent records written",
            result.created,
            result.updated,
            result.skipped,
            result.children_created,
        )
        for message in result.error_messages():
            log.warning("  %s", message)
    if run.error:
        log.error("Error: %s", run.error)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    observer = LoggingObserver()

    try:
        if parsed_args.command == "agreement-import":
            run = asyncio.run(
                run_agreement_import(
                    parsed_args.document,
                    agreement_id=parsed_args.agreement_id.strip(),
                    company_id=parsed_args.company_id.strip(),
                    exclude=parsed_args.exclude,
                    dry_run=parsed_args.dry_run,
                    observer=observer,
                )
            )
        elif parsed_args.command == "registry-sync":
            registry = load_registry(parsed_args.registry)
            run = asyncio.run(
                run_registry_sync(
                    registry,
                    modules=parsed_args.module,
                    exclude=parsed_args.exclude,
                    release_id=parsed_args.release_id,
                    include_updates=parsed_args.include_updates,
                    dry_run=parsed_args.dry_run,
                    observer=observer,
                )
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except UnsupportedDocumentError:
        log.exception("Unsupported document")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during import")
        sys.exit(1)

    _report(run)
    if run.failed:
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def entrypoint() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    entrypoint()
