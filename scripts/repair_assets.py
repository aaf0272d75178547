#!/usr/bin/env python3
"""Repair asset files whose URL points at another asset's storage path.

Usage:
    python scripts/repair_assets.py -t <token> (--spaces ID... | --all-spaces) \\
        (--environments ID... | --all-environments) \\
        [--force-republish] [--skip-archived] [--dry-run] \\
        [--processing-attempts N] [--retry-interval-ms MS] \\
        [--on-asset-error {abort,record}] [--output report.json] [-v]

The access token may also come from CONTENTFUL_MANAGEMENT_ACCESS_TOKEN.
Logs go to stderr as JSON lines; the one-line summary goes to stdout.

Exit codes:
    0    run completed
    1    an asset could not be repaired or a remote call failed
    2    bad arguments or missing access token
    130  cancelled (SIGINT / SIGTERM)
"""

import argparse
import signal
import sys
from pathlib import Path

from pydantic import ValidationError

# Ensure project root is on sys.path so app/*, clients/* and repairers/* are
# importable when the script is invoked from any working directory.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.config import load_settings  # noqa: E402
from app.models.options import AssetErrorPolicy, AssetProcessingOptions  # noqa: E402
from app.utils.cancellation import CancellationToken, OperationCancelledError  # noqa: E402
from app.utils.logging import configure_logging, get_logger  # noqa: E402
from clients.errors import ContentClientError  # noqa: E402
from clients.management import ManagementClient  # noqa: E402
from reports.summary import build_report, write_report  # noqa: E402
from repairers.traversal import AssetRepairError, process_assets  # noqa: E402

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asset-repair",
        description="Rewrite cross-referenced asset file URLs and reprocess them.",
    )
    parser.add_argument("--access-token", "-t", metavar="TOKEN",
                        help="Management API token (default: $CONTENTFUL_MANAGEMENT_ACCESS_TOKEN)")
    parser.add_argument("--api-url", metavar="URL",
                        help="Management API root (default: $CONTENTFUL_MANAGEMENT_API_URL)")

    spaces = parser.add_mutually_exclusive_group(required=True)
    spaces.add_argument("--spaces", "-s", nargs="+", metavar="ID",
                        help="Space ids to process")
    spaces.add_argument("--all-spaces", "-S", action="store_true",
                        help="Process every space the token can access")

    envs = parser.add_mutually_exclusive_group(required=True)
    envs.add_argument("--environments", "-e", nargs="+", metavar="ID",
                      help="Environment ids to process in each space")
    envs.add_argument("--all-environments", "-E", action="store_true",
                      help="Process every (non-alias) environment")

    parser.add_argument("--force-republish", action="store_true",
                        help="Republish repaired assets even if they had other unpublished changes")
    parser.add_argument("--skip-archived", action="store_true",
                        help="Leave archived assets untouched")
    parser.add_argument("--dry-run", action="store_true",
                        help="Report what would change without changing anything")
    parser.add_argument("--processing-attempts", type=int, metavar="N",
                        help="Tries per asset (default: 3)")
    parser.add_argument("--retry-interval-ms", type=int, metavar="MS",
                        help="Delay between tries (default: 200)")
    parser.add_argument("--on-asset-error", choices=[p.value for p in AssetErrorPolicy],
                        default=AssetErrorPolicy.ABORT.value,
                        help="Stop the run (abort) or note the asset and continue (record)")
    parser.add_argument("--output", "-o", metavar="PATH",
                        help="Write a JSON run report to PATH")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="-v for debug logs, -vv to also dump asset records")
    return parser


def _install_signal_handlers(cancel_token: CancellationToken, log) -> dict:
    """Route SIGINT/SIGTERM to *cancel_token*; return the handlers replaced."""
    def _handle(signum, _frame):
        log.warning("cancellation_requested", signal=signal.Signals(signum).name)
        cancel_token.cancel()
        # A second Ctrl-C kills the process the usual way.
        signal.signal(signal.SIGINT, signal.default_int_handler)

    return {
        signum: signal.signal(signum, _handle)
        for signum in (signal.SIGINT, signal.SIGTERM)
    }


def run(argv: list[str]) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return int(exc.code) if exc.code is not None else EXIT_USAGE

    configure_logging(args.verbose)
    log = get_logger("scripts.repair_assets")

    try:
        settings = load_settings(
            access_token=args.access_token,
            api_url=args.api_url,
            processing_attempts=args.processing_attempts,
            retry_interval_ms=args.retry_interval_ms,
        )
        options = AssetProcessingOptions(
            processing_attempts=settings.processing_attempts,
            retry_interval_ms=settings.retry_interval_ms,
            skip_archived=args.skip_archived,
            force_republish=args.force_republish,
            dry_run=args.dry_run,
            on_asset_error=AssetErrorPolicy(args.on_asset_error),
        )
    except ValidationError as exc:
        print(f"ERROR: invalid settings: {exc}", file=sys.stderr)
        return EXIT_USAGE

    client = ManagementClient(
        settings.access_token,
        base_url=settings.api_url,
        timeout=settings.http_timeout,
    )
    cancel_token = CancellationToken()
    previous_handlers = _install_signal_handlers(cancel_token, log)

    try:
        result = process_assets(
            client,
            space_ids=args.spaces,
            env_ids=args.environments,
            options=options,
            cancel_token=cancel_token,
            log=log,
        )
    except OperationCancelledError:
        log.warning("processing_cancelled")
        print("ERROR: cancelled", file=sys.stderr)
        return EXIT_CANCELLED
    except AssetRepairError as exc:
        log.error(
            "error_processing_assets",
            space_id=exc.space_id,
            environment_id=exc.environment_id,
            asset_id=exc.asset_id,
            error=repr(exc.__cause__),
        )
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except ContentClientError as exc:
        log.error("error_processing_assets", error=repr(exc))
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)

    report = build_report(result, options)
    if args.output:
        write_report(report, Path(args.output))

    totals = report["totals"]
    summary = (
        f"OK: {totals['checked']} checked; {totals['updated']} updated; "
        f"{totals['published']} published"
    )
    if totals["failed"]:
        summary += f"; {totals['failed']} failed"
    if options.dry_run:
        summary += " (dry run)"
    print(summary)
    return EXIT_OK


def main() -> None:
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
