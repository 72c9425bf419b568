#!/usr/bin/env python3
"""Manage a loan portfolio from the command line.

Reads and writes the local state file, exchanges records through export
files and share links, and optionally mirrors the portfolio through Kafka.

Examples::

    python scripts/portfolio.py sample --count 20
    python scripts/portfolio.py alerts --warning-days 3
    python scripts/portfolio.py share > link.txt
    python scripts/portfolio.py open-link "$(cat link.txt)" --mode merge --yes
    python scripts/portfolio.py sync --duration 60
"""

import argparse
import logging
import sys
import time
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_sync.analysis import PortfolioAnalyst
from loan_sync.config import LoanSyncConfig
from loan_sync.engine import (
    derive_alerts,
    derive_projection,
    group_by_client,
    summarize_portfolio,
)
from loan_sync.exceptions import DecodeError, ParseError, PayloadTooLargeError
from loan_sync.generators import LoanRecordGenerator
from loan_sync.logging import setup_logging
from loan_sync.models import LoanRecord, MergeMode
from loan_sync.store import LocalStateFile, PortfolioStore, plan_import
from loan_sync.sync.kafka import KafkaSyncAdapter
from loan_sync.sync.session import CloudSession
from loan_sync.transfer import (
    build_share_url,
    extract_shared_records,
    read_export_file,
    write_export_file,
)

logger = logging.getLogger(__name__)


def money(value) -> str:
    return f"R$ {value:,.2f}"


def cmd_summary(store: PortfolioStore, args: argparse.Namespace, config: LoanSyncConfig) -> int:
    summary = summarize_portfolio(store.records)
    print(f"Total invested:        {money(summary.total_invested)}")
    print(f"Expected return:       {money(summary.total_revenue_expected)}")
    print(f"Expected profit:       {money(summary.total_profit)}")
    print(f"Received so far:       {money(summary.total_received)}")
    print(f"Clients:               {summary.active_clients}")
    print(f"Average ROI:           {summary.average_roi:.1f}%")
    print()
    for records in group_by_client(store.records).values():
        for record in records:
            print(
                f"{record.name:<30} {record.status.value:<10} "
                f"{record.paid_count}/{record.installments_count} paid  {money(record.principal)}"
            )
    return 0


def cmd_alerts(store: PortfolioStore, args: argparse.Namespace, config: LoanSyncConfig) -> int:
    warning_days = args.warning_days if args.warning_days is not None else config.alerts.warning_days
    alerts = derive_alerts(store.records, warning_days, date.today())
    if not alerts:
        print("No installments due.")
    for alert in alerts:
        print(
            f"[{alert.severity.value:>7}] {alert.client_name} ({alert.phone}) "
            f"#{alert.installment_number} {money(alert.value)} due {alert.due_date.isoformat()} "
            f"({alert.days_until_due:+d} days)"
        )
    return 0


def cmd_projection(store: PortfolioStore, args: argparse.Namespace, config: LoanSyncConfig) -> int:
    print(f"{'Period':<10}{'Principal':>16}{'Interest':>16}{'Total':>16}")
    for point in derive_projection(store.records):
        print(
            f"{point.label:<10}{money(point.cumulative_principal):>16}"
            f"{money(point.cumulative_interest):>16}{money(point.cumulative_total):>16}"
        )
    return 0


def cmd_export(store: PortfolioStore, args: argparse.Namespace, config: LoanSyncConfig) -> int:
    count = write_export_file(args.output, store.snapshot())
    print(f"Exported {count} records to {args.output}")
    return 0


def _confirm_import(store: PortfolioStore, incoming: list[LoanRecord], args: argparse.Namespace) -> int:
    plan = plan_import(store, incoming)
    print(plan.describe())

    mode = args.mode
    if not args.yes:
        answer = input(f"Apply as [merge/replace/cancel] ({mode or 'merge'}): ").strip().lower()
        mode = answer or mode or "merge"
    if mode not in ("merge", "replace"):
        print("Import cancelled.")
        return 1

    report = plan.apply(MergeMode(mode))
    print(f"Import applied ({mode}): {report.counts()}")
    return 0


def cmd_import(store: PortfolioStore, args: argparse.Namespace, config: LoanSyncConfig) -> int:
    try:
        incoming = read_export_file(args.input)
    except ParseError as e:
        print(f"Cannot import {args.input}: {e}", file=sys.stderr)
        return 1
    return _confirm_import(store, incoming, args)


def cmd_share(store: PortfolioStore, args: argparse.Namespace, config: LoanSyncConfig) -> int:
    try:
        url = build_share_url(
            args.base_url or config.share.base_url,
            store.snapshot(),
            param=config.share.param,
            max_chars=config.share.max_payload_chars,
        )
    except PayloadTooLargeError as e:
        print(f"Portfolio too large for a link ({e}); use export instead.", file=sys.stderr)
        return 1
    print(url)
    return 0


def cmd_open_link(store: PortfolioStore, args: argparse.Namespace, config: LoanSyncConfig) -> int:
    try:
        incoming = extract_shared_records(
            args.url,
            param=config.share.param,
            max_chars=config.share.max_payload_chars,
        )
    except DecodeError as e:
        print(f"Invalid share link: {e}", file=sys.stderr)
        return 1
    if incoming is None:
        print("The link carries no portfolio data.", file=sys.stderr)
        return 1
    return _confirm_import(store, incoming, args)


def cmd_sample(store: PortfolioStore, args: argparse.Namespace, config: LoanSyncConfig) -> int:
    generator = LoanRecordGenerator(seed=args.seed)
    count = 0
    for record in generator.generate_portfolio(args.count, date.today()):
        store.add(record)
        count += 1
    print(f"Added {count} sample loans")
    return 0


def cmd_analyze(store: PortfolioStore, args: argparse.Namespace, config: LoanSyncConfig) -> int:
    # No generator is bundled; the analyst reports that analysis is unavailable
    print(PortfolioAnalyst().analyze(store.records))
    return 0


def cmd_sync(store: PortfolioStore, args: argparse.Namespace, config: LoanSyncConfig) -> int:
    if args.bootstrap:
        config.kafka.bootstrap_servers = args.bootstrap
    elif not config.cloud_enabled:
        print("Cloud sync is disabled; set CLOUD_ENABLED=true or pass --bootstrap.", file=sys.stderr)
        return 1

    session = CloudSession(store, KafkaSyncAdapter())
    if not session.connect(config.kafka):
        print("Cloud sync unavailable; local state unchanged.", file=sys.stderr)
        return 1

    adapter = session.adapter
    deadline = time.time() + args.duration
    try:
        while time.time() < deadline:
            adapter.pump()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        session.disconnect()

    print(f"Synced: {len(store.live())} live records, version {store.version}")
    return 0


COMMANDS = {
    "summary": cmd_summary,
    "alerts": cmd_alerts,
    "projection": cmd_projection,
    "export": cmd_export,
    "import": cmd_import,
    "share": cmd_share,
    "open-link": cmd_open_link,
    "sample": cmd_sample,
    "analyze": cmd_analyze,
    "sync": cmd_sync,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage a loan portfolio")
    parser.add_argument(
        "--state",
        type=Path,
        default=None,
        help="Local state file (default: $LOAN_SYNC_STATE_PATH or loan_sync_state.json)",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Log level (default: $LOG_LEVEL or INFO)")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("summary", help="Show portfolio totals and loans by client")

    alerts = sub.add_parser("alerts", help="List due and overdue installments")
    alerts.add_argument("--warning-days", type=int, default=None, help="Warning window in days")

    sub.add_parser("projection", help="Show the cumulative recovery projection")

    export = sub.add_parser("export", help="Write all records to a JSON file")
    export.add_argument("output", type=Path, help="Export file path")

    for name, help_text, target in (
        ("import", "Import records from a JSON export file", "input"),
        ("open-link", "Import records from a share link", "url"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument(target, type=Path if target == "input" else str)
        cmd.add_argument("--mode", choices=["merge", "replace"], default=None, help="Import mode")
        cmd.add_argument("--yes", action="store_true", help="Apply without prompting")

    share = sub.add_parser("share", help="Print a share link carrying all records")
    share.add_argument("--base-url", type=str, default=None, help="Link base URL")

    sample = sub.add_parser("sample", help="Add generated sample loans")
    sample.add_argument("--count", type=int, default=10, help="Number of loans (default: 10)")
    sample.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")

    sub.add_parser("analyze", help="Request a portfolio analysis")

    sync = sub.add_parser("sync", help="Mirror the portfolio through Kafka")
    sync.add_argument("--bootstrap", type=str, default=None, help="Kafka bootstrap servers")
    sync.add_argument("--duration", type=float, default=30.0, help="Seconds to stay connected (default: 30)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    config = LoanSyncConfig.from_env()
    if args.state is not None:
        config.storage.path = args.state

    setup_logging(args.log_level or config.log_level, "json" if args.json_logs else "standard")

    store = PortfolioStore.from_storage(LocalStateFile(config.storage.path, config.storage.key))
    store.refresh_statuses()
    return COMMANDS[args.command](store, args, config)


if __name__ == "__main__":
    sys.exit(main())
