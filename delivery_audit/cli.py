"""
delivery_audit/cli.py
Command-line interface for the WhatsApp delivery audit.

USAGE:
  delivery-audit                      # reconcile (default command)
  delivery-audit reconcile --lookback-days 60 --limit 1000
  delivery-audit phones --output reports/phones.json
  python -m delivery_audit --env-file .env.local

Both commands are read-only. Exit code 0 means the audit ran (findings are
data, not failures); 1 means it could not run at all.
"""
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

from delivery_audit import __version__
from delivery_audit.config import DEFAULT_ENV_FILE, AuditSettings, load_settings
from delivery_audit.exceptions import AuditError
from delivery_audit.integrations.base import MessageSource, SalesSource
from delivery_audit.integrations.evolution import EvolutionMessageSource
from delivery_audit.integrations.firestore import FirestoreSalesSource
from delivery_audit.services.phone_validation import audit_customer_phones
from delivery_audit.services.reconciliation_engine import run_reconciliation
from delivery_audit.services.report_export import (
    render_phone_summary,
    render_reconciliation_summary,
    write_json_report,
)
from delivery_audit.utils import get_logger, setup_logging
from delivery_audit.utils.time import isoformat_utc, utc_now

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='delivery-audit',
        description='Cross-check sales follow-up status against WhatsApp sent messages (read-only).',
    )
    parser.add_argument(
        'command',
        nargs='?',
        default='reconcile',
        choices=('reconcile', 'phones'),
        help='reconcile: sales vs WhatsApp messages (default); phones: E.164 check of customer phones',
    )
    parser.add_argument(
        '--lookback-days',
        type=int,
        help='Days of WhatsApp history to fetch (env LOOKBACK_DAYS, default 30)',
    )
    parser.add_argument(
        '--limit',
        type=int,
        help='Maximum messages to fetch (env MESSAGE_FETCH_LIMIT, default 500)',
    )
    parser.add_argument(
        '--output', '-o',
        type=Path,
        help='Report file path (env REPORT_PATH / PHONE_REPORT_PATH)',
    )
    parser.add_argument(
        '--env-file',
        default=DEFAULT_ENV_FILE,
        help=f'dotenv file loaded before reading the environment (default: {DEFAULT_ENV_FILE})',
    )
    parser.add_argument(
        '--log-level',
        help='DEBUG, INFO, WARNING or ERROR (env LOG_LEVEL, default INFO)',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def apply_overrides(settings: AuditSettings, args: argparse.Namespace) -> AuditSettings:
    changes = {}
    if args.lookback_days is not None:
        changes['lookback_days'] = args.lookback_days
    if args.limit is not None:
        changes['message_fetch_limit'] = args.limit
    if args.output is not None:
        key = 'phone_report_path' if args.command == 'phones' else 'report_path'
        changes[key] = args.output
    if args.log_level:
        changes['log_level'] = args.log_level.upper()
    return dataclasses.replace(settings, **changes) if changes else settings


def build_sources(settings: AuditSettings) -> Tuple[SalesSource, MessageSource]:
    return FirestoreSalesSource(settings), EvolutionMessageSource(settings.evolution)


def _emit(lines: Sequence[str]) -> None:
    print("\n".join(lines))


def run_reconcile_command(settings: AuditSettings) -> int:
    sales_source, message_source = build_sources(settings)
    report = asyncio.run(run_reconciliation(sales_source, message_source, settings))
    path = write_json_report(report, settings.report_path)
    _emit(render_reconciliation_summary(report, report_path=path))
    return EXIT_OK


def run_phones_command(settings: AuditSettings) -> int:
    sales_source, _ = build_sources(settings)
    customers = asyncio.run(sales_source.fetch_all_customers())
    report = audit_customer_phones(customers, generated_at=isoformat_utc(utc_now()))
    path = write_json_report(report, settings.phone_report_path)
    _emit(render_phone_summary(report, report_path=path))
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = apply_overrides(load_settings(args.env_file), args)
    except AuditError as exc:
        print(f"❌ Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_FATAL

    setup_logging(log_level=settings.log_level, log_file=settings.log_file, enable_console=True)

    try:
        if args.command == 'phones':
            return run_phones_command(settings)
        return run_reconcile_command(settings)
    except AuditError as exc:
        logger.error("Audit could not run", command=args.command, error=str(exc))
        print(f"\n❌ Could not run the audit: {exc}", file=sys.stderr)
        return EXIT_FATAL
    except OSError as exc:
        logger.error("Could not write report", command=args.command, error=str(exc))
        print(f"\n❌ Could not write the report: {exc}", file=sys.stderr)
        return EXIT_FATAL


if __name__ == '__main__':
    sys.exit(main())
