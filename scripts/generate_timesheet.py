#!/usr/bin/env python3
"""Generate a filled timesheet (and optionally an invoice) for one client month.

Client profiles come from the YAML file named by CLIENTS_FILE (or --clients).

Usage:
    python scripts/generate_timesheet.py acme 2026-04 --template timesheet.xlsx
    python scripts/generate_timesheet.py acme 2026-04 --template ts.xlsx \
        --exclude 2026-04-10 --invoice-template invoice.xlsx
"""

import argparse
import asyncio
import sys
from pathlib import Path

from smart_invoice.clients import GeminiClient, GeminiNotConfigured
from smart_invoice.config import configure_logging, get_settings, month_context
from smart_invoice.config.clients import load_client_profiles
from smart_invoice.errors import SmartInvoiceError
from smart_invoice.holidays import HolidayCatalog
from smart_invoice.layout import CellLayoutResolver, GeminiHintProvider, LayoutHintProvider
from smart_invoice.records import ClientProfile
from smart_invoice.store import InMemoryStore
from smart_invoice.workdays import DayStatusResolver, WorkRecordConfig
from smart_invoice.workflow import InvoiceWorkflow


def build_hint_provider(use_ai: bool) -> LayoutHintProvider | None:
    if not use_ai:
        return None
    try:
        return GeminiHintProvider(GeminiClient())
    except GeminiNotConfigured:
        print("Warning: GOOGLE_API_KEY not set, using local instruction parsing only")
        return None


async def run(args: argparse.Namespace, client: ClientProfile) -> int:
    async with HolidayCatalog() as catalog:
        with month_context(client.id, args.month):
            return await _generate(args, client, catalog)


async def _generate(
    args: argparse.Namespace, client: ClientProfile, catalog: HolidayCatalog
) -> int:
    workflow = InvoiceWorkflow(
        store=InMemoryStore(),
        resolver=DayStatusResolver(catalog),
        layout_resolver=CellLayoutResolver(build_hint_provider(args.ai)),
    )

    record = await workflow.open_month(client, args.month)
    if args.exclude or args.include or args.holidays is not None:
        config = WorkRecordConfig(
            use_holiday_source=(
                client.use_holiday_source if args.holidays is None else args.holidays
            ),
            excluded_dates=frozenset(args.exclude),
            included_dates=frozenset(args.include),
        )
        record = await workflow.update_config(record, config)

    print(f"{client.name} - {args.month}: {record.total_working_days} working days")
    for day, name in sorted(record.holiday_names.items()):
        print(f"  holiday {day}: {name}")

    output_dir = args.output or args.template.parent
    output_dir.mkdir(parents=True, exist_ok=True)

    result = await workflow.generate_timesheet(
        client, record, args.template, prompt=args.prompt
    )
    path = output_dir / (result.document.file_name or "timesheet.xlsx")
    path.write_bytes(result.content)
    print(f"Timesheet written to {path}")
    for skip in result.report.skipped:
        print(f"  skipped {skip.address}: {skip.reason}")

    if args.invoice_template:
        invoice = await workflow.generate_invoice(
            client, record, args.invoice_template, args.invoice_number
        )
        path = output_dir / (invoice.document.file_name or "invoice.xlsx")
        path.write_bytes(invoice.content)
        print(
            f"Invoice {invoice.document.document_number} written to {path} "
            f"({invoice.document.total_amount:.2f} {client.currency})"
        )
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Fill a client's timesheet template for one month"
    )
    parser.add_argument("client", help="Client id from the clients file")
    parser.add_argument("month", help="Month as YYYY-MM")
    parser.add_argument("--template", type=Path, required=True, help="Timesheet .xlsx template")
    parser.add_argument("--prompt", type=str, help="Fill instructions (overrides the profile)")
    parser.add_argument("--clients", type=Path, help="Client profiles YAML file")
    parser.add_argument("--output", type=Path, help="Output directory (default: template's)")
    parser.add_argument(
        "--exclude", action="append", default=[], metavar="YYYY-MM-DD", help="Day off"
    )
    parser.add_argument(
        "--include", action="append", default=[], metavar="YYYY-MM-DD", help="Extra working day"
    )
    parser.add_argument(
        "--holidays",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Count public holidays as days off (default: client profile)",
    )
    parser.add_argument("--ai", action="store_true", help="Ask Gemini for layout hints")
    parser.add_argument("--invoice-template", type=Path, help="Also fill this invoice template")
    parser.add_argument("--invoice-number", type=str, help="Invoice number (default: next)")
    args = parser.parse_args()

    configure_logging()

    profiles = load_client_profiles(args.clients or get_settings().clients_file)
    client = profiles.get(args.client)
    if client is None:
        print(f"Error: unknown client {args.client!r}")
        if profiles:
            print(f"Known clients: {', '.join(sorted(profiles))}")
        sys.exit(1)

    try:
        sys.exit(asyncio.run(run(args, client)))
    except SmartInvoiceError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
