from __future__ import annotations

import argparse
import logging
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Sequence

import pandas as pd

from account_tracking.config import REPO_ROOT, AuditSettings, load_settings, resolve_data_dir
from account_tracking.errors import AuditError, ValidationError
from account_tracking.status import AccountTrackingService
from account_tracking.store import FrameTicketStore
from directory.client import DirectoryClient
from directory.service import StatusChangeService
from reporting.business_days import day_bounds, local_date, midnight
from reporting.daily import DailyReport, validate_date_range
from reporting.export_csv import (
    daily_filename,
    daily_frame,
    monthly_filename,
    monthly_frame,
    weekly_filename,
    weekly_frame,
    write_csv,
)
from reporting.monthly import DEFAULT_TARGET_SYSTEM, MODE_CURRENT, MODES, MonthlyReport, snapshot_time
from reporting.report_md import build_daily_md, build_monthly_md, build_weekly_md, write_md
from reporting.report_pdf import build_html_and_pdf
from reporting.result import ReportResult
from reporting.weekly import WeeklyReport
from request_codes.mapper import RequestCodeMapper


log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2


def _iso_date(text: str) -> date:
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {text!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="reporting.run", description="Account audit reports")
    parser.add_argument("--settings", type=Path, default=None, help="JSON settings file")
    parser.add_argument("--data-dir", type=Path, default=None, help="Ticket export directory")
    parser.add_argument("--out-dir", type=Path, default=REPO_ROOT / "outputs")
    parser.add_argument("--pdf", action="store_true", help="Also render PDF (needs WeasyPrint)")
    parser.add_argument("--log-level", default="INFO")

    sub = parser.add_subparsers(dest="report", required=True)

    daily = sub.add_parser("daily", help="Directory status changes with account statuses")
    daily.add_argument("--start", type=_iso_date, default=None)
    daily.add_argument("--end", type=_iso_date, default=None)
    daily.add_argument("--day", type=_iso_date, default=None, help="Single day (overrides --start/--end)")

    sub.add_parser("weekly", help="Tickets created or updated this week")

    monthly = sub.add_parser("monthly", help="Account snapshot for one target system")
    monthly.add_argument("--system", default=DEFAULT_TARGET_SYSTEM)
    monthly.add_argument("--mode", choices=MODES, default="monthly")
    monthly.add_argument("--year", type=int, default=None)
    monthly.add_argument("--month", type=int, default=None)

    sub.add_parser("codes", help="Print the merged request code table")
    return parser


def _tracking(settings: AuditSettings, data_dir: Optional[Path]) -> AccountTrackingService:
    store = FrameTicketStore.from_csv_dir(resolve_data_dir(settings, data_dir))
    return AccountTrackingService(store, settings.fields, RequestCodeMapper(settings.request_code_mappings))


def _write_outputs(
    result: ReportResult,
    frame_builder: Callable[[list], pd.DataFrame],
    md: str,
    csv_name: str,
    title: str,
    out_dir: Path,
    pdf: bool,
) -> int:
    stem = Path(csv_name).stem
    md_path = write_md(md, out_dir / f"{stem}.md")
    print(f"Wrote: {md_path}")

    if not result.success:
        for message in result.errors:
            print(f"✗ {message}")
        return EXIT_FAILED

    csv_path = write_csv(frame_builder(result.rows), out_dir / csv_name)
    print(f"Wrote: {csv_path}")

    html_path, pdf_path = build_html_and_pdf(
        md_path=md_path,
        html_path=out_dir / f"{stem}.html",
        pdf_path=out_dir / f"{stem}.pdf" if pdf else None,
        page_title=title,
    )
    print(f"Wrote: {html_path}")
    if pdf_path is not None:
        print(f"Wrote: {pdf_path}")
    print(f"{len(result.rows)} row(s)")
    return EXIT_OK


def run_daily(args: argparse.Namespace, settings: AuditSettings) -> int:
    tz = settings.tz
    tracking = _tracking(settings, args.data_dir)
    changes = StatusChangeService(DirectoryClient.from_settings(settings), tz=tz)

    if args.day is not None:
        report = DailyReport.for_day(args.day, changes, tracking, tz=tz)
    else:
        from_time = midnight(args.start, tz) if args.start else None
        to_time = day_bounds(args.end, tz)[1] if args.end else None
        if from_time and to_time:
            validate_date_range(from_time, to_time, tz=tz)
        report = DailyReport(changes, tracking, from_time=from_time, to_time=to_time, tz=tz)

    result = report.generate()
    return _write_outputs(
        result,
        daily_frame,
        build_daily_md(result),
        daily_filename(local_date(None, tz)),
        "Daily Account Audit Report",
        args.out_dir,
        args.pdf,
    )


def run_weekly(args: argparse.Namespace, settings: AuditSettings) -> int:
    tz = settings.tz
    store = FrameTicketStore.from_csv_dir(resolve_data_dir(settings, args.data_dir))
    report = WeeklyReport(store, settings.fields, RequestCodeMapper(settings.request_code_mappings), tz=tz)
    result = report.generate()
    return _write_outputs(
        result,
        weekly_frame,
        build_weekly_md(result),
        weekly_filename(local_date(None, tz)),
        "Weekly Ticket Activity Report",
        args.out_dir,
        args.pdf,
    )


def run_monthly(args: argparse.Namespace, settings: AuditSettings) -> int:
    tz = settings.tz
    as_of = snapshot_time(args.mode, year=args.year, month=args.month, tz=tz)
    report = MonthlyReport(_tracking(settings, args.data_dir), args.system, as_of_time=as_of, tz=tz)
    result = report.generate()

    suffix = "current" if args.mode == MODE_CURRENT else f"{as_of:%Y%m}"
    return _write_outputs(
        result,
        monthly_frame,
        build_monthly_md(result, args.system),
        monthly_filename(args.system, suffix),
        f"Account Snapshot: {args.system}",
        args.out_dir,
        args.pdf,
    )


def run_codes(args: argparse.Namespace, settings: AuditSettings) -> int:
    mapper = RequestCodeMapper(settings.request_code_mappings)
    table = pd.DataFrame(
        [
            {"target_system": system, "account_action": action, "request_code": mapper.get_request_code(action, system)}
            for system in mapper.all_target_systems()
            for action in mapper.account_actions_for_system(system)
        ]
    )
    print(table.to_string(index=False))

    collisions = mapper.code_collisions()
    for code, systems in collisions.items():
        resolved = mapper.get_fields_from_code(code)
        print(f"[codes] {code} is shared by {', '.join(systems)}; reverse lookup resolves to {resolved['target_system']}")

    out_path = write_csv(table, args.out_dir / "request_codes.csv")
    print(f"Wrote: {out_path}")
    return EXIT_OK


RUNNERS = {
    "daily": run_daily,
    "weekly": run_weekly,
    "monthly": run_monthly,
    "codes": run_codes,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO),
                        format="%(levelname)s %(message)s")

    try:
        settings = load_settings(args.settings)
        return RUNNERS[args.report](args, settings)
    except ValidationError as exc:
        print(f"✗ {exc}")
        return EXIT_INVALID
    except AuditError as exc:
        log.error("%s report could not start: %s", args.report, exc)
        print(f"✗ {exc}")
        return EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
