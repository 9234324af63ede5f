from datetime import date, datetime, timezone

import pandas as pd

from account_tracking.config import REPO_ROOT
from reporting.export_csv import (
    DAILY_COLUMNS,
    MONTHLY_COLUMNS,
    WEEKLY_COLUMNS,
    codes_summary,
    daily_filename,
    daily_frame,
    monthly_filename,
    monthly_frame,
    parameterize,
    weekly_filename,
    weekly_frame,
    write_csv,
)
from reporting.report_md import build_daily_md, build_monthly_md, build_weekly_md, md_table
from reporting.report_pdf import CSS_SOURCE, build_html_and_pdf
from reporting.result import ReportResult


UTC = timezone.utc

DAILY_ROW = {
    "employee_id": 12345,
    "employee_name": "Pat Example",
    "transaction_codes": "APP, PHO",
    "phone_number": "555-0100",
    "office": "OGS",
    "office_location": "Albany HQ",
    "post_date": date(2025, 3, 11),
    "account_statuses": [
        {"account_type": "AIX", "request_code": "AIXA"},
        {"account_type": "Badge Printer", "request_code": None},
    ],
    "open_requests": [{"account_type": "SFS", "request_code": "SFSA"}],
}

MONTHLY_ROW = {
    "employee_id": "900",
    "employee_name": "Bo Nine",
    "employee_uid": "bnine",
    "account_type": "Oracle / SFMS",
    "status": "inactive",
    "account_action": "Delete",
    "closed_on": datetime(2025, 3, 16, 18, 0, tzinfo=UTC),
    "request_code": "USRI",
    "issue_id": 3,
}


def test_codes_summary_falls_back_to_account_type():
    assert codes_summary(DAILY_ROW["account_statuses"]) == "AIXA, Badge Printer"
    assert codes_summary([]) == ""
    assert codes_summary(None) == ""


def test_daily_frame():
    frame = daily_frame([DAILY_ROW])
    assert list(frame.columns) == DAILY_COLUMNS
    row = frame.iloc[0]
    assert row["Account Status"] == "AIXA, Badge Printer"
    assert row["Open Tickets"] == "SFSA"
    assert row["Post Date"] == "2025-03-11"
    assert daily_frame([]).empty


def test_weekly_frame():
    frame = weekly_frame(
        [
            {
                "issue_id": 1,
                "subject": "AIX access",
                "status": "New",
                "employee_id": "100",
                "employee_uid": "aone",
                "request_code": "AIXA",
                "updated_on": datetime(2025, 3, 12, 15, 5, tzinfo=UTC),
            }
        ]
    )
    assert list(frame.columns) == WEEKLY_COLUMNS
    assert frame.iloc[0].tolist() == ["aone", "100", "AIXA", "AIX access", "New", "2025-03-12 15:05"]


def test_monthly_frame():
    frame = monthly_frame([MONTHLY_ROW])
    assert list(frame.columns) == MONTHLY_COLUMNS
    assert frame.iloc[0]["Last Updated"] == "2025-03-16"
    assert frame.iloc[0]["Account Status"] == "inactive"


def test_filenames():
    assert parameterize("Oracle / SFMS") == "oracle-sfms"
    assert parameterize("OGS Swiper Access") == "ogs-swiper-access"
    assert daily_filename(date(2025, 3, 12)) == "daily_report_20250312.csv"
    assert weekly_filename(date(2025, 3, 12)) == "weekly_report_20250312.csv"
    assert monthly_filename("Oracle / SFMS", "202503") == "monthly_report_oracle-sfms_202503.csv"
    assert monthly_filename("AIX", "current") == "monthly_report_aix_current.csv"


def test_write_csv(tmp_path):
    path = write_csv(monthly_frame([MONTHLY_ROW]), tmp_path / "out" / "monthly.csv")
    back = pd.read_csv(path, dtype=str)
    assert back.iloc[0]["Employee Name"] == "Bo Nine"
    assert back.iloc[0]["Request Code"] == "USRI"


def test_md_table_escapes_pipes():
    lines = md_table(pd.DataFrame([["a|b", None]], columns=["One", "Two"]))
    assert lines[0] == "| One | Two |"
    assert lines[2] == "| a\\|b |  |"


def test_markdown_reports():
    daily = build_daily_md(ReportResult(rows=[DAILY_ROW], from_time=datetime(2025, 3, 10, tzinfo=UTC)))
    assert daily.startswith("# Daily Account Audit Report")
    assert "**APP** 1" in daily
    assert "Employees with open account requests: **1**" in daily

    weekly = build_weekly_md(ReportResult(rows=[]))
    assert "_No ticket activity this week._" in weekly

    monthly = build_monthly_md(ReportResult(rows=[MONTHLY_ROW]), "Oracle / SFMS")
    assert monthly.startswith("# Account Snapshot: Oracle / SFMS")
    assert "**inactive** 1" in monthly
    assert "| Bo Nine | 900 | bnine | inactive |" in monthly


def test_failed_result_renders_error_document():
    md = build_monthly_md(ReportResult(rows=None, errors=["Invalid target system: Mainframe"]), "Mainframe")
    assert "Unable to generate report:" in md
    assert "- Invalid target system: Mainframe" in md


def test_html_from_markdown(tmp_path):
    md_path = tmp_path / "report.md"
    md_path.write_text(build_monthly_md(ReportResult(rows=[MONTHLY_ROW]), "Oracle / SFMS"), encoding="utf-8")

    html_path, pdf_path = build_html_and_pdf(md_path, tmp_path / "report.html", page_title="Snapshot")

    assert pdf_path is None
    html = html_path.read_text(encoding="utf-8")
    assert "<title>Snapshot</title>" in html
    assert "<table>" in html
    assert (tmp_path / "report.css").read_text(encoding="utf-8") == CSS_SOURCE.read_text(encoding="utf-8")
    assert CSS_SOURCE == REPO_ROOT / "docs" / "report.css"
