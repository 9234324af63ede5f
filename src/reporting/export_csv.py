from __future__ import annotations

import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd


DAILY_COLUMNS = [
    "Employee Name",
    "Account Status",
    "Open Tickets",
    "Transaction Codes",
    "Phone Number",
    "Office",
    "Office Location",
    "Employee ID",
    "Post Date",
]
WEEKLY_COLUMNS = [
    "Employee UID",
    "Employee Number",
    "Request Code",
    "Ticket Description",
    "Status",
    "Updated On",
]
MONTHLY_COLUMNS = [
    "Employee Name",
    "Employee ID",
    "Employee UID",
    "Account Status",
    "Last Updated",
    "Last Issue",
    "Last Action",
    "Request Code",
]


def parameterize(text: str) -> str:
    """URL/file friendly slug: 'Oracle / SFMS' -> 'oracle-sfms'."""
    return re.sub(r"[^a-z0-9]+", "-", str(text).lower()).strip("-")


def _fmt(value: Optional[datetime], fmt: str) -> str:
    return value.strftime(fmt) if value is not None else ""


def codes_summary(records: list[dict[str, Any]]) -> str:
    """Request code per record, falling back to the account type when the pair has no code."""
    return ", ".join(str(r.get("request_code") or r.get("account_type") or "") for r in records or [])


def daily_frame(rows: list[dict[str, Any]]) -> pd.DataFrame:
    data = [
        [
            row.get("employee_name"),
            codes_summary(row.get("account_statuses")),
            codes_summary(row.get("open_requests")),
            row.get("transaction_codes"),
            row.get("phone_number"),
            row.get("office"),
            row.get("office_location"),
            row.get("employee_id"),
            row["post_date"].isoformat() if isinstance(row.get("post_date"), date) else "",
        ]
        for row in rows or []
    ]
    return pd.DataFrame(data, columns=DAILY_COLUMNS)


def weekly_frame(rows: list[dict[str, Any]]) -> pd.DataFrame:
    data = [
        [
            row.get("employee_uid"),
            row.get("employee_id"),
            row.get("request_code"),
            row.get("subject"),
            row.get("status"),
            _fmt(row.get("updated_on"), "%Y-%m-%d %H:%M"),
        ]
        for row in rows or []
    ]
    return pd.DataFrame(data, columns=WEEKLY_COLUMNS)


def monthly_frame(rows: list[dict[str, Any]]) -> pd.DataFrame:
    data = [
        [
            row.get("employee_name"),
            row.get("employee_id"),
            row.get("employee_uid"),
            row.get("status"),
            _fmt(row.get("closed_on"), "%Y-%m-%d"),
            row.get("issue_id"),
            row.get("account_action"),
            row.get("request_code"),
        ]
        for row in rows or []
    ]
    return pd.DataFrame(data, columns=MONTHLY_COLUMNS)


def daily_filename(today: date) -> str:
    return f"daily_report_{today:%Y%m%d}.csv"


def weekly_filename(today: date) -> str:
    return f"weekly_report_{today:%Y%m%d}.csv"


def monthly_filename(target_system: str, suffix: str) -> str:
    """suffix is "current" or YYYYMM."""
    return f"monthly_report_{parameterize(target_system)}_{suffix}.csv"


def write_csv(frame: pd.DataFrame, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(path, index=False)
    return path
