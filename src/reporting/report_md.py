from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from reporting.export_csv import daily_frame, monthly_frame, weekly_frame
from reporting.result import ReportResult


def _fmt_int(n: int) -> str:
    return f"{n:,}"


def _fmt_date_now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M")


def _fmt_time(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M %Z").strip() if value is not None else "n/a"


def _cell(value) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    # pipes would split the cell
    return str(value).replace("|", "\\|").replace("\n", " ")


def md_table(frame: pd.DataFrame) -> list[str]:
    lines = [
        "| " + " | ".join(frame.columns) + " |",
        "|" + "|".join(["---"] * len(frame.columns)) + "|",
    ]
    for _, row in frame.iterrows():
        lines.append("| " + " | ".join(_cell(v) for v in row.tolist()) + " |")
    return lines


def _counts(frame: pd.DataFrame, column: str) -> str:
    counts = frame[column].fillna("(none)").replace("", "(none)").value_counts()
    return ", ".join(f"**{k}** {_fmt_int(int(v))}" for k, v in sorted(counts.items()))


def build_error_md(title: str, result: ReportResult) -> str:
    lines = [f"# {title}", "", f"_Generated: {_fmt_date_now()}_", "", "Unable to generate report:", ""]
    lines.extend(f"- {message}" for message in result.errors or ["Unknown error"])
    lines.append("")
    return "\n".join(lines)


def build_daily_md(result: ReportResult) -> str:
    title = "Daily Account Audit Report"
    if not result.success:
        return build_error_md(title, result)

    frame = daily_frame(result.rows)
    lines: list[str] = []
    lines.append(f"# {title}")
    lines.append("")
    lines.append(f"_Generated: {_fmt_date_now()}_")
    lines.append("")
    lines.append(f"**Window:** {_fmt_time(result.from_time)} to {_fmt_time(result.to_time)}")
    lines.append("")
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- Employees with status changes: **{_fmt_int(len(frame))}**")
    if not frame.empty:
        codes = (
            frame["Transaction Codes"].str.split(", ").explode().dropna()
        )
        codes = codes[codes != ""]
        if not codes.empty:
            lines.append(
                "- Transactions: "
                + ", ".join(f"**{k}** {_fmt_int(int(v))}" for k, v in sorted(codes.value_counts().items()))
            )
        with_open = sum(1 for row in result.rows if row.get("open_requests"))
        lines.append(f"- Employees with open account requests: **{_fmt_int(with_open)}**")
    lines.append("")

    lines.append("## Status changes")
    lines.append("")
    if frame.empty:
        lines.append("_No status changes were posted in this window._")
    else:
        lines.extend(md_table(frame))
    lines.append("")
    return "\n".join(lines)


def build_weekly_md(result: ReportResult) -> str:
    title = "Weekly Ticket Activity Report"
    if not result.success:
        return build_error_md(title, result)

    frame = weekly_frame(result.rows)
    lines: list[str] = []
    lines.append(f"# {title}")
    lines.append("")
    lines.append(f"_Generated: {_fmt_date_now()}_")
    lines.append("")
    lines.append(f"**Window:** {_fmt_time(result.from_time)} to {_fmt_time(result.to_time)}")
    lines.append("")
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- Tickets created or updated: **{_fmt_int(len(frame))}**")
    if not frame.empty:
        lines.append("- By status: " + _counts(frame, "Status"))
    lines.append("")

    lines.append("## Tickets")
    lines.append("")
    if frame.empty:
        lines.append("_No ticket activity this week._")
    else:
        lines.extend(md_table(frame))
    lines.append("")
    return "\n".join(lines)


def build_monthly_md(result: ReportResult, target_system: str) -> str:
    title = f"Account Snapshot: {target_system}"
    if not result.success:
        return build_error_md(title, result)

    frame = monthly_frame(result.rows)
    lines: list[str] = []
    lines.append(f"# {title}")
    lines.append("")
    lines.append(f"_Generated: {_fmt_date_now()}_")
    lines.append("")
    lines.append(f"**As of:** {_fmt_time(result.as_of_time)}")
    lines.append("")
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- Employees with account history: **{_fmt_int(len(frame))}**")
    if not frame.empty:
        lines.append("- By status: " + _counts(frame, "Account Status"))
    lines.append("")

    lines.append("## Accounts")
    lines.append("")
    if frame.empty:
        lines.append("_No closed tickets for this system before the snapshot time._")
    else:
        lines.extend(md_table(frame))
    lines.append("")
    return "\n".join(lines)


def write_md(md: str, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(md, encoding="utf-8")
    return path
