from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo

from account_tracking.config import DEFAULT_TIMEZONE
from account_tracking.errors import UpstreamError, ValidationError
from account_tracking.status import AccountStatusRecord, AccountTrackingService
from reporting.business_days import month_start
from reporting.result import ReportService


log = logging.getLogger(__name__)

DEFAULT_TARGET_SYSTEM = "Oracle / SFMS"
MODE_MONTHLY = "monthly"
MODE_CURRENT = "current"
MODES = (MODE_MONTHLY, MODE_CURRENT)


def snapshot_time(
    mode: str = MODE_MONTHLY,
    year: Optional[int] = None,
    month: Optional[int] = None,
    tz: Optional[tzinfo] = None,
    now: Optional[datetime] = None,
) -> datetime:
    """
    As-of instant for a snapshot: "current" is now, "monthly" is the first day of the
    selected month at midnight (defaults to the current month).
    """
    tz = tz or ZoneInfo(DEFAULT_TIMEZONE)
    now = now or datetime.now(tz)
    if mode == MODE_CURRENT:
        return now
    if mode != MODE_MONTHLY:
        raise ValidationError(f"Unknown report mode: {mode}")

    local_now = now.astimezone(tz) if now.tzinfo else now
    if year is None:
        year = local_now.year
    if month is None:
        month = local_now.month
    if not 1 <= int(month) <= 12:
        raise ValidationError(f"Invalid month: {month}")
    if not 1 <= int(year) <= 9999:
        raise ValidationError(f"Invalid year: {year}")
    return month_start(int(year), int(month), tz)


def employee_sort_key(employee_id: Any) -> tuple:
    """Numeric ids in numeric order first, anything else after them alphabetically."""
    text = str(employee_id or "").strip()
    if text.isdigit():
        return (0, int(text), "")
    return (1, 0, text)


class MonthlyReport(ReportService):
    """Point-in-time snapshot of every employee's account on one target system."""

    name = "MonthlyReport"

    def __init__(
        self,
        tracking: AccountTrackingService,
        target_system: Optional[str],
        as_of_time: Optional[datetime] = None,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.tracking = tracking
        self.target_system = target_system
        self.tz = tz or ZoneInfo(DEFAULT_TIMEZONE)
        self.as_of_time = as_of_time or datetime.now(self.tz)

    def window(self) -> dict[str, Optional[datetime]]:
        return {"as_of_time": self.as_of_time}

    def build_rows(self, errors: list[str]) -> list[dict[str, Any]]:
        self.validate_target_system()

        statuses = self.tracking.statuses_for_system(self.target_system, as_of_time=self.as_of_time)
        if not statuses:
            return []

        names, uids = self._employee_details(statuses)
        rows = [
            {
                "employee_id": s.employee_id,
                "employee_name": names.get(s.issue_id),
                "employee_uid": uids.get(s.issue_id),
                "account_type": s.account_type,
                "status": s.status,
                "account_action": s.account_action,
                "closed_on": s.closed_on,
                "request_code": s.request_code,
                "issue_id": s.issue_id,
            }
            for s in statuses
        ]
        return sorted(rows, key=lambda r: employee_sort_key(r["employee_id"]))

    def validate_target_system(self) -> None:
        """Checked against the field's possible values when the store can list them."""
        if not self.target_system or not self.target_system.strip():
            return

        field_id = self.tracking.fields.target_system
        if field_id is None:
            return
        valid = self.tracking.store.possible_values(field_id)
        if not valid or self.target_system in valid:
            return
        raise ValidationError(f"Invalid target system: {self.target_system}")

    def _employee_details(self, statuses: list[AccountStatusRecord]) -> tuple[dict, dict]:
        """Employee name and UID from the winning tickets, fetched in one lookup."""
        fields = self.tracking.fields
        if fields.employee_name is None and fields.employee_uid is None:
            return {}, {}

        issue_ids = sorted({s.issue_id for s in statuses})
        try:
            values = self.tracking.store.field_values(issue_ids, [fields.employee_name, fields.employee_uid])
        except UpstreamError as exc:
            log.warning("Could not load employee names for %s: %s", self.target_system, exc)
            return {}, {}

        names = {}
        uids = {}
        for issue_id, by_field in values.items():
            if fields.employee_name is not None and fields.employee_name in by_field:
                names[issue_id] = by_field[fields.employee_name]
            if fields.employee_uid is not None and fields.employee_uid in by_field:
                uids[issue_id] = by_field[fields.employee_uid]
        return names, uids
