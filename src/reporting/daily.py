from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo

from account_tracking.config import DEFAULT_TIMEZONE
from account_tracking.errors import UpstreamError, ValidationError
from account_tracking.status import AccountTrackingService
from directory.models import StatusChange
from directory.service import StatusChangeService
from reporting.business_days import day_bounds, local_date, query_start_date
from reporting.result import ReportService


log = logging.getLogger(__name__)

MAX_LOOKBACK_DAYS = 7
MAX_LOOKAHEAD_DAYS = 1


def validate_date_range(
    from_time: datetime,
    to_time: datetime,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> None:
    """Range mode accepts up to a week back and at most a day ahead."""
    today = today or local_date(None, tz)
    if from_time > to_time:
        raise ValidationError("Start date must be before end date")

    start_day = local_date(from_time, tz)
    end_day = local_date(to_time, tz)
    if start_day < today - timedelta(days=MAX_LOOKBACK_DAYS):
        raise ValidationError(f"Start date cannot be more than {MAX_LOOKBACK_DAYS} days in the past")
    if start_day > today + timedelta(days=MAX_LOOKAHEAD_DAYS):
        raise ValidationError(f"Start date cannot be more than {MAX_LOOKAHEAD_DAYS} day in the future")
    if end_day > today + timedelta(days=MAX_LOOKAHEAD_DAYS):
        raise ValidationError(f"End date cannot be more than {MAX_LOOKAHEAD_DAYS} day in the future")


def _dedupe(values: list[Optional[str]]) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


class DailyReport(ReportService):
    """
    Event-log report: personnel transactions posted in the directory during the window, one
    row per employee, with that employee's current account statuses and open requests.
    """

    name = "DailyReport"

    def __init__(
        self,
        status_changes: StatusChangeService,
        tracking: AccountTrackingService,
        from_time: Optional[datetime] = None,
        to_time: Optional[datetime] = None,
        tz: Optional[tzinfo] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.status_changes = status_changes
        self.tracking = tracking
        self.tz = tz or ZoneInfo(DEFAULT_TIMEZONE)
        now = now or datetime.now(self.tz)
        self.from_time = from_time or query_start_date(now, self.tz)
        self.to_time = to_time or now

    @classmethod
    def for_day(
        cls,
        day: date,
        status_changes: StatusChangeService,
        tracking: AccountTrackingService,
        tz: Optional[tzinfo] = None,
    ) -> "DailyReport":
        start, end = day_bounds(day, tz or ZoneInfo(DEFAULT_TIMEZONE))
        return cls(status_changes, tracking, from_time=start, to_time=end, tz=tz)

    def window(self) -> dict[str, Optional[datetime]]:
        return {"from_time": self.from_time, "to_time": self.to_time}

    def build_rows(self, errors: list[str]) -> list[dict[str, Any]]:
        try:
            changes = self.status_changes.changes_for_date_range(self.from_time, self.to_time)
        except UpstreamError:
            errors.append("Failed to fetch status changes from the employee directory")
            raise

        grouped: dict[Optional[str], list[StatusChange]] = {}
        for change in changes:
            employee_id = change.employee.employee_id
            key = str(employee_id) if employee_id is not None else None
            grouped.setdefault(key, []).append(change)

        log.info("%d status changes for %d employees", len(changes), len(grouped))
        rows = [self._row(key, group) for key, group in grouped.items()]
        return sorted(rows, key=lambda r: (r["post_date"] is None, r["post_date"] or date.min))

    def _row(self, employee_id: Optional[str], changes: list[StatusChange]) -> dict[str, Any]:
        employee = changes[0].employee
        posted = [c.post_date_time for c in changes if c.post_date_time is not None]
        latest_post = max(posted) if posted else None

        statuses = self.tracking.statuses_for_employee(employee_id)
        open_requests = self.tracking.open_requests_for_employee(employee_id)

        return {
            "employee_id": employee.employee_id,
            "employee_name": employee.display_name,
            "transaction_codes": ", ".join(_dedupe([c.transaction_code for c in changes])),
            "phone_number": employee.work_phone,
            "office": employee.resp_center_display_name,
            "office_location": employee.location_display_name,
            "post_date": local_date(latest_post, self.tz) if latest_post else None,
            "account_statuses": [s.to_dict() for s in statuses],
            "open_requests": [r.to_dict() for r in open_requests],
        }
