from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo

from account_tracking.config import DEFAULT_TIMEZONE, FieldConfiguration
from account_tracking.store import Ticket, TicketStore
from reporting.business_days import week_start
from reporting.result import ReportService
from request_codes.mapper import RequestCodeMapper


class WeeklyReport(ReportService):
    """Tickets created or updated since Monday 00:00, one row per ticket."""

    name = "WeeklyReport"

    def __init__(
        self,
        store: TicketStore,
        fields: FieldConfiguration,
        mapper: Optional[RequestCodeMapper] = None,
        tz: Optional[tzinfo] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.store = store
        self.fields = fields
        self.mapper = mapper or RequestCodeMapper()
        self.tz = tz or ZoneInfo(DEFAULT_TIMEZONE)
        self.to_time = now or datetime.now(self.tz)
        self.from_time = week_start(self.to_time, self.tz)

    def window(self) -> dict[str, Optional[datetime]]:
        return {"from_time": self.from_time, "to_time": self.to_time}

    def build_rows(self, errors: list[str]) -> list[dict[str, Any]]:
        if self.fields.employee_id is None:
            errors.append("Employee ID custom field is not configured")
            return []

        tickets = self.store.fetch_active_between(self.from_time, self.to_time)
        return [self._row(ticket) for ticket in tickets]

    def _row(self, ticket: Ticket) -> dict[str, Any]:
        request_code = None
        if self.fields.account_action is not None and self.fields.target_system is not None:
            request_code = self.mapper.get_request_code(
                ticket.field_value(self.fields.account_action),
                ticket.field_value(self.fields.target_system),
            )

        return {
            "issue_id": ticket.id,
            "subject": ticket.subject,
            "status": ticket.status,
            "employee_id": ticket.field_value(self.fields.employee_id),
            "employee_uid": ticket.field_value(self.fields.employee_uid),
            "request_code": request_code,
            "updated_on": ticket.updated_on,
            "created_on": ticket.created_on,
        }
