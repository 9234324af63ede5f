from __future__ import annotations

from datetime import date, datetime, tzinfo
from typing import Optional, Union

from directory.client import DirectoryClient
from directory.models import Employee, StatusChange


STATUS_CHANGES_PATH = "/api/v1/bachelp/statusChanges"
EMPLOYEE_SEARCH_PATH = "/api/v1/bachelp/employee/search"
EMPLOYEE_PATH = "/api/v1/bachelp/employee/{employee_id}"

DEFAULT_LIMIT = 20
MAX_LIMIT = 1000


def format_query_date(value: Union[str, date, datetime, None]) -> Optional[str]:
    """The directory filters by calendar day: YYYY-MM-DD."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return value.strftime("%Y-%m-%d")


def clamp_limit(limit) -> int:
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    if limit <= 0:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)


def clamp_offset(offset) -> int:
    try:
        offset = int(offset)
    except (TypeError, ValueError):
        return 0
    return max(offset, 0)


class StatusChangeService:
    def __init__(self, client: DirectoryClient, tz: Optional[tzinfo] = None) -> None:
        self.client = client
        self.tz = tz

    def changes_for_date_range(
        self,
        from_date: Union[str, date, datetime, None],
        to_date: Union[str, date, datetime, None] = None,
    ) -> list[StatusChange]:
        params = {}
        if from_date is not None:
            params["from"] = format_query_date(from_date)
        if to_date is not None:
            params["to"] = format_query_date(to_date)

        response = self.client.get(STATUS_CHANGES_PATH, params)
        if not response or not response.get("success"):
            return []
        return [StatusChange.from_api(item, self.tz) for item in response.get("result") or []]


class EmployeeService:
    def __init__(self, client: DirectoryClient) -> None:
        self.client = client

    def search(self, term: str = "", limit: int = DEFAULT_LIMIT, offset: int = 0) -> list[Employee]:
        params = {"limit": clamp_limit(limit), "offset": clamp_offset(offset)}
        if term and term.strip():
            params["term"] = term.strip()

        response = self.client.get(EMPLOYEE_SEARCH_PATH, params)
        if not response or not response.get("success"):
            return []
        return [Employee.from_api(item) for item in response.get("result") or []]

    def find_by_id(self, employee_id) -> Optional[Employee]:
        if employee_id is None or not str(employee_id).strip():
            return None

        response = self.client.get(EMPLOYEE_PATH.format(employee_id=str(employee_id).strip()))
        if not response or not response.get("success"):
            return None
        payload = response.get("employee")
        return Employee.from_api(payload) if payload else None
