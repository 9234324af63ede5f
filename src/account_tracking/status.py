from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

import pandas as pd

from account_tracking.config import FieldConfiguration
from account_tracking.store import Ticket, TicketStore, to_utc
from request_codes.mapper import RequestCodeMapper


log = logging.getLogger(__name__)

ACTIVE = "active"
INACTIVE = "inactive"

ACTIVE_ACTIONS = (
    "Add",
    "Update Account & Privileges",
    "Update Privileges Only",
    "Update Account Only",
)
INACTIVE_ACTION = "Delete"


@dataclass(frozen=True)
class AccountStatusRecord:
    employee_id: str
    account_type: str
    status: str  # active / inactive
    issue_id: int
    closed_on: Optional[datetime]
    account_action: str
    request_code: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OpenRequestRecord:
    employee_id: str
    account_type: str
    account_action: str
    issue_id: int
    request_code: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def determine_status(account_action: str) -> str:
    """Delete closes an account; every other action, known or not, leaves it active."""
    if account_action == INACTIVE_ACTION:
        return INACTIVE
    if account_action not in ACTIVE_ACTIONS:
        log.debug("Unrecognised account action %r treated as active", account_action)
    return ACTIVE


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def normalize_employee_id(employee_id: Union[str, int, None]) -> str:
    if employee_id is None:
        return ""
    return str(employee_id).strip()


def latest_per(frame: pd.DataFrame, key: str) -> pd.DataFrame:
    """
    Latest-wins reduction: one row per `key`, the most recently closed.
    Identical closure times are broken by the higher ticket id.
    """
    if frame.empty:
        return frame
    ordered = frame.sort_values(["closed_on", "issue_id"], ascending=[False, False], kind="mergesort")
    return ordered.groupby(key, sort=True).head(1).sort_values(key, kind="mergesort")


class AccountTrackingService:
    """
    Current active/inactive state of employee accounts, reconstructed from ticket history.

    Nothing is cached: every call re-reads the store, so results always reflect the store
    at call time.
    """

    def __init__(
        self,
        store: TicketStore,
        fields: FieldConfiguration,
        mapper: Optional[RequestCodeMapper] = None,
    ) -> None:
        self.store = store
        self.fields = fields
        self.mapper = mapper or RequestCodeMapper()

    def statuses_for_employee(self, employee_id: Union[str, int, None]) -> list[AccountStatusRecord]:
        employee_id = normalize_employee_id(employee_id)
        if not employee_id:
            return []
        self.fields.require_tracking_fields()

        ids = self.store.find_ids_by_field_value(self.fields.employee_id, employee_id)
        tickets = self.store.fetch_closed(ids)

        rows = []
        for pos, ticket in enumerate(tickets):
            if not ticket.is_closed or ticket.closed_on is None:
                continue
            target_system = ticket.field_value(self.fields.target_system)
            account_action = ticket.field_value(self.fields.account_action)
            if _blank(target_system) or _blank(account_action):
                continue
            rows.append(
                {
                    "pos": pos,
                    "issue_id": ticket.id,
                    "closed_on": ticket.closed_on,
                    "account_type": target_system,
                    "account_action": account_action,
                }
            )

        latest = latest_per(self._frame(rows), "account_type")
        return [
            self._status_record(employee_id, row.account_type, tickets[row.pos], row.account_action)
            for row in latest.itertuples(index=False)
        ]

    def open_requests_for_employee(self, employee_id: Union[str, int, None]) -> list[OpenRequestRecord]:
        employee_id = normalize_employee_id(employee_id)
        if not employee_id:
            return []
        self.fields.require_tracking_fields()

        ids = self.store.find_ids_by_field_value(self.fields.employee_id, employee_id)
        requests = []
        for ticket in self.store.fetch_open(ids):
            target_system = ticket.field_value(self.fields.target_system)
            account_action = ticket.field_value(self.fields.account_action)
            if _blank(target_system) or _blank(account_action):
                continue
            requests.append(
                OpenRequestRecord(
                    employee_id=employee_id,
                    account_type=target_system,
                    account_action=account_action,
                    issue_id=ticket.id,
                    request_code=self.mapper.get_request_code(account_action, target_system),
                )
            )
        return sorted(requests, key=lambda r: (r.account_type, r.issue_id))

    def statuses_for_system(
        self,
        target_system: Optional[str],
        as_of_time: Optional[datetime] = None,
    ) -> list[AccountStatusRecord]:
        """
        One record per employee with a ticket on `target_system` closed at or before `as_of_time`.
        Two store round trips regardless of population size: ids by system, then the tickets.
        """
        if _blank(target_system):
            return []
        self.fields.require_tracking_fields()
        if as_of_time is None:
            as_of_time = datetime.now(timezone.utc)

        ids = self.store.find_ids_by_field_value(self.fields.target_system, target_system)
        tickets = self.store.fetch_closed(ids, closed_before=as_of_time)

        rows = []
        for pos, ticket in enumerate(tickets):
            if not ticket.is_closed or ticket.closed_on is None:
                continue
            employee_id = normalize_employee_id(ticket.field_value(self.fields.employee_id))
            account_action = ticket.field_value(self.fields.account_action)
            if not employee_id or _blank(account_action):
                continue
            rows.append(
                {
                    "pos": pos,
                    "issue_id": ticket.id,
                    "closed_on": ticket.closed_on,
                    "employee_id": employee_id,
                    "account_action": account_action,
                }
            )

        frame = self._frame(rows)
        if not frame.empty:
            frame = frame[frame["closed_on"] <= to_utc(as_of_time)]

        latest = latest_per(frame, "employee_id")
        log.debug("%s: %d tickets reduced to %d employees", target_system, len(rows), len(latest))
        return [
            self._status_record(row.employee_id, target_system, tickets[row.pos], row.account_action)
            for row in latest.itertuples(index=False)
        ]

    # ----------------------------
    # Helpers
    # ----------------------------

    @staticmethod
    def _frame(rows: list[dict]) -> pd.DataFrame:
        frame = pd.DataFrame(rows)
        if not frame.empty:
            frame["closed_on"] = pd.to_datetime(frame["closed_on"], utc=True)
        return frame

    def _status_record(
        self,
        employee_id: str,
        account_type: str,
        ticket: Ticket,
        account_action: str,
    ) -> AccountStatusRecord:
        return AccountStatusRecord(
            employee_id=employee_id,
            account_type=account_type,
            status=determine_status(account_action),
            issue_id=ticket.id,
            closed_on=ticket.closed_on,
            account_action=account_action,
            request_code=self.mapper.get_request_code(account_action, account_type),
        )
