from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pandas as pd
import pytest

from account_tracking.config import FieldConfiguration
from account_tracking.status import AccountTrackingService
from account_tracking.store import FrameTicketStore
from request_codes.mapper import RequestCodeMapper


NY = ZoneInfo("America/New_York")

EMPLOYEE_ID = 1
ACCOUNT_ACTION = 2
TARGET_SYSTEM = 3
EMPLOYEE_NAME = 4
EMPLOYEE_UID = 5

FIELDS = FieldConfiguration(
    employee_id=EMPLOYEE_ID,
    account_action=ACCOUNT_ACTION,
    target_system=TARGET_SYSTEM,
    employee_name=EMPLOYEE_NAME,
    employee_uid=EMPLOYEE_UID,
)


def ticket(
    id,
    employee_id=None,
    system=None,
    action=None,
    closed_on=None,
    is_closed=None,
    created_on=None,
    updated_on=None,
    name=None,
    uid=None,
    subject=None,
    status=None,
):
    if is_closed is None:
        is_closed = closed_on is not None
    return {
        "id": id,
        "subject": subject or f"Ticket {id}",
        "status": status or ("Closed" if is_closed else "New"),
        "is_closed": is_closed,
        "closed_on": closed_on,
        "created_on": created_on or closed_on,
        "updated_on": updated_on or closed_on or created_on,
        "values": {
            EMPLOYEE_ID: employee_id,
            ACCOUNT_ACTION: action,
            TARGET_SYSTEM: system,
            EMPLOYEE_NAME: name,
            EMPLOYEE_UID: uid,
        },
    }


def build_store(tickets, possible_systems=None, store_cls=FrameTicketStore):
    ticket_rows = [{k: v for k, v in t.items() if k != "values"} for t in tickets]
    value_rows = [
        {"ticket_id": t["id"], "field_id": field_id, "value": value}
        for t in tickets
        for field_id, value in t["values"].items()
        if value is not None
    ]
    tickets_df = pd.DataFrame(
        ticket_rows,
        columns=["id", "subject", "status", "is_closed", "closed_on", "created_on", "updated_on"],
    )
    values_df = pd.DataFrame(value_rows, columns=["ticket_id", "field_id", "value"])

    fields_df = None
    if possible_systems is not None:
        fields_df = pd.DataFrame(
            [
                {"field_id": TARGET_SYSTEM, "name": "Target System", "possible_values": "|".join(possible_systems)},
                {"field_id": EMPLOYEE_ID, "name": "Employee ID", "possible_values": None},
            ]
        )
    return store_cls(tickets_df, values_df, fields_df)


def tracking_for(tickets, fields=FIELDS, mapper=None, **kwargs):
    return AccountTrackingService(build_store(tickets, **kwargs), fields, mapper or RequestCodeMapper())


@pytest.fixture
def now():
    return datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def aix_history(now):
    """Employee 12345: AIX Add, Delete, Add again; plus an Oracle account and an open SFS request."""
    return [
        ticket(1001, "12345", "AIX", "Add", closed_on=now - timedelta(days=5), name="Pat Example", uid="pexample"),
        ticket(1002, "12345", "AIX", "Delete", closed_on=now - timedelta(days=3), name="Pat Example", uid="pexample"),
        ticket(1003, "12345", "AIX", "Add", closed_on=now - timedelta(hours=1), name="Pat Example", uid="pexample"),
        ticket(1004, "12345", "Oracle / SFMS", "Add", closed_on=now - timedelta(days=10)),
        ticket(1005, "12345", "SFS", "Add", created_on=now - timedelta(days=1)),
    ]
