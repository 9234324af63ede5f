from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Protocol

import pandas as pd

from account_tracking.config import FieldId, normalize_field_id
from account_tracking.errors import TicketStoreError


REQUIRED_TICKETS = {"id", "subject", "status", "is_closed", "closed_on", "created_on", "updated_on"}
REQUIRED_VALUES = {"ticket_id", "field_id", "value"}
REQUIRED_FIELDS = {"field_id", "name", "possible_values"}

TRUE_STRINGS = {"true", "t", "1", "yes", "y"}


@dataclass(frozen=True)
class Ticket:
    id: int
    subject: str
    status: str
    is_closed: bool
    closed_on: Optional[datetime]
    created_on: Optional[datetime]
    updated_on: Optional[datetime]
    custom_values: dict[FieldId, str] = field(default_factory=dict)

    def field_value(self, field_id: Optional[FieldId]) -> Optional[str]:
        if field_id is None:
            return None
        return self.custom_values.get(field_id)


class TicketStore(Protocol):
    """Read-only queries the audit reports need from the ticket store."""

    def find_ids_by_field_value(self, field_id: FieldId, value: str) -> list[int]: ...

    def fetch_closed(self, ids: Iterable[int], closed_before: Optional[datetime] = None) -> list[Ticket]:
        """Closed tickets with a closure time, most recently closed first."""
        ...

    def fetch_open(self, ids: Iterable[int]) -> list[Ticket]: ...

    def fetch_active_between(self, start: datetime, end: datetime) -> list[Ticket]:
        """Tickets created or updated inside [start, end], most recently updated first."""
        ...

    def field_values(self, ids: Iterable[int], field_ids: Iterable[FieldId]) -> dict[int, dict[FieldId, str]]: ...

    def possible_values(self, field_id: FieldId) -> Optional[list[str]]: ...


def _require_cols(df: pd.DataFrame, required: set[str], name: str) -> None:
    missing = sorted(required - set(df.columns))
    if missing:
        raise TicketStoreError(f"{name} missing required columns: {missing}")


def to_utc(value: datetime) -> pd.Timestamp:
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return ts


def _parse_timestamps(values: pd.Series, column: str) -> pd.Series:
    """ISO 8601 per value (rows may differ in layout); blanks become NaT, anything else unparseable fails."""
    # frames built in memory already hold datetimes; only text needs a format
    has_text = values.map(lambda v: isinstance(v, str)).any()
    try:
        if has_text:
            return pd.to_datetime(values, errors="raise", format="ISO8601", utc=True)
        return pd.to_datetime(values, errors="raise", utc=True)
    except (ValueError, TypeError) as exc:
        raise TicketStoreError(f"tickets.{column} has an unparseable timestamp: {exc}") from exc


def _py_datetime(value) -> Optional[datetime]:
    if pd.isna(value):
        return None
    return value.to_pydatetime()


class FrameTicketStore:
    """
    Ticket store over pandas frames, typically loaded from a ticket-tracker CSV export.

    tickets:        id, subject, status, is_closed, closed_on, created_on, updated_on
    custom_values:  ticket_id, field_id, value
    custom_fields:  field_id, name, possible_values (pipe separated), optional

    Timestamps without an offset are read as UTC.
    """

    def __init__(
        self,
        tickets: pd.DataFrame,
        custom_values: pd.DataFrame,
        custom_fields: Optional[pd.DataFrame] = None,
    ) -> None:
        _require_cols(tickets, REQUIRED_TICKETS, "tickets")
        _require_cols(custom_values, REQUIRED_VALUES, "custom_values")
        if custom_fields is not None:
            _require_cols(custom_fields, REQUIRED_FIELDS, "custom_fields")

        t = tickets.copy()
        t["id"] = t["id"].astype(int)
        t["subject"] = t["subject"].fillna("").astype(str)
        t["status"] = t["status"].fillna("").astype(str)
        t["is_closed"] = t["is_closed"].astype(str).str.strip().str.lower().isin(TRUE_STRINGS)
        for col in ("closed_on", "created_on", "updated_on"):
            t[col] = _parse_timestamps(t[col], col)
        self._tickets = t.sort_values("id").reset_index(drop=True)

        cv = custom_values.dropna(subset=["value"]).copy()
        cv["ticket_id"] = cv["ticket_id"].astype(int)
        cv["field_id"] = cv["field_id"].astype(object).map(normalize_field_id)
        cv["value"] = cv["value"].astype(str)
        self._values = cv

        self._fields = None
        if custom_fields is not None:
            cf = custom_fields.copy()
            cf["field_id"] = cf["field_id"].astype(object).map(normalize_field_id)
            self._fields = cf

    @classmethod
    def from_csv_dir(cls, data_dir: Path) -> "FrameTicketStore":
        data_dir = Path(data_dir)
        tickets_path = data_dir / "tickets.csv"
        values_path = data_dir / "custom_values.csv"
        fields_path = data_dir / "custom_fields.csv"

        try:
            tickets = pd.read_csv(tickets_path, dtype={"subject": "string", "status": "string"})
            custom_values = pd.read_csv(values_path, dtype={"field_id": "string", "value": "string"})
            custom_fields = None
            if fields_path.exists():
                custom_fields = pd.read_csv(
                    fields_path, dtype={"field_id": "string", "possible_values": "string"}
                )
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise TicketStoreError(f"Could not read ticket export in {data_dir}: {exc}") from exc

        return cls(tickets, custom_values, custom_fields)

    # ----------------------------
    # Queries
    # ----------------------------

    def find_ids_by_field_value(self, field_id: FieldId, value: str) -> list[int]:
        cv = self._values
        hits = cv[(cv["field_id"] == normalize_field_id(field_id)) & (cv["value"] == str(value))]
        return sorted(hits["ticket_id"].unique().tolist())

    def fetch_closed(self, ids: Iterable[int], closed_before: Optional[datetime] = None) -> list[Ticket]:
        ids = list(ids)
        if not ids:
            return []

        t = self._tickets
        closed = t[t["id"].isin(ids) & t["is_closed"] & t["closed_on"].notna()]
        if closed_before is not None:
            closed = closed[closed["closed_on"] <= to_utc(closed_before)]
        closed = closed.sort_values(["closed_on", "id"], ascending=[False, False])
        return self._build(closed)

    def fetch_open(self, ids: Iterable[int]) -> list[Ticket]:
        ids = list(ids)
        if not ids:
            return []

        t = self._tickets
        return self._build(t[t["id"].isin(ids) & ~t["is_closed"]])

    def fetch_active_between(self, start: datetime, end: datetime) -> list[Ticket]:
        t = self._tickets
        start_ts, end_ts = to_utc(start), to_utc(end)
        created = (t["created_on"] >= start_ts) & (t["created_on"] <= end_ts)
        updated = (t["updated_on"] >= start_ts) & (t["updated_on"] <= end_ts)
        active = t[created | updated].sort_values(["updated_on", "id"], ascending=[False, False])
        return self._build(active)

    def field_values(self, ids: Iterable[int], field_ids: Iterable[FieldId]) -> dict[int, dict[FieldId, str]]:
        wanted = [normalize_field_id(f) for f in field_ids if f is not None]
        ids = list(ids)
        if not ids or not wanted:
            return {}
        cv = self._values
        rows = cv[cv["ticket_id"].isin(ids) & cv["field_id"].isin(wanted)]
        out: dict[int, dict[FieldId, str]] = {}
        for row in rows.itertuples(index=False):
            out.setdefault(int(row.ticket_id), {})[row.field_id] = row.value
        return out

    def possible_values(self, field_id: FieldId) -> Optional[list[str]]:
        if self._fields is None:
            return None
        match = self._fields[self._fields["field_id"] == normalize_field_id(field_id)]
        if match.empty:
            return None
        raw = match.iloc[0]["possible_values"]
        if pd.isna(raw):
            return []
        return [v.strip() for v in str(raw).split("|") if v.strip()]

    # ----------------------------
    # Helpers
    # ----------------------------

    def _build(self, frame: pd.DataFrame) -> list[Ticket]:
        if frame.empty:
            return []
        values = self._values[self._values["ticket_id"].isin(frame["id"])]
        by_ticket: dict[int, dict[FieldId, str]] = {}
        for row in values.itertuples(index=False):
            by_ticket.setdefault(int(row.ticket_id), {})[row.field_id] = row.value

        return [
            Ticket(
                id=int(row.id),
                subject=row.subject,
                status=row.status,
                is_closed=bool(row.is_closed),
                closed_on=_py_datetime(row.closed_on),
                created_on=_py_datetime(row.created_on),
                updated_on=_py_datetime(row.updated_on),
                custom_values=by_ticket.get(int(row.id), {}),
            )
            for row in frame.itertuples(index=False)
        ]
