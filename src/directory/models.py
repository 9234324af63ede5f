from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo

import pandas as pd

from account_tracking.config import DEFAULT_TIMEZONE


TRANSACTION_CODES = {
    "APP": "Employee appointment/hiring",
    "LOC": "Location change",
    "NAM": "Name change",
    "PHO": "Phone number change",
    "RTP": "Re-appointment",
    "LIN": "Line number",
    "EMP": "Termination",
}


def _present(value: Optional[str]) -> bool:
    return value is not None and str(value).strip() != ""


def _first_present(*values: Optional[str]) -> Optional[str]:
    return next((v for v in values if _present(v)), None)


def parse_post_datetime(value: Optional[str], tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Directory timestamps are ISO-ish strings; unparseable or blank values become None.
    Values without an offset are read in the reporting zone so every result is comparable.
    """
    if not _present(value):
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return None
    parsed = ts.to_pydatetime()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz or ZoneInfo(DEFAULT_TIMEZONE))
    return parsed


@dataclass(frozen=True)
class Address:
    addr1: Optional[str] = None
    addr2: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    zip5: Optional[str] = None
    zip4: Optional[str] = None
    formatted_address_with_county: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "Address":
        return cls(
            addr1=payload.get("addr1"),
            addr2=payload.get("addr2"),
            city=payload.get("city"),
            county=payload.get("county"),
            country=payload.get("country"),
            state=payload.get("state"),
            zip5=payload.get("zip5"),
            zip4=payload.get("zip4"),
            formatted_address_with_county=payload.get("formattedAddressWithCounty"),
        )

    @property
    def full_zip(self) -> Optional[str]:
        if not _present(self.zip5):
            return None
        return f"{self.zip5}-{self.zip4}" if _present(self.zip4) else self.zip5

    @property
    def street_address(self) -> str:
        return ", ".join(p for p in (self.addr1, self.addr2) if _present(p))

    @property
    def city_state_zip(self) -> str:
        return ", ".join(p for p in (self.city, self.state, self.full_zip) if _present(p))

    @property
    def full_address(self) -> str:
        if _present(self.formatted_address_with_county):
            return self.formatted_address_with_county
        return ", ".join(p for p in (self.street_address, self.city_state_zip) if p)


@dataclass(frozen=True)
class RespCenterHead:
    code: Optional[str] = None
    short_name: Optional[str] = None
    name: Optional[str] = None
    affiliate_code: Optional[str] = None
    active: Optional[bool] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "RespCenterHead":
        return cls(
            code=payload.get("code"),
            short_name=payload.get("shortName"),
            name=payload.get("name"),
            affiliate_code=payload.get("affiliateCode"),
            active=payload.get("active"),
        )

    @property
    def display_name(self) -> Optional[str]:
        return _first_present(self.short_name, self.name, self.code)

    @property
    def full_display_name(self) -> Optional[str]:
        return _first_present(self.name, self.short_name, self.code)


@dataclass(frozen=True)
class Location:
    loc_id: Optional[str] = None
    code: Optional[str] = None
    location_type: Optional[str] = None
    location_type_code: Optional[str] = None
    location_description: Optional[str] = None
    active: Optional[bool] = None
    address: Optional[Address] = None
    resp_center_head: Optional[RespCenterHead] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "Location":
        address = payload.get("address")
        head = payload.get("respCenterHead")
        return cls(
            loc_id=payload.get("locId"),
            code=payload.get("code"),
            location_type=payload.get("locationType"),
            location_type_code=payload.get("locationTypeCode"),
            location_description=payload.get("locationDescription"),
            active=payload.get("active"),
            address=Address.from_api(address) if address else None,
            resp_center_head=RespCenterHead.from_api(head) if head else None,
        )

    @property
    def display_name(self) -> Optional[str]:
        return _first_present(self.location_description, self.code, self.loc_id)


@dataclass(frozen=True)
class Employee:
    employee_id: Optional[int] = None
    uid: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    work_phone: Optional[str] = None
    active: Optional[bool] = None
    location: Optional[Location] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "Employee":
        location = payload.get("location")
        raw_id = payload.get("employeeId")
        return cls(
            employee_id=int(raw_id) if _present(raw_id) else None,
            uid=payload.get("uid"),
            first_name=payload.get("firstName"),
            last_name=payload.get("lastName"),
            full_name=payload.get("fullName"),
            email=payload.get("email"),
            work_phone=payload.get("workPhone"),
            active=payload.get("active"),
            location=Location.from_api(location) if location else None,
        )

    @property
    def display_name(self) -> str:
        if _present(self.full_name):
            return self.full_name
        return " ".join(p for p in (self.first_name, self.last_name) if _present(p))

    @property
    def contact_info(self) -> str:
        return ", ".join(p for p in (self.email, self.work_phone) if _present(p))

    @property
    def resp_center_head(self) -> Optional[RespCenterHead]:
        return self.location.resp_center_head if self.location else None

    @property
    def resp_center_display_name(self) -> Optional[str]:
        head = self.resp_center_head
        return head.display_name if head else None

    @property
    def location_display_name(self) -> Optional[str]:
        return self.location.display_name if self.location else None


@dataclass(frozen=True)
class StatusChange:
    """One personnel transaction posted in the directory, with the employee snapshot it carries."""
    transaction_code: Optional[str]
    post_date_time: Optional[datetime]
    employee: Employee

    @classmethod
    def from_api(cls, payload: Mapping[str, Any], tz: Optional[tzinfo] = None) -> "StatusChange":
        # The status-change payload is the employee record plus transaction fields.
        return cls(
            transaction_code=payload.get("transactionCode"),
            post_date_time=parse_post_datetime(payload.get("postDateTime"), tz),
            employee=Employee.from_api(payload),
        )

    @property
    def transaction_description(self) -> Optional[str]:
        return TRANSACTION_CODES.get(self.transaction_code or "", self.transaction_code)

    @property
    def is_known_transaction(self) -> bool:
        return self.transaction_code in TRANSACTION_CODES
