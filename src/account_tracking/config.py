from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields as dc_fields
from pathlib import Path
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from account_tracking.errors import ConfigurationError
from request_codes.mapper import validate_overrides


FieldId = Union[int, str]

DEFAULT_TIMEZONE = "America/New_York"
ENV_PREFIX = "AUDIT_"

FIELD_NAMES = {
    "employee_id": "Employee ID",
    "account_action": "Account Action",
    "target_system": "Target System",
    "employee_name": "Employee Name",
    "employee_uid": "Employee UID",
}
TRACKING_FIELDS = ("employee_id", "account_action", "target_system")


def normalize_field_id(value: Any) -> Optional[FieldId]:
    """Field ids arrive as ints or strings from settings files and env vars; digit strings become ints."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid custom field id: {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    return int(text) if text.isdigit() else text


@dataclass(frozen=True)
class FieldConfiguration:
    """Resolved custom field identifiers on the ticket store."""
    employee_id: Optional[FieldId] = None
    account_action: Optional[FieldId] = None
    target_system: Optional[FieldId] = None
    employee_name: Optional[FieldId] = None
    employee_uid: Optional[FieldId] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FieldConfiguration":
        # Accept both "employee_id" and the settings-page style "employee_id_field_id"
        values = {}
        for name in FIELD_NAMES:
            raw = data.get(name, data.get(f"{name}_field_id"))
            values[name] = normalize_field_id(raw)
        return cls(**values)

    def missing(self, names: tuple[str, ...] = TRACKING_FIELDS) -> list[str]:
        return [name for name in names if getattr(self, name) is None]

    def require_tracking_fields(self) -> None:
        missing = self.missing()
        if missing:
            labels = ", ".join(FIELD_NAMES[name] for name in missing)
            raise ConfigurationError(
                "Required custom fields not found. Ensure Employee ID, Account Action, and "
                f"Target System fields are configured (missing: {labels})."
            )

    def validate(self) -> list[str]:
        return [
            f"Required field '{FIELD_NAMES[name]}' ({name}_field_id) is not configured"
            for name in self.missing(tuple(FIELD_NAMES))
        ]

    def as_dict(self) -> dict[str, Optional[FieldId]]:
        return {f.name: getattr(self, f.name) for f in dc_fields(self)}


@dataclass(frozen=True)
class AuditSettings:
    fields: FieldConfiguration = field(default_factory=FieldConfiguration)
    request_code_mappings: dict[str, dict[str, str]] = field(default_factory=dict)
    timezone: str = DEFAULT_TIMEZONE
    directory_base_url: Optional[str] = None
    directory_api_key: Optional[str] = None
    data_dir: Optional[Path] = None

    @property
    def tz(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(f"Unknown reporting time zone: {self.timezone!r}") from exc

    def directory_settings_errors(self) -> list[str]:
        errors = []
        if not (self.directory_base_url or "").strip():
            errors.append("Employee directory base URL is required")
        if not (self.directory_api_key or "").strip():
            errors.append("Employee directory API key is required")
        if (self.directory_base_url or "").strip() and not _valid_url(self.directory_base_url):
            errors.append("Employee directory base URL must be a valid URL")
        return errors


REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DATA_DIR = REPO_ROOT / "data" / "sample"


def resolve_data_dir(settings: AuditSettings, override: Optional[Path] = None) -> Path:
    """Ticket export directory: command-line override, then settings, then data/sample."""
    if override is not None:
        return Path(override)
    if settings.data_dir is not None:
        return settings.data_dir
    return DEFAULT_DATA_DIR


def _valid_url(url: str) -> bool:
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _read_settings_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Settings file not found: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Settings file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"Settings file {path} must contain a JSON object")
    return payload


def load_settings(
    path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> AuditSettings:
    """
    Build AuditSettings from an optional JSON settings file, then apply AUDIT_* environment
    overrides. When env is not given, a local .env file is loaded into os.environ first.

    Settings file layout:
    {
      "fields": {"employee_id": 12, "account_action": 14, "target_system": 15,
                 "employee_name": 13, "employee_uid": 16},
      "request_code_mappings": {"Target System": {"Account Action": "CODE"}},
      "timezone": "America/New_York",
      "directory": {"base_url": "https://...", "api_key": "..."},
      "data_dir": "data/sample"
    }
    """
    if env is None:
        load_dotenv()
        env = os.environ

    if path is None and env.get(f"{ENV_PREFIX}SETTINGS"):
        path = Path(env[f"{ENV_PREFIX}SETTINGS"])

    payload: dict[str, Any] = _read_settings_file(Path(path)) if path is not None else {}

    field_data = dict(payload.get("fields") or {})
    for name in FIELD_NAMES:
        env_value = env.get(f"{ENV_PREFIX}{name.upper()}_FIELD_ID")
        if env_value:
            field_data[name] = env_value

    mappings = payload.get("request_code_mappings") or {}
    validate_overrides(mappings)

    directory = payload.get("directory") or {}
    data_dir = env.get(f"{ENV_PREFIX}DATA_DIR") or payload.get("data_dir")

    return AuditSettings(
        fields=FieldConfiguration.from_mapping(field_data),
        request_code_mappings=mappings,
        timezone=env.get(f"{ENV_PREFIX}TIMEZONE") or payload.get("timezone") or DEFAULT_TIMEZONE,
        directory_base_url=env.get(f"{ENV_PREFIX}DIRECTORY_BASE_URL") or directory.get("base_url"),
        directory_api_key=env.get(f"{ENV_PREFIX}DIRECTORY_API_KEY") or directory.get("api_key"),
        data_dir=Path(data_dir) if data_dir else None,
    )
