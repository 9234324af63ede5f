from __future__ import annotations

from copy import deepcopy
from typing import Optional

from account_tracking.errors import ConfigurationError


_UPDATE_ACTIONS = (
    "Update Account & Privileges",
    "Update Privileges Only",
    "Update Account Only",
)


def _standard_codes(add: str, delete: str, update: str) -> dict[str, str]:
    codes = {"Add": add, "Delete": delete}
    for action in _UPDATE_ACTIONS:
        codes[action] = update
    return codes


# Request type definition chart. Order matters: the reverse lookup keeps the
# first (system, action) pair seen for a code.
DEFAULT_MAPPINGS: dict[str, dict[str, str]] = {
    "Oracle / SFMS": _standard_codes("USRA", "USRI", "USRU"),
    "AIX": _standard_codes("AIXA", "AIXI", "AIXU"),
    "SFS": _standard_codes("SFSA", "SFSI", "SFSU"),
    "NYSDS": _standard_codes("DSA", "DSI", "DSU"),
    "PayServ": _standard_codes("PYSA", "PYSI", "PYSU"),
    "OGS Swiper Access": {"Add": "CTRA", "Delete": "CTRI"},
}


def _blank(value: object) -> bool:
    return value is None or not str(value).strip()


def deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge `override` into a copy of `base`.
    Nested dicts are merged key by key; any other value in `override` replaces the base value.
    """
    merged = deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def validate_overrides(custom_mappings: object) -> None:
    """Overrides must be {system: {action: code}} with text at every level."""
    if custom_mappings is None:
        return
    if not isinstance(custom_mappings, dict):
        raise ConfigurationError("request_code_mappings must be an object of {system: {action: code}}")
    for target_system, actions in custom_mappings.items():
        if not isinstance(target_system, str) or not isinstance(actions, dict):
            raise ConfigurationError(
                f"request_code_mappings[{target_system!r}] must be an object of {{action: code}}"
            )
        for account_action, code in actions.items():
            if not isinstance(account_action, str) or not isinstance(code, str) or _blank(code):
                raise ConfigurationError(
                    f"request_code_mappings[{target_system!r}][{account_action!r}] must be a non-blank code"
                )


class RequestCodeMapper:
    """
    Bidirectional mapping between (Account Action, Target System) and request type codes.

    custom_mappings has the same shape as DEFAULT_MAPPINGS:
        {"Target System": {"Account Action": "CODE"}}
    """

    def __init__(self, custom_mappings: Optional[dict[str, dict[str, str]]] = None) -> None:
        validate_overrides(custom_mappings)
        self._mappings = deep_merge(DEFAULT_MAPPINGS, custom_mappings or {})
        self._reverse = self._build_reverse_mappings()

    @property
    def mappings(self) -> dict[str, dict[str, str]]:
        return deepcopy(self._mappings)

    def get_request_code(self, account_action: Optional[str], target_system: Optional[str]) -> Optional[str]:
        if _blank(account_action) or _blank(target_system):
            return None
        return self._mappings.get(target_system, {}).get(account_action)

    def get_fields_from_code(self, request_code: Optional[str]) -> Optional[dict[str, str]]:
        if _blank(request_code):
            return None
        fields = self._reverse.get(request_code)
        return dict(fields) if fields else None

    def all_codes(self) -> list[str]:
        return sorted(self._reverse)

    def all_target_systems(self) -> list[str]:
        return sorted(self._mappings)

    def account_actions_for_system(self, target_system: Optional[str]) -> list[str]:
        if _blank(target_system):
            return []
        return sorted(self._mappings.get(target_system) or {})

    def code_collisions(self) -> dict[str, list[str]]:
        """
        Codes used by more than one target system, e.g. after an override reuses a default code.
        Returns {code: [systems...]}; reverse lookup for these codes resolves to the first system.
        """
        systems_by_code: dict[str, list[str]] = {}
        for target_system, actions in self._mappings.items():
            for code in actions.values():
                seen = systems_by_code.setdefault(code, [])
                if target_system not in seen:
                    seen.append(target_system)
        return {code: systems for code, systems in sorted(systems_by_code.items()) if len(systems) > 1}

    def _build_reverse_mappings(self) -> dict[str, dict[str, str]]:
        reverse: dict[str, dict[str, str]] = {}
        for target_system, actions in self._mappings.items():
            for account_action, code in actions.items():
                if code in reverse:
                    continue
                reverse[code] = {
                    "account_action": account_action,
                    "target_system": target_system,
                }
        return reverse
