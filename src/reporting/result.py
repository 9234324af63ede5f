from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from account_tracking.errors import ConfigurationError, UpstreamError, ValidationError


log = logging.getLogger(__name__)


@dataclass
class ReportResult:
    """What a report hands to its renderer: rows on success, error messages otherwise."""
    rows: Optional[list[dict[str, Any]]]
    errors: list[str] = field(default_factory=list)
    from_time: Optional[datetime] = None
    to_time: Optional[datetime] = None
    as_of_time: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.rows is not None and not self.errors


def describe_failure(exc: Exception, report_name: str) -> str:
    """
    Message shown to the person running the report. Configuration and validation problems
    are shown verbatim; upstream failures get a generic message with detail kept in the log.
    """
    if isinstance(exc, (ConfigurationError, ValidationError)):
        log.error("%s: %s", report_name, exc)
        return str(exc)
    if isinstance(exc, UpstreamError):
        log.error("%s: upstream failure: %s", report_name, exc, exc_info=exc)
        return exc.user_message()
    log.error("%s error: %s", report_name, exc, exc_info=exc)
    return f"Report generation failed: {exc}"


class ReportService:
    """
    Base for the audit reports. Subclasses implement build_rows(); generate() never raises
    for failures inside the report and always returns a fresh ReportResult.
    """

    name = "Report"

    def build_rows(self, errors: list[str]) -> list[dict[str, Any]]:
        raise NotImplementedError

    def window(self) -> dict[str, Optional[datetime]]:
        return {}

    def generate(self) -> ReportResult:
        errors: list[str] = []
        try:
            rows = self.build_rows(errors)
        except Exception as exc:  # report boundary: callers render an error view instead
            errors.append(describe_failure(exc, self.name))
            return ReportResult(rows=None, errors=errors, **self.window())

        if errors:
            return ReportResult(rows=None, errors=errors, **self.window())
        return ReportResult(rows=rows, errors=[], **self.window())
