from __future__ import annotations


class AuditError(Exception):
    """Base class for expected failures raised while building audit data."""


class ConfigurationError(AuditError):
    """A required field mapping or setting is missing. Fatal; shown to the operator as-is."""


class ValidationError(AuditError):
    """A caller-supplied parameter failed a domain check."""


class UpstreamError(AuditError):
    """The ticket store or the employee directory could not be read."""

    source = "Upstream service"

    def user_message(self) -> str:
        return f"{self.source} is temporarily unavailable. Please try again later."


class TicketStoreError(UpstreamError):
    source = "Ticket store"


class DirectoryError(UpstreamError):
    source = "Employee directory"
