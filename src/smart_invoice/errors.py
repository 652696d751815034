"""Exception hierarchy for SmartInvoice.

Fatal conditions (``MissingTemplate``, ``MissingRateOrParameters``,
``LayoutNotResolved``) block generation. The rest are recovered from and only
show up in logs or in a fill report.
"""

from typing import Any


class SmartInvoiceError(Exception):
    """Base exception for SmartInvoice errors."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class InvalidMonth(SmartInvoiceError, ValueError):
    """Month string is not a valid YYYY-MM value."""

    pass


class InvalidConfig(SmartInvoiceError):
    """Override sets overlap or are malformed."""

    pass


class LayoutNotResolved(SmartInvoiceError):
    """No usable cell layout could be derived for a template."""

    pass


class MissingTemplate(SmartInvoiceError):
    """No template workbook (or an unreadable one) was supplied."""

    pass


class MissingRateOrParameters(SmartInvoiceError):
    """Client numeric parameters needed for generation are missing."""

    pass


class CellWriteSkipped(SmartInvoiceError):
    """A single cell write targeted an invalid address and was skipped."""

    def __init__(self, address: str, reason: str):
        super().__init__(f"Skipped cell {address!r}: {reason}", details={"address": address})
        self.address = address
        self.reason = reason


class NetworkUnavailable(SmartInvoiceError):
    """A network collaborator (holidays, layout hints) could not be reached."""

    pass


class RecordNotFound(SmartInvoiceError, KeyError):
    """A work record or document id is unknown to the store."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""
