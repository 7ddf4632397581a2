"""
Domain errors raised by the inquiry lifecycle service.
The HTTP layer maps each one to a response in main.py.
"""
from typing import List, Optional


class InquiryServiceError(Exception):
    """Base class for all inquiry service errors."""


class InquiryValidationError(InquiryServiceError):
    """One or more fields failed validation. Carries one message per field."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class InquiryNotFound(InquiryServiceError):
    """The referenced inquiry does not exist (or no longer exists)."""

    def __init__(self, inquiry_id: Optional[str] = None):
        self.inquiry_id = inquiry_id
        super().__init__("Inquiry not found")


class DispatchFailure(InquiryServiceError):
    """A notification could not be delivered. Logged, never returned to callers."""

    def __init__(self, kind: str, reason: str):
        self.kind = kind
        self.reason = reason
        super().__init__(f"{kind} dispatch failed: {reason}")


class UnexpectedFailure(InquiryServiceError):
    """Any other internal fault. Details stay in the logs."""


def format_validation_errors(errors) -> List[str]:
    """
    Flatten pydantic error dicts into one "field: message" string per field.
    Request location prefixes (body/query/path) are dropped.
    """
    messages = []
    seen = set()
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "request"
        if field in seen:
            continue
        seen.add(field)
        msg = str(error.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        messages.append(f"{field}: {msg}")
    return messages
