"""
errors.py — Error taxonomy and structured error payloads.

- AccessError: the spreadsheet could not be reached, read or authorised.
- NotFoundError: a student, school or test is absent from the data.

Column-matching problems are never raised; they degrade to empty results.
"""

from typing import Any, Dict, Optional


REMEDIATION = {
    401: "Check your service account credentials.",
    403: "Make sure the service account has access to the spreadsheet.",
    404: "Check that the spreadsheet ID is correct.",
}

STATUS_LABELS = {
    401: "Authentication failed",
    403: "Permission denied",
    404: "Spreadsheet not found",
}


class AccessError(Exception):
    """The grid accessor failed in a way that is terminal for the request."""

    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        super().__init__(self.describe())

    def describe(self) -> str:
        if self.status in STATUS_LABELS:
            return (
                f"{STATUS_LABELS[self.status]} ({self.status}): {self.message}. "
                f"{REMEDIATION[self.status]}"
            )
        if self.status is not None:
            return f"Google Sheets API error ({self.status}): {self.message}"
        return self.message


class NotFoundError(Exception):
    """A requested student, school or test does not exist in the data."""

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(message)


def error_payload(error: str, details: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Build the `{error, details?}` shape returned to callers."""
    payload: Dict[str, Any] = {"error": error}
    if details is not None:
        payload["details"] = details
    payload.update(extra)
    return payload


def not_initialized_payload() -> Dict[str, Any]:
    return error_payload(
        "Google Sheets API not initialized",
        details="The server may not be properly configured with Google Sheets credentials.",
    )
