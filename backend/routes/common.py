"""
Shared helpers for route modules — accessor lookup and error responses.
"""

import logging
import os
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from core.errors import AccessError, error_payload
from core.sheets import GridAccessor

log = logging.getLogger(__name__)

MAPPING_SHEET = os.getenv("MAPPING_SHEET_NAME", "Mapping")

SETUP_TROUBLESHOOTING = [
    "1. Verify .env file exists in backend directory",
    "2. Check GOOGLE_SERVICE_ACCOUNT_EMAIL and GOOGLE_PRIVATE_KEY are set",
    "3. Ensure GOOGLE_SPREADSHEET_ID is correct",
    "4. Verify the service account has access to the spreadsheet",
]


def get_accessor(request: Request) -> Optional[GridAccessor]:
    return getattr(request.app.state, "accessor", None)


def not_initialized_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content=error_payload(
            "Google Sheets API not initialized. Check server logs for authentication errors.",
            details="The server may not be properly configured with Google Sheets credentials.",
            troubleshooting=SETUP_TROUBLESHOOTING,
        ),
    )


def _sharing_steps() -> list:
    email = os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL") or "your-service-account@..."
    return [
        "1. Open your Google Sheet",
        '2. Click "Share" button',
        f"3. Add email: {email}",
        '4. Give "Viewer" permission',
        '5. Click "Send"',
    ]


def access_error_response(exc: AccessError, action: str, **context) -> JSONResponse:
    """500 response for a spreadsheet access failure during `action`."""
    log.error("Access error while trying to %s: %s", action, exc)
    extra = dict(context, errorCode=exc.status)
    if exc.status == 403:
        extra["troubleshooting"] = _sharing_steps()
    return JSONResponse(
        status_code=500,
        content=error_payload(f"Failed to {action}: {exc.message}", details=str(exc), **extra),
    )
