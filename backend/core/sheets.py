"""
sheets.py — Read-only access to the spreadsheet as grids of text cells.

Supports:
- Google Sheets through gspread (service account or API key)
- A local .xlsx workbook through pandas/openpyxl
- An optional time-boxed cache of sheet-name listings

Only two operations are exposed: list the sheet names, and read one sheet as
a list of rows of strings (row 0 = header). Listing failures raise
AccessError; a sheet that cannot be read comes back as an empty grid.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Callable, List, Optional

import gspread
import pandas as pd
import requests
from google.auth.exceptions import GoogleAuthError, RefreshError
from google.oauth2.service_account import Credentials

from core.errors import AccessError

log = logging.getLogger(__name__)

Grid = List[List[str]]

SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


# ── Sheet-name cache ────────────────────────────────────────────────

class SheetNameCache:
    """Holds the last sheet listing for `ttl_seconds`; ttl 0 disables it."""

    def __init__(self, ttl_seconds: float = 60, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._names: Optional[List[str]] = None
        self._stored_at = 0.0

    def get(self) -> Optional[List[str]]:
        if self._names is None or self.ttl_seconds <= 0:
            return None
        if (self._clock() - self._stored_at) > self.ttl_seconds:
            self.invalidate()
            return None
        return list(self._names)

    def put(self, names: List[str]):
        self._names = list(names)
        self._stored_at = self._clock()

    def invalidate(self):
        self._names = None


# ── Accessors ───────────────────────────────────────────────────────

class GridAccessor:
    """Base class; subclasses implement `_fetch_sheet_names` and `read_sheet`."""

    def __init__(self, cache: Optional[SheetNameCache] = None):
        self.cache = cache

    def list_sheet_names(self) -> List[str]:
        if self.cache is not None:
            cached = self.cache.get()
            if cached is not None:
                return cached
        names = self._fetch_sheet_names()
        if self.cache is not None:
            self.cache.put(names)
        return names

    def _fetch_sheet_names(self) -> List[str]:
        raise NotImplementedError

    def read_sheet(self, name: str) -> Grid:
        raise NotImplementedError


def _api_error_status(exc: gspread.exceptions.APIError) -> Optional[int]:
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None)


def _api_error_message(exc: gspread.exceptions.APIError) -> str:
    error = getattr(exc, "error", None)
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return str(exc)


def _as_access_error(exc: Exception) -> AccessError:
    """Translate a gspread, google-auth or transport failure into AccessError."""
    if isinstance(exc, gspread.exceptions.SpreadsheetNotFound):
        return AccessError(404, str(exc) or "Spreadsheet not found")
    if isinstance(exc, gspread.exceptions.APIError):
        return AccessError(_api_error_status(exc), _api_error_message(exc))
    if isinstance(exc, RefreshError):
        return AccessError(401, str(exc) or "Could not refresh service account credentials")
    return AccessError(None, f"Could not reach Google Sheets: {exc}")


CONNECTION_ERRORS = (
    gspread.exceptions.SpreadsheetNotFound,
    gspread.exceptions.APIError,
    GoogleAuthError,
    requests.RequestException,
)


class GoogleSheetsAccessor(GridAccessor):
    def __init__(self, spreadsheet_id: str, client: gspread.Client,
                 cache: Optional[SheetNameCache] = None):
        super().__init__(cache)
        if not spreadsheet_id:
            raise AccessError(None, "Google Sheets API not initialized. Missing spreadsheet ID.")
        self.spreadsheet_id = spreadsheet_id
        self.client = client
        self._spreadsheet = None

    def _open(self):
        if self._spreadsheet is None:
            try:
                self._spreadsheet = self.client.open_by_key(self.spreadsheet_id)
            except CONNECTION_ERRORS as exc:
                raise _as_access_error(exc) from exc
        return self._spreadsheet

    def _fetch_sheet_names(self) -> List[str]:
        try:
            return [ws.title for ws in self._open().worksheets()]
        except AccessError:
            log.error("Error fetching sheet names for spreadsheet %s", self.spreadsheet_id)
            raise
        except CONNECTION_ERRORS as exc:
            log.error("Error fetching sheet names: %s", exc)
            raise _as_access_error(exc) from exc

    def read_sheet(self, name: str) -> Grid:
        try:
            rows = self._open().worksheet(name).get_all_values()
        except (AccessError, gspread.exceptions.GSpreadException,
                GoogleAuthError, requests.RequestException) as exc:
            log.error("Error reading sheet %s: %s", name, exc)
            return []
        log.debug("Sheet %s returned %d rows", name, len(rows))
        return [[str(v) for v in row] for row in rows]


class ExcelWorkbookAccessor(GridAccessor):
    """Reads a local .xlsx file; the file is reopened on every call."""

    def __init__(self, path: str, cache: Optional[SheetNameCache] = None):
        super().__init__(cache)
        self.path = Path(path)

    def _workbook(self) -> pd.ExcelFile:
        if not self.path.is_file():
            raise AccessError(404, f"Workbook {self.path} does not exist")
        return pd.ExcelFile(self.path, engine="openpyxl")

    def _fetch_sheet_names(self) -> List[str]:
        with self._workbook() as xls:
            return [str(name) for name in xls.sheet_names]

    def read_sheet(self, name: str) -> Grid:
        try:
            with self._workbook() as xls:
                df = pd.read_excel(xls, sheet_name=name, header=None, dtype=str)
        except (AccessError, ValueError) as exc:
            log.error("Error reading sheet %s: %s", name, exc)
            return []
        df = df.fillna("")
        return [[str(v) for v in row] for row in df.values.tolist()]


# ── Construction from environment ───────────────────────────────────

def _service_account_info() -> Optional[dict]:
    raw_json = os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON")
    if raw_json:
        try:
            return json.loads(raw_json)
        except json.JSONDecodeError as exc:
            raise AccessError(None, "Invalid service account JSON payload in GOOGLE_SERVICE_ACCOUNT_JSON") from exc

    email = os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL")
    private_key = os.getenv("GOOGLE_PRIVATE_KEY")
    if email and private_key:
        return {
            "type": "service_account",
            "client_email": email,
            "private_key": private_key.replace("\\n", "\n"),
            "token_uri": TOKEN_URI,
        }
    return None


def accessor_from_env() -> GridAccessor:
    """
    Build the accessor described by the environment.

    SHEETS_WORKBOOK_PATH selects a local workbook; otherwise
    GOOGLE_SPREADSHEET_ID plus service-account credentials or
    GOOGLE_API_KEY are required.
    """
    ttl = float(os.getenv("SHEET_NAMES_CACHE_TTL") or 60)
    cache = SheetNameCache(ttl) if ttl > 0 else None

    workbook_path = os.getenv("SHEETS_WORKBOOK_PATH")
    if workbook_path:
        log.info("Using local workbook %s", workbook_path)
        return ExcelWorkbookAccessor(workbook_path, cache=cache)

    spreadsheet_id = os.getenv("GOOGLE_SPREADSHEET_ID")
    if not spreadsheet_id:
        raise AccessError(None, "GOOGLE_SPREADSHEET_ID is not set in environment variables")

    info = _service_account_info()
    if info is not None:
        creds = Credentials.from_service_account_info(info, scopes=SCOPES)
        client = gspread.authorize(creds)
        log.info("Google Sheets API initialized with service account %s", info.get("client_email"))
    elif os.getenv("GOOGLE_API_KEY"):
        client = gspread.api_key(os.getenv("GOOGLE_API_KEY"))
        log.info("Google Sheets API initialized with API key")
    else:
        raise AccessError(
            None,
            "No authentication method configured. Set GOOGLE_SERVICE_ACCOUNT_JSON, "
            "GOOGLE_SERVICE_ACCOUNT_EMAIL/GOOGLE_PRIVATE_KEY or GOOGLE_API_KEY.",
        )

    log.info("Spreadsheet ID: %s", spreadsheet_id)
    return GoogleSheetsAccessor(spreadsheet_id, client, cache=cache)
