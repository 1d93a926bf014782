"""
Branch Sheet Source Service

Fetches a branch's transaction log from Google Sheets as CSV text and tokenizes
it into raw records.

Two fetch paths:
- Drive API export (google-api-python-client) when a service account is
  configured. The spreadsheet must be shared with the service account. Drive
  exports the first sheet of the spreadsheet.
- Public CSV endpoint (requests) otherwise. The spreadsheet must be shared as
  "anyone with the link can view"; the configured sheet tab is requested.

Both client libraries are blocking, so calls run in a worker thread and the
coroutine stays cancellable from the caller's side.

Tokenizing uses pandas so quoted cells with embedded commas and newlines are
handled properly.
"""

import asyncio
import io
import logging
import warnings
from typing import Dict, List

import pandas as pd
import requests
from google.oauth2 import service_account
from googleapiclient.discovery import build

from salesboard.core.config import Settings

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DRIVE_SCOPES = ['https://www.googleapis.com/auth/drive.readonly']

CSV_MIME = 'text/csv'

PUBLIC_CSV_URL_TEMPLATE = (
    "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq?tqx=out:csv&sheet={sheet_name}"
)


class SheetSourceError(Exception):
    """Raised when a branch sheet cannot be downloaded."""


class UnknownBranchError(SheetSourceError):
    """Raised when a branch has no configured spreadsheet."""


# =============================================================================
# CSV Tokenizing
# =============================================================================

def _pass_row_through(fields: List[str]) -> List[str]:
    # Returned unchanged; pandas cuts the row to the header width itself
    return fields


def parse_csv_text(text: str) -> List[Dict[str, str]]:
    """
    Tokenize CSV text into raw records.

    The first line is the header and cells map to labels by position. Every
    cell is kept as a string, header labels and cells are trimmed, missing
    cells become "" and surplus cells on a long line (a trailing comma, say)
    are dropped, including on the first data line. When two columns share a
    label, the right-most one wins.

    Args:
        text: CSV text as exported by Google Sheets

    Returns:
        One dict per data line, column label -> cell text. Empty input gives [].
    """
    if not text or not text.strip():
        return []

    # header=None and index_col=False keep pandas from renaming duplicate
    # labels or turning a long first data line into a row index
    try:
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', pd.errors.ParserWarning)
            df = pd.read_csv(
                io.StringIO(text),
                header=None,
                index_col=False,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                engine='python',
                on_bad_lines=_pass_row_through,
            )
    except pd.errors.EmptyDataError:
        return []

    lines = df.fillna("").astype(str).values.tolist()
    if len(lines) < 2:
        return []

    labels = [label.strip() for label in lines[0]]
    return [
        {label: cell.strip() for label, cell in zip(labels, line)}
        for line in lines[1:]
    ]


# =============================================================================
# Fetching
# =============================================================================

def get_drive_service(settings: Settings):
    """
    Create a read-only Google Drive API service from the configured service
    account.

    Raises:
        ValueError: If GOOGLE_APPLICATION_CREDENTIALS is not configured.
    """
    if not settings.google_application_credentials:
        raise ValueError(
            "GOOGLE_APPLICATION_CREDENTIALS environment variable not configured. "
            "Please set it to the path of your service account JSON file."
        )

    credentials = service_account.Credentials.from_service_account_file(
        settings.google_application_credentials,
        scopes=DRIVE_SCOPES,
    )
    return build('drive', 'v3', credentials=credentials, cache_discovery=False)


def _export_via_drive(settings: Settings, sheet_id: str) -> str:
    service = get_drive_service(settings)
    content = service.files().export(fileId=sheet_id, mimeType=CSV_MIME).execute()
    if isinstance(content, bytes):
        return content.decode('utf-8-sig')
    return str(content)


def _download_public_csv(settings: Settings, sheet_id: str) -> str:
    url = PUBLIC_CSV_URL_TEMPLATE.format(sheet_id=sheet_id, sheet_name=settings.sheet_name)
    response = requests.get(url, timeout=settings.sheet_request_timeout)
    response.raise_for_status()
    response.encoding = 'utf-8'
    return response.text


async def fetch_branch_csv(branch: str, settings: Settings) -> str:
    """
    Download the CSV export of a branch's transaction sheet.

    Args:
        branch: Branch id as configured in BRANCH_SHEETS
        settings: Application settings

    Returns:
        CSV text with a header row

    Raises:
        UnknownBranchError: If the branch has no configured spreadsheet.
        SheetSourceError: If the download or export fails.
    """
    sheet_id = settings.branch_sheets.get(branch)
    if not sheet_id:
        raise UnknownBranchError(f"No spreadsheet configured for branch '{branch}'")

    use_drive = bool(settings.google_application_credentials)
    source = "Drive export" if use_drive else "public CSV endpoint"
    logger.info(f"Fetching sheet for branch {branch} via {source}")

    try:
        if use_drive:
            text = await asyncio.to_thread(_export_via_drive, settings, sheet_id)
        else:
            text = await asyncio.to_thread(_download_public_csv, settings, sheet_id)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.error(f"Sheet fetch failed for branch {branch}: {e}")
        raise SheetSourceError(f"Could not load the sheet for branch '{branch}'") from e

    logger.info(f"Fetched {len(text)} characters for branch {branch}")
    return text


async def fetch_branch_rows(branch: str, settings: Settings) -> List[Dict[str, str]]:
    """Fetch and tokenize a branch sheet in one call."""
    text = await fetch_branch_csv(branch, settings)
    rows = parse_csv_text(text)
    logger.info(f"Parsed {len(rows)} rows for branch {branch}")
    return rows
