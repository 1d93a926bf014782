"""
FastAPI router module for branches and the conversion funnel report.

Key Endpoints:
- GET /branches - Branches that have a configured spreadsheet
- GET /branches/{branch}/funnel - Funnel report for a date range, optionally
  narrowed by a search term

Failure behaviour:
- Unknown branch: 404
- Sheet cannot be fetched: 502 with one user-facing message and no partial data
- Notes store unavailable: the report is still returned, without notes, and
  notes_available is false
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query

from salesboard.core.config import Settings
from salesboard.core.dependencies import SettingsDep
from salesboard.models.schemas import (
    BranchInfo,
    DateRange,
    FunnelReportResponse,
)
from salesboard.services.funnel import (
    conversion_breakdown,
    default_date_range,
    filter_report,
)
from salesboard.services.refresh import load_branch_report
from salesboard.services.sheet_source import SheetSourceError


# =============================================================================
# Module Configuration
# =============================================================================

logger = logging.getLogger(__name__)

SHEET_UNAVAILABLE_MESSAGE: str = (
    "Unable to load branch data. Check that the Google Sheet is shared correctly."
)


# =============================================================================
# Router Definition
# =============================================================================

router = APIRouter(prefix="/branches", tags=["branches"])


def require_branch(branch: str, settings: Settings) -> BranchInfo:
    """
    Resolve a configured branch or fail with 404.
    """
    if branch not in settings.branch_sheets:
        raise HTTPException(status_code=404, detail=f"Unknown branch: {branch}")
    return BranchInfo(id=branch, name=settings.branch_display_name(branch))


# =============================================================================
# GET /branches
# =============================================================================


@router.get("", response_model=List[BranchInfo])
async def list_branches(settings: SettingsDep) -> List[BranchInfo]:
    """
    List branches with a configured spreadsheet, default branch first.
    """
    branches = [
        BranchInfo(id=branch, name=settings.branch_display_name(branch))
        for branch in settings.branch_sheets
    ]
    branches.sort(key=lambda info: info.id != settings.default_branch)
    return branches


# =============================================================================
# GET /branches/{branch}/funnel
# =============================================================================


@router.get("/{branch}/funnel", response_model=FunnelReportResponse)
async def get_funnel_report(
    branch: str,
    settings: SettingsDep,
    start: Optional[date] = Query(default=None, description="First day, YYYY-MM-DD"),
    end: Optional[date] = Query(default=None, description="Last day, YYYY-MM-DD"),
    search: Optional[str] = Query(default=None, description="Filter detail lists by name, salesperson, phone or note"),
) -> FunnelReportResponse:
    """
    Compute the conversion funnel of a branch.

    When neither start nor end is given the window runs from the first day of
    the current month through today.

    Args:
        branch: Branch id
        start: First day of the window (inclusive)
        end: Last day of the window (inclusive)
        search: Case-insensitive substring applied to the detail lists only

    Returns:
        FunnelReportResponse with stats, detail lists and the outcome breakdown

    Raises:
        HTTPException 404: Unknown branch
        HTTPException 502: Sheet could not be fetched
    """
    info = require_branch(branch, settings)

    if start is None and end is None:
        date_range = default_date_range()
    else:
        date_range = DateRange(start=start, end=end)

    try:
        snapshot = await load_branch_report(branch, date_range, settings)
    except SheetSourceError as e:
        logger.warning(f"GET /branches/{branch}/funnel failed: {e}")
        raise HTTPException(status_code=502, detail=SHEET_UNAVAILABLE_MESSAGE)

    report = snapshot.report

    logger.info(
        f"Funnel for {branch} {date_range.start}..{date_range.end}: "
        f"{report.stats.target_count} targets, {report.stats.pending_count} pending"
    )

    return FunnelReportResponse(
        branch=info,
        date_range=date_range,
        search=search,
        report=filter_report(report, search),
        breakdown=conversion_breakdown(report.stats, settings.funnel),
        notes_available=snapshot.notes_available,
    )
