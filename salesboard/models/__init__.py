"""
Package initialization file for salesboard models.

Exports all Pydantic schemas and enumerations from schemas.py and enums.py so
other modules can import them from salesboard.models directly.

Usage:
    from salesboard.models import (
        FunnelConfig,
        FunnelReport,
        Outcome,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from salesboard.models.enums import (
    Outcome,
    DateOrder,
    BreakdownCategory,
)


# =============================================================================
# Schemas
# =============================================================================

from salesboard.models.schemas import (
    # Engine configuration
    FunnelConfig,
    # Funnel report
    DateRange,
    UpgradeBill,
    PrimaryConversion,
    PendingFollowUp,
    FunnelStats,
    FunnelReport,
    BreakdownSlice,
    BranchInfo,
    FunnelReportResponse,
    # Follow-up notes
    FollowUpNote,
    NoteUpsertRequest,
    NoteUpsertResponse,
)


__all__ = [
    # Enums
    'Outcome',
    'DateOrder',
    'BreakdownCategory',
    # Engine configuration
    'FunnelConfig',
    # Funnel report
    'DateRange',
    'UpgradeBill',
    'PrimaryConversion',
    'PendingFollowUp',
    'FunnelStats',
    'FunnelReport',
    'BreakdownSlice',
    'BranchInfo',
    'FunnelReportResponse',
    # Follow-up notes
    'FollowUpNote',
    'NoteUpsertRequest',
    'NoteUpsertResponse',
]
