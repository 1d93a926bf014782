"""
Pydantic request/response models for the sales conversion backend.

This module provides type-safe data validation and serialization for the funnel
engine configuration, the funnel report (summary counters plus the upgrade-bill,
primary-conversion and pending follow-up lists) and the follow-up note API.

Every model is plain data: reports can be returned straight from FastAPI
endpoints or dumped to JSON without further conversion.

All models use Pydantic v2 syntax with field descriptions and examples.
"""

from datetime import date as DateType
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from salesboard.models.enums import BreakdownCategory, DateOrder


# =============================================================================
# Engine Configuration
# =============================================================================


class FunnelConfig(BaseModel):
    """
    Column labels, status markers and parsing rules used by the funnel engine.

    Column labels are matched through the row normalizer, so extra whitespace or
    case differences in the sheet header do not matter. Markers are compared
    against the trimmed, upper-cased status note of each row.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "primary_amount_column": "ยอดอัพ P1",
                "upgrade_amount_column": "ยอดอัพ P2",
                "funnel_entry_marker": "P2",
                "primary_marker": "P1",
                "upgrade_marker": "UP P2",
                "date_order": "MDY",
            }
        }
    )

    phone_column: str = Field(default="เบอร์ติดต่อ", description="Contact phone column")
    name_column: str = Field(default="ชื่อลูกค้า", description="Customer name column")
    date_column: str = Field(default="วันที่", description="Transaction date column")
    status_column: str = Field(default="หมายเหตุ", description="Status note column")
    primary_amount_column: str = Field(
        default="ยอดอัพ P1",
        description="Amount column for the P1 (primary) plan; some sheets label it just 'P1'"
    )
    upgrade_amount_column: str = Field(
        default="ยอดอัพ P2",
        description="Amount column for the UP P2 upsell"
    )
    salesperson_column: str = Field(default="Sale", description="Salesperson column")
    interest_column: str = Field(default="รายการที่สนใจ", description="Item of interest column")
    service_date_column: str = Field(
        default="วันที่เข้าใช้บริการ",
        description="Service / arrival date column"
    )

    funnel_entry_marker: str = Field(default="P2", description="Status marking a funnel entry")
    primary_marker: str = Field(default="P1", description="Status marking a primary conversion")
    upgrade_marker: str = Field(default="UP P2", description="Status marking an upgrade bill")

    date_order: DateOrder = Field(
        default=DateOrder.MDY,
        description="Positional order of day and month in sheet dates"
    )
    strict_amounts: bool = Field(
        default=True,
        description="Strip every non-numeric character (currency signs, spaces) before parsing amounts"
    )

    missing_phone: str = Field(default="NoPhone", description="Identity phone when the cell is empty")
    missing_name: str = Field(default="NoName", description="Identity name when the cell is empty")
    placeholder: str = Field(default="-", description="Shown for empty text cells in pending rows")

    @field_validator("funnel_entry_marker", "primary_marker", "upgrade_marker")
    @classmethod
    def _normalize_marker(cls, value: str) -> str:
        return value.strip().upper()


# =============================================================================
# Funnel Report Models
# =============================================================================


class DateRange(BaseModel):
    """
    Inclusive reporting window. Either end may be left open.
    """
    model_config = ConfigDict(
        json_schema_extra={"example": {"start": "2025-01-01", "end": "2025-01-31"}}
    )

    start: Optional[DateType] = Field(default=None, description="First day of the window")
    end: Optional[DateType] = Field(default=None, description="Last day of the window")


class UpgradeBill(BaseModel):
    """A single upgrade (UP P2) bill counted in the reporting window."""
    name: str
    phone: str
    status: str = Field(..., description="Always the upgrade marker")
    amount: float = Field(..., description="Upgrade amount on the bill")
    date: DateType
    salesperson: str
    interest: str


class PrimaryConversion(BaseModel):
    """
    A funnel entry that converted to the primary plan.

    `date`, `amount`, `salesperson` and `interest` come from the converting row;
    `funnel_entry_date` is the date of the P2 row that started the funnel.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "สมชาย",
                "phone": "0812345678",
                "amount": 500.0,
                "date": "2025-01-10",
                "salesperson": "Fah",
                "interest": "Facial",
                "funnel_entry_date": "2025-01-01",
            }
        }
    )

    name: str
    phone: str
    amount: float
    date: DateType
    salesperson: str
    interest: str
    funnel_entry_date: DateType


class PendingFollowUp(BaseModel):
    """
    A funnel entry with no conversion yet, together with its follow-up note.
    """
    funnel_entry_date: DateType
    name: str
    phone: str
    salesperson: str
    interest: str
    service_date: Union[DateType, str] = Field(
        ...,
        description="Parsed service date, the raw cell when unparseable, or a placeholder"
    )
    note: str = Field(default="", description="Follow-up note text")
    note_ref: Optional[str] = Field(
        default=None,
        description="Notes store record id; absent until a note is saved"
    )


class FunnelStats(BaseModel):
    """Summary counters of a funnel report."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "target_count": 10,
                "primary_conversion_count": 4,
                "secondary_conversion_count": 2,
                "pending_count": 4,
                "total_upgrade_bill_count": 7,
                "total_revenue": 10500.0,
            }
        }
    )

    target_count: int = Field(default=0, ge=0, description="Distinct funnel entries (identity per day)")
    primary_conversion_count: int = Field(default=0, ge=0)
    secondary_conversion_count: int = Field(default=0, ge=0)
    pending_count: int = Field(default=0, ge=0, description="Targets with no conversion, never negative")
    total_upgrade_bill_count: int = Field(default=0, ge=0, description="Upgrade bills (identity per day)")
    total_revenue: float = Field(default=0.0, description="Sum of upgrade amounts on counted bills")


class FunnelReport(BaseModel):
    """
    Complete result of one funnel computation.

    Recomputed from scratch for every (rows, date range, notes) combination.
    """
    stats: FunnelStats = Field(default_factory=FunnelStats)
    upgrade_bills: List[UpgradeBill] = Field(default_factory=list)
    primary_conversions: List[PrimaryConversion] = Field(default_factory=list)
    pending: List[PendingFollowUp] = Field(default_factory=list)


class BreakdownSlice(BaseModel):
    """One slice of the funnel outcome chart."""
    category: BreakdownCategory
    label: str
    value: int = Field(..., ge=0)
    share: float = Field(..., ge=0.0, le=100.0, description="Percent of targets, one decimal")


class BranchInfo(BaseModel):
    """A branch that has a configured spreadsheet."""
    id: str
    name: str


class FunnelReportResponse(BaseModel):
    """Response body of GET /branches/{branch}/funnel."""
    branch: BranchInfo
    date_range: DateRange
    search: Optional[str] = None
    report: FunnelReport
    breakdown: List[BreakdownSlice] = Field(default_factory=list)
    notes_available: bool = Field(
        default=True,
        description="False when the notes store could not be read and notes are missing"
    )


# =============================================================================
# Follow-up Note Models
# =============================================================================


class FollowUpNote(BaseModel):
    """A follow-up note stored for one customer identity of a branch."""
    ref: str = Field(..., description="Notes store record id")
    phone: str
    name: str
    note: str


class NoteUpsertRequest(BaseModel):
    """
    Body of PUT /branches/{branch}/notes.

    Send `ref` back when editing an existing note so the record is updated
    instead of duplicated.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "phone": "0812345678",
                "name": "สมชาย",
                "note": "Call back after payday",
                "ref": None,
            }
        }
    )

    phone: str = Field(..., description="Identity phone as shown in the pending list")
    name: str = Field(..., description="Identity name as shown in the pending list")
    note: str = Field(default="", description="Note text; empty clears the note")
    ref: Optional[str] = Field(default=None, description="Existing record id, if any")


class NoteUpsertResponse(BaseModel):
    """Response body of PUT /branches/{branch}/notes."""
    success: bool
    ref: str
