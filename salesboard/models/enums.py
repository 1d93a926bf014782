"""
Enumeration definitions for the sales conversion backend.

All enums inherit from both `str` and `Enum` so they serialize cleanly through
Pydantic models and FastAPI responses.
"""

from enum import Enum


class Outcome(str, Enum):
    """
    Result of following a single funnel-entry (P2) event.

    - converted_primary: the customer moved on to the P1 plan
    - converted_secondary: the customer bought the UP P2 upsell instead
    - pending: nothing settled yet, the customer still needs a follow-up
    """
    CONVERTED_PRIMARY = "converted_primary"
    CONVERTED_SECONDARY = "converted_secondary"
    PENDING = "pending"


class DateOrder(str, Enum):
    """
    Positional order of the day and month components in sheet dates.

    MDY is the historical reading of the branch sheets. DMY is offered for
    sheets that are typed day-first.
    """
    MDY = "MDY"
    DMY = "DMY"


class BreakdownCategory(str, Enum):
    """Slices of the funnel outcome chart."""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    PENDING = "pending"
