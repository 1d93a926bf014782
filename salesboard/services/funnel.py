"""
Funnel Engine Service

Computes the P2 -> P1 / UP P2 conversion funnel of one branch for a reporting
window. The engine is a pure function of (raw rows, date range, notes): it does
no I/O, keeps no state between calls and never raises on malformed rows.

Pipeline:
1. group_by_identity(): rows -> date-sorted timelines per customer identity
2. tally_upgrade_bills() (Step A): every upgrade bill in the window, at most one
   per identity per day, with revenue
3. classify_funnel_entries() (Step B): every funnel entry in the window, at most
   one per identity per day, settled as converted-primary, converted-secondary
   or pending by looking at the entry row and then at later rows of the same
   customer
4. build_funnel_report(): fold both passes into FunnelStats and detail lists
5. enrich_pending(): join stored follow-up notes onto the pending list

The two passes use separate dedup sets. Both are passed in and returned rather
than mutated in place, so each pass can be run and tested on its own.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import FrozenSet, List, Optional, Sequence, Tuple, Union

from salesboard.models.enums import BreakdownCategory, Outcome
from salesboard.models.schemas import (
    BreakdownSlice,
    DateRange,
    FunnelConfig,
    FunnelReport,
    FunnelStats,
    PendingFollowUp,
    PrimaryConversion,
    UpgradeBill,
)
from salesboard.services.grouping import (
    CustomerIdentity,
    RawRecord,
    TimelineEntry,
    Timelines,
    group_by_identity,
)
from salesboard.services.normalizer import parse_local_date
from salesboard.services.notes import NotesByIdentity, enrich_pending

logger = logging.getLogger(__name__)


DedupKey = Tuple[CustomerIdentity, date]


# =============================================================================
# Reporting Window
# =============================================================================

@dataclass(frozen=True)
class DateWindow:
    """
    Inclusive reporting window from 00:00:00 of the first day to the last
    microsecond of the last day. A missing bound is open.
    """
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def from_range(cls, date_range: Optional[DateRange]) -> "DateWindow":
        if date_range is None:
            return cls()
        return cls(
            start=datetime.combine(date_range.start, time.min) if date_range.start else None,
            end=datetime.combine(date_range.end, time.max) if date_range.end else None,
        )

    def contains(self, day: Union[date, datetime, None]) -> bool:
        if day is None:
            return False
        moment = day if isinstance(day, datetime) else datetime.combine(day, time.min)
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment > self.end:
            return False
        return True


def default_date_range(today: Optional[date] = None) -> DateRange:
    """First day of the current month through today."""
    today = today or date.today()
    return DateRange(start=today.replace(day=1), end=today)


# =============================================================================
# Row Predicates
# =============================================================================

def is_funnel_entry(entry: TimelineEntry, config: FunnelConfig) -> bool:
    return entry.note == config.funnel_entry_marker


def is_primary_conversion(entry: TimelineEntry, config: FunnelConfig) -> bool:
    return entry.note == config.primary_marker or entry.primary_amount > 0


def is_upgrade_bill(entry: TimelineEntry, config: FunnelConfig) -> bool:
    return entry.note == config.upgrade_marker or entry.upgrade_amount > 0


# =============================================================================
# Step A - Upgrade Bill Tally
# =============================================================================

@dataclass
class UpgradeTally:
    """Upgrade bills counted in the window and the dedup keys consumed."""
    bills: List[UpgradeBill] = field(default_factory=list)
    revenue: float = 0.0
    seen: FrozenSet[DedupKey] = frozenset()


def _upgrade_bill(entry: TimelineEntry, config: FunnelConfig) -> UpgradeBill:
    return UpgradeBill(
        name=entry.identity.name,
        phone=entry.identity.phone,
        status=config.upgrade_marker,
        amount=entry.upgrade_amount,
        date=entry.date,
        salesperson=entry.salesperson,
        interest=entry.interest,
    )


def tally_upgrade_bills(
    timelines: Timelines,
    window: DateWindow,
    config: FunnelConfig,
    seen: FrozenSet[DedupKey] = frozenset(),
) -> UpgradeTally:
    """
    Count upgrade bills in the window, one per identity per day.

    A row is an upgrade bill when its status is the upgrade marker or its
    upgrade amount is positive. This pass is independent of the funnel: any
    customer's upgrade bill counts, whether or not they ever entered the funnel.

    Args:
        timelines: Per-identity timelines
        window: Reporting window
        config: Markers
        seen: Dedup keys already counted

    Returns:
        UpgradeTally with the bills in timeline order, summed revenue and the
        extended dedup set
    """
    counted = set(seen)
    tally = UpgradeTally()

    for identity, entries in timelines.items():
        for entry in entries:
            if not window.contains(entry.date) or not is_upgrade_bill(entry, config):
                continue
            key = (identity, entry.date)
            if key in counted:
                continue
            counted.add(key)
            tally.revenue += entry.upgrade_amount
            tally.bills.append(_upgrade_bill(entry, config))

    tally.seen = frozenset(counted)
    return tally


# =============================================================================
# Step B - Funnel Entry Classification
# =============================================================================

@dataclass(frozen=True)
class FunnelOutcome:
    """
    How one funnel entry was settled.

    Attributes:
        entry: The funnel-entry row
        outcome: Converted-primary, converted-secondary or pending
        settled_by: Row that settled the outcome (the entry itself for a
            same-row conversion), None when pending
    """
    entry: TimelineEntry
    outcome: Outcome
    settled_by: Optional[TimelineEntry] = None


def settle_funnel_entry(
    entries: Sequence[TimelineEntry],
    index: int,
    config: FunnelConfig,
) -> FunnelOutcome:
    """
    Decide the outcome of the funnel entry at entries[index].

    The entry row itself is checked first: a primary amount (or primary status)
    converts to primary, otherwise an upgrade amount converts to secondary.
    Failing that, later rows of the same customer are scanned in date order,
    ignoring the reporting window; the first row that is a primary conversion
    or an upgrade bill settles the outcome. Primary is tested before upgrade on
    each row.
    """
    entry = entries[index]

    if is_primary_conversion(entry, config):
        return FunnelOutcome(entry, Outcome.CONVERTED_PRIMARY, entry)
    if entry.upgrade_amount > 0:
        return FunnelOutcome(entry, Outcome.CONVERTED_SECONDARY, entry)

    for later in entries[index + 1:]:
        if is_primary_conversion(later, config):
            return FunnelOutcome(entry, Outcome.CONVERTED_PRIMARY, later)
        if is_upgrade_bill(later, config):
            return FunnelOutcome(entry, Outcome.CONVERTED_SECONDARY, later)

    return FunnelOutcome(entry, Outcome.PENDING)


def classify_timeline(
    entries: Sequence[TimelineEntry],
    window: DateWindow,
    config: FunnelConfig,
    seen: FrozenSet[DedupKey] = frozenset(),
) -> Tuple[List[FunnelOutcome], FrozenSet[DedupKey]]:
    """
    Settle every funnel entry of one customer timeline inside the window.

    Each in-window funnel-entry row is an independent target unless the same
    identity already has a target on that day.

    Returns:
        Tuple of (outcomes in timeline order, extended dedup set)
    """
    counted = set(seen)
    outcomes: List[FunnelOutcome] = []

    for index, entry in enumerate(entries):
        if not window.contains(entry.date) or not is_funnel_entry(entry, config):
            continue
        key = (entry.identity, entry.date)
        if key in counted:
            continue
        counted.add(key)
        outcomes.append(settle_funnel_entry(entries, index, config))

    return outcomes, frozenset(counted)


def classify_funnel_entries(
    timelines: Timelines,
    window: DateWindow,
    config: FunnelConfig,
    seen: FrozenSet[DedupKey] = frozenset(),
) -> Tuple[List[FunnelOutcome], FrozenSet[DedupKey]]:
    """Fold classify_timeline() over every identity, threading the dedup set."""
    outcomes: List[FunnelOutcome] = []
    for entries in timelines.values():
        timeline_outcomes, seen = classify_timeline(entries, window, config, seen)
        outcomes.extend(timeline_outcomes)
    return outcomes, seen


# =============================================================================
# Aggregation
# =============================================================================

def _primary_conversion(outcome: FunnelOutcome) -> PrimaryConversion:
    converting = outcome.settled_by or outcome.entry
    return PrimaryConversion(
        name=converting.identity.name,
        phone=converting.identity.phone,
        amount=converting.primary_amount,
        date=converting.date,
        salesperson=converting.salesperson,
        interest=converting.interest,
        funnel_entry_date=outcome.entry.date,
    )


def resolve_service_date(raw: str, config: FunnelConfig) -> Union[date, str]:
    """Parsed service date, else the raw cell, else the placeholder."""
    parsed = parse_local_date(raw, config.date_order)
    if parsed is not None:
        return parsed
    return raw or config.placeholder


def _pending_follow_up(entry: TimelineEntry, config: FunnelConfig) -> PendingFollowUp:
    return PendingFollowUp(
        funnel_entry_date=entry.date,
        name=entry.identity.name,
        phone=entry.identity.phone,
        salesperson=entry.salesperson or config.placeholder,
        interest=entry.interest or config.placeholder,
        service_date=resolve_service_date(entry.service_date_raw, config),
    )


def build_funnel_report(
    timelines: Timelines,
    window: DateWindow,
    config: FunnelConfig,
) -> FunnelReport:
    """
    Run both passes over grouped timelines and assemble the report.

    pending_count is derived as max(0, targets - conversions) rather than
    counted, so it can never go negative.
    """
    tally = tally_upgrade_bills(timelines, window, config)
    outcomes, _ = classify_funnel_entries(timelines, window, config)

    primary: List[PrimaryConversion] = []
    pending: List[PendingFollowUp] = []
    secondary_count = 0

    for outcome in outcomes:
        if outcome.outcome == Outcome.CONVERTED_PRIMARY:
            primary.append(_primary_conversion(outcome))
        elif outcome.outcome == Outcome.CONVERTED_SECONDARY:
            secondary_count += 1
        else:
            pending.append(_pending_follow_up(outcome.entry, config))

    target_count = len(outcomes)
    stats = FunnelStats(
        target_count=target_count,
        primary_conversion_count=len(primary),
        secondary_conversion_count=secondary_count,
        pending_count=max(0, target_count - (len(primary) + secondary_count)),
        total_upgrade_bill_count=len(tally.bills),
        total_revenue=tally.revenue,
    )

    return FunnelReport(
        stats=stats,
        upgrade_bills=tally.bills,
        primary_conversions=primary,
        pending=pending,
    )


def compute_funnel_report(
    rows: Sequence[RawRecord],
    date_range: Optional[DateRange] = None,
    notes: Optional[NotesByIdentity] = None,
    config: Optional[FunnelConfig] = None,
) -> FunnelReport:
    """
    Compute the funnel report of one branch.

    This is the engine entry point. It is deterministic and side-effect free:
    the same rows, range and notes always give the same report.

    Args:
        rows: Raw sheet rows (column label -> cell text)
        date_range: Inclusive reporting window; None means unbounded
        notes: Stored follow-up notes keyed by identity
        config: Column labels, markers and parsing rules (defaults when omitted)

    Returns:
        FunnelReport with stats, upgrade bills, primary conversions and the
        note-enriched pending list. Empty input yields a zeroed report.

    Example:
        >>> report = compute_funnel_report(rows, DateRange(start=date(2025, 1, 1), end=date(2025, 1, 31)))
        >>> report.stats.target_count
        12
    """
    config = config or FunnelConfig()
    timelines = group_by_identity(rows, config)
    report = build_funnel_report(timelines, DateWindow.from_range(date_range), config)
    report.pending = enrich_pending(report.pending, notes)

    logger.debug(
        f"Funnel computed over {len(rows)} rows / {len(timelines)} identities: "
        f"targets={report.stats.target_count}, "
        f"primary={report.stats.primary_conversion_count}, "
        f"secondary={report.stats.secondary_conversion_count}, "
        f"upgrade_bills={report.stats.total_upgrade_bill_count}"
    )
    return report


# =============================================================================
# Presentation Projections
# =============================================================================

def _matches(term: str, *values: Optional[str]) -> bool:
    return any(term in (value or "").lower() for value in values)


def filter_report(report: FunnelReport, term: Optional[str]) -> FunnelReport:
    """
    Narrow the detail lists to rows matching a search term.

    Matching is a case-insensitive substring test, OR-ed across name,
    salesperson, phone and (for pending rows) note. Stats are left untouched.
    A blank term returns the report unchanged.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return report

    return report.model_copy(update={
        "upgrade_bills": [
            row for row in report.upgrade_bills
            if _matches(needle, row.name, row.salesperson, row.phone)
        ],
        "primary_conversions": [
            row for row in report.primary_conversions
            if _matches(needle, row.name, row.salesperson, row.phone)
        ],
        "pending": [
            row for row in report.pending
            if _matches(needle, row.name, row.salesperson, row.phone, row.note)
        ],
    })


def conversion_breakdown(
    stats: FunnelStats,
    config: Optional[FunnelConfig] = None,
) -> List[BreakdownSlice]:
    """
    Outcome chart slices: primary, secondary and pending, with their share of
    targets in percent (one decimal). Empty slices are left out, and there are
    no slices at all when there are no targets.
    """
    config = config or FunnelConfig()
    if stats.target_count == 0:
        return []

    candidates = [
        (BreakdownCategory.PRIMARY, f"Converted to {config.primary_marker}",
         stats.primary_conversion_count),
        (BreakdownCategory.SECONDARY, f"Upgraded {config.upgrade_marker}",
         stats.secondary_conversion_count),
        (BreakdownCategory.PENDING, "Pending follow-up", stats.pending_count),
    ]

    return [
        BreakdownSlice(
            category=category,
            label=label,
            value=value,
            share=round(value / stats.target_count * 100, 1),
        )
        for category, label, value in candidates
        if value > 0
    ]
