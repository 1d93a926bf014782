"""
Identity Grouper Service

Partitions raw sheet rows into per-customer timelines. A customer identity is
the pair (phone, name) after trimming, with sentinel values when either cell is
empty. Two spellings of the same name are two identities; the sheets give us
nothing better to key on.

Each timeline is sorted by date. Python's sort is stable, so rows on the same
day keep their sheet order.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence

from salesboard.models.schemas import FunnelConfig
from salesboard.services.normalizer import parse_amount, parse_local_date, resolve_field

logger = logging.getLogger(__name__)


RawRecord = Mapping[str, Optional[str]]


class CustomerIdentity(NamedTuple):
    """Value key for one customer: trimmed phone and trimmed name."""
    phone: str
    name: str

    @property
    def key(self) -> str:
        """Display form, e.g. '0812345678_Somchai'. Not used for equality."""
        return f"{self.phone}_{self.name}"


@dataclass(frozen=True)
class TimelineEntry:
    """
    One sheet row placed on a customer's timeline.

    Attributes:
        identity: Owning customer
        row_index: Position of the row in the sheet export (0-based)
        date: Parsed transaction date
        note: Trimmed, upper-cased status note
        primary_amount: Parsed primary (P1) amount
        upgrade_amount: Parsed upgrade (UP P2) amount
        salesperson: Raw salesperson cell
        interest: Raw item-of-interest cell
        service_date_raw: Raw service/arrival date cell
        record: The original row
    """
    identity: CustomerIdentity
    row_index: int
    date: date
    note: str
    primary_amount: float = 0.0
    upgrade_amount: float = 0.0
    salesperson: str = ""
    interest: str = ""
    service_date_raw: str = ""
    record: RawRecord = field(default_factory=dict, compare=False, repr=False)


Timelines = Dict[CustomerIdentity, List[TimelineEntry]]


def resolve_identity(record: RawRecord, config: FunnelConfig) -> CustomerIdentity:
    """Build the identity of a row, substituting sentinels for empty cells."""
    phone = resolve_field(record, config.phone_column).strip() or config.missing_phone
    name = resolve_field(record, config.name_column).strip() or config.missing_name
    return CustomerIdentity(phone=phone, name=name)


def build_entry(
    record: RawRecord,
    row_index: int,
    config: FunnelConfig,
) -> Optional[TimelineEntry]:
    """
    Normalize one raw row into a timeline entry.

    Returns:
        The entry, or None when the row has no parseable date
    """
    parsed_date = parse_local_date(resolve_field(record, config.date_column), config.date_order)
    if parsed_date is None:
        return None

    return TimelineEntry(
        identity=resolve_identity(record, config),
        row_index=row_index,
        date=parsed_date,
        note=resolve_field(record, config.status_column).strip().upper(),
        primary_amount=parse_amount(
            resolve_field(record, config.primary_amount_column), config.strict_amounts
        ),
        upgrade_amount=parse_amount(
            resolve_field(record, config.upgrade_amount_column), config.strict_amounts
        ),
        salesperson=resolve_field(record, config.salesperson_column).strip(),
        interest=resolve_field(record, config.interest_column).strip(),
        service_date_raw=resolve_field(record, config.service_date_column).strip(),
        record=record,
    )


def group_by_identity(
    rows: Sequence[RawRecord],
    config: Optional[FunnelConfig] = None,
) -> Timelines:
    """
    Group raw rows into chronologically ordered per-identity timelines.

    Rows whose date cannot be parsed are dropped: they cannot be placed in any
    reporting window. Identities appear in order of their first row.

    Args:
        rows: Raw sheet rows
        config: Column labels and parsing rules (defaults when omitted)

    Returns:
        Dict mapping each identity to its date-sorted entries
    """
    config = config or FunnelConfig()
    timelines: Timelines = {}
    dropped = 0

    for row_index, record in enumerate(rows):
        entry = build_entry(record, row_index, config)
        if entry is None:
            dropped += 1
            continue
        timelines.setdefault(entry.identity, []).append(entry)

    for entries in timelines.values():
        entries.sort(key=lambda entry: entry.date)

    if dropped:
        logger.debug(f"Dropped {dropped} of {len(rows)} rows without a parseable date")

    return timelines
