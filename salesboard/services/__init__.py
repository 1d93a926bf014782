"""
Business logic services for the sales conversion backend.

Modules:
    normalizer: Tolerant field lookup, sheet date and amount parsing
    grouping: Per-customer timelines keyed by (phone, name)
    funnel: Upgrade-bill tally, funnel classification and report assembly
    notes: Follow-up note join and the asyncpg notes store
    sheet_source: Google Sheets CSV fetch and tokenizing
    refresh: Last-write-wins coordination of branch reloads

Example usage:
    from salesboard.services import compute_funnel_report, parse_csv_text

    rows = parse_csv_text(csv_text)
    report = compute_funnel_report(rows, DateRange(start=start, end=end))
"""

from salesboard.services.normalizer import (
    resolve_field,
    parse_local_date,
    parse_amount,
)

from salesboard.services.grouping import (
    CustomerIdentity,
    TimelineEntry,
    group_by_identity,
)

from salesboard.services.funnel import (
    DateWindow,
    FunnelOutcome,
    UpgradeTally,
    tally_upgrade_bills,
    classify_timeline,
    classify_funnel_entries,
    build_funnel_report,
    compute_funnel_report,
    filter_report,
    conversion_breakdown,
    default_date_range,
)

from salesboard.services.notes import (
    StoredNote,
    NotesStoreError,
    enrich_pending,
    fetch_notes,
    list_notes,
    upsert_note,
    load_notes_or_empty,
    ensure_notes_schema,
)

from salesboard.services.sheet_source import (
    SheetSourceError,
    UnknownBranchError,
    parse_csv_text,
    fetch_branch_csv,
    fetch_branch_rows,
)

from salesboard.services.refresh import (
    BranchSnapshot,
    FunnelRefresher,
    load_branch_report,
)


__all__ = [
    # Normalizer
    'resolve_field',
    'parse_local_date',
    'parse_amount',
    # Grouping
    'CustomerIdentity',
    'TimelineEntry',
    'group_by_identity',
    # Funnel
    'DateWindow',
    'FunnelOutcome',
    'UpgradeTally',
    'tally_upgrade_bills',
    'classify_timeline',
    'classify_funnel_entries',
    'build_funnel_report',
    'compute_funnel_report',
    'filter_report',
    'conversion_breakdown',
    'default_date_range',
    # Notes
    'StoredNote',
    'NotesStoreError',
    'enrich_pending',
    'fetch_notes',
    'list_notes',
    'upsert_note',
    'load_notes_or_empty',
    'ensure_notes_schema',
    # Sheet source
    'SheetSourceError',
    'UnknownBranchError',
    'parse_csv_text',
    'fetch_branch_csv',
    'fetch_branch_rows',
    # Refresh
    'BranchSnapshot',
    'FunnelRefresher',
    'load_branch_report',
]
