"""
Funnel Refresh Coordination

A dashboard session shows one branch at a time. Switching branch, or pressing
refresh, starts a new load while an older one may still be in flight. The
FunnelRefresher makes the newest request win by invocation order: each refresh
gets a generation number, the previous in-flight load is cancelled, and a load
that finishes after a newer one started is discarded instead of overwriting
current state.

Changing only the date range does not touch the network: recompute() re-derives
the report from the rows and notes already loaded.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from salesboard.core.config import Settings
from salesboard.models.schemas import DateRange, FunnelReport
from salesboard.services.funnel import compute_funnel_report
from salesboard.services.notes import NotesByIdentity, load_notes_or_empty
from salesboard.services.sheet_source import fetch_branch_rows

logger = logging.getLogger(__name__)


@dataclass
class BranchSnapshot:
    """Inputs and result of the latest completed refresh."""
    branch: str
    rows: List[Dict[str, str]] = field(default_factory=list)
    notes: NotesByIdentity = field(default_factory=dict)
    notes_available: bool = True
    date_range: DateRange = field(default_factory=DateRange)
    report: FunnelReport = field(default_factory=FunnelReport)


async def load_branch_report(
    branch: str,
    date_range: DateRange,
    settings: Settings,
) -> BranchSnapshot:
    """
    Fetch a branch sheet and its notes, then compute the funnel report.

    The sheet and the notes are loaded concurrently. A notes store failure
    degrades to no notes (notes_available=False); a sheet failure propagates.

    Raises:
        SheetSourceError: If the sheet cannot be loaded.
    """
    rows, (notes, notes_available) = await asyncio.gather(
        fetch_branch_rows(branch, settings),
        load_notes_or_empty(branch),
    )
    report = compute_funnel_report(rows, date_range, notes, settings.funnel)
    return BranchSnapshot(
        branch=branch,
        rows=rows,
        notes=notes,
        notes_available=notes_available,
        date_range=date_range,
        report=report,
    )


class FunnelRefresher:
    """
    Holds the current branch snapshot and serializes refreshes by invocation
    order.

    Example:
        refresher = FunnelRefresher(settings)
        snapshot = await refresher.refresh("Bangyai", date_range)
        snapshot = refresher.recompute(new_range)
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._generation = 0
        self._inflight: Optional[asyncio.Task] = None
        self.current: Optional[BranchSnapshot] = None

    @property
    def generation(self) -> int:
        return self._generation

    async def refresh(self, branch: str, date_range: DateRange) -> Optional[BranchSnapshot]:
        """
        Load a branch and make it current.

        Returns:
            The new snapshot, or None when a newer refresh superseded this one

        Raises:
            SheetSourceError: If the sheet cannot be loaded and this refresh is
                still the newest. Current state is left as it was.
        """
        self._generation += 1
        generation = self._generation

        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()

        task = asyncio.ensure_future(load_branch_report(branch, date_range, self._settings))
        self._inflight = task

        try:
            snapshot = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                logger.info(f"Refresh #{generation} for {branch} cancelled by a newer refresh")
                return None
            raise
        except Exception:
            if generation != self._generation:
                logger.info(f"Discarding failure of stale refresh #{generation} for {branch}")
                return None
            raise

        if generation != self._generation:
            logger.info(f"Discarding stale refresh #{generation} for {branch}")
            return None

        self.current = snapshot
        return snapshot

    def recompute(self, date_range: DateRange) -> Optional[BranchSnapshot]:
        """
        Re-derive the current report for a new date range without any I/O.

        Returns:
            The updated snapshot, or None when nothing has been loaded yet
        """
        if self.current is None:
            return None

        report = compute_funnel_report(
            self.current.rows, date_range, self.current.notes, self._settings.funnel
        )
        self.current = BranchSnapshot(
            branch=self.current.branch,
            rows=self.current.rows,
            notes=self.current.notes,
            notes_available=self.current.notes_available,
            date_range=date_range,
            report=report,
        )
        return self.current
