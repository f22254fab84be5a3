"""
Employment history: raw (corporation, join date) rows into an ordered
sequence of Corporation entities with inferred start/end dates.

Rows are ordered most recent first. Each older row ends one second before
the next more recent one began; the most recent row has no end date and is
the current employer. Rejoining a corporation yields repeated entries.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Optional

from ..core.context import ApiContext
from ..models.records import EmploymentRecord
from .corporation import Corporation

# Gap between one employment's end and the next one's start
INTERVAL_RESOLUTION = timedelta(seconds=1)


def infer_intervals(
    records: Iterable[EmploymentRecord],
) -> list[tuple[EmploymentRecord, Optional[datetime]]]:
    """
    Pair each record with its inferred end date.

    Returns:
        (record, end_date) tuples, most recent first; end_date is None
        only for the most recent record
    """
    ordered = sorted(records, key=lambda r: r.start_date, reverse=True)
    intervals: list[tuple[EmploymentRecord, Optional[datetime]]] = []
    newer: Optional[EmploymentRecord] = None
    for record in ordered:
        end_date = newer.start_date - INTERVAL_RESOLUTION if newer is not None else None
        intervals.append((record, end_date))
        newer = record
    return intervals


def employment_history(
    context: ApiContext, records: Iterable[EmploymentRecord]
) -> list[Corporation]:
    """Build Corporation entities carrying start_date/end_date, most recent first."""
    return [
        Corporation(
            context,
            corporation_id=record.corporation_id,
            name=record.corporation_name,
            start_date=record.start_date,
            end_date=end_date,
        )
        for record, end_date in infer_intervals(records)
    ]
