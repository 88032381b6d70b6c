from __future__ import annotations
from datetime import datetime
from typing import Optional


def now_like(reference: Optional[datetime] = None) -> datetime:
    """
    Current time in the same timezone flavour as `reference`.

    Aware references get an aware 'now' in their zone; naive references (or None) get a naive
    local 'now'. Keeps date arithmetic from mixing naive and aware datetimes.
    """
    if reference is not None and reference.tzinfo is not None:
        return datetime.now(reference.tzinfo)
    return datetime.now()


def align(moment: datetime, reference: datetime) -> datetime:
    """Return `moment` converted so it can be subtracted from `reference`."""
    if reference.tzinfo is None and moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    if reference.tzinfo is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=reference.tzinfo)
    return moment


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days from `earlier` to `later`, floored (negative when `earlier` is in the future)."""
    delta = later - align(earlier, later)
    return int(delta.total_seconds() // 86400)
