"""
Majority voting over traffic reports.

Used by every aggregation path so that ties always resolve the same way:
Stopped beats Crawling beats Flowing.
"""

from typing import Dict, Iterable, Optional

import pandas as pd

from ..reports.models import STATUS_PRIORITY, StatusKind


def tally_statuses(statuses: "pd.Series | Iterable") -> Dict[StatusKind, int]:
    """
    Count recognized statuses.

    Args:
        statuses: Status wire values (or StatusKind members); unrecognized
            values and missing entries are ignored

    Returns:
        Count per StatusKind, zero-filled
    """
    if isinstance(statuses, pd.Series):
        series = statuses
    else:
        series = pd.Series(
            [s.value if isinstance(s, StatusKind) else s for s in statuses],
            dtype=object,
        )
    counts = series.value_counts(dropna=True)

    tally = {}
    for kind in STATUS_PRIORITY:
        tally[kind] = int(counts.get(kind.value, 0))
    return tally


def majority_status(tally: Dict[StatusKind, int]) -> Optional[StatusKind]:
    """
    Resolve the winning status of a tally.

    Returns:
        Status with the highest count (ties resolved by priority), or None
        when no recognized status was counted
    """
    top = max(tally.values(), default=0)
    if top == 0:
        return None

    for kind in STATUS_PRIORITY:
        if tally.get(kind, 0) == top:
            return kind
    return None


def vote(statuses: "pd.Series | Iterable") -> Optional[StatusKind]:
    """Majority status of a collection of status values."""
    return majority_status(tally_statuses(statuses))
