"""
Occurrence recomputation
========================

`recompute(slot, occurrences)` is the single place where a Slot's derived
totals are computed. Ingestion, rehydration from storage and every
date-range filter go through it, so the totals on any Slot are always a
pure fold over that Slot's own `occurrences`.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Iterable, Optional

from .models import Occurrence, Slot


def _average(total: int, count: int) -> Optional[float]:
    """Average rounded to one decimal; None when there is nothing to divide by."""
    if count <= 0:
        return None
    return round(total / count, 1)


def recompute(slot: Slot, occurrences: Iterable[Occurrence]) -> Slot:
    """Return a copy of `slot` carrying `occurrences` and freshly folded totals.

    The input slot is never modified.
    """
    occs = tuple(occurrences)

    total_checkins = 0
    total_revenue = 0.0
    total_cancelled = 0
    total_non_paid = 0
    total_empty = 0
    for o in occs:
        total_checkins += o.checkins
        total_revenue += o.revenue
        total_cancelled += o.cancelled
        total_non_paid += o.non_paid
        if o.is_empty:
            total_empty += 1

    total_occurrences = len(occs)
    total_non_empty = total_occurrences - total_empty

    return replace(
        slot,
        occurrences=occs,
        total_checkins=total_checkins,
        total_revenue=total_revenue,
        total_cancelled=total_cancelled,
        total_non_paid=total_non_paid,
        total_occurrences=total_occurrences,
        total_empty=total_empty,
        total_non_empty=total_non_empty,
        class_average_including_empty=_average(total_checkins, total_occurrences),
        class_average_excluding_empty=_average(total_checkins, total_non_empty),
    )
