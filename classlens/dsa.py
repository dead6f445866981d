"""
Sorting utilities
=================

Multi-key sorting needs a comparator (mixed directions, numeric-or-text
comparison per pair), so we use an explicit stable merge sort driven by a
three-way `cmp(a, b)` function instead of a key function.

Stability matters: when every sort key ties, rows keep their input order.
"""

from __future__ import annotations
from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")

Comparator = Callable[[T, T], int]


def merge_sort(arr: Sequence[T], cmp: Comparator) -> List[T]:
    """Stable merge sort. `cmp` returns <0, 0 or >0 like a classic comparator."""
    if len(arr) <= 1:
        return list(arr)
    mid = len(arr) // 2
    left = merge_sort(arr[:mid], cmp)
    right = merge_sort(arr[mid:], cmp)
    return _merge(left, right, cmp)

def _merge(left: List[T], right: List[T], cmp: Comparator) -> List[T]:
    out: List[T] = []
    # i and j are pointers into each sorted list
    i = j = 0
    while i < len(left) and j < len(right):
        # <= keeps equal elements from the left half first (stability)
        if cmp(left[i], right[j]) <= 0:
            out.append(left[i]); i += 1
        else:
            out.append(right[j]); j += 1
    out.extend(left[i:])
    out.extend(right[j:])
    return out

def chain_comparators(cmps: Sequence[Comparator]) -> Comparator:
    """Combine comparators lexicographically: later ones only break ties."""
    def combined(a: T, b: T) -> int:
        for c in cmps:
            r = c(a, b)
            if r != 0:
                return r
        return 0
    return combined
