"""Numeric version ordering."""
import re
from typing import Iterable

_LEADING_DIGITS = re.compile(r"\d+")


def _segment_value(segment: str) -> int:
    match = _LEADING_DIGITS.match(segment)
    return int(match.group()) if match else 0


def split_version(version: str) -> tuple[int, ...]:
    """Split a dotted version into integer segments."""
    return tuple(_segment_value(part) for part in version.split("."))


def version_key(version: str) -> tuple[int, ...]:
    """Sort key equivalent to comparing zero-padded integer tuples.

    Trailing zero segments are dropped, so ``1.2`` and ``1.2.0`` share a key
    while ``1.2 < 1.2.1`` and ``2.9 < 2.10`` still hold.
    """
    segments = list(split_version(version))
    while segments and segments[-1] == 0:
        segments.pop()
    return tuple(segments)


def compare_versions(left: str, right: str) -> int:
    """Compare two dotted versions like ``cmp``."""
    a, b = version_key(left), version_key(right)
    return (a > b) - (a < b)


def sort_versions(versions: Iterable[str], newest_first: bool = True) -> list[str]:
    """Deduplicate and order versions numerically."""
    return sorted(
        set(versions),
        key=lambda v: (version_key(v), v),
        reverse=newest_first,
    )


def branch_of(version: str) -> tuple[int, ...]:
    """The ``major.minor`` branch a version belongs to."""
    return split_version(version)[:2]
