"""Group scan records by business, newest scan first."""

import logging
from typing import Iterable, Optional

from localrank.models.scan import ScanRecord
from localrank.utils.helpers import matches_search

logger = logging.getLogger(__name__)

GroupedScans = dict[str, list[ScanRecord]]


def sort_newest_first(scans: Iterable[ScanRecord]) -> list[ScanRecord]:
    """Stable sort by ``created_at`` descending; ties keep input order."""
    return sorted(scans, key=lambda s: s.sort_key, reverse=True)


def group_by_business(scans: Iterable[ScanRecord]) -> GroupedScans:
    """Map each business name to its scans, newest first.

    Identity is the exact business name. Businesses appear in the order of
    their newest scan, so an upstream list that is already newest-first
    keeps its first-appearance order. Businesses without scans never appear.
    """
    grouped: GroupedScans = {}
    ordered = sort_newest_first(scans)
    for scan in ordered:
        grouped.setdefault(scan.business_name, []).append(scan)
    logger.debug("Grouped %d scans into %d businesses", len(ordered), len(grouped))
    return grouped


def latest_per_business(grouped: GroupedScans) -> dict[str, ScanRecord]:
    return {name: scans[0] for name, scans in grouped.items() if scans}


def filter_by_business(
    scans: Iterable[ScanRecord],
    search: Optional[str],
) -> list[ScanRecord]:
    """Keep scans whose business name contains *search* (case-insensitive)."""
    return [s for s in scans if matches_search(s.business_name, search)]


def flatten(grouped: GroupedScans) -> list[ScanRecord]:
    return [scan for scans in grouped.values() for scan in scans]
