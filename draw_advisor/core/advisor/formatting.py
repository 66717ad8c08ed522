"""
Entity labels used by every insight and violation template.

Templates never take a pre-formatted string for the subject: they take the
record (position, milestone, action, goal) and render its region and
category through these helpers.
"""

from typing import Iterable, List


def region_label(region: str) -> str:
    return (region or "").strip().upper()


def category_label(category: str) -> str:
    """``mule_deer`` → ``Mule Deer``."""
    return " ".join(part.capitalize() for part in (category or "").replace("-", "_").split("_") if part)


def entity_label(record) -> str:
    """``WY Elk`` for anything carrying ``region`` and ``category``."""
    return f"{region_label(record.region)} {category_label(record.category)}"


def join_labels(labels: Iterable[str]) -> str:
    return ", ".join(labels)


def unique_regions(records: Iterable) -> List[str]:
    """Distinct regions in order of first appearance."""
    seen: List[str] = []
    for r in records:
        if r.region not in seen:
            seen.append(r.region)
    return seen


def regions_label(regions: Iterable[str]) -> str:
    return join_labels(region_label(r) for r in regions)


def plural(count: int, word: str, many: str = None) -> str:
    if count == 1:
        return f"{count} {word}"
    return f"{count} {many or word + 's'}"


def money(amount: float) -> str:
    return f"${amount:,.0f}"
