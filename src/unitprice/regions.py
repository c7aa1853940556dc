"""
Region codes, display labels and chart colours shared across the package.
"""

from __future__ import annotations

from typing import Dict, List, Optional

STATEWIDE = "statewide"

# Spellings of the reference region seen in source datasets.
_STATEWIDE_ALIASES = {"statewide", "state", "state-wide", "state wide"}

REGION_COLORS: Dict[str, str] = {
    "1": "#2563eb",
    "2": "#16a34a",
    "3": "#dc2626",
    "4": "#9333ea",
    STATEWIDE: "#000000",
}
DEFAULT_COLOR = "#6b7280"

def normalize_region(value: object) -> Optional[str]:
    """
    Normalize a region key into its canonical form.

    ``"STATE"`` and other reference spellings map to ``"statewide"``;
    ``"Region 2"``, ``" 2 "`` and ``2`` all map to ``"2"``.  Returns ``None``
    for blank input.
    """

    if value is None:
        return None
    candidate = str(value).strip()
    if not candidate:
        return None
    lowered = candidate.lower()
    if lowered in _STATEWIDE_ALIASES:
        return STATEWIDE
    if lowered.startswith("region"):
        rest = candidate[len("region"):].strip()
        if rest:
            candidate = rest
    if candidate.endswith(".0") and candidate[:-2].isdigit():
        candidate = candidate[:-2]
    return candidate

def region_label(region: str) -> str:
    return "Statewide" if region == STATEWIDE else f"Region {region}"

def region_color(region: str) -> str:
    return REGION_COLORS.get(region, DEFAULT_COLOR)

def region_sort_key(region: str) -> tuple:
    """Reference region first, then numeric codes, then anything else."""

    if region == STATEWIDE:
        return (0, 0, "")
    if region.isdigit():
        return (1, int(region), "")
    return (2, 0, region)


def parse_region_list(raw: object | None) -> List[str]:
    """Split a comma (or whitespace) separated region list, normalizing each entry."""

    if raw is None:
        return []
    if isinstance(raw, str):
        parts = raw.split(",") if "," in raw else raw.split()
    else:
        parts = [str(part) for part in raw]  # type: ignore[union-attr]
    out: List[str] = []
    for part in parts:
        region = normalize_region(part)
        if region and region not in out:
            out.append(region)
    return out
