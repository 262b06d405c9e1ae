"""
Column mapper — translates feed header labels into record field names.

Two steps per header:
  1. Exact lookup in KNOWN_HEADERS (feed labels plus export-only labels).
  2. Fallback: lowercase the label and remove spaces ("FOO BAR" → "foobar").

The mapping is total: every header yields a field name and no column is ever
dropped.  For fallback headers the closest known label is suggested (thefuzz)
so a renamed or misspelled sheet column shows up in the logs.

Public API:
    map_header(header) → str
    map_columns(headers) → ColumnMappingResult
"""

import logging
from dataclasses import dataclass, field

from config.column_mapping import KNOWN_HEADERS
from utils.fuzzy_match import best_match

logger = logging.getLogger(__name__)

_KNOWN_LABELS: list[str] = list(KNOWN_HEADERS)


# ═══════════════════════════════════════════════════════════════════════════
# Data class
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class ColumnMappingResult:
    """Result of mapping a header row to record field names."""

    mapping: dict[str, str] = field(default_factory=dict)
    """header → field name."""

    fallback: list[str] = field(default_factory=list)
    """Headers that were not in the lookup table."""

    suggestions: dict[str, str] = field(default_factory=dict)
    """fallback header → closest known label (informational only)."""


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def map_header(header: str) -> str:
    """
    Return the canonical field name for a single header label.

    Known labels map through the lookup table; anything else is lowercased
    with spaces removed.
    """
    known = KNOWN_HEADERS.get(header)
    if known is not None:
        return known
    return _fallback_key(header)


def map_columns(headers: list[str]) -> ColumnMappingResult:
    """
    Map every header of a feed to a field name.

    Args:
        headers: Header labels in column order.

    Returns:
        ColumnMappingResult with the full mapping, the list of headers that
        used the fallback rule, and fuzzy suggestions for those headers.
    """
    result = ColumnMappingResult()

    for header in headers:
        key = map_header(header)
        result.mapping[header] = key

        if header in KNOWN_HEADERS:
            continue

        result.fallback.append(header)
        suggestion, score = best_match(header, _KNOWN_LABELS)
        if suggestion is not None:
            result.suggestions[header] = suggestion
            logger.warning(
                f"Unknown header '{header}' mapped to '{key}' "
                f"(looks like '{suggestion}', score={score})"
            )
        else:
            logger.info(f"Unknown header '{header}' mapped to '{key}'")

    logger.info(
        f"Column mapping complete: {len(result.mapping)} columns, "
        f"{len(result.fallback)} via fallback"
    )

    return result


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _fallback_key(header: str) -> str:
    return header.lower().replace(" ", "")
