"""
Fuzzy label suggestions.

When someone retypes a column title in the source sheet, the header stops
matching the mapping table.  best_match() finds the known label it most
likely was so the mismatch can be reported; it never remaps anything.
"""

import logging

from thefuzz import fuzz, process

logger = logging.getLogger(__name__)


def best_match(
    value: str,
    candidates: list[str],
    threshold: int = 85,
) -> tuple[str | None, int]:
    """
    Closest entry of *candidates* to *value*.

    Scoring is token_sort_ratio after thefuzz's default processing
    (lowercase, punctuation stripped), so "FECHA ENTREGA REAL" and
    "fecha de entrega real" still score high.

    Returns:
        (candidate, score) when the score reaches *threshold*,
        otherwise (None, 0).
    """
    if not value or not candidates:
        return None, 0

    found = process.extractOne(
        value, candidates, scorer=fuzz.token_sort_ratio, score_cutoff=threshold
    )
    if found is None:
        logger.debug(f"No label within {threshold} of '{value}'")
        return None, 0

    candidate, score = found[0], found[1]
    logger.debug(f"'{value}' looks like '{candidate}' (score={score})")
    return candidate, score
