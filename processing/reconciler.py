"""
Reconciler — merges a fresh feed into the local order set and applies edits.

The feed is authoritative for base fields; the user is authoritative for the
preserved editable fields as long as they hold a value.  Orders are matched
by their forma8Salmi.  Derived fields are recomputed on every record that
leaves this module, so they can never disagree with the merged inputs.

These are the only two paths that change order data:
  - reconcile(): bulk merge, then atomic replace of the whole store.
  - apply_edit(): one field of one order, then upsert of that order.

Public API:
    merge_records(cached, incoming, keep_orphans, now) → MergeResult
    reconcile(state, incoming, keep_orphans, now) → MergeResult
    apply_edit(state, event, now) → dict
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from config.schema import (
    DATE_FIELD_PREFIX,
    DERIVED_FIELDS,
    EDITABLE_FIELDS,
    ID_FIELD,
    ORDER_STATUSES,
    PRESERVED_FIELDS,
    QUANTITY_FIELDS,
    STATUS_FIELD,
)
from exceptions import InvalidEdit, RecordNotFound
from processing.derived_fields import compute_derived
from processing.state import AppState

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class MergeResult:
    """Output of merge_records() / reconcile()."""

    records: list[dict[str, Any]] = field(default_factory=list)
    new_ids: list[str] = field(default_factory=list)
    updated_ids: list[str] = field(default_factory=list)
    orphaned_ids: list[str] = field(default_factory=list)
    """Cached orders missing from the feed (dropped unless keep_orphans)."""
    skipped_rows: list[dict] = field(default_factory=list)
    """Incoming rows without an id, or duplicates overridden by a later row."""


@dataclass(frozen=True)
class EditEvent:
    """A single field change coming from the presentation layer."""

    record_id: str
    field: str
    value: str


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def merge_records(
    cached: list[dict[str, Any]],
    incoming: list[dict[str, Any]],
    keep_orphans: bool = False,
    now: datetime | None = None,
) -> MergeResult:
    """
    Merge freshly parsed feed records into the cached set.

    For an order present on both sides the incoming record is the starting
    point and every PRESERVED_FIELDS value is taken from the cache when the
    cached value is non-empty.  Orders only in the feed are new.  Orders only
    in the cache are orphans: reported, and kept only when *keep_orphans*.

    Neither input list nor its records are modified.

    Args:
        cached: Current local records.
        incoming: Records parsed from the feed.
        keep_orphans: Append cached-only orders after the feed orders.
        now: Reference time for the derived-field calculator.

    Returns:
        MergeResult with merged records (feed order) and per-id bookkeeping.
    """
    result = MergeResult()
    feed_records = _index_incoming(incoming, result.skipped_rows)

    cached_by_id: dict[str, dict[str, Any]] = {}
    for record in cached:
        record_id = _record_id(record)
        if record_id:
            cached_by_id[record_id] = record

    for record_id, incoming_record in feed_records.items():
        existing = cached_by_id.get(record_id)
        if existing is None:
            merged = dict(incoming_record)
            result.new_ids.append(record_id)
        else:
            merged = _merge_one(existing, incoming_record)
            result.updated_ids.append(record_id)

        result.records.append(compute_derived(merged, now))

    result.orphaned_ids = [
        record_id for record_id in cached_by_id if record_id not in feed_records
    ]
    if result.orphaned_ids:
        action = "kept" if keep_orphans else "dropped"
        logger.warning(
            f"{len(result.orphaned_ids)} cached orders missing from the feed were {action}: "
            f"{', '.join(result.orphaned_ids[:10])}"
            f"{' …' if len(result.orphaned_ids) > 10 else ''}"
        )
        if keep_orphans:
            result.records.extend(
                compute_derived(dict(cached_by_id[record_id]), now)
                for record_id in result.orphaned_ids
            )

    logger.info(
        f"Merge complete: {len(result.records)} orders "
        f"({len(result.new_ids)} new, {len(result.updated_ids)} updated, "
        f"{len(result.orphaned_ids)} orphaned, {len(result.skipped_rows)} rows skipped)"
    )

    return result


def reconcile(
    state: AppState,
    incoming: list[dict[str, Any]],
    keep_orphans: bool = False,
    now: datetime | None = None,
) -> MergeResult:
    """
    Merge *incoming* into the working set and replace the store with it.

    The in-memory set is updated first.  If the store write fails the
    PersistenceFailure propagates and memory stays ahead of disk until the
    next successful sync.
    """
    result = merge_records(state.records, incoming, keep_orphans=keep_orphans, now=now)
    state.records = result.records
    state.store.bulk_replace(result.records)
    return result


def apply_edit(state: AppState, event: EditEvent, now: datetime | None = None) -> dict[str, Any]:
    """
    Set one field of one order, recompute what depends on it, and persist it.

    Args:
        state: Application state holding the store and the working set.
        event: The edit to apply.
        now: Reference time for the derived-field calculator.

    Returns:
        The updated record.

    Raises:
        InvalidEdit: The field is not user-editable, or the status value is
            not one of ORDER_STATUSES.
        RecordNotFound: No order with that id is in memory or stored.
        PersistenceFailure: The store rejected the write (memory untouched).
    """
    _validate_edit(event)

    # Memory can be ahead of the store after a failed save; start from it.
    current = state.find(event.record_id)
    record = dict(current) if current is not None else state.store.get(event.record_id)
    if record is None:
        logger.warning(f"Edit rejected: order '{event.record_id}' not found")
        raise RecordNotFound(event.record_id)

    record[event.field] = event.value

    if _affects_derived(event.field):
        compute_derived(record, now)

    state.store.put(record)
    state.replace_record(record)

    logger.info(f"Order '{event.record_id}': {event.field} set to '{event.value}'")
    return record


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _record_id(record: dict[str, Any]) -> str:
    return str(record.get(ID_FIELD) or "").strip()


def _index_incoming(
    incoming: list[dict[str, Any]],
    skipped_rows: list[dict],
) -> dict[str, dict[str, Any]]:
    """
    Key incoming records by id, in feed order.

    Rows without an id cannot be stored and are skipped.  When an id repeats,
    the later row replaces the earlier one but keeps its position.
    """
    by_id: dict[str, dict[str, Any]] = {}

    for position, record in enumerate(incoming):
        record_id = _record_id(record)
        if not record_id:
            skipped_rows.append({"row": position, "reason": f"missing {ID_FIELD}"})
            continue
        if record_id in by_id:
            skipped_rows.append({
                "row": position,
                "reason": f"duplicate {ID_FIELD} '{record_id}' — later row kept",
            })
        by_id[record_id] = record

    return by_id


def _merge_one(existing: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    """Incoming record with the non-empty user-owned values of *existing*."""
    merged = dict(incoming)
    for field_name in PRESERVED_FIELDS:
        cached_value = existing.get(field_name)
        if cached_value:
            merged[field_name] = cached_value
    return merged


def _affects_derived(field_name: str) -> bool:
    return (
        field_name.startswith(DATE_FIELD_PREFIX)
        or field_name == STATUS_FIELD
        or field_name in QUANTITY_FIELDS
    )


def _validate_edit(event: EditEvent) -> None:
    if event.field == ID_FIELD:
        raise InvalidEdit(f"{ID_FIELD} identifies the order and cannot be edited")

    if event.field in DERIVED_FIELDS:
        raise InvalidEdit(f"'{event.field}' is calculated and cannot be edited")

    if event.field not in EDITABLE_FIELDS:
        raise InvalidEdit(f"'{event.field}' is not an editable field")

    if event.field == STATUS_FIELD and event.value and event.value not in ORDER_STATUSES:
        raise InvalidEdit(f"'{event.value}' is not a valid status")
