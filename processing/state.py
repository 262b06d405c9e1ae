"""
Application state shared by the reconciler and the sync orchestrator.

Holds the working copy of the order records and the handle to the durable
store.  Only the reconciler and the sync orchestrator write to it.
"""

from dataclasses import dataclass, field
from typing import Any

from config.schema import ID_FIELD
from storage.order_store import OrderStore


@dataclass
class AppState:
    """In-memory record set plus the store it mirrors."""

    store: OrderStore
    records: list[dict[str, Any]] = field(default_factory=list)

    def find(self, record_id: str) -> dict[str, Any] | None:
        for record in self.records:
            if record.get(ID_FIELD) == record_id:
                return record
        return None

    def replace_record(self, updated: dict[str, Any]) -> None:
        """Swap the in-memory copy of *updated* (matched by id), or append it."""
        record_id = updated.get(ID_FIELD)
        for index, record in enumerate(self.records):
            if record.get(ID_FIELD) == record_id:
                self.records[index] = updated
                return
        self.records.append(updated)
