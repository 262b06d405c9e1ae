"""
Sync orchestrator — fetch → parse → reconcile → persist, with offline fallback.

One cycle ends in one of three states:
  - ONLINE:  feed fetched, merged and saved.
  - OFFLINE: feed unavailable; the working set is reloaded from the store
             unchanged and the caller is told it is looking at local data.
  - FAILED:  the store could not be read or written.  After a failed save
             the working set is ahead of the store until the next cycle.

Cycles and edits share one lock, so a timer-triggered sync can never replace
the store while an edit is halfway through its upsert.

Public API:
    fetch_feed(url, timeout, session) → str
    SyncOrchestrator(state, feed_url, ...)
    AutoRefresher(orchestrator, interval_seconds)
"""

import enum
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

import requests

from config import settings
from exceptions import FeedUnavailable, PersistenceFailure
from processing import reconciler
from processing.csv_parser import parse_csv
from processing.reconciler import EditEvent, MergeResult
from processing.state import AppState

logger = logging.getLogger(__name__)

OFFLINE_MESSAGE = "Modo offline: usando datos locales"
ONLINE_MESSAGE = "Datos actualizados correctamente"


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

class SyncStatus(enum.Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    FAILED = "failed"


@dataclass
class SyncResult:
    """Outcome of one sync cycle."""

    status: SyncStatus
    trigger: str
    message: str = ""
    record_count: int = 0
    merge: MergeResult | None = None
    parse_warnings: list[dict] = field(default_factory=list)
    error: str | None = None
    finished_at: datetime = field(default_factory=datetime.now)


# ═══════════════════════════════════════════════════════════════════════════
# Feed access
# ═══════════════════════════════════════════════════════════════════════════

def fetch_feed(
    url: str,
    timeout: float = settings.FEED_TIMEOUT_SECONDS,
    session: requests.Session | None = None,
) -> str:
    """
    GET the published CSV.

    Returns:
        The response body decoded as UTF-8 (a leading BOM is dropped).

    Raises:
        FeedUnavailable: Transport error or non-2xx status.
    """
    http = session if session is not None else requests
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.HTTPError as exc:
        status_code = exc.response.status_code if exc.response is not None else None
        raise FeedUnavailable(f"Feed returned HTTP {status_code}", status_code=status_code, url=url) from exc
    except requests.RequestException as exc:
        raise FeedUnavailable(f"Feed request failed: {exc}", url=url) from exc

    return response.content.decode("utf-8-sig", errors="replace")


# ═══════════════════════════════════════════════════════════════════════════
# Orchestrator
# ═══════════════════════════════════════════════════════════════════════════

class SyncOrchestrator:
    """Runs sync cycles and edits against one AppState, one at a time."""

    def __init__(
        self,
        state: AppState,
        feed_url: str = settings.FEED_URL,
        timeout: float = settings.FEED_TIMEOUT_SECONDS,
        keep_orphans: bool = settings.KEEP_ORPHANED_ORDERS,
        session: requests.Session | None = None,
    ) -> None:
        self.state = state
        self.feed_url = feed_url
        self.timeout = timeout
        self.keep_orphans = keep_orphans
        self._session = session
        self._lock = threading.Lock()
        self._listeners: list[Callable[[SyncResult], Any]] = []
        self.last_result: SyncResult | None = None

    def add_listener(self, callback: Callable[[SyncResult], Any]) -> None:
        """Register a callback that receives every SyncResult."""
        self._listeners.append(callback)

    def load_cached(self) -> list[dict[str, Any]]:
        """Rehydrate the working set from the store (startup)."""
        with self._lock:
            self.state.records = self.state.store.get_all()
            logger.info(f"Loaded {len(self.state.records)} orders from the local store")
            return self.state.records

    def start(self) -> SyncResult:
        """Startup sequence: load the offline copy, then sync against the feed."""
        try:
            self.load_cached()
        except PersistenceFailure as exc:
            logger.error(f"Could not load the local store at startup: {exc}")
        return self.sync(trigger="startup")

    def sync(self, trigger: str = "manual", now: datetime | None = None) -> SyncResult:
        """Run one complete cycle and notify listeners with its result."""
        with self._lock:
            result = self._run_cycle(trigger, now)
            self.last_result = result

        for callback in self._listeners:
            try:
                callback(result)
            except Exception:
                logger.exception("Sync listener failed")

        return result

    def apply_edit(self, event: EditEvent, now: datetime | None = None) -> dict[str, Any]:
        """Apply a user edit under the same lock as sync cycles."""
        with self._lock:
            return reconciler.apply_edit(self.state, event, now=now)

    def _run_cycle(self, trigger: str, now: datetime | None) -> SyncResult:
        logger.info(f"Sync started ({trigger})")

        try:
            csv_text = fetch_feed(self.feed_url, timeout=self.timeout, session=self._session)
        except FeedUnavailable as exc:
            logger.warning(f"Feed unavailable, falling back to local data: {exc}")
            return self._fallback(trigger, exc)

        parsed = parse_csv(csv_text, now=now)

        try:
            merge = reconciler.reconcile(
                self.state, parsed.records, keep_orphans=self.keep_orphans, now=now
            )
        except PersistenceFailure as exc:
            logger.error(f"Sync merged but could not be saved: {exc}")
            return SyncResult(
                status=SyncStatus.FAILED,
                trigger=trigger,
                message="Error al guardar los datos localmente",
                record_count=len(self.state.records),
                parse_warnings=parsed.warnings,
                error=str(exc),
            )

        logger.info(f"Sync finished ({trigger}): {len(merge.records)} orders")
        return SyncResult(
            status=SyncStatus.ONLINE,
            trigger=trigger,
            message=ONLINE_MESSAGE,
            record_count=len(merge.records),
            merge=merge,
            parse_warnings=parsed.warnings,
        )

    def _fallback(self, trigger: str, feed_error: FeedUnavailable) -> SyncResult:
        try:
            self.state.records = self.state.store.get_all()
        except PersistenceFailure as exc:
            logger.error(f"Offline fallback failed: {exc}")
            return SyncResult(
                status=SyncStatus.FAILED,
                trigger=trigger,
                message="No hay datos disponibles",
                record_count=len(self.state.records),
                error=str(exc),
            )

        return SyncResult(
            status=SyncStatus.OFFLINE,
            trigger=trigger,
            message=OFFLINE_MESSAGE,
            record_count=len(self.state.records),
            error=str(feed_error),
        )


# ═══════════════════════════════════════════════════════════════════════════
# Periodic refresh
# ═══════════════════════════════════════════════════════════════════════════

class AutoRefresher:
    """Daemon thread that triggers a sync every *interval_seconds*."""

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        interval_seconds: float = settings.REFRESH_INTERVAL_SECONDS,
    ) -> None:
        self.orchestrator = orchestrator
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="order-auto-refresh", daemon=True)
        self._thread.start()
        logger.info(f"Auto refresh every {self.interval_seconds:.0f}s")

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                result = self.orchestrator.sync(trigger="timer")
            except Exception:
                # the next tick is the retry
                logger.exception("Automatic refresh failed")
                continue
            logger.info(f"Automatic refresh: {result.status.value}")
