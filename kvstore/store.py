from __future__ import annotations

import logging
import time
from copy import deepcopy
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable, Iterable

from kvstore.errors import (
    InvalidKeys,
    InvalidMetric,
    InvalidPayload,
    KeyNotFound,
    KeysNotFound,
    MetricNotFound,
    SnapshotError,
)
from kvstore.models import KeyValue, SetEntry, SnapshotDocument
from kvstore.snapshot import SnapshotFile
from kvstore.utils import assign_path, split_path

logger = logging.getLogger("kvstore")

METRIC_SET = "Set"
METRIC_GET = "Get"
METRIC_DELETE = "Delete"
METRIC_SEARCH = "Search"


@dataclass
class DeleteResult:
    deleted: KeyValue | None

    @property
    def found(self) -> bool:
        return self.deleted is not None


class KeyValueStore:
    """In-memory key/value map with lazy TTL expiry and per-operation counters.

    Values and expiry deadlines live in two maps that are only touched while
    holding ``_lock``. Expired entries are never swept; readers skip them.
    When a ``SnapshotFile`` is attached, every counted mutation rewrites it
    before the call returns, still under the lock. Purging an expired key on
    delete is left for the next counted mutation to persist.
    """

    def __init__(
        self,
        snapshot: SnapshotFile | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._snapshot = snapshot
        self._clock = clock
        self._data: dict[str, Any] = {}
        self._expires_at: dict[str, float] = {}
        self._metrics: dict[str, int] = {}
        self._lock = RLock()

    def restore(self) -> bool:
        if self._snapshot is None:
            return False
        document = self._snapshot.load()
        if document is None:
            return False
        with self._lock:
            self._data = dict(document.fake_database)
            self._expires_at = {
                key: deadline.timestamp()
                for key, deadline in document.fake_database_ttl.items()
                if key in document.fake_database
            }
            self._metrics = dict(document.metrics)
        logger.info(
            "Restored %d keys (%d with TTL) from %s",
            len(self._data),
            len(self._expires_at),
            self._snapshot.path,
        )
        return True

    def set(self, entries: Iterable[SetEntry]) -> list[SetEntry]:
        entries = list(entries)
        for entry in entries:
            if not entry.key or entry.value is None or entry.value == "":
                raise InvalidPayload()

        with self._lock:
            now = self._clock()
            for entry in entries:
                self._data[entry.key] = deepcopy(entry.value)
                if entry.ttl != 0:
                    self._expires_at[entry.key] = now + entry.ttl
                else:
                    self._expires_at.pop(entry.key, None)
            self._commit(METRIC_SET)
        logger.debug("Set %d keys", len(entries))
        return entries

    def get(self, keys: list[str]) -> list[KeyValue]:
        if not keys:
            raise InvalidKeys()

        found: list[KeyValue] = []
        with self._lock:
            now = self._clock()
            for key in keys:
                if key in self._data:
                    if self._is_expired(key, now):
                        logger.info("Key %r is expired", key)
                        continue
                    found.append(KeyValue(key=key, value=deepcopy(self._data[key])))
                    continue

                nested = self._collect_nested(key, now)
                if nested is not None:
                    found.append(KeyValue(key=key, value=nested))

            if not found:
                raise KeysNotFound()
            self._increment(METRIC_GET)
        logger.debug("Get resolved %d of %d keys", len(found), len(keys))
        return found

    def delete(self, key: str) -> DeleteResult:
        if not key:
            raise InvalidPayload()

        with self._lock:
            if key not in self._data:
                return DeleteResult(deleted=None)

            if self._is_expired(key, self._clock()):
                self._remove(key)
                logger.info("Key %r is expired; purged on delete", key)
                return DeleteResult(deleted=None)

            value = self._remove(key)
            self._commit(METRIC_DELETE)
        logger.debug("Deleted key %r", key)
        return DeleteResult(deleted=KeyValue(key=key, value=value))

    def search(self, keyword: str) -> KeyValue | None:
        """Return the first key, in sorted order, that contains ``keyword``.

        An expired first match raises ``KeyNotFound`` instead of moving on to
        the next candidate. Only the no-match outcome is counted under
        "Search".
        """
        with self._lock:
            now = self._clock()
            for key in sorted(self._data):
                if keyword not in key:
                    continue
                if self._is_expired(key, now):
                    logger.info("Key %r is expired", key)
                    raise KeyNotFound()
                return KeyValue(key=key, value=deepcopy(self._data[key]))

            self._increment(METRIC_SEARCH)
        return None

    def get_metric(self, name: str) -> int:
        if not name:
            raise InvalidMetric()
        with self._lock:
            if name not in self._metrics:
                raise MetricNotFound()
            return self._metrics[name]

    def to_document(self) -> SnapshotDocument:
        with self._lock:
            return SnapshotDocument(
                fake_database=deepcopy(self._data),
                fake_database_ttl={
                    key: datetime.fromtimestamp(deadline, tz=timezone.utc)
                    for key, deadline in self._expires_at.items()
                },
                metrics=dict(self._metrics),
            )

    def _collect_nested(self, prefix: str, now: float) -> dict[str, Any] | None:
        nested: dict[str, Any] | None = None
        for stored_key in sorted(self._data):
            segments = split_path(stored_key, prefix)
            if segments is None or self._is_expired(stored_key, now):
                continue
            if nested is None:
                nested = {}
            assign_path(nested, segments, deepcopy(self._data[stored_key]))
        return nested

    def _is_expired(self, key: str, now: float) -> bool:
        deadline = self._expires_at.get(key)
        return deadline is not None and now > deadline

    def _remove(self, key: str) -> Any:
        self._expires_at.pop(key, None)
        return self._data.pop(key)

    def _increment(self, metric: str) -> None:
        self._metrics[metric] = self._metrics.get(metric, 0) + 1

    def _commit(self, metric: str) -> None:
        """Count a mutation and persist it; an unsaved mutation is not counted."""
        previous = self._metrics.get(metric)
        self._increment(metric)
        if self._snapshot is None:
            return
        try:
            self._snapshot.save(self.to_document())
        except SnapshotError:
            if previous is None:
                self._metrics.pop(metric, None)
            else:
                self._metrics[metric] = previous
            logger.exception("Snapshot write to %s failed", self._snapshot.path)
            raise
