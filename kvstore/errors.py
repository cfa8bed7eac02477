from __future__ import annotations


class StoreError(RuntimeError):
    status_code = 500
    error = "internal_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.error)


class InvalidPayload(StoreError):
    status_code = 400
    error = "Invalid payload"


class InvalidKeys(StoreError):
    status_code = 400
    error = "invalid_keys"


class KeysNotFound(StoreError):
    status_code = 404
    error = "keys_not_found"


class KeyNotFound(StoreError):
    """The first search match has expired."""

    status_code = 404
    error = "key_not_found"


class InvalidMetric(StoreError):
    status_code = 400
    error = "invalid_metric"


class MetricNotFound(StoreError):
    status_code = 404
    error = "metric_not_found"


class SnapshotError(StoreError):
    status_code = 500
    error = "snapshot_failed"
