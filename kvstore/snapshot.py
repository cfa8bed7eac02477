from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from kvstore.errors import SnapshotError
from kvstore.models import SnapshotDocument

logger = logging.getLogger("kvstore")


class SnapshotFile:
    """Whole-store JSON snapshot kept in a single file.

    Each save replaces the previous file through a temporary sibling and
    ``os.replace``, so readers never see a partially written snapshot.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        umask = os.umask(0)
        os.umask(umask)
        self.mode = 0o666 & ~umask

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> SnapshotDocument | None:
        if not self.exists():
            return None
        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            raise SnapshotError(f"Could not read snapshot {self.path}: {exc}") from exc
        if not raw.strip():
            return SnapshotDocument()
        try:
            return SnapshotDocument.model_validate_json(raw)
        except ValidationError as exc:
            raise SnapshotError(f"Could not load snapshot {self.path}: {exc}") from exc

    def save(self, document: SnapshotDocument) -> None:
        payload = document.model_dump_json()
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.chmod(tmp_name, self.mode)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise SnapshotError(f"Could not write snapshot {self.path}: {exc}") from exc
        logger.debug("Snapshot written to %s (%d bytes)", self.path, len(payload))
