"""Durable per-identity edit counter."""

from __future__ import annotations

import json
import logging
import os
import secrets
import threading
from contextlib import suppress
from pathlib import Path

from family_events.common.errors import StorageError
from family_events.common.logging import log_context

logger = logging.getLogger(__name__)


class EditLedger:
    """Map lowercased email keys to the number of accepted submissions.

    The mapping is loaded once, kept in memory and rewritten atomically after
    every mutation as a JSON object. An unreadable file on load is treated as
    an empty ledger rather than refusing to start.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._counts: dict[str, int] = {}

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        with self._lock:
            self._counts = self._read()
            if not self._path.exists():
                self._write(self._counts)

    def get_count(self, key: str) -> int:
        with self._lock:
            return self._counts.get(key, 0)

    def increment(self, key: str) -> int:
        """Persist ``count + 1`` for ``key`` and return the new count."""

        with self._lock:
            updated = dict(self._counts)
            updated[key] = updated.get(key, 0) + 1
            self._write(updated)
            self._counts = updated
            return updated[key]

    def restore(self, key: str, count: int) -> None:
        """Put ``key`` back to ``count``, dropping the entry when it is 0."""

        with self._lock:
            updated = {k: v for k, v in self._counts.items() if k != key}
            if count > 0:
                updated[key] = count
            self._write(updated)
            self._counts = updated

    def reset(self, key: str) -> bool:
        """Drop ``key`` entirely; return whether an entry existed."""

        with self._lock:
            if key not in self._counts:
                return False
            updated = {k: v for k, v in self._counts.items() if k != key}
            self._write(updated)
            self._counts = updated
            return True

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def _read(self) -> dict[str, int]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            logger.warning(
                "ledger.unreadable_reset",
                extra=log_context(path=str(self._path), detail=str(exc)),
            )
            return {}

        try:
            parsed = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as exc:
            logger.warning(
                "ledger.corrupt_reset",
                extra=log_context(path=str(self._path), detail=str(exc)),
            )
            return {}
        if not isinstance(parsed, dict):
            logger.warning(
                "ledger.corrupt_reset",
                extra=log_context(path=str(self._path), detail="not a JSON object"),
            )
            return {}

        counts: dict[str, int] = {}
        for key, value in parsed.items():
            if isinstance(value, int) and not isinstance(value, bool) and value > 0:
                counts[str(key).strip().lower()] = value
            else:
                logger.warning(
                    "ledger.entry_dropped",
                    extra=log_context(email_key=str(key), value=repr(value)),
                )
        return counts

    def _write(self, counts: dict[str, int]) -> None:
        tmp_path = self._path.parent / f".{self._path.name}.tmp-{secrets.token_hex(6)}"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as fh:
                json.dump(counts, fh, indent=2, sort_keys=True)
                fh.flush()
                os.fsync(fh.fileno())
            tmp_path.replace(self._path)
        except OSError as exc:
            with suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Edit ledger write failed: {exc}") from exc


__all__ = ["EditLedger"]
