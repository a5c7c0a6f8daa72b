"""CSV file codec and the best-effort mirror exporter."""

from __future__ import annotations

import csv
import io
import logging
import os
import secrets
import threading
from collections.abc import Iterable
from contextlib import suppress
from pathlib import Path
from typing import TYPE_CHECKING

from family_events.common.errors import StorageError
from family_events.common.logging import log_context

from .models import COLUMNS, HEADER, EventRecord, from_row, to_row

if TYPE_CHECKING:
    from .store import SubmissionStore

logger = logging.getLogger(__name__)


def render_csv(records: Iterable[EventRecord]) -> str:
    """Return the full CSV document (header + rows) for ``records``."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(HEADER)
    for record in records:
        writer.writerow(to_row(record))
    return buffer.getvalue()


def write_records(path: Path, records: Iterable[EventRecord]) -> None:
    """Atomically replace ``path`` with a CSV of ``records``.

    The document is written to a sibling temp file, fsynced and then moved over
    the target so readers never observe a half-written file.
    """

    content = render_csv(records)
    tmp_path = path.parent / f".{path.name}.tmp-{secrets.token_hex(6)}"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp_path.open("w", encoding="utf-8", newline="") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        tmp_path.replace(path)
    except OSError as exc:
        with suppress(OSError):
            tmp_path.unlink(missing_ok=True)
        raise StorageError(f"CSV write failed: {exc}") from exc


def read_records(path: Path) -> list[EventRecord]:
    """Parse ``path`` back into records; a missing file reads as empty.

    Blank lines are skipped. Rows whose width does not match the column schema
    are skipped and logged.
    """

    try:
        with path.open("r", encoding="utf-8", newline="") as fh:
            rows = list(csv.reader(fh))
    except FileNotFoundError:
        return []
    except (OSError, csv.Error) as exc:
        raise StorageError(f"CSV read failed: {exc}") from exc

    records: list[EventRecord] = []
    for line_number, row in enumerate(rows[1:], start=2):
        if not row or all(not cell.strip() for cell in row):
            continue
        if len(row) != len(COLUMNS):
            logger.warning(
                "csv.row_skipped",
                extra=log_context(
                    path=str(path),
                    line=line_number,
                    width=len(row),
                    expected=len(COLUMNS),
                ),
            )
            continue
        records.append(from_row(row))
    return records


def ensure_csv(path: Path) -> None:
    """Create ``path`` with only the header row when it does not exist yet."""

    if not path.exists():
        write_records(path, [])
        logger.info("csv.created", extra=log_context(path=str(path)))


class MirrorExporter:
    """Rewrite the CSV backup from the authoritative store's full contents.

    Refreshes are serialized so a slower request can never write an older
    snapshot over a newer one.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def refresh(self, store: SubmissionStore) -> bool:
        """Rewrite the mirror; return ``False`` (after logging) when it fails.

        When the store *is* the CSV file there is nothing to mirror.
        """

        if store.mirrors_itself:
            return True
        try:
            with self._lock:
                records = store.scan()
                write_records(self._path, records)
        except StorageError as exc:
            logger.error(
                "mirror.write_failed",
                exc_info=exc,
                extra=log_context(path=str(self._path), detail=exc.message),
            )
            return False
        logger.debug(
            "mirror.refreshed",
            extra=log_context(path=str(self._path), records=len(records)),
        )
        return True

    def ensure_exists(self) -> None:
        ensure_csv(self._path)


__all__ = [
    "MirrorExporter",
    "ensure_csv",
    "read_records",
    "render_csv",
    "write_records",
]
