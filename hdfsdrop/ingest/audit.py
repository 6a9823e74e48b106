"""Append-only JSONL audit log of per-file ingestion outcomes.

Lives in the ``log/`` working directory next to the text log; one line per
file processed, whatever the outcome.
"""

import logging
from datetime import datetime
from pathlib import Path

from hdfsdrop.schemas.ingest import IngestEvent, OutcomeKind

logger = logging.getLogger(__name__)

AUDIT_FILE_NAME = "ingest_audit.jsonl"


class IngestAuditLog:
    """Append-only JSONL audit log for ingestion events.

    Usage::

        audit = IngestAuditLog(config.log_dir / AUDIT_FILE_NAME)
        audit.log(event)
        failed = audit.read_entries(outcome=OutcomeKind.FAILED)
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def log(self, event: IngestEvent) -> None:
        """Append a single event to the log file.

        Write failures are logged and dropped; the file move has already
        committed the outcome.
        """
        try:
            with self._path.open("a") as f:
                f.write(event.model_dump_json() + "\n")
        except OSError:
            logger.exception("Could not append audit entry for %s", event.file_name)
            return
        logger.debug("Ingest audit: %s outcome=%s", event.file_name, event.outcome)

    def read_entries(
        self,
        *,
        since: datetime | None = None,
        outcome: OutcomeKind | None = None,
        limit: int | None = None,
    ) -> list[IngestEvent]:
        """Read audit entries with optional filtering.

        Args:
            since: Only return entries after this timestamp.
            outcome: Only return entries with this outcome.
            limit: Maximum number of entries to return (newest after filtering).

        Returns:
            List of IngestEvent objects, oldest first.
        """
        if not self._path.exists():
            return []

        entries: list[IngestEvent] = []
        with self._path.open() as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                event = IngestEvent.model_validate_json(line)
                if since and event.timestamp <= since:
                    continue
                if outcome and event.outcome != outcome:
                    continue
                entries.append(event)

        if limit is not None:
            entries = entries[-limit:]

        return entries
