"""One pass over the pending directory.

``deliver_file`` turns a candidate into an :class:`IngestEvent` without
touching the filesystem beyond reading it; ``process_file`` then commits the
event by moving the file and auditing it. ``run_tick`` applies that to every
file in the pending directory, isolating failures per file.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path

from hdfsdrop.ingest.audit import IngestAuditLog
from hdfsdrop.ingest.classifier import classify
from hdfsdrop.ingest.mover import commit
from hdfsdrop.integrations.webhdfs import UploadError, WebHdfsClient
from hdfsdrop.schemas.ingest import (
    CandidateFile,
    IngestConfig,
    IngestEvent,
    OutcomeKind,
    TickSummary,
    UploadErrorKind,
)

logger = logging.getLogger(__name__)


def list_pending(pending_dir: Path) -> list[Path]:
    """Regular files directly inside ``pending_dir``, sorted by name.

    Raises:
        OSError: If the directory cannot be listed.
    """
    return sorted(p for p in pending_dir.iterdir() if p.is_file())


def _event(candidate: CandidateFile, outcome: OutcomeKind, **fields) -> IngestEvent:
    return IngestEvent(
        timestamp=datetime.now(UTC),
        file_name=candidate.name,
        source_path=str(candidate.path),
        outcome=outcome,
        file_size_bytes=candidate.size_bytes,
        **fields,
    )


async def deliver_file(
    candidate: CandidateFile,
    *,
    config: IngestConfig,
    client: WebHdfsClient,
) -> IngestEvent:
    """Classify and upload a single file, returning the outcome.

    Never raises for classification, read, or protocol failures; those come
    back as ``REJECTED`` or ``FAILED`` events.
    """
    verdict = classify(candidate, config.accepted_extensions)
    if not verdict.eligible:
        logger.warning("Rejected %s: %s", candidate.name, verdict.reason)
        return _event(candidate, OutcomeKind.REJECTED, message=verdict.reason)

    logger.info("Processing %s (%d bytes)", candidate.name, candidate.size_bytes)
    try:
        content = candidate.path.read_bytes()
    except OSError as exc:
        logger.error("Could not read %s: %s", candidate.name, exc)
        return _event(
            candidate,
            OutcomeKind.FAILED,
            error_kind=UploadErrorKind.READ_ERROR,
            message=str(exc),
        )

    try:
        remote_path = await client.upload(candidate.name, content)
    except UploadError as exc:
        logger.error(
            "Upload of %s failed [%s]: %s",
            candidate.name,
            exc.kind.value,
            exc,
        )
        return _event(
            candidate,
            OutcomeKind.FAILED,
            error_kind=exc.kind,
            status_code=exc.status_code,
            message=str(exc),
        )

    return _event(candidate, OutcomeKind.SUCCESS, remote_path=remote_path)


async def process_file(
    candidate: CandidateFile,
    *,
    config: IngestConfig,
    client: WebHdfsClient,
    audit_log: IngestAuditLog | None = None,
) -> IngestEvent:
    """Deliver one file, move it to its outcome directory, and audit it.

    Returns:
        The IngestEvent; ``destination`` is empty if the move failed.
    """
    event = await deliver_file(candidate, config=config, client=client)

    dest = commit(candidate, event.outcome, config)
    if dest is not None:
        event = event.model_copy(update={"destination": str(dest)})
        if event.outcome == OutcomeKind.SUCCESS:
            logger.info("Delivered %s", candidate.name)
        else:
            logger.info("Moved %s to %s", candidate.name, dest.parent)

    if audit_log is not None:
        audit_log.log(event)
    return event


def _fail_unexpected(
    candidate: CandidateFile,
    exc: Exception,
    config: IngestConfig,
    audit_log: IngestAuditLog | None,
) -> IngestEvent:
    """Route a file whose processing blew up to the error directory."""
    event = _event(candidate, OutcomeKind.FAILED, message=f"Unexpected error: {exc}")
    if candidate.path.exists():
        dest = commit(candidate, OutcomeKind.FAILED, config)
        if dest is not None:
            event = event.model_copy(update={"destination": str(dest)})
    if audit_log is not None:
        audit_log.log(event)
    return event


async def run_tick(
    config: IngestConfig,
    *,
    client: WebHdfsClient,
    audit_log: IngestAuditLog | None = None,
) -> TickSummary:
    """Process every file currently in the pending directory, in name order.

    A failure on one file never stops the others. If the directory cannot be
    listed, the tick ends with nothing processed.
    """
    summary = TickSummary()
    logger.info("Checking pending directory %s", config.pending_dir)

    try:
        paths = list_pending(config.pending_dir)
    except OSError as exc:
        logger.error("Cannot list pending directory %s: %s", config.pending_dir, exc)
        return summary

    if not paths:
        logger.info("No files in pending directory.")
        return summary

    for path in paths:
        try:
            candidate = CandidateFile.from_path(path)
        except OSError as exc:
            # Gone between listing and stat; nothing to move.
            logger.warning("Skipping %s: %s", path.name, exc)
            continue

        try:
            event = await process_file(
                candidate,
                config=config,
                client=client,
                audit_log=audit_log,
            )
        except Exception as exc:
            logger.exception("Unexpected error processing %s", candidate.name)
            event = _fail_unexpected(candidate, exc, config, audit_log)
        summary.events.append(event)

    logger.info(
        "Tick done. Files: %d, uploaded: %d, rejected: %d, failed: %d",
        summary.total,
        summary.count(OutcomeKind.SUCCESS),
        summary.count(OutcomeKind.REJECTED),
        summary.count(OutcomeKind.FAILED),
    )
    return summary
