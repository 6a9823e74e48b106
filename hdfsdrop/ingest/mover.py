"""Relocation of processed files out of the pending directory.

The move is the only durable record of a file's outcome: ``success/`` holds
delivered files, ``error/`` holds rejected and failed ones.
"""

import logging
import shutil
from pathlib import Path

from hdfsdrop.schemas.ingest import CandidateFile, IngestConfig, OutcomeKind

logger = logging.getLogger(__name__)


def destination_dir(config: IngestConfig, outcome: OutcomeKind) -> Path:
    if outcome == OutcomeKind.SUCCESS:
        return config.success_dir
    return config.error_dir


def commit(candidate: CandidateFile, outcome: OutcomeKind, config: IngestConfig) -> Path | None:
    """Move ``candidate`` to the directory matching ``outcome``.

    An existing file of the same name at the destination is replaced.

    Returns:
        The destination path, or ``None`` if the move failed. On failure the
        file is left where it is for manual recovery.
    """
    dest = destination_dir(config, outcome) / candidate.name
    if dest.is_dir():
        logger.error(
            "Cannot move %s: destination %s is a directory; left in place",
            candidate.name,
            dest,
        )
        return None

    try:
        shutil.move(str(candidate.path), str(dest))
    except OSError:
        logger.exception("Failed to move %s to %s; left in place", candidate.name, dest)
        return None

    logger.debug("Moved %s -> %s", candidate.name, dest)
    return dest
