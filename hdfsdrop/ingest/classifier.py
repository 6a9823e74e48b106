"""Extension gate for files found in the pending directory."""

from collections.abc import Iterable
from pathlib import PurePath

from hdfsdrop.schemas.ingest import CandidateFile, Classification


def extension_of(name: str) -> str:
    """Lower-cased text from the last dot of ``name`` (``""`` if there is none)."""
    base = PurePath(name).name
    _, dot, ext = base.rpartition(".")
    return f".{ext.lower()}" if dot else ""


def classify(candidate: CandidateFile | str, accepted_extensions: Iterable[str]) -> Classification:
    """Decide whether a pending file may be uploaded.

    A name is eligible if it ends, case-insensitively, with one of the
    accepted extensions. Only the name is inspected; the file is never opened.
    """
    name = candidate if isinstance(candidate, str) else candidate.name
    accepted = {ext.lower() for ext in accepted_extensions}
    lowered = name.lower()

    if any(lowered.endswith(ext) for ext in accepted):
        return Classification(eligible=True)

    wanted = ", ".join(sorted(accepted)) or "(none)"
    ext = extension_of(name)
    if not ext:
        return Classification(eligible=False, reason=f"{name} has no extension, expected {wanted}")
    return Classification(eligible=False, reason=f"{name} has extension {ext}, expected {wanted}")
