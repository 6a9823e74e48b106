"""Schemas for the pending-directory ingestion pipeline.

Covers the runtime configuration, per-file candidates, upload outcomes,
and the audit records written for every processed file.
"""

from datetime import datetime
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OutcomeKind(StrEnum):
    """Terminal state of a single pending file."""

    SUCCESS = "success"
    REJECTED = "rejected"
    FAILED = "failed"


class UploadErrorKind(StrEnum):
    """Which step of the two-phase upload went wrong."""

    NO_REDIRECT = "no_redirect"
    MISSING_LOCATION = "missing_location"
    UPLOAD_REJECTED = "upload_rejected"
    TRANSPORT = "transport"
    READ_ERROR = "read_error"


class IngestConfig(BaseModel):
    """Immutable runtime configuration, built once at startup."""

    model_config = ConfigDict(frozen=True)

    remote_base_url: str = Field(
        min_length=1,
        description="Gateway prefix, e.g. http://namenode:9870/webhdfs/v1",
    )
    remote_dir: str = Field(min_length=1, description="Remote target directory")
    hdfs_user: str | None = Field(default=None, description="Hdfs-User header value")
    internal_key: str | None = Field(default=None, description="Authorization header value")
    base_path: Path = Field(description="Local working directory")

    accepted_extensions: frozenset[str] = Field(default=frozenset({".xml"}))
    overwrite: bool = Field(default=False, description="overwrite= flag of the create call")
    send_user_param: bool = Field(
        default=False,
        description="Also send user.name on the create call",
    )
    poll_interval_seconds: float = Field(default=60.0, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)
    read_timeout: float = Field(default=60.0, gt=0)

    @field_validator("accepted_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        normalized = set()
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.add(ext if ext.startswith(".") else f".{ext}")
        return frozenset(normalized)

    @field_validator("remote_dir")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/") or "/"

    @property
    def pending_dir(self) -> Path:
        return self.base_path / "pending"

    @property
    def success_dir(self) -> Path:
        return self.base_path / "success"

    @property
    def error_dir(self) -> Path:
        return self.base_path / "error"

    @property
    def log_dir(self) -> Path:
        return self.base_path / "log"


class CandidateFile(BaseModel):
    """A file found in the pending directory during one tick."""

    name: str
    path: Path
    size_bytes: int = Field(default=0, ge=0)

    @classmethod
    def from_path(cls, path: Path) -> "CandidateFile":
        return cls(name=path.name, path=path, size_bytes=path.stat().st_size)


class Classification(BaseModel):
    """Result of the extension gate."""

    eligible: bool
    reason: str = ""


class IngestEvent(BaseModel):
    """An audit record for one pending file, produced by ``process_file``."""

    timestamp: datetime
    file_name: str
    source_path: str = Field(description="Path of the file in the pending directory")
    outcome: OutcomeKind
    remote_path: str = Field(default="", description="Remote path written on success")
    error_kind: UploadErrorKind | None = None
    status_code: int | None = Field(default=None, description="HTTP status on protocol failure")
    message: str = Field(default="", description="Rejection reason or error details")
    file_size_bytes: int = Field(default=0, ge=0)
    destination: str = Field(
        default="",
        description="Where the file was moved; empty if the move failed",
    )


class TickSummary(BaseModel):
    """Counts for one pass over the pending directory."""

    events: list[IngestEvent] = Field(default_factory=list)

    def count(self, outcome: OutcomeKind) -> int:
        return sum(1 for e in self.events if e.outcome == outcome)

    @property
    def total(self) -> int:
        return len(self.events)
