"""
Value objects passed between the orchestrator, its stores and the API.

    AnalysisRequest — validated client request, persisted as the first
                      checkpoint of every job so resume never needs the
                      original HTTP body.
    JobSnapshot     — latest state of one job (cache, not a log).
    Checkpoint      — durable output of one completed step of a job.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from leaselogic.core.constants import (
    ALLOWED_CONTENT_TYPES,
    TERMINAL_STATUSES,
    CheckpointKind,
    JobStatus,
    Phase,
)
from leaselogic.pipeline.errors import ValidationError


def utcnow() -> datetime:
    """UTC-aware now."""
    return datetime.now(timezone.utc)


def isoformat(value: datetime | None) -> str | None:
    """Serialise a datetime as ISO-8601, treating naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


# ═══════════════════════════════════════════════════════════
#  AnalysisRequest
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AnalysisOptions:
    """Optional knobs supplied with an analysis request."""

    language: str = "ja"
    detail_level: str = "standard"
    notification_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "detailLevel": self.detail_level,
            "notificationUrl": self.notification_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AnalysisOptions:
        data = data or {}
        return cls(
            language=data.get("language") or "ja",
            detail_level=data.get("detailLevel") or "standard",
            notification_url=data.get("notificationUrl"),
        )


@dataclass(frozen=True)
class AnalysisRequest:
    """
    A document submitted for analysis.

    Args:
        file_id: Id of the uploaded document in the FileStore.
        file_name: Original file name, shown in results.
        file_size: Size in bytes as reported by the client.
        content_type: MIME type; must be one of ALLOWED_CONTENT_TYPES.
        options: Language, detail level and completion webhook.
    """

    file_id: str
    file_name: str
    file_size: int
    content_type: str
    options: AnalysisOptions = field(default_factory=AnalysisOptions)

    def validate(self, max_file_size: int | None = None) -> None:
        """Raise ValidationError if a required field is missing or unsupported."""
        missing = [
            name
            for name, value in (
                ("fileId", self.file_id),
                ("fileName", self.file_name),
                ("contentType", self.content_type),
            )
            if not isinstance(value, str) or not value.strip()
        ]
        if missing:
            raise ValidationError(
                f"Missing required field(s): {', '.join(missing)}",
                details={"missing": missing},
            )

        if not isinstance(self.file_size, int) or self.file_size <= 0:
            raise ValidationError("fileSize must be a positive integer")

        if max_file_size is not None and self.file_size > max_file_size:
            raise ValidationError(
                f"File size exceeds the {max_file_size // (1024 * 1024)}MB limit",
                details={"fileSize": self.file_size, "maxFileSize": max_file_size},
            )

        if self.content_type.lower() not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                "Unsupported file type. Only PDF, Word, and Text files are allowed.",
                details={"contentType": self.content_type},
            )

    def to_dict(self) -> dict[str, Any]:
        """Serialise for checkpoint storage (camelCase, JSON-safe)."""
        return {
            "fileId": self.file_id,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "contentType": self.content_type,
            "options": self.options.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisRequest:
        try:
            return cls(
                file_id=data["fileId"],
                file_name=data["fileName"],
                file_size=data["fileSize"],
                content_type=data["contentType"],
                options=AnalysisOptions.from_dict(data.get("options")),
            )
        except (KeyError, TypeError) as exc:
            raise ValidationError(f"Malformed analysis request: {exc}") from exc


# ═══════════════════════════════════════════════════════════
#  JobSnapshot
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class JobSnapshot:
    """Latest known state of one analysis job."""

    id: str
    status: JobStatus
    phase: Phase
    progress: int
    message: str
    file_id: str
    file_name: str
    file_size: int
    content_type: str
    created_at: datetime
    updated_at: datetime
    result: dict[str, Any] | None = None
    error: str | None = None
    termination_requested: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def evolve(self, **changes: Any) -> JobSnapshot:
        """Return a copy with `changes` applied."""
        return dataclasses.replace(self, **changes)

    def to_status_dict(self) -> dict[str, Any]:
        """Projection served by GET /api/status/{id}."""
        return {
            "analysisId": self.id,
            "status": str(self.status),
            "fileInfo": {
                "fileName": self.file_name,
                "fileSize": self.file_size,
                "uploadedAt": isoformat(self.created_at),
            },
            "progress": {
                "currentStep": str(self.phase),
                "percentage": self.progress,
                "message": self.message,
            },
            "result": self.result if self.is_terminal else None,
            "error": self.error,
            "createdTime": isoformat(self.created_at),
            "lastUpdatedTime": isoformat(self.updated_at),
        }


# ═══════════════════════════════════════════════════════════
#  Checkpoint
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Checkpoint:
    """Durable record proving that one step of a job completed."""

    job_id: str
    kind: CheckpointKind
    output: dict[str, Any]
    written_at: datetime
