"""
Abstract base classes for the external collaborators the pipeline calls.

Each collaborator is synchronous and side-effect free towards job
state; activities run them in a worker thread.  Error taxonomy:

    UnsupportedDocumentError (ValueError) → permanent, never retried
    OSError                               → transient, retried
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, BinaryIO

from leaselogic.pipeline.result import AnalysisResult


class UnsupportedDocumentError(ValueError):
    """The collaborator cannot process this input at all."""
    pass


class FileStore(ABC):
    """Read access to uploaded documents."""

    @abstractmethod
    def exists(self, file_id: str) -> bool:
        ...

    @abstractmethod
    def open_stream(self, file_id: str) -> BinaryIO:
        """Open the document for binary reading.  Caller closes the stream."""
        ...


class DocumentParser(ABC):
    """Parsing phase: bytes in, text plus layout entities out."""

    @abstractmethod
    def parse(
        self,
        stream: BinaryIO,
        *,
        file_id: str,
        file_name: str,
        content_type: str,
    ) -> dict[str, Any]:
        ...


class ContentStructurer(ABC):
    """Structuring phase: parties, asset, payment terms, period, special clauses."""

    @abstractmethod
    def structure(self, parsed: dict[str, Any]) -> dict[str, Any]:
        ...


class LeaseClassifier(ABC):
    """Classifying phase: {isLease, confidence, leaseType, citations, reasoning, ...}."""

    @abstractmethod
    def classify(self, structured: dict[str, Any]) -> dict[str, Any]:
        ...


class ReportSynthesizer(ABC):
    """Reporting phase and the negative-outcome Results."""

    @abstractmethod
    def synthesize(
        self,
        *,
        analysis_id: str,
        request: dict[str, Any],
        structured: dict[str, Any],
        classification: dict[str, Any],
        started_at: datetime,
        completed_at: datetime,
    ) -> AnalysisResult:
        ...

    @abstractmethod
    def synthesize_error(
        self,
        *,
        analysis_id: str,
        request: dict[str, Any],
        error: str,
        started_at: datetime,
        completed_at: datetime,
    ) -> AnalysisResult:
        ...

    @abstractmethod
    def synthesize_terminated(
        self,
        *,
        analysis_id: str,
        request: dict[str, Any],
        reason: str,
        started_at: datetime,
        completed_at: datetime,
    ) -> AnalysisResult:
        ...
