"""Activities invoked through the ActivityGateway, one per checkpoint kind."""

from leaselogic.pipeline.activities.classify_lease import ClassifyLeaseActivity
from leaselogic.pipeline.activities.error_result import ErrorResultActivity
from leaselogic.pipeline.activities.generate_report import GenerateReportActivity
from leaselogic.pipeline.activities.notify import NotifyActivity
from leaselogic.pipeline.activities.parse_document import ParseDocumentActivity
from leaselogic.pipeline.activities.structure_content import StructureContentActivity
from leaselogic.pipeline.registry import ActivityRegistry
from leaselogic.processing.base import (
    ContentStructurer,
    DocumentParser,
    FileStore,
    LeaseClassifier,
    ReportSynthesizer,
)


def build_activity_registry(
    *,
    file_store: FileStore,
    parser: DocumentParser,
    structurer: ContentStructurer,
    classifier: LeaseClassifier,
    synthesizer: ReportSynthesizer,
    notification_timeout: float = 10.0,
) -> ActivityRegistry:
    """Registry holding the standard phase, fallback and notification activities."""
    return ActivityRegistry([
        ParseDocumentActivity(file_store, parser),
        StructureContentActivity(structurer),
        ClassifyLeaseActivity(classifier),
        GenerateReportActivity(synthesizer),
        ErrorResultActivity(synthesizer),
        NotifyActivity(timeout=notification_timeout),
    ])


__all__ = [
    "ParseDocumentActivity",
    "StructureContentActivity",
    "ClassifyLeaseActivity",
    "GenerateReportActivity",
    "ErrorResultActivity",
    "NotifyActivity",
    "build_activity_registry",
]
