"""Shared constants and enums used across the application."""

from enum import StrEnum


class JobStatus(StrEnum):
    """Overall status of an analysis job."""

    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    TERMINATED = "Terminated"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.TERMINATED})


class Phase(StrEnum):
    """Position of a job in the analysis pipeline."""

    INITIALIZING = "Initializing"
    PARSING = "Parsing"
    STRUCTURING = "Structuring"
    CLASSIFYING = "Classifying"
    REPORTING = "Reporting"
    DONE = "Done"


# Ordered phases that delegate work to an external collaborator.
PHASE_SEQUENCE: tuple[Phase, ...] = (
    Phase.PARSING,
    Phase.STRUCTURING,
    Phase.CLASSIFYING,
    Phase.REPORTING,
)

# Every phase in the order a job passes through it.
PHASE_ORDER: tuple[Phase, ...] = (Phase.INITIALIZING, *PHASE_SEQUENCE, Phase.DONE)

# Progress reached once a phase has been checkpointed.  Fixed policy values,
# not a measure of remaining work.
PHASE_MILESTONES: dict[Phase, int] = {
    Phase.PARSING: 15,
    Phase.STRUCTURING: 35,
    Phase.CLASSIFYING: 70,
    Phase.REPORTING: 90,
}

PHASE_MESSAGES: dict[Phase, str] = {
    Phase.INITIALIZING: "Starting analysis",
    Phase.PARSING: "Extracting document text and layout",
    Phase.STRUCTURING: "Analyzing contract structure",
    Phase.CLASSIFYING: "Running lease classification",
    Phase.REPORTING: "Generating analysis report",
    Phase.DONE: "Finalizing analysis",
}


class CheckpointKind(StrEnum):
    """Key of a durable checkpoint record within one job."""

    REQUEST = "Request"
    PARSING = "Parsing"
    STRUCTURING = "Structuring"
    CLASSIFYING = "Classifying"
    REPORTING = "Reporting"
    FALLBACK = "Fallback"
    TERMINATION = "Termination"
    NOTIFICATION = "Notification"


TERMINAL_CHECKPOINTS = frozenset({
    CheckpointKind.REPORTING,
    CheckpointKind.FALLBACK,
    CheckpointKind.TERMINATION,
})


class LeaseType(StrEnum):
    """Lease classification outcome."""

    OPERATING_LEASE = "OperatingLease"
    FINANCE_LEASE = "FinanceLease"
    SERVICE_CONTRACT = "ServiceContract"
    NOT_APPLICABLE = "NotApplicable"


ALLOWED_CONTENT_TYPES = frozenset({
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
    "text/plain",
})
