"""
Analysis pipeline — durable orchestration of lease document analysis.

This package drives each job through Parsing, Structuring, Classifying
and Reporting, checkpointing every phase output so a restarted process
resumes where it stopped instead of repeating external calls.
"""

from leaselogic.pipeline.checkpoint_log import CheckpointLog
from leaselogic.pipeline.context import AnalysisOptions, AnalysisRequest, Checkpoint, JobSnapshot
from leaselogic.pipeline.gateway import ActivityGateway
from leaselogic.pipeline.orchestrator import Orchestrator
from leaselogic.pipeline.state_store import JobStateStore
from leaselogic.pipeline.status import StatusReader

__all__ = [
    "ActivityGateway",
    "AnalysisOptions",
    "AnalysisRequest",
    "Checkpoint",
    "CheckpointLog",
    "JobSnapshot",
    "JobStateStore",
    "Orchestrator",
    "StatusReader",
]
