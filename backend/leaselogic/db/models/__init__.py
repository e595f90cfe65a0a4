"""
Models package — re-exports Base and all models.

Import models here so Alembic's `target_metadata = Base.metadata`
picks up every table automatically.

When adding a new model:
    1. Create `leaselogic/db/models/<table_name>.py`
    2. Import it here
"""

from leaselogic.db.models.base import Base
from leaselogic.db.models.analysis_job import AnalysisJob
from leaselogic.db.models.phase_checkpoint import PhaseCheckpoint

__all__ = [
    "Base",
    "AnalysisJob",
    "PhaseCheckpoint",
]
