"""
Celery application factory.
"""

from celery import Celery
from celery.signals import worker_init, worker_process_init

from leaselogic.core.config import settings
from leaselogic.core.logging import setup_logging
from leaselogic.core.tracing import setup_tracing

celery_app = Celery("leaselogic")
celery_app.config_from_object("celeryconfig")

# Auto-discover tasks in leaselogic.tasks.analysis_tasks
celery_app.autodiscover_tasks(["leaselogic.tasks"], related_name="analysis_tasks")


@worker_init.connect
@worker_process_init.connect
def configure_worker(**_kwargs) -> None:
    """Set up structlog and LangSmith in the worker (and each forked child)."""
    setup_logging()
    setup_tracing(settings)
