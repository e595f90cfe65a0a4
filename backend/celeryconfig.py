"""
Celery configuration for the analysis workers.

Loaded by `celery_app.config_from_object("celeryconfig")` in leaselogic/tasks/__init__.py.
Broker/result-backend URLs come from environment variables,
defaulting to localhost for local dev.
"""

import os

# ═══════════════════════════════════════════════════════════
#  Broker & Result Backend
# ═══════════════════════════════════════════════════════════

broker_url = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
result_backend = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

# ═══════════════════════════════════════════════════════════
#  Serialization: JSON only
# ═══════════════════════════════════════════════════════════

task_serializer = "json"
result_serializer = "json"
accept_content = ["json"]

timezone = "UTC"
enable_utc = True

# ═══════════════════════════════════════════════════════════
#  Task Execution
# ═══════════════════════════════════════════════════════════

# Ack after completion; a worker crash redelivers the job id and
# resume() continues from the last checkpoint
task_acks_late = True
task_reject_on_worker_lost = True

# One job at a time per worker process
worker_prefetch_multiplier = 1

# A job runs four phases, each bounded by PHASE_TIMEOUT_SECONDS and retries
task_soft_time_limit = 3600
task_time_limit = 3660

task_default_retry_delay = 2
result_expires = 86400

worker_max_tasks_per_child = 200
worker_send_task_events = False
task_send_sent_event = False

# ═══════════════════════════════════════════════════════════
#  Task Routes
# ═══════════════════════════════════════════════════════════
# Run a dedicated worker for the analysis queue:
#   celery -A leaselogic.tasks worker -Q analysis

task_routes = {
    "leaselogic.tasks.analysis_tasks.*": {"queue": "analysis"},
}

task_default_queue = "default"
