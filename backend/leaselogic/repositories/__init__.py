"""
Repositories package — data-access layer.

Each repository file handles all DB operations for one domain entity.
Repositories do NOT handle HTTP concerns, commits or orchestration
decisions.

Convention:
    - One file per aggregate root (jobs.py, checkpoints.py)
    - All functions accept `AsyncSession` as the first argument
    - Use `flush()` internally; the commit is owned by the store
      (CheckpointLog / JobStateStore) that opened the session
"""
