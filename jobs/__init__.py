"""
Scheduled Jobs

Periodic maintenance jobs built on APScheduler.
"""

from .database_backup import (
    execute_database_backup,
    run_manual_backup,
    start_database_backup_job,
    JOB_ID
)

__all__ = [
    'execute_database_backup',
    'run_manual_backup',
    'start_database_backup_job',
    'JOB_ID'
]
