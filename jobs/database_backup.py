"""
Database Backup Job

Runs the database export on a cron schedule, daily at 02:00 Asia/Colombo by
default. The scheduler allows one run at a time and coalesces missed runs,
so scheduled exports never overlap.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from backup_recovery import BackupManager, BackupRecoveryConfig, BackupResult
from config import MongoSettings, configure_logging, load_settings
from connection_management import ConnectionManager

logger = logging.getLogger(__name__)

JOB_ID = "database_backup"
BANNER = "=" * 40


async def execute_database_backup(manager: BackupManager) -> BackupResult:
    """
    Run one export and log the outcome.

    Never raises: any failure is logged and returned as a failed
    ``BackupResult`` so the scheduler keeps running.
    """
    start_time = datetime.now()
    logger.info(BANNER)
    logger.info("[DB-BACKUP] Starting scheduled database backup...")
    logger.info(f"[DB-BACKUP] Time: {start_time:%Y-%m-%d %H:%M:%S}")
    logger.info(BANNER)

    try:
        result = await manager.create_backup()
    except Exception as e:
        duration_ms = (datetime.now() - start_time).total_seconds() * 1000
        logger.exception(f"[DB-BACKUP] Unexpected error during backup: {e}")
        return BackupResult(success=False, duration_ms=duration_ms, error_message=str(e))

    logger.info(BANNER)
    if result.success:
        logger.info("[DB-BACKUP] ✅ Backup completed successfully!")
        logger.info(f"[DB-BACKUP] File: {result.file_name}")
        logger.info(f"[DB-BACKUP] Size: {result.file_size_mb} MB (compressed)")
        logger.info(f"[DB-BACKUP] Collections: {result.collections}")
        logger.info(f"[DB-BACKUP] Documents: {result.documents}")
        logger.info(f"[DB-BACKUP] Compression: {result.compression_ratio_pct}% reduction")
        if result.failed_collections:
            logger.warning(f"[DB-BACKUP] Collections exported empty after errors: {list(result.failed_collections)}")
        for warning in result.warnings:
            logger.warning(f"[DB-BACKUP] {warning}")
    else:
        logger.error("[DB-BACKUP] ❌ Backup failed!")
        logger.error(f"[DB-BACKUP] Error: {result.error_message}")
    logger.info(f"[DB-BACKUP] Duration: {result.duration_ms:.0f}ms")
    logger.info(BANNER)

    return result


async def run_manual_backup(manager: BackupManager) -> BackupResult:
    """Run the scheduled backup once, outside the schedule."""
    logger.info("[MANUAL-BACKUP] Running manual database backup...")
    return await execute_database_backup(manager)


def start_database_backup_job(
    manager: BackupManager,
    settings: Optional[MongoSettings] = None,
    scheduler: Optional[AsyncIOScheduler] = None,
    start: bool = True
) -> AsyncIOScheduler:
    """
    Schedule ``execute_database_backup`` with the configured cron expression.

    Args:
        manager: Backup manager with a live connection
        settings: Project settings; loaded from the environment when None
        scheduler: Scheduler to add the job to; a new AsyncIOScheduler when None
        start: Start the scheduler if it is not running yet

    Returns:
        The scheduler holding the job
    """
    backup = (settings or load_settings()).backup
    scheduler = scheduler or AsyncIOScheduler()

    trigger = CronTrigger.from_crontab(backup.schedule_cron, timezone=backup.schedule_timezone)
    scheduler.add_job(
        execute_database_backup,
        trigger,
        args=[manager],
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True
    )

    if start and not scheduler.running:
        scheduler.start()

    logger.info("[CRON] ✅ Database backup job scheduled successfully")
    logger.info(f"[CRON] Schedule: '{backup.schedule_cron}' ({backup.schedule_timezone})")
    logger.info(f"[CRON] Backup location: {manager.config.backup_dir}")
    logger.info(f"[CRON] Retention: Last {manager.config.retention_count} backups")
    return scheduler


async def serve(settings: MongoSettings) -> None:
    """Connect, schedule the job and run until cancelled."""
    conn_mgr = ConnectionManager(settings)
    conn_mgr.connect()
    manager = BackupManager(conn_mgr, BackupRecoveryConfig.from_settings(settings))

    scheduler = start_database_backup_job(manager, settings)
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        conn_mgr.close()


def main() -> None:
    settings = load_settings()
    configure_logging(settings)
    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("[CRON] Backup scheduler stopped")


if __name__ == "__main__":
    main()
