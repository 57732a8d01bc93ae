import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from backup_recovery import BackupManager, BackupResult
from config import BackupSettings, MongoSettings
from jobs import JOB_ID, execute_database_backup, run_manual_backup, start_database_backup_job


class StubManager:
    def __init__(self, result=None, error=None, config=None):
        self.result = result
        self.error = error
        self.config = config
        self.calls = 0

    async def create_backup(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_successful_backup_result_is_returned(connection_manager, fake_client, backup_config, clock):
    fake_client["holidaysri"].create_collection("users", [{"name": "Alice"}])
    connection_manager.connect()
    manager = BackupManager(connection_manager, backup_config, clock=clock)

    result = await execute_database_backup(manager)

    assert result.success
    assert result.file_name == "backup_holidaysri_2025-01-15_02-00-00.json.gz"


@pytest.mark.asyncio
async def test_failed_backup_result_is_returned():
    failed = BackupResult(success=False, duration_ms=3.0, error_message="disk full")

    result = await execute_database_backup(StubManager(result=failed))

    assert result is failed


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_failed_result():
    manager = StubManager(error=RuntimeError("boom"))

    result = await run_manual_backup(manager)

    assert manager.calls == 1
    assert not result.success
    assert result.error_message == "boom"


def test_job_is_registered_with_cron_trigger(backup_config):
    settings = MongoSettings(backup=BackupSettings(schedule_cron="30 3 * * *", schedule_timezone="UTC"))
    scheduler = AsyncIOScheduler()
    manager = StubManager(config=backup_config)

    returned = start_database_backup_job(manager, settings, scheduler=scheduler, start=False)

    assert returned is scheduler
    job = scheduler.get_job(JOB_ID)
    assert job is not None
    assert isinstance(job.trigger, CronTrigger)
    assert str(job.trigger.fields[CronTrigger.FIELD_NAMES.index("hour")]) == "3"
    assert str(job.trigger.fields[CronTrigger.FIELD_NAMES.index("minute")]) == "30"
    assert job.max_instances == 1
    assert job.coalesce
    assert job.args == (manager,)
