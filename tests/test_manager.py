import asyncio

import pytest
from bson import ObjectId

from backup_recovery import BackupManager, RestoreCancelledError
from backup_recovery.models.entities import VerificationVerdict
from connection_management import ConnectionManager, ConnectionNotEstablishedError
from fakes import FakeClient


@pytest.fixture
def target_client():
    return FakeClient()


@pytest.fixture
def target_manager(mongo_settings, target_client):
    manager = ConnectionManager(mongo_settings, client_factory=lambda uri, **kwargs: target_client)
    manager.connect()
    yield manager
    manager.close()


@pytest.mark.asyncio
async def test_identifier_types_survive_export_and_restore(
    connection_manager, target_manager, target_client, fake_client, backup_config, clock
):
    user_id = ObjectId()
    order_id = ObjectId()
    fake_client["holidaysri"].create_collection("users", [{"_id": user_id, "name": "Alice"}])
    fake_client["holidaysri"].create_collection(
        "orders", [{"_id": order_id, "userId": user_id, "total": 42}]
    )
    connection_manager.connect()

    source = BackupManager(connection_manager, backup_config, clock=clock)
    exported = await source.create_backup()
    assert exported.success

    target = BackupManager(target_manager, backup_config)
    restored = await target.restore_backup(exported.file_name)

    assert restored.success
    assert restored.collections_restored == 2
    order = target_client["holidaysri"]["orders"].documents[0]
    user = target_client["holidaysri"]["users"].documents[0]
    assert isinstance(order["userId"], ObjectId)
    assert isinstance(user["_id"], ObjectId)
    assert order["userId"] == user["_id"]
    assert order["_id"] == order_id
    assert order["total"] == 42


@pytest.mark.asyncio
async def test_create_backup_without_connection_returns_failed_result(
    connection_manager, backup_config, backup_dir
):
    manager = BackupManager(connection_manager, backup_config)

    result = await manager.create_backup()

    assert not result.success
    assert "not connected" in result.error_message
    assert not backup_dir.exists()


@pytest.mark.asyncio
async def test_restore_without_connection_raises(connection_manager, backup_config, write_raw_archive):
    path = write_raw_archive({"users": [{"name": "Alice"}]})
    manager = BackupManager(connection_manager, backup_config)

    with pytest.raises(ConnectionNotEstablishedError):
        await manager.restore_backup(path.name)


@pytest.mark.asyncio
async def test_list_and_verify_backups(connection_manager, fake_client, backup_config, clock):
    fake_client["holidaysri"].create_collection("users", [{"_id": ObjectId(), "name": "Alice"}])
    connection_manager.connect()
    manager = BackupManager(connection_manager, backup_config, clock=clock)

    first = await manager.create_backup()
    second = await manager.create_backup()
    backups = await manager.list_backups()

    assert {b.name for b in backups} == {first.file_name, second.file_name}
    assert await manager.list_backups("other_db") == []

    report = await manager.verify_backup(first.file_name)
    assert report.verdict == VerificationVerdict.PASS
    assert report.backup_name == first.file_name


@pytest.mark.asyncio
async def test_apply_retention_policy_dry_run(connection_manager, fake_client, backup_config, clock):
    fake_client["holidaysri"].create_collection("users", [{"name": "Alice"}])
    connection_manager.connect()
    backup_config.retention_count = 10
    manager = BackupManager(connection_manager, backup_config, clock=clock)
    for _ in range(3):
        assert (await manager.create_backup()).success

    backup_config.retention_count = 1
    pruner = BackupManager(connection_manager, backup_config)
    report = await pruner.apply_retention_policy(dry_run=True)

    assert report.dry_run
    assert len(report.deleted) == 2
    assert len(await manager.list_backups()) == 3

    report = await pruner.apply_retention_policy()

    assert len(report.deleted) == 2
    assert len(await manager.list_backups()) == 1


@pytest.mark.asyncio
async def test_cancelling_during_restore_pause_leaves_live_data(
    target_manager, target_client, backup_config, write_raw_archive
):
    backup_config.restore_delay_seconds = 30
    live = target_client["holidaysri"].create_collection("users", [{"name": "Bob"}])
    path = write_raw_archive({"users": [{"name": "Alice"}]})
    paused = asyncio.Event()

    async def pause(seconds):
        paused.set()
        await asyncio.sleep(seconds)

    manager = BackupManager(target_manager, backup_config, sleep=pause)
    task = asyncio.create_task(manager.restore_backup(path.name))
    await asyncio.wait_for(paused.wait(), timeout=5)
    task.cancel()

    with pytest.raises(RestoreCancelledError):
        await task

    assert live.calls == []
    assert live.documents == [{"name": "Bob"}]


@pytest.mark.asyncio
async def test_interrupt_during_restore_pause_leaves_live_data(
    target_manager, target_client, backup_config, write_raw_archive
):
    backup_config.restore_delay_seconds = 5
    live = target_client["holidaysri"].create_collection("users", [{"name": "Bob"}])
    path = write_raw_archive({"users": [{"name": "Alice"}]})

    async def interrupted(seconds):
        raise KeyboardInterrupt

    manager = BackupManager(target_manager, backup_config, sleep=interrupted)

    with pytest.raises(RestoreCancelledError):
        await manager.restore_backup(path.name)

    assert live.calls == []


@pytest.mark.asyncio
async def test_declined_confirmation_leaves_live_data(
    target_manager, target_client, backup_config, write_raw_archive
):
    live = target_client["holidaysri"].create_collection("users", [{"name": "Bob"}])
    path = write_raw_archive({"users": [{"name": "Alice"}]})

    manager = BackupManager(target_manager, backup_config, confirm=lambda metadata: False)

    with pytest.raises(RestoreCancelledError):
        await manager.restore_backup(path.name)

    assert live.calls == []


@pytest.mark.asyncio
async def test_restore_runs_after_the_pause(target_manager, target_client, backup_config, write_raw_archive):
    backup_config.restore_delay_seconds = 2
    target_client["holidaysri"].create_collection("users", [{"name": "Bob"}])
    path = write_raw_archive({"users": [{"name": "Alice"}]})
    pauses = []

    async def pause(seconds):
        pauses.append(seconds)

    manager = BackupManager(target_manager, backup_config, sleep=pause)
    result = await manager.restore_backup(path.name)

    assert pauses == [2]
    assert result.collections_restored == 1
    assert [d["name"] for d in target_client["holidaysri"]["users"].documents] == ["Alice"]
