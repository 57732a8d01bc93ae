from datetime import datetime, timedelta

import pytest

from backup_recovery.core.exporter import SnapshotExporter
from backup_recovery.models.entities import ArchiveFile
from backup_recovery.utils.retention import RetentionPolicyManager


def make_archives(count, size_bytes=100):
    base = datetime(2025, 1, 1, 2, 0, 0)
    return [
        ArchiveFile(
            name=f"backup_holidaysri_2025-01-{day + 1:02d}_02-00-00.json.gz",
            path=f"/backups/backup_holidaysri_2025-01-{day + 1:02d}_02-00-00.json.gz",
            modified_at=base + timedelta(days=day),
            size_bytes=size_bytes
        )
        for day in range(count)
    ]


@pytest.mark.parametrize("count", [0, -1])
def test_count_below_one_rejected(count):
    with pytest.raises(ValueError):
        RetentionPolicyManager(retention_count=count)


def test_keeps_newest():
    archives = make_archives(5)
    manager = RetentionPolicyManager(retention_count=3)

    to_keep, to_delete = manager.apply_retention_policy(archives)

    assert [a.name for a in to_keep] == [a.name for a in reversed(archives[2:])]
    assert [a.name for a in to_delete] == [archives[1].name, archives[0].name]


def test_fewer_archives_than_limit():
    archives = make_archives(2)

    to_keep, to_delete = RetentionPolicyManager(retention_count=30).apply_retention_policy(archives)

    assert len(to_keep) == 2
    assert to_delete == []


def test_sweep_continues_after_a_failed_delete():
    archives = make_archives(5)
    deleted = []

    def delete(archive):
        if archive.name == archives[1].name:
            raise PermissionError("read-only")
        deleted.append(archive.name)

    report = RetentionPolicyManager(retention_count=2).sweep(archives, delete)

    assert deleted == [archives[2].name, archives[0].name]
    assert report.deleted == deleted
    assert list(report.failed) == [archives[1].name]
    assert "read-only" in report.failed[archives[1].name]
    assert report.storage_freed_bytes == 200
    assert report.total_backups == 5


def test_dry_run_deletes_nothing():
    archives = make_archives(4)

    def delete(archive):
        raise AssertionError("dry run must not delete")

    report = RetentionPolicyManager(retention_count=1).sweep(archives, delete, dry_run=True)

    assert report.dry_run
    assert len(report.deleted) == 3
    assert report.storage_freed_bytes == 300


def test_retention_bound_after_repeated_exports(backup_config, source_db, clock):
    backup_config.retention_count = 3
    source_db.create_collection("users", [{"name": "Alice"}])
    exporter = SnapshotExporter(backup_config, clock=clock)

    names = []
    for _ in range(5):
        result = exporter.export(source_db)
        assert result.success
        names.append(result.file_name)

    remaining = [a.name for a in exporter.store.list_archives()]
    assert len(remaining) == 3
    assert sorted(remaining) == sorted(names[-3:])


def test_new_archive_survives_its_own_sweep(backup_config, source_db, clock):
    backup_config.retention_count = 1
    source_db.create_collection("users", [{"name": "Alice"}])
    exporter = SnapshotExporter(backup_config, clock=clock)

    first = exporter.export(source_db)
    second = exporter.export(source_db)

    assert second.deleted_backups == [first.file_name]
    assert [a.name for a in exporter.store.list_archives()] == [second.file_name]
