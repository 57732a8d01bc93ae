import gzip
import json
from pathlib import Path

from bson import ObjectId
from bson.errors import InvalidBSON

from backup_recovery.core.exporter import SnapshotExporter


def read_raw(path):
    return json.loads(gzip.decompress(Path(path).read_bytes()).decode("utf-8"))


def test_every_collection_is_exported_including_empty_ones(backup_config, source_db, clock):
    user_id = ObjectId()
    source_db.create_collection("users", [{"_id": user_id, "name": "Alice"}])
    source_db.create_collection("orders", [{"_id": ObjectId(), "userId": user_id, "total": 42}])
    source_db.create_collection("audit_logs", [])

    result = SnapshotExporter(backup_config, clock=clock).export(source_db)

    assert result.success
    assert result.collections == 3
    assert result.documents == 2
    raw = read_raw(result.file_path)
    assert set(raw["data"]) == {"users", "orders", "audit_logs"}
    assert raw["data"]["audit_logs"] == []
    assert raw["data"]["orders"][0]["userId"] == {"$oid": str(user_id)}
    assert raw["data"]["orders"][0]["total"] == 42


def test_metadata_and_result_fields(backup_config, source_db, clock):
    source_db.create_collection("users", [{"name": "Alice"} for _ in range(20)])

    result = SnapshotExporter(backup_config, clock=clock).export(source_db)

    assert result.file_name == "backup_holidaysri_2025-01-15_02-00-00.json.gz"
    assert Path(result.file_path).parent == Path(backup_config.backup_dir)
    assert result.file_size_mb is not None
    assert result.original_size_mb is not None
    assert result.compression_ratio_pct > 0
    assert result.duration_ms >= 0
    metadata = read_raw(result.file_path)["metadata"]
    assert metadata == {
        "database": "holidaysri",
        "timestamp": "2025-01-15T02:00:00+00:00",
        "collections": 1,
        "backupType": "python",
        "version": "1.1"
    }


def test_failed_collection_is_recorded_empty(backup_config, source_db, clock):
    source_db.create_collection("users", [{"name": "Alice"}])
    source_db.create_collection("broken", [{"name": "Bob"}]).fail_on_find = True
    source_db.create_collection("orders", [{"total": 1}])

    result = SnapshotExporter(backup_config, clock=clock).export(source_db)

    assert result.success
    assert list(result.failed_collections) == ["broken"]
    assert result.documents == 2
    data = read_raw(result.file_path)["data"]
    assert data["broken"] == []
    assert len(data["users"]) == 1
    assert len(data["orders"]) == 1


def test_listing_failure_returns_failed_result(backup_config, source_db, backup_dir):
    source_db.fail_on_list = True

    result = SnapshotExporter(backup_config).export(source_db)

    assert not result.success
    assert "listCollections failed" in result.error_message
    assert result.file_name is None
    assert not backup_dir.exists() or list(backup_dir.iterdir()) == []


def test_unwritable_directory_returns_failed_result(tmp_path, backup_config, source_db):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("file in the way")
    backup_config.backup_dir = str(blocker / "backups")
    source_db.create_collection("users", [{"name": "Alice"}])

    result = SnapshotExporter(backup_config).export(source_db)

    assert not result.success
    assert "Cannot create backup directory" in result.error_message


def test_export_does_not_modify_source(backup_config, source_db, clock):
    documents = [{"_id": ObjectId(), "name": "Alice"}]
    collection = source_db.create_collection("users", documents)

    SnapshotExporter(backup_config, clock=clock).export(source_db)

    assert collection.documents == documents
    assert collection.calls == ["find"]


def test_progress_bar_path(backup_config, source_db, clock):
    backup_config.show_progress = True
    source_db.create_collection("users", [{"name": "Alice"}])

    result = SnapshotExporter(backup_config, clock=clock).export(source_db)

    assert result.success
    assert result.collections == 1


def test_undecodable_documents_are_isolated_to_their_collection(backup_config, source_db, clock):
    source_db.create_collection("users", [{"name": "Alice"}])
    source_db.create_collection("broken", [{"name": "Bob"}]).find_error = InvalidBSON(
        "'utf-8' codec can't decode byte 0xff"
    )
    source_db.create_collection("orders", [{"total": 1}])

    result = SnapshotExporter(backup_config, clock=clock).export(source_db)

    assert result.success
    assert list(result.failed_collections) == ["broken"]
    assert "0xff" in result.failed_collections["broken"]
    data = read_raw(result.file_path)["data"]
    assert data["broken"] == []
    assert len(data["users"]) == 1
    assert len(data["orders"]) == 1


def test_bson_error_while_listing_returns_failed_result(backup_config, source_db, monkeypatch):
    def broken_listing():
        raise InvalidBSON("bad reply")

    monkeypatch.setattr(source_db, "list_collection_names", broken_listing)

    result = SnapshotExporter(backup_config).export(source_db)

    assert not result.success
    assert "bad reply" in result.error_message


def test_failed_retention_sweep_keeps_the_new_archive(backup_config, source_db, clock, monkeypatch):
    source_db.create_collection("users", [{"name": "Alice"}])
    exporter = SnapshotExporter(backup_config, clock=clock)

    def unreadable_directory(database_name=None):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(exporter.store, "list_archives", unreadable_directory)

    result = exporter.export(source_db)

    assert result.success
    assert Path(result.file_path).exists()
    assert result.deleted_backups == []
    assert len(result.warnings) == 1
    assert "Retention sweep skipped" in result.warnings[0]


def test_undeletable_old_archive_is_a_warning(backup_config, source_db, clock, monkeypatch):
    backup_config.retention_count = 1
    source_db.create_collection("users", [{"name": "Alice"}])
    exporter = SnapshotExporter(backup_config, clock=clock)
    first = exporter.export(source_db)

    def read_only(archive):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(exporter.store, "delete_archive", read_only)

    second = exporter.export(source_db)

    assert second.success
    assert second.deleted_backups == []
    assert second.warnings == [
        f"Could not delete old backup {first.file_name}: "
        f"Failed to delete old backup {first.file_name}: [Errno 13] Permission denied"
    ]
