import pytest
from bson import ObjectId

from backup_recovery.core.exporter import SnapshotExporter
from backup_recovery.core.verifier import ArchiveVerifier, classify_identifier, inspect_document
from backup_recovery.exceptions import BackupNotFoundError
from backup_recovery.models.entities import IdentifierStatus, VerificationVerdict


def tagged(oid=None):
    return {"$oid": str(oid or ObjectId())}


def test_classify_identifier():
    assert classify_identifier(tagged()) == IdentifierStatus.TYPED
    assert classify_identifier(str(ObjectId())) == IdentifierStatus.PLAIN_STRING
    assert classify_identifier("guest") is None
    assert classify_identifier(None) is None
    assert classify_identifier(17) is None


def test_inspect_document_walks_nested_fields():
    document = {
        "_id": tagged(),
        "userId": str(ObjectId()),
        "items": [{"productId": tagged()}],
        "meta": {"createdById": tagged(), "label": str(ObjectId())}
    }

    checks = {check.field_path: check.status for check in inspect_document("orders", document)}

    assert checks == {
        "_id": IdentifierStatus.TYPED,
        "userId": IdentifierStatus.PLAIN_STRING,
        "items[0].productId": IdentifierStatus.TYPED,
        "meta.createdById": IdentifierStatus.TYPED
    }


def test_inspect_document_reports_missing_id():
    checks = inspect_document("logs", {"message": "hello"})

    assert [(c.field_path, c.status) for c in checks] == [("_id", IdentifierStatus.ABSENT)]


def test_bare_string_id_fails_verification(backup_config, write_raw_archive):
    path = write_raw_archive({"users": [{"_id": "5f1d7f3e9b1e8a3a4c8b4567", "name": "Alice"}]})

    result = ArchiveVerifier(backup_config).verify(path.name)

    assert result.verdict == VerificationVerdict.FAIL
    assert result.regression_count > 0
    assert not result.passed


def test_tagged_archive_passes(backup_config, write_raw_archive):
    user_id = ObjectId()
    path = write_raw_archive({
        "users": [{"_id": tagged(user_id), "name": "Alice"}],
        "advertisements": [{"_id": tagged(), "userId": tagged(user_id)}],
        "hsctransactions": [{"_id": tagged(), "userId": tagged(user_id), "adId": tagged()}]
    })

    result = ArchiveVerifier(backup_config).verify(path)

    assert result.verdict == VerificationVerdict.PASS
    assert result.collections_checked == 3
    assert result.properly_typed_count == 6
    assert result.regression_count == 0
    assert result.warnings == []


def test_sample_fills_with_referencing_collections_first(backup_config, write_raw_archive):
    backup_config.verification_collections = ["users"]
    backup_config.verification_sample_limit = 2
    path = write_raw_archive({
        "users": [{"_id": tagged()}],
        "aaa_settings": [{"_id": tagged(), "key": "x"}],
        "zzz_orders": [{"_id": tagged(), "userId": "5f1d7f3e9b1e8a3a4c8b4567"}]
    })

    result = ArchiveVerifier(backup_config).verify(path.name)

    checked = {check.collection_name for check in result.checks}
    assert checked == {"users", "zzz_orders"}
    assert result.verdict == VerificationVerdict.FAIL


def test_missing_configured_collections_are_warnings(backup_config, write_raw_archive):
    path = write_raw_archive({"users": [], "orders": [{"_id": tagged()}]})

    result = ArchiveVerifier(backup_config).verify(path.name)

    assert result.verdict == VerificationVerdict.PASS
    assert "Collection 'users' is empty in the archive" in result.warnings
    assert "Collection 'advertisements' is not in the archive" in result.warnings
    assert result.collections_checked == 1


def test_archive_without_documents_passes_with_warning(backup_config, write_raw_archive):
    path = write_raw_archive({"users": []})

    result = ArchiveVerifier(backup_config).verify(path.name)

    assert result.verdict == VerificationVerdict.PASS
    assert result.collections_checked == 0
    assert "Archive has no documents to inspect" in result.warnings


def test_defaults_to_latest_archive(backup_config, source_db, clock):
    source_db.create_collection("users", [{"_id": ObjectId(), "name": "Alice"}])
    source_db.create_collection("orders", [{"_id": ObjectId(), "userId": ObjectId()}])
    export = SnapshotExporter(backup_config, clock=clock).export(source_db)

    result = ArchiveVerifier(backup_config).verify()

    assert result.backup_name == export.file_name
    assert result.passed
    assert result.properly_typed_count == 3


def test_no_archives_raises(backup_config):
    with pytest.raises(BackupNotFoundError):
        ArchiveVerifier(backup_config).verify()
