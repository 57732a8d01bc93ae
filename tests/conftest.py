import gzip
import json
from datetime import datetime, timedelta, timezone

import pytest

from backup_recovery import BackupRecoveryConfig
from config import ConnectionSettings, MongoSettings
from connection_management import ConnectionManager
from fakes import FakeClient, FakeDatabase


class SteppingClock:
    """Returns a time one minute later on every call."""

    def __init__(self, start=None):
        self.current = start or datetime(2025, 1, 15, 2, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        now = self.current
        self.current = self.current + timedelta(minutes=1)
        return now


@pytest.fixture
def backup_dir(tmp_path):
    return tmp_path / "backups"


@pytest.fixture
def backup_config(backup_dir):
    return BackupRecoveryConfig(
        backup_dir=str(backup_dir),
        retention_count=30,
        restore_delay_seconds=0
    )


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def source_db(fake_client) -> FakeDatabase:
    return fake_client["holidaysri"]


@pytest.fixture
def mongo_settings():
    return MongoSettings(
        connection=ConnectionSettings(
            uri="mongodb://localhost:27017/holidaysri",
            retry_count=0,
            retry_interval=0
        )
    )


@pytest.fixture
def connection_manager(mongo_settings, fake_client):
    manager = ConnectionManager(mongo_settings, client_factory=lambda uri, **kwargs: fake_client)
    yield manager
    manager.close()


@pytest.fixture
def write_raw_archive(backup_dir):
    """Write a hand-crafted archive (already JSON-safe) and return its path."""

    def _write(data, name="backup_holidaysri_2025-01-01_02-00-00.json.gz", metadata=None):
        backup_dir.mkdir(parents=True, exist_ok=True)
        archive = {
            "metadata": metadata or {
                "database": "holidaysri",
                "timestamp": "2025-01-01T02:00:00+00:00",
                "collections": len(data),
                "backupType": "python",
                "version": "1.1"
            },
            "data": data
        }
        path = backup_dir / name
        path.write_bytes(gzip.compress(json.dumps(archive).encode("utf-8")))
        return path

    return _write
