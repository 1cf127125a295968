import stat
import tarfile
from datetime import datetime
from pathlib import Path

import pytest

from paymentermgr.errors import BackupError, BackupPhase, NotInstalledError
from paymentermgr.models import DatabaseCredentials, InstallationTarget, StepResult
from paymentermgr.services.archive import ArchiveService
from paymentermgr.services.backup import BackupManager

FROZEN = datetime(2024, 5, 1, 13, 45, 9)


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None


class FakeDatabaseService:
    def __init__(self, ok=True, content="-- MariaDB dump\n"):
        self.ok = ok
        self.content = content
        self.dumped = []

    def dump(self, database, dump_path):
        self.dumped.append((database, dump_path))
        if not self.ok:
            return StepResult.failure("mysqldump: Got error 1045", exit_code=2)
        Path(dump_path).write_text(self.content, encoding="utf-8")
        return StepResult.success()


def build_target(tmp_path):
    root = tmp_path / "paymenter"
    (root / "public").mkdir(parents=True)
    (root / "public" / "index.php").write_text("<?php", encoding="utf-8")
    return InstallationTarget(
        root_dir=root,
        db_credentials=DatabaseCredentials(database="paymenter", username="paymenter"),
    )


def build_manager(tmp_path, database_service=None):
    return BackupManager(
        backup_dir=str(tmp_path / "backups"),
        archive_service=ArchiveService(),
        database_service=database_service or FakeDatabaseService(),
        logger=DummyLogger(),
        clock=lambda: FROZEN,
    )


def test_snapshot_writes_archive_and_dump(tmp_path):
    manager = build_manager(tmp_path)

    record = manager.snapshot(build_target(tmp_path))

    assert record.files_archive_path.name == "paymenter_backup_20240501_134509.tar.gz"
    assert record.db_dump_path.name == "paymenter_backup_20240501_134509.sql"
    assert record.db_dump_path.read_text(encoding="utf-8").startswith("-- MariaDB dump")
    with tarfile.open(record.files_archive_path, "r:gz") as tar_ref:
        assert "paymenter/public/index.php" in tar_ref.getnames()
    assert stat.S_IMODE((tmp_path / "backups").stat().st_mode) == 0o750


def test_snapshots_in_same_second_get_distinct_names(tmp_path):
    manager = build_manager(tmp_path)
    target = build_target(tmp_path)

    first = manager.snapshot(target)
    second = manager.snapshot(target)

    assert first.files_archive_path != second.files_archive_path
    assert second.files_archive_path.name == "paymenter_backup_20240501_134509_1.tar.gz"
    assert second.db_dump_path.name == "paymenter_backup_20240501_134509_1.sql"
    assert first.files_archive_path.exists()


def test_allocate_paths_skips_orphan_dump(tmp_path):
    manager = build_manager(tmp_path)
    manager.ensure_root()
    (tmp_path / "backups" / "paymenter_backup_20240501_134509.sql").write_text("old", encoding="utf-8")

    archive, dump = manager.allocate_paths(FROZEN)

    assert archive.name == "paymenter_backup_20240501_134509_1.tar.gz"
    assert dump.name == "paymenter_backup_20240501_134509_1.sql"


def test_snapshot_requires_installation(tmp_path):
    manager = build_manager(tmp_path)
    target = InstallationTarget(root_dir=tmp_path / "missing")

    with pytest.raises(NotInstalledError):
        manager.snapshot(target)


def test_database_failure_keeps_files_archive(tmp_path):
    manager = build_manager(tmp_path, FakeDatabaseService(ok=False))

    with pytest.raises(BackupError) as excinfo:
        manager.snapshot(build_target(tmp_path))

    assert excinfo.value.phase == BackupPhase.DATABASE
    archives = list((tmp_path / "backups").glob("*.tar.gz"))
    assert len(archives) == 1
    assert archives[0].stat().st_size > 0


def test_empty_dump_is_rejected(tmp_path):
    manager = build_manager(tmp_path, FakeDatabaseService(content=""))

    with pytest.raises(BackupError, match="is empty") as excinfo:
        manager.snapshot(build_target(tmp_path))

    assert excinfo.value.phase == BackupPhase.DATABASE


def test_list_backups_is_newest_first(tmp_path):
    times = iter([datetime(2024, 1, 1, 0, 0, 0), datetime(2024, 2, 1, 0, 0, 0)])
    manager = build_manager(tmp_path)
    manager.clock = lambda: next(times)
    target = build_target(tmp_path)

    manager.snapshot(target)
    manager.snapshot(target)

    assert [path.name for path in manager.list_backups()] == [
        "paymenter_backup_20240201_000000.tar.gz",
        "paymenter_backup_20240101_000000.tar.gz",
    ]


def test_list_backups_orders_collision_counters_numerically(tmp_path):
    manager = build_manager(tmp_path)
    manager.ensure_root()
    for suffix in ("", "_2", "_10"):
        (tmp_path / "backups" / f"paymenter_backup_20240501_134509{suffix}.tar.gz").write_bytes(b"x")
    (tmp_path / "backups" / "paymenter_backup_20240430_235959_11.tar.gz").write_bytes(b"x")

    assert [path.name for path in manager.list_backups()] == [
        "paymenter_backup_20240501_134509_10.tar.gz",
        "paymenter_backup_20240501_134509_2.tar.gz",
        "paymenter_backup_20240501_134509.tar.gz",
        "paymenter_backup_20240430_235959_11.tar.gz",
    ]
