"""Files + database snapshots taken before destructive operations."""

import os
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from paymentermgr.constants import BACKUP_DIR_MODE, BACKUP_PREFIX
from paymentermgr.errors import BackupError, BackupPhase, ManagerError, NotInstalledError
from paymentermgr.errors_catalog import actionable_error
from paymentermgr.models import BackupRecord, InstallationTarget

ARCHIVE_SUFFIX = ".tar.gz"
DUMP_SUFFIX = ".sql"
_STEM_PATTERN = re.compile(r"(\d{8}_\d{6})(?:_(\d+))?")


class BackupManager:
    """Produces a ``<prefix>_<YYYYMMDD_HHMMSS>`` archive/dump pair.

    Artifacts are never deleted here, not even after a partial failure.
    """

    def __init__(
        self,
        backup_dir: str,
        archive_service,
        database_service,
        logger,
        prefix: str = BACKUP_PREFIX,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.backup_dir = Path(backup_dir)
        self.archive_service = archive_service
        self.database_service = database_service
        self.logger = logger
        self.prefix = prefix
        self.clock = clock or datetime.now

    def ensure_root(self):
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            os.chmod(self.backup_dir, BACKUP_DIR_MODE)
        except OSError as exc:
            raise BackupError(
                f"Failed to prepare backup directory {self.backup_dir}: {exc}", BackupPhase.FILES
            ) from exc

    def allocate_paths(self, timestamp: datetime) -> Tuple[Path, Path]:
        """Pick a stem that collides with neither existing artifact."""
        base = f"{self.prefix}_{timestamp.strftime('%Y%m%d_%H%M%S')}"
        stem = base
        counter = 0
        while True:
            archive = self.backup_dir / f"{stem}{ARCHIVE_SUFFIX}"
            dump = self.backup_dir / f"{stem}{DUMP_SUFFIX}"
            if not archive.exists() and not dump.exists():
                return archive, dump
            counter += 1
            stem = f"{base}_{counter}"

    def snapshot(self, target: InstallationTarget) -> BackupRecord:
        if not target.exists():
            raise NotInstalledError(actionable_error("not_installed", path=str(target.root_dir)))
        if target.db_credentials is None:
            raise BackupError("No database configured for the snapshot", BackupPhase.DATABASE)

        self.ensure_root()
        timestamp = self.clock()
        archive_path, dump_path = self.allocate_paths(timestamp)
        # Reserve the archive name before writing.
        archive_path.touch(exist_ok=False)

        self.logger.info("Backing up files to %s", archive_path)
        try:
            self.archive_service.create_tar_gz(str(target.root_dir), str(archive_path))
        except ManagerError as exc:
            raise BackupError(
                actionable_error("backup_failed", phase="files", path=str(self.backup_dir)) + f" ({exc})",
                BackupPhase.FILES,
            ) from exc
        self._require_non_empty(archive_path, BackupPhase.FILES)

        self.logger.info("Backing up database %s to %s", target.db_credentials.database, dump_path)
        result = self.database_service.dump(target.db_credentials.database, str(dump_path))
        if not result.ok:
            raise BackupError(
                actionable_error("backup_failed", phase="database", path=str(self.backup_dir))
                + f" ({result.message})",
                BackupPhase.DATABASE,
            )
        self._require_non_empty(dump_path, BackupPhase.DATABASE)

        return BackupRecord(timestamp=timestamp, files_archive_path=archive_path, db_dump_path=dump_path)

    def list_backups(self) -> List[Path]:
        if not self.backup_dir.is_dir():
            return []
        archives = self.backup_dir.glob(f"{self.prefix}_*{ARCHIVE_SUFFIX}")
        return sorted(archives, key=self._sort_key, reverse=True)

    def _sort_key(self, path: Path) -> Tuple[str, int]:
        """``(timestamp, collision counter)`` parsed from the archive name."""
        stem = path.name[len(self.prefix) + 1 : -len(ARCHIVE_SUFFIX)]
        match = _STEM_PATTERN.fullmatch(stem)
        if not match:
            return stem, 0
        return match.group(1), int(match.group(2) or 0)

    def _require_non_empty(self, path: Path, phase: BackupPhase):
        if not path.is_file() or path.stat().st_size == 0:
            raise BackupError(
                actionable_error("backup_failed", phase=phase.value, path=str(self.backup_dir))
                + f" ({path} is empty)",
                phase,
            )
