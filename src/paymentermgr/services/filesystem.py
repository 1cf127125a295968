"""Filesystem helpers for paymentermgr."""

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, Optional

from paymentermgr.constants import DIR_MODE, FILE_MODE, WRITABLE_DIR_MODE, WRITABLE_PATHS
from paymentermgr.models import StepResult


class FileSystemService:
    """Encapsulates ownership, permission and removal side effects."""

    def __init__(self, logger: logging.Logger, chown=shutil.chown):
        self.logger = logger
        self._chown = chown

    def apply_permission_policy(
        self,
        root: str,
        user: Optional[str],
        group: Optional[str],
        writable_paths: Iterable[str] = WRITABLE_PATHS,
    ) -> StepResult:
        """Owner ``user:group`` everywhere, 644/755 by default, 775 on writable paths."""
        if not os.path.isdir(root):
            return StepResult.failure(f"Cannot set permissions: {root} does not exist")

        try:
            self._apply_tree(root, user, group, DIR_MODE, FILE_MODE)
            for relative in writable_paths:
                writable = os.path.join(root, relative)
                if os.path.isdir(writable):
                    self._apply_tree(writable, None, None, WRITABLE_DIR_MODE, WRITABLE_DIR_MODE)
                else:
                    self.logger.debug("Skipping missing writable path %s", writable)
        except (OSError, LookupError) as exc:
            return StepResult.failure(f"Failed to set permissions on {root}: {exc}")

        return StepResult.success("Permissions set correctly")

    def _apply_tree(self, root: str, user, group, dir_mode: int, file_mode: int):
        self._set(root, user, group, dir_mode)
        for current_root, dirs, files in os.walk(root):
            for directory in dirs:
                self._set(os.path.join(current_root, directory), user, group, dir_mode)
            for file_name in files:
                self._set(os.path.join(current_root, file_name), user, group, file_mode)

    def _set(self, path: str, user, group, mode: int):
        if os.path.islink(path):
            return
        if user or group:
            self._chown(path, user=user, group=group)
        os.chmod(path, mode)

    def remove_tree(self, path: str) -> StepResult:
        if not os.path.exists(path):
            return StepResult.success(f"{path} already absent")
        try:
            shutil.rmtree(path)
        except OSError as exc:
            return StepResult.failure(f"Could not remove {path}: {exc}")
        self.logger.debug("Removed directory: %s", path)
        return StepResult.success(f"Removed {path}")

    def remove_files(self, paths: Iterable[Path]) -> StepResult:
        removed = []
        for path in paths:
            if not os.path.lexists(path):
                continue
            try:
                os.remove(path)
            except OSError as exc:
                return StepResult.failure(f"Could not remove {path}: {exc}")
            removed.append(str(path))
        return StepResult.success(f"Removed {len(removed)} file(s)")
