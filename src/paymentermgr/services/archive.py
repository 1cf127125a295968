"""Tarball helpers for paymentermgr."""

import os
import tarfile
from pathlib import Path

from paymentermgr.errors import ManagerError


class ArchiveService:
    """Encapsulates safe archive extraction and backup archive creation."""

    def is_within_dir(self, base_dir: Path, candidate: Path) -> bool:
        try:
            return os.path.commonpath([str(base_dir), str(candidate)]) == str(base_dir)
        except ValueError:
            return False

    def safe_extract_tar(self, tar_path: str, destination_dir: str):
        base = Path(destination_dir).resolve()

        try:
            with tarfile.open(tar_path, "r:*") as tar_ref:
                members = tar_ref.getmembers()
                for member in members:
                    target_path = (base / member.name).resolve()

                    if not self.is_within_dir(base, target_path):
                        raise ManagerError(
                            f"Unsafe archive entry detected: `{member.name}`. "
                            "Extraction aborted to prevent path traversal."
                        )

                    if member.issym() or member.islnk():
                        link_target = (target_path.parent / member.linkname).resolve()
                        if not self.is_within_dir(base, link_target):
                            raise ManagerError(
                                f"Unsafe archive entry detected: `{member.name}` links outside "
                                "the destination."
                            )

                    if member.isdev():
                        raise ManagerError(
                            f"Unsafe archive entry detected: `{member.name}` is a device file."
                        )

                base.mkdir(parents=True, exist_ok=True)
                for member in members:
                    tar_ref.extract(member, path=str(base), set_attrs=False)
        except tarfile.TarError as exc:
            raise ManagerError(f"Invalid tar archive: {tar_path}") from exc
        except OSError as exc:
            raise ManagerError(f"Failed to extract {tar_path} into {destination_dir}: {exc}") from exc

    def create_tar_gz(self, source_dir: str, archive_path: str):
        """Archive ``source_dir`` under its own basename, like ``tar -C parent -czf``."""
        source = Path(source_dir)
        if not source.is_dir():
            raise ManagerError(f"Cannot archive missing directory: {source_dir}")

        try:
            with tarfile.open(archive_path, "w:gz") as tar_ref:
                tar_ref.add(str(source), arcname=source.name)
        except (tarfile.TarError, OSError) as exc:
            raise ManagerError(f"Failed to write archive {archive_path}: {exc}") from exc
