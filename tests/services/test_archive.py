import io
import tarfile

import pytest

from paymentermgr.errors import ManagerError
from paymentermgr.services.archive import ArchiveService


def _write_tar(path, entries):
    with tarfile.open(path, "w:gz") as tar_ref:
        for name, payload in entries:
            info = tarfile.TarInfo(name=name)
            info.size = len(payload)
            tar_ref.addfile(info, io.BytesIO(payload))


def test_safe_extract_tar_blocks_path_traversal(tmp_path):
    service = ArchiveService()
    archive = tmp_path / "malicious.tar.gz"
    _write_tar(archive, [("../escape.txt", b"malicious")])

    destination = tmp_path / "extract"
    destination.mkdir()

    with pytest.raises(ManagerError, match="path traversal"):
        service.safe_extract_tar(str(archive), str(destination))

    assert not (tmp_path / "escape.txt").exists()


def test_safe_extract_tar_blocks_symlink_escape(tmp_path):
    service = ArchiveService()
    archive = tmp_path / "link.tar.gz"
    with tarfile.open(archive, "w:gz") as tar_ref:
        info = tarfile.TarInfo(name="evil")
        info.type = tarfile.SYMTYPE
        info.linkname = "../../etc/passwd"
        tar_ref.addfile(info)

    with pytest.raises(ManagerError, match="links outside"):
        service.safe_extract_tar(str(archive), str(tmp_path / "extract"))


def test_safe_extract_tar_extracts_release_layout(tmp_path):
    service = ArchiveService()
    archive = tmp_path / "paymenter.tar.gz"
    _write_tar(archive, [("artisan", b"<?php"), ("public/index.php", b"<?php echo 1;")])

    destination = tmp_path / "paymenter"
    service.safe_extract_tar(str(archive), str(destination))

    assert (destination / "artisan").read_bytes() == b"<?php"
    assert (destination / "public" / "index.php").exists()


def test_safe_extract_tar_rejects_invalid_archive(tmp_path):
    service = ArchiveService()
    archive = tmp_path / "broken.tar.gz"
    archive.write_bytes(b"not a tarball")

    with pytest.raises(ManagerError, match="Invalid tar archive"):
        service.safe_extract_tar(str(archive), str(tmp_path / "extract"))


def test_create_tar_gz_uses_directory_basename(tmp_path):
    service = ArchiveService()
    source = tmp_path / "paymenter"
    (source / "storage").mkdir(parents=True)
    (source / "storage" / "app.log").write_text("log", encoding="utf-8")

    archive = tmp_path / "backup.tar.gz"
    service.create_tar_gz(str(source), str(archive))

    with tarfile.open(archive, "r:gz") as tar_ref:
        names = tar_ref.getnames()
    assert "paymenter/storage/app.log" in names


def test_create_tar_gz_requires_existing_directory(tmp_path):
    service = ArchiveService()

    with pytest.raises(ManagerError, match="missing directory"):
        service.create_tar_gz(str(tmp_path / "absent"), str(tmp_path / "out.tar.gz"))


def test_safe_extract_tar_wraps_filesystem_errors(tmp_path):
    service = ArchiveService()
    archive = tmp_path / "release.tar.gz"
    _write_tar(archive, [("public/index.php", b"<?php")])
    destination = tmp_path / "paymenter"
    destination.mkdir()
    (destination / "public").write_text("a file where a directory belongs", encoding="utf-8")

    with pytest.raises(ManagerError, match="Failed to extract"):
        service.safe_extract_tar(str(archive), str(destination))
