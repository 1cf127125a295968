"""Release download service with progress reporting."""

import os
import tempfile
from urllib.parse import urlparse

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from paymentermgr.errors import DownloadError, ManagerError
from paymentermgr.errors_catalog import actionable_error
from paymentermgr.models import StepResult


class DownloadService:
    """Fetches release tarballs over HTTPS and unpacks them into the target tree."""

    def __init__(self, archive_service, logger, console, requests_module, timeout: float = 60.0):
        self.archive_service = archive_service
        self.logger = logger
        self.console = console
        self.requests = requests_module
        self.timeout = timeout

    def enforce_https_policy(self, url: str, label: str):
        if urlparse(url).scheme.lower() != "https":
            raise DownloadError(actionable_error("insecure_http", label=label))

    def download_file(self, url: str, dest_path: str, description: str = "Downloading..."):
        self.logger.info("Downloading %s to %s", url, dest_path)
        self.enforce_https_policy(url, description)

        try:
            with self.requests.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                total_size = int(response.headers.get("Content-Length", 0))

                os.makedirs(os.path.dirname(dest_path) or ".", exist_ok=True)

                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    TaskProgressColumn(),
                    TimeElapsedColumn(),
                    console=self.console,
                    transient=True,
                ) as progress:
                    task = progress.add_task(f"[cyan]{description}", total=total_size or None)
                    with open(dest_path, "wb") as file_obj:
                        for chunk in response.iter_content(chunk_size=8192):
                            if not chunk:
                                continue
                            file_obj.write(chunk)
                            progress.update(task, advance=len(chunk))
        except self.requests.RequestException as exc:
            raise DownloadError(f"Download failed for {description}: {exc}") from exc
        except OSError as exc:
            raise DownloadError(f"Could not write {dest_path}: {exc}") from exc

    def fetch_release(self, url: str, destination_dir: str) -> StepResult:
        """Download the release tarball and unpack it over ``destination_dir``."""
        tarball = None
        try:
            os.makedirs(destination_dir, exist_ok=True)
            fd, tarball = tempfile.mkstemp(prefix="paymenter-", suffix=".tar.gz")
            os.close(fd)
            self.download_file(url, tarball, "Downloading Paymenter release...")
            self.archive_service.safe_extract_tar(tarball, destination_dir)
        except DownloadError as exc:
            return StepResult.failure(str(exc), error=exc)
        except ManagerError as exc:
            return StepResult.failure(f"Failed to unpack release: {exc}", error=DownloadError(str(exc)))
        except OSError as exc:
            message = f"Cannot prepare {destination_dir}: {exc}"
            return StepResult.failure(message, error=DownloadError(message))
        finally:
            if tarball:
                try:
                    os.remove(tarball)
                except OSError:
                    pass

        return StepResult.success(f"Release unpacked into {destination_dir}")
