"""APT package and Composer bootstrap service."""

import os
import shutil
import tempfile
from typing import Iterable, List

from paymentermgr.errors import DependencyInstallError, ManagerError
from paymentermgr.errors_catalog import actionable_error
from paymentermgr.models import StepResult

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class PackageService:
    """Installs missing system packages; already-installed ones are left alone."""

    def __init__(self, runner, logger, reporter, download_service=None, which=shutil.which):
        self.runner = runner
        self.logger = logger
        self.reporter = reporter
        self.download_service = download_service
        self._which = which

    def is_installed(self, package: str) -> bool:
        result = self.runner.run(["dpkg-query", "-W", "-f=${Status}", package])
        return result.ok and "install ok installed" in result.output

    def missing(self, packages: Iterable[str]) -> List[str]:
        return [package for package in packages if not self.is_installed(package)]

    def update_index(self) -> StepResult:
        result = self.runner.run(["apt-get", "update"], env=APT_ENV)
        if not result.ok:
            return StepResult.failure(f"Failed to update package lists: {result.message}", result.exit_code)
        return StepResult.success("Package lists updated")

    def install_missing(self, packages: Iterable[str]) -> StepResult:
        missing = self.missing(packages)
        if not missing:
            return StepResult.success("All packages already installed")

        for package in missing:
            self.reporter.status(f"Installing {package}...")
            result = self.runner.run(["apt-get", "install", "-y", package], env=APT_ENV)
            if not result.ok:
                return StepResult.failure(
                    actionable_error("package_install_failed", package=package),
                    exit_code=result.exit_code,
                    output=result.output,
                )

        return StepResult.success(f"Installed {len(missing)} package(s): {', '.join(missing)}")

    def add_repository(self, repository: str) -> StepResult:
        result = self.runner.run(
            ["add-apt-repository", "-y", repository],
            env={"LC_ALL": "C.UTF-8", **APT_ENV},
        )
        if not result.ok:
            return StepResult.failure(f"Failed to add repository {repository}", result.exit_code)
        return self.update_index()

    def ensure_composer(self, installer_url: str, install_dir: str = "/usr/local/bin") -> StepResult:
        if self._which("composer"):
            return StepResult.success("Composer already installed")
        if self.download_service is None:
            return StepResult.failure("Composer is missing and no downloader is configured")

        fd, installer = tempfile.mkstemp(prefix="composer-setup-", suffix=".php")
        os.close(fd)
        try:
            try:
                self.download_service.download_file(installer_url, installer, "Downloading Composer installer...")
            except ManagerError as exc:
                return StepResult.failure(str(exc), error=DependencyInstallError(str(exc)))

            result = self.runner.run(
                ["php", installer, f"--install-dir={install_dir}", "--filename=composer"]
            )
        finally:
            try:
                os.remove(installer)
            except OSError:
                pass

        if not result.ok:
            return StepResult.failure("Failed to install Composer", result.exit_code, result.output)
        return StepResult.success("Composer installed")
