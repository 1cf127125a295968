import logging
from pathlib import Path
from typing import Callable, List, Optional

import requests
from rich.console import Console

from .config import ManagerConfig
from .constants import REDIS_SERVICE, WEB_SERVICE
from .errors import (
    BackupError,
    ConfigWriteError,
    DependencyInstallError,
    DownloadError,
    ManagerError,
    MigrationError,
    NotInstalledError,
    ServiceError,
)
from .errors_catalog import actionable_error
from .models import (
    DatabaseCredentials,
    InstallationTarget,
    InstallParams,
    InstallType,
    OperationKind,
    PipelineRun,
    RemoveOptions,
    RunStatus,
    Step,
    StepResult,
)
from .services.application import ApplicationService
from .services.archive import ArchiveService
from .services.backup import BackupManager
from .services.command_runner import CommandRunner
from .services.database import DatabaseService
from .services.download import DownloadService
from .services.filesystem import FileSystemService
from .services.nginx import NginxService
from .services.packages import PackageService
from .services.platform import PlatformService
from .services.reporter import StatusReporter
from .services.scheduler import CronService
from .services.steps import StepRegistry
from .services.systemd import SystemdService
from .services.validation import ValidationService

console = Console()
logger = logging.getLogger("paymentermgr")
status_logger = logging.getLogger("paymentermgr.status")


class PaymenterManager:
    """Builds and runs the Install / Update / Backup / Remove pipelines."""

    def __init__(
        self,
        config: ManagerConfig,
        command_runner=None,
        download_service=None,
        platform_service=None,
        validation_service=None,
        filesystem_service=None,
        reporter=None,
        clock=None,
    ):
        self.config = config
        self.reporter = reporter or StatusReporter(logger=status_logger, console=console)
        self.command_runner = command_runner or CommandRunner(
            logger=logger, default_timeout=config.step_timeout
        )
        self.archive_service = ArchiveService()
        self.download_service = download_service or DownloadService(
            archive_service=self.archive_service,
            logger=logger,
            console=console,
            requests_module=requests,
            timeout=config.download_timeout,
        )
        self.platform_service = platform_service or PlatformService(logger=logger)
        self.validation_service = validation_service or ValidationService(requests_module=requests)
        self.filesystem_service = filesystem_service or FileSystemService(logger=logger)
        self.package_service = PackageService(
            runner=self.command_runner,
            logger=logger,
            reporter=self.reporter,
            download_service=self.download_service,
        )
        self.database_service = DatabaseService(runner=self.command_runner, logger=logger)
        self.nginx_service = NginxService(config=config, runner=self.command_runner, logger=logger)
        self.systemd_service = SystemdService(config=config, runner=self.command_runner, logger=logger)
        self.cron_service = CronService(runner=self.command_runner, logger=logger)
        self.application_service = ApplicationService(
            config=config, runner=self.command_runner, logger=logger
        )
        self.backup_manager = BackupManager(
            backup_dir=config.backup_dir,
            archive_service=self.archive_service,
            database_service=self.database_service,
            logger=logger,
            clock=clock,
        )

    # Targets -----------------------------------------------------------
    def target(self, server_name: str = "", db_password: str = "") -> InstallationTarget:
        return InstallationTarget(
            root_dir=Path(self.config.install_dir),
            server_name=server_name,
            db_credentials=DatabaseCredentials(
                database=self.config.db_name,
                username=self.config.db_user,
                password=db_password,
                host=self.config.db_host,
            ),
        )

    def is_installed(self) -> bool:
        return self.target().exists()

    def detect_server_ip(self) -> Optional[str]:
        return self.platform_service.detect_ipv4(self.command_runner)

    # Step helpers ------------------------------------------------------
    @staticmethod
    def _step(name: str, action: Callable[[], StepResult], error_type=ManagerError, **kwargs) -> Step:
        return Step(name=name, action=action, error_type=error_type, **kwargs)

    def _snapshot_step(self, run: PipelineRun, target: InstallationTarget) -> Step:
        def snapshot() -> StepResult:
            record = self.backup_manager.snapshot(target)
            run.backup = record
            return StepResult.success(f"Backup created at: {record.files_archive_path}")

        return self._step("create_backup", snapshot, BackupError, description="creating backup")

    def _permissions_step(self) -> Step:
        return self._step(
            "set_permissions",
            lambda: self.filesystem_service.apply_permission_policy(
                self.config.install_dir, self.config.web_user, self.config.web_group
            ),
            ConfigWriteError,
            description="setting file permissions",
        )

    def _restart_app_services_step(self) -> Step:
        return self._step(
            "restart_services",
            lambda: self.systemd_service.restart(
                [self.config.unit_name, WEB_SERVICE, self.config.php_fpm_service]
            ),
            ServiceError,
            description="restarting services",
        )

    def _release_step(self, name: str) -> Step:
        return self._step(
            name,
            lambda: self.download_service.fetch_release(self.config.release_url, self.config.install_dir),
            DownloadError,
            description="downloading latest release",
        )

    # Pipeline builders -------------------------------------------------
    def build_install_steps(self, params: InstallParams) -> StepRegistry:
        config = self.config
        credentials = self.target(params.server_name, params.db_password).db_credentials
        app = self.application_service
        url = f"http://{params.server_name}"

        def install_base() -> StepResult:
            result = self.package_service.update_index()
            if not result.ok:
                return result
            return self.package_service.install_missing(config.base_packages)

        def start_services() -> StepResult:
            result = self.systemd_service.restart(
                [WEB_SERVICE, config.php_fpm_service, config.database_service, REDIS_SERVICE]
            )
            if not result.ok:
                return result
            return self.systemd_service.enable_now(config.unit_name)

        def env_values():
            return {
                "APP_URL": url,
                "DB_HOST": credentials.host,
                "DB_DATABASE": credentials.database,
                "DB_USERNAME": credentials.username,
                "DB_PASSWORD": credentials.password,
            }

        registry = StepRegistry(reporter=self.reporter)
        registry.add(self._step("install_base_packages", install_base, DependencyInstallError))
        registry.add(
            self._step(
                "add_php_repository",
                lambda: self.package_service.add_repository(config.php_repository),
                DependencyInstallError,
            )
        )
        registry.add(
            self._step(
                "install_required_packages",
                lambda: self.package_service.install_missing(config.required_packages),
                DependencyInstallError,
            )
        )
        registry.add(
            self._step(
                "install_composer",
                lambda: self.package_service.ensure_composer(config.composer_installer_url),
                DependencyInstallError,
            )
        )
        registry.add(
            self._step(
                "configure_nginx",
                lambda: self.nginx_service.configure(params.server_name),
                ConfigWriteError,
                reversible=True,
            )
        )
        registry.add(
            self._step(
                "configure_queue_worker", self.systemd_service.write_unit, ConfigWriteError, reversible=True
            )
        )
        registry.add(
            self._step(
                "configure_crontab",
                lambda: self.cron_service.install(str(config.artisan_path)),
                ConfigWriteError,
                reversible=True,
            )
        )
        registry.add(self._release_step("download_release"))
        registry.add(self._step("configure_application", lambda: app.write_env(env_values()), ConfigWriteError))
        registry.add(self._step("install_dependencies", app.composer_install, DependencyInstallError))
        registry.add(self._step("generate_app_key", app.generate_key, MigrationError))
        registry.add(self._step("link_storage", app.storage_link, MigrationError))
        registry.add(
            self._step(
                "configure_database",
                lambda: self.database_service.provision(credentials),
                ServiceError,
                reversible=True,
            )
        )
        registry.add(self._permissions_step())
        registry.add(self._step("run_migrations", app.migrate, MigrationError))
        registry.add(self._step("start_services", start_services, ServiceError))
        registry.add(
            self._step("check_endpoint", lambda: self.validation_service.probe_url(url), ServiceError)
        )
        if params.create_admin:
            registry.add(self._step("create_admin_user", app.create_admin_user, MigrationError))
        return registry

    def build_auto_update_steps(self, run: PipelineRun) -> StepRegistry:
        registry = StepRegistry(reporter=self.reporter)
        registry.add(self._snapshot_step(run, self.target()))
        registry.add(
            self._step("run_self_update", self.application_service.self_update, MigrationError)
        )
        registry.add(self._permissions_step())
        registry.add(self._restart_app_services_step())
        return registry

    def build_manual_update_steps(self, run: PipelineRun) -> StepRegistry:
        app = self.application_service
        registry = StepRegistry(reporter=self.reporter)
        registry.add(self._snapshot_step(run, self.target()))
        registry.add_guarded(
            enter=self._step("enable_maintenance_mode", app.maintenance_on, MigrationError),
            exit=self._step("disable_maintenance_mode", app.maintenance_off, MigrationError),
            steps=[
                self._release_step("update_release"),
                self._step("install_dependencies", app.composer_install, DependencyInstallError),
                self._permissions_step(),
                self._step("run_migrations", app.migrate, MigrationError),
                self._step("clear_caches", app.clear_caches, MigrationError),
            ],
        )
        registry.add(self._restart_app_services_step())
        return registry

    def build_backup_steps(self, run: PipelineRun) -> StepRegistry:
        return StepRegistry(reporter=self.reporter, steps=[self._snapshot_step(run, self.target())])

    def build_remove_steps(self, run: PipelineRun, options: RemoveOptions) -> StepRegistry:
        config = self.config
        target = self.target()
        registry = StepRegistry(reporter=self.reporter)
        if options.create_backup:
            registry.add(self._snapshot_step(run, target))
        registry.add(
            self._step("stop_queue_worker", lambda: self.systemd_service.stop(config.unit_name), ServiceError)
        )
        registry.add(
            self._step(
                "disable_queue_worker", lambda: self.systemd_service.disable(config.unit_name), ServiceError
            )
        )
        registry.add(
            self._step(
                "drop_database", lambda: self.database_service.drop(target.db_credentials), ServiceError
            )
        )
        registry.add(
            self._step(
                "remove_files",
                lambda: self.filesystem_service.remove_tree(config.install_dir),
                ConfigWriteError,
            )
        )
        registry.add(
            self._step(
                "remove_configuration",
                lambda: self.filesystem_service.remove_files(
                    self.nginx_service.artifacts() + [config.unit_path]
                ),
                ConfigWriteError,
            )
        )
        registry.add(
            self._step(
                "remove_crontab_entry",
                lambda: self.cron_service.remove(str(config.artisan_path)),
                ConfigWriteError,
            )
        )
        registry.add(self._step("reload_systemd", self.systemd_service.daemon_reload, ServiceError))
        registry.add(
            self._step("restart_web_server", lambda: self.systemd_service.restart([WEB_SERVICE]), ServiceError)
        )
        return registry

    # Operations ----------------------------------------------------------
    def install(self, params: InstallParams) -> PipelineRun:
        self.reporter.header("New Installation")
        self.reporter.section("Checking System Compatibility")
        info = self.platform_service.ensure_supported(self.config.supported_platforms)
        self.reporter.success(f"Detected: {info.name} {info.version_id}")

        run = PipelineRun(operation=OperationKind.INSTALL)
        try:
            self.validation_service.validate_server_name(params.server_name)
        except ManagerError as exc:
            run.fail(exc)
            return self._finish(run)

        registry = self.build_install_steps(params)
        registry.execute(run)
        if run.succeeded:
            self._print_next_steps(params)
        else:
            self._report_leftovers(registry, run)
        return self._finish(run)

    def auto_update(self) -> PipelineRun:
        self.reporter.header("Automatic Update")
        run = PipelineRun(operation=OperationKind.AUTO_UPDATE)
        if self._require_installed(run):
            self.build_auto_update_steps(run).execute(run)
        return self._finish(run)

    def manual_update(self) -> PipelineRun:
        self.reporter.header("Manual Update")
        run = PipelineRun(operation=OperationKind.MANUAL_UPDATE)
        if self._require_installed(run):
            self.build_manual_update_steps(run).execute(run)
        return self._finish(run)

    def backup(self) -> PipelineRun:
        self.reporter.header("Create Backup")
        run = PipelineRun(operation=OperationKind.BACKUP)
        if self._require_installed(run):
            self.build_backup_steps(run).execute(run)
        return self._finish(run)

    def remove(self, options: RemoveOptions) -> PipelineRun:
        self.reporter.header("Remove Paymenter")
        run = PipelineRun(operation=OperationKind.REMOVE)
        if not self._require_installed(run):
            return self._finish(run)
        if not options.confirmed:
            run.cancel("Removal cancelled")
            return self._finish(run)

        self.reporter.section("Removing Paymenter")
        self.build_remove_steps(run, options).execute(run)
        return self._finish(run)

    # Internals -----------------------------------------------------------
    def _require_installed(self, run: PipelineRun) -> bool:
        if self.is_installed():
            return True
        run.fail(NotInstalledError(actionable_error("not_installed", path=self.config.install_dir)))
        return False

    def _finish(self, run: PipelineRun) -> PipelineRun:
        label = run.operation.value.replace("_", " ").capitalize()
        logger.info("%s finished: %s", label, run.outcome)
        if run.succeeded:
            self.reporter.success(f"{label} completed successfully!")
        elif run.status == RunStatus.CANCELLED:
            self.reporter.status(f"{label} cancelled")
        else:
            message = str(run.error) if run.error else "unknown error"
            if run.failed_step:
                self.reporter.error(actionable_error("step_failed", step=run.failed_step, message=message))
            else:
                self.reporter.error(f"{label} failed: {message}")
        if run.backup:
            self.reporter.status(
                f"Backup artifacts: {run.backup.files_archive_path}, {run.backup.db_dump_path}"
            )
        return run

    def _report_leftovers(self, registry: StepRegistry, run: PipelineRun):
        """Name the completed steps whose changes stay on the host after a failure."""
        done = {name for name, result in run.executed if result.ok}
        leftovers = [step.name for step in registry.steps if step.reversible and step.name in done]
        if leftovers:
            self.reporter.warning(f"Changes left in place by: {', '.join(leftovers)}")

    def _print_next_steps(self, params: InstallParams):
        console.print(f"\n[cyan]Access your installation at:[/cyan] http://{params.server_name}")
        console.print("\n[yellow]Important Next Steps:[/yellow]")
        items: List[str] = ["Back up your encryption key (APP_KEY in the .env file)"]
        if params.install_type == InstallType.DOMAIN:
            items.append("Set up SSL/TLS certificates for your domain")
        items.extend(["Configure your firewall", "Set up regular backups"])
        for index, item in enumerate(items, start=1):
            console.print(f"{index}. [bold white]{item}[/bold white]")
