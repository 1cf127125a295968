"""Runtime configuration for paymentermgr."""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from paymentermgr import constants
from paymentermgr.errors import ManagerError


def _php_packages(php_version: str) -> Tuple[str, ...]:
    return (f"php{php_version}",) + tuple(
        f"php{php_version}-{extension}" for extension in constants.PHP_EXTENSIONS
    )


@dataclass
class ManagerConfig:
    """Explicit replacement for the script-wide constants.

    Built once at process start and handed to every service constructor.
    """

    install_dir: str = constants.INSTALL_DIR
    backup_dir: str = constants.BACKUP_DIR
    log_file: str = constants.LOG_FILE
    nginx_available_dir: str = constants.NGINX_AVAILABLE_DIR
    nginx_enabled_dir: str = constants.NGINX_ENABLED_DIR
    disable_default_site: bool = True
    systemd_dir: str = constants.SYSTEMD_DIR
    service_name: str = constants.SERVICE_NAME
    php_version: str = constants.PHP_VERSION
    php_repository: str = constants.PHP_REPOSITORY
    release_url: str = constants.RELEASE_URL
    composer_installer_url: str = constants.COMPOSER_INSTALLER_URL
    db_name: str = constants.DB_NAME
    db_user: str = constants.DB_USER
    db_host: str = constants.DB_HOST
    web_user: str = constants.WEB_USER
    web_group: str = constants.WEB_GROUP
    database_service: str = constants.DATABASE_SERVICE
    step_timeout: Optional[float] = None
    download_timeout: float = 60.0
    supported_platforms: Dict[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(constants.SUPPORTED_PLATFORMS)
    )
    base_packages: Tuple[str, ...] = constants.BASE_PACKAGES
    required_packages: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.required_packages:
            self.required_packages = _php_packages(self.php_version) + constants.SYSTEM_PACKAGES
        self.base_packages = tuple(self.base_packages)
        self.required_packages = tuple(self.required_packages)
        self.supported_platforms = {
            str(name).lower(): tuple(str(release) for release in releases)
            for name, releases in self.supported_platforms.items()
        }

    @classmethod
    def field_names(cls):
        return {item.name for item in fields(cls)}

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ManagerConfig":
        unknown = sorted(set(values) - cls.field_names())
        if unknown:
            raise ManagerError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**dict(values))

    @property
    def php_fpm_service(self) -> str:
        return f"php{self.php_version}-fpm"

    @property
    def php_fpm_socket(self) -> str:
        return f"/var/run/php/php{self.php_version}-fpm.sock"

    @property
    def unit_name(self) -> str:
        return f"{self.service_name}.service"

    @property
    def unit_path(self) -> Path:
        return Path(self.systemd_dir) / self.unit_name

    @property
    def vhost_path(self) -> Path:
        return Path(self.nginx_available_dir) / constants.SITE_NAME

    @property
    def vhost_link(self) -> Path:
        return Path(self.nginx_enabled_dir) / constants.SITE_NAME

    @property
    def artisan_path(self) -> Path:
        return Path(self.install_dir) / "artisan"
