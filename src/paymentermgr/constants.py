"""Default paths, package sets and permission modes."""

SCRIPT_NAME = "Paymenter Management Script"

DEFAULT_CONFIG_PATH = "/etc/paymenter-manager.yml"

INSTALL_DIR = "/var/www/paymenter"
BACKUP_DIR = "/var/www/paymenter_backups"
LOG_FILE = "/var/log/paymenter-install.log"
NGINX_AVAILABLE_DIR = "/etc/nginx/sites-available"
NGINX_ENABLED_DIR = "/etc/nginx/sites-enabled"
SYSTEMD_DIR = "/etc/systemd/system"

SERVICE_NAME = "paymenter"
SITE_NAME = "paymenter.conf"
BACKUP_PREFIX = "paymenter_backup"

PHP_VERSION = "8.2"
DATABASE_SERVICE = "mariadb"
REDIS_SERVICE = "redis-server"
WEB_SERVICE = "nginx"

RELEASE_URL = "https://github.com/paymenter/paymenter/releases/latest/download/paymenter.tar.gz"
COMPOSER_INSTALLER_URL = "https://getcomposer.org/installer"
PHP_REPOSITORY = "ppa:ondrej/php"

DB_NAME = "paymenter"
DB_USER = "paymenter"
DB_HOST = "127.0.0.1"

WEB_USER = "www-data"
WEB_GROUP = "www-data"

BASE_PACKAGES = (
    "software-properties-common",
    "curl",
    "apt-transport-https",
    "ca-certificates",
    "gnupg",
)

PHP_EXTENSIONS = ("common", "cli", "gd", "mysql", "mbstring", "bcmath", "xml", "fpm", "curl", "zip")

SYSTEM_PACKAGES = ("mariadb-server", "nginx", "tar", "unzip", "git", "redis-server")

SUPPORTED_PLATFORMS = {
    "ubuntu": ("20.04", "22.04"),
    "debian": ("10", "11"),
}

DIR_MODE = 0o755
FILE_MODE = 0o644
WRITABLE_DIR_MODE = 0o775
BACKUP_DIR_MODE = 0o750

# Relative to the install dir; these need group write for the web user.
WRITABLE_PATHS = ("storage", "bootstrap/cache")

MIN_PASSWORD_LENGTH = 8
