"""Domain errors for paymentermgr."""

from enum import Enum


class ManagerError(RuntimeError):
    """Raised when an operation cannot continue safely."""


class InsufficientPrivilegesError(ManagerError):
    """Raised when the process does not run as root."""


class UnsupportedPlatformError(ManagerError):
    """Raised when the host OS or release is not supported."""


class DependencyInstallError(ManagerError):
    """Raised when a system package or tool cannot be installed."""


class ConfigWriteError(ManagerError):
    """Raised when a configuration file cannot be written or validated."""


class DownloadError(ManagerError):
    """Raised when the application release cannot be fetched or unpacked."""


class BackupPhase(str, Enum):
    FILES = "files"
    DATABASE = "database"


class BackupError(ManagerError):
    """Raised when a snapshot cannot be produced completely."""

    def __init__(self, message: str, phase: BackupPhase = BackupPhase.FILES):
        super().__init__(message)
        self.phase = phase


class MigrationError(ManagerError):
    """Raised when the application CLI fails (migrations, caches, updates)."""


class ServiceError(ManagerError):
    """Raised when the service manager or database server rejects a command."""


class NotInstalledError(ManagerError):
    """Raised when an operation requires an existing installation."""


class UserCancelled(ManagerError):
    """Raised when the operator declines a required confirmation."""
