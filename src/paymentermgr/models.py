"""Shared domain models for paymentermgr."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Type

from paymentermgr.errors import ManagerError, UserCancelled


@dataclass(frozen=True)
class StepResult:
    """Outcome of one step or one external command."""

    ok: bool
    exit_code: int = 0
    message: str = ""
    output: str = ""
    error: Optional[ManagerError] = field(default=None, compare=False)

    @classmethod
    def success(cls, message: str = "", output: str = "") -> "StepResult":
        return cls(ok=True, exit_code=0, message=message, output=output)

    @classmethod
    def failure(
        cls,
        message: str,
        exit_code: int = 1,
        output: str = "",
        error: Optional[ManagerError] = None,
    ) -> "StepResult":
        return cls(ok=False, exit_code=exit_code, message=message, output=output, error=error)


@dataclass(frozen=True)
class Step:
    """A named, guarded unit of work."""

    name: str
    action: Callable[[], StepResult]
    description: str = ""
    reversible: bool = False
    error_type: Type[ManagerError] = ManagerError

    @property
    def label(self) -> str:
        return self.description or self.name.replace("_", " ")


@dataclass(frozen=True)
class GuardedSteps:
    """Steps executed between an enter step and an exit step that always runs."""

    enter: Step
    exit: Step
    steps: Tuple[Step, ...]


class OperationKind(str, Enum):
    INSTALL = "install"
    AUTO_UPDATE = "auto_update"
    MANUAL_UPDATE = "manual_update"
    BACKUP = "backup"
    REMOVE = "remove"


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class BackupRecord:
    timestamp: datetime
    files_archive_path: Path
    db_dump_path: Path


@dataclass(frozen=True)
class DatabaseCredentials:
    database: str
    username: str
    password: str = ""
    host: str = "127.0.0.1"


@dataclass(frozen=True)
class InstallationTarget:
    """On-disk location of the managed application."""

    root_dir: Path
    server_name: str = ""
    db_credentials: Optional[DatabaseCredentials] = None

    def exists(self) -> bool:
        return self.root_dir.is_dir()


class InstallType(str, Enum):
    DOMAIN = "domain"
    IP = "ip"


@dataclass(frozen=True)
class InstallParams:
    install_type: InstallType
    server_name: str
    db_password: str
    create_admin: bool = True


@dataclass(frozen=True)
class RemoveOptions:
    create_backup: bool = True
    confirmed: bool = False


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PipelineRun:
    """State of one pipeline execution.

    Pending -> Running -> {Success, Failed, Cancelled}. Cancelled is only
    reachable from Pending; terminal states are final.
    """

    operation: OperationKind
    status: RunStatus = RunStatus.PENDING
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    executed: List[Tuple[str, StepResult]] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[ManagerError] = None
    backup: Optional[BackupRecord] = None

    @property
    def executed_steps(self) -> List[str]:
        return [name for name, _ in self.executed]

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCESS

    @property
    def outcome(self) -> str:
        if self.status == RunStatus.FAILED:
            return f"FailedAt({self.failed_step})" if self.failed_step else "Failed"
        return self.status.value.capitalize()

    def record(self, step_name: str, result: StepResult):
        self.executed.append((step_name, result))

    def start(self):
        self._require(RunStatus.PENDING, target=RunStatus.RUNNING)
        self.status = RunStatus.RUNNING
        self.started_at = _now()

    def succeed(self):
        self._require(RunStatus.RUNNING, target=RunStatus.SUCCESS)
        self.status = RunStatus.SUCCESS
        self.finished_at = _now()

    def fail(self, error: ManagerError, step_name: Optional[str] = None):
        self._require(RunStatus.PENDING, RunStatus.RUNNING, target=RunStatus.FAILED)
        self.status = RunStatus.FAILED
        self.failed_step = step_name
        self.error = error
        self.finished_at = _now()

    def cancel(self, reason: str = "Operation cancelled by user."):
        self._require(RunStatus.PENDING, target=RunStatus.CANCELLED)
        self.status = RunStatus.CANCELLED
        self.error = UserCancelled(reason)
        self.finished_at = _now()

    def _require(self, *allowed: RunStatus, target: RunStatus):
        if self.status not in allowed:
            raise ManagerError(
                f"Invalid run transition for {self.operation.value}: "
                f"{self.status.value} -> {target.value}"
            )
