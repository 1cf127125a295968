"""Interactive menu: collects parameters and dispatches to the pipelines."""

from typing import Callable, Optional

from rich.prompt import Confirm, Prompt

from . import __version__
from .constants import SCRIPT_NAME
from .errors import ManagerError
from .models import InstallParams, InstallType, PipelineRun, RemoveOptions

MENU_CHOICES = (
    ("1", "New Installation"),
    ("2", "Automatic Update"),
    ("3", "Manual Update"),
    ("4", "Create Backup"),
    ("5", "Remove Paymenter"),
    ("6", "Exit"),
)


class MenuController:
    """Owns all terminal input; the manager only sees validated parameters."""

    def __init__(
        self,
        manager,
        console,
        reporter,
        validation_service,
        ask: Optional[Callable[..., str]] = None,
        confirm: Optional[Callable[..., bool]] = None,
    ):
        self.manager = manager
        self.console = console
        self.reporter = reporter
        self.validation_service = validation_service
        self.ask = ask or (lambda prompt, **kwargs: Prompt.ask(prompt, console=console, **kwargs))
        self.confirm = confirm or (lambda prompt, **kwargs: Confirm.ask(prompt, console=console, **kwargs))
        self.last_run: Optional[PipelineRun] = None

    def show_menu(self):
        self.reporter.header(f"{SCRIPT_NAME} v{__version__}")
        self.console.print("[cyan]Please select an option:[/cyan]")
        for key, label in MENU_CHOICES:
            self.console.print(f"{key}) [bold white]{label}[/bold white]")
        self.console.print()

    def loop(self) -> int:
        while True:
            self.show_menu()
            choice = self.ask("Enter choice [1-6]").strip()

            if choice == "6":
                self.reporter.header("Goodbye!")
                return 0

            if not self.dispatch(choice):
                self.reporter.error("Invalid option selected")

            self.console.print()
            self.ask("Press Enter to continue", default="", show_default=False)

    def dispatch(self, choice: str) -> bool:
        actions = {
            "1": self.run_install,
            "2": self.manager.auto_update,
            "3": self.manager.manual_update,
            "4": self.run_backup,
            "5": self.run_remove,
        }
        action = actions.get(choice)
        if action is None:
            return False
        self.last_run = action()
        return True

    # Parameter collection ----------------------------------------------
    def collect_install_params(self) -> InstallParams:
        self.console.print("[cyan]Please select installation type:[/cyan]")
        self.console.print("1) Domain-based installation")
        self.console.print("2) IP-based installation (default)")
        install_choice = self.ask("Enter choice [1-2]", default="2").strip()

        if install_choice == "1":
            install_type = InstallType.DOMAIN
            server_name = self._ask_domain()
        else:
            install_type = InstallType.IP
            server_name = self.manager.detect_server_ip()
            if not server_name:
                raise ManagerError("Could not detect a non-loopback IPv4 address")
            self.reporter.status(f"Using IP address: {server_name}")

        return InstallParams(
            install_type=install_type,
            server_name=server_name,
            db_password=self._ask_password(),
        )

    def _ask_domain(self) -> str:
        while True:
            domain = self.ask("Enter your domain name (e.g., paymenter.org)")
            try:
                return self.validation_service.validate_domain(domain)
            except ManagerError as exc:
                self.reporter.error(str(exc))

    def _ask_password(self) -> str:
        while True:
            password = self.ask("Enter MySQL password for Paymenter", password=True)
            confirmation = self.ask("Confirm MySQL password", password=True)
            try:
                self.validation_service.validate_password(password, confirmation)
            except ManagerError as exc:
                self.reporter.error(str(exc))
                continue
            return password

    def collect_remove_options(self) -> RemoveOptions:
        self.reporter.warning("This will completely remove Paymenter and all its data!")
        create_backup = self.confirm("Create backup before removal? (recommended)", default=True)
        confirmed = self.confirm(
            "Are you absolutely sure you want to remove Paymenter? This cannot be undone!",
            default=False,
        )
        return RemoveOptions(create_backup=create_backup, confirmed=confirmed)

    # Actions -------------------------------------------------------------
    def run_install(self) -> Optional[PipelineRun]:
        try:
            params = self.collect_install_params()
        except ManagerError as exc:
            self.reporter.error(str(exc))
            return None
        return self.manager.install(params)

    def run_backup(self) -> PipelineRun:
        run = self.manager.backup()
        existing = self.manager.backup_manager.list_backups()
        if existing:
            self.reporter.status(f"{len(existing)} backup(s) in {self.manager.config.backup_dir}")
        return run

    def run_remove(self) -> PipelineRun:
        if not self.manager.is_installed():
            return self.manager.remove(RemoveOptions())
        return self.manager.remove(self.collect_remove_options())
