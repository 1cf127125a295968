import logging
import os
from datetime import datetime

import click
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .constants import DEFAULT_CONFIG_PATH, SCRIPT_NAME
from .core import PaymenterManager, console
from .errors import InsufficientPrivilegesError, ManagerError, UnsupportedPlatformError
from .menu import MenuController
from .models import InstallParams, InstallType, RemoveOptions, RunStatus
from .services.config_loader import ConfigLoader
from .services.platform import PlatformService

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PREFLIGHT = 2

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class _HideStatusRecords(logging.Filter):
    """The reporter already printed these lines to the console."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith("paymentermgr.status")


def configure_logging(log_file, verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger("paymentermgr")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console_handler = RichHandler(rich_tracebacks=True, show_level=False, show_path=False)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.addFilter(_HideStatusRecords())
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
        except OSError as exc:
            logger.warning("Cannot write log file %s: %s", log_file, exc)
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(file_handler)
            logger.info(
                "=== %s v%s session started %s ===",
                SCRIPT_NAME,
                __version__,
                datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            )
    return logger


def _manager(ctx: click.Context) -> PaymenterManager:
    state = ctx.find_root().obj
    if state.get("manager") is None:
        try:
            PlatformService(logger=logging.getLogger("paymentermgr")).ensure_root()
        except InsufficientPrivilegesError as exc:
            _preflight_exit(ctx, exc)
        state["manager"] = PaymenterManager(config=state["config"])
    return state["manager"]


def _preflight_exit(ctx: click.Context, exc: ManagerError):
    logging.getLogger("paymentermgr").error("%s", exc)
    console.print(f"[red]Error:[/red] {escape(str(exc))}")
    ctx.exit(EXIT_PREFLIGHT)


def _run(ctx: click.Context, action):
    try:
        run = action()
    except (InsufficientPrivilegesError, UnsupportedPlatformError) as exc:
        _preflight_exit(ctx, exc)
    if run.succeeded or run.status == RunStatus.CANCELLED:
        ctx.exit(EXIT_OK)
    ctx.exit(EXIT_FAILED)


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "config_path",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_PATH} if present.",
)
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option("--verbose", is_flag=True, default=False, help="Show command output and debug logs")
@click.version_option(__version__, prog_name="paymentermgr")
@click.pass_context
def main(ctx, config_path, log_file, verbose):
    """Install, update, back up and remove Paymenter on Debian/Ubuntu."""
    try:
        resolved_config = config_path
        if resolved_config is None and os.path.exists(DEFAULT_CONFIG_PATH):
            resolved_config = DEFAULT_CONFIG_PATH
        config = ConfigLoader().build(resolved_config, log_file=log_file)
    except ManagerError as exc:
        raise click.ClickException(str(exc)) from exc

    configure_logging(config.log_file, verbose)
    ctx.obj = {"config": config, "manager": None}

    if ctx.invoked_subcommand is None:
        manager = _manager(ctx)
        menu = MenuController(
            manager=manager,
            console=console,
            reporter=manager.reporter,
            validation_service=manager.validation_service,
        )
        try:
            code = menu.loop()
        except (InsufficientPrivilegesError, UnsupportedPlatformError) as exc:
            _preflight_exit(ctx, exc)
        ctx.exit(code)


@main.command()
@click.option("--domain", required=False, help="Domain name to serve Paymenter on")
@click.option("--ip", "use_ip", is_flag=True, default=False, help="Serve on the detected IPv4 address")
@click.option(
    "--db-password",
    prompt="MySQL password for Paymenter",
    hide_input=True,
    confirmation_prompt=True,
    help="Password for the Paymenter database user",
)
@click.option("--skip-admin", is_flag=True, default=False, help="Do not create the admin user")
@click.pass_context
def install(ctx, domain, use_ip, db_password, skip_admin):
    """Run a new installation."""
    if bool(domain) == use_ip:
        raise click.UsageError("Pass exactly one of --domain or --ip.")

    manager = _manager(ctx)
    validation = manager.validation_service
    try:
        validation.validate_password(db_password, db_password)
        if domain:
            install_type = InstallType.DOMAIN
            server_name = validation.validate_domain(domain)
        else:
            install_type = InstallType.IP
            server_name = manager.detect_server_ip()
            if not server_name:
                raise ManagerError("Could not detect a non-loopback IPv4 address; use --domain.")
    except ManagerError as exc:
        raise click.ClickException(str(exc)) from exc

    params = InstallParams(
        install_type=install_type,
        server_name=server_name,
        db_password=db_password,
        create_admin=not skip_admin,
    )
    _run(ctx, lambda: manager.install(params))


@main.command("auto-update")
@click.pass_context
def auto_update(ctx):
    """Back up, then update with the application's own updater."""
    manager = _manager(ctx)
    _run(ctx, manager.auto_update)


@main.command("manual-update")
@click.pass_context
def manual_update(ctx):
    """Back up, then replace the code with the latest release."""
    manager = _manager(ctx)
    _run(ctx, manager.manual_update)


@main.command()
@click.pass_context
def backup(ctx):
    """Snapshot the installation files and database."""
    manager = _manager(ctx)
    _run(ctx, manager.backup)


@main.command()
@click.option("--no-backup", is_flag=True, default=False, help="Skip the pre-removal backup")
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation")
@click.pass_context
def remove(ctx, no_backup, yes):
    """Remove Paymenter, its database and its configuration."""
    manager = _manager(ctx)
    confirmed = yes
    if not confirmed and manager.is_installed():
        confirmed = click.confirm(
            "Are you absolutely sure you want to remove Paymenter? This cannot be undone!",
            default=False,
        )
    options = RemoveOptions(create_backup=not no_backup, confirmed=confirmed)
    _run(ctx, lambda: manager.remove(options))


if __name__ == "__main__":
    main()
