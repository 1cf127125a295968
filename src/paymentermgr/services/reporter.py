"""Operator-facing status output mirrored into the log file."""

from rich.markup import escape
from rich.panel import Panel

ARROW = "➤"
CHECK_MARK = "✔"
CROSS_MARK = "✘"
STAR = "★"
WARN = "⚠"


class StatusReporter:
    """Prints colored status lines and logs the same text."""

    def __init__(self, logger, console):
        self.logger = logger
        self.console = console

    def header(self, text: str):
        self.console.print(Panel(f"[cyan]{escape(text)}[/cyan]", border_style="magenta", expand=False))
        self.logger.info("=== %s ===", text)

    def section(self, text: str):
        self.console.print(f"\n[blue]{STAR} {escape(text)} {STAR}[/blue]\n")
        self.logger.info("%s %s %s", STAR, text, STAR)

    def status(self, text: str):
        self.console.print(f"[yellow]{ARROW}[/yellow] {escape(text)}")
        self.logger.info("%s %s", ARROW, text)

    def success(self, text: str):
        self.console.print(f"[green]{CHECK_MARK}[/green] {escape(text)}")
        self.logger.info("%s %s", CHECK_MARK, text)

    def warning(self, text: str):
        self.console.print(f"[yellow]{WARN}[/yellow] {escape(text)}")
        self.logger.warning("%s %s", WARN, text)

    def error(self, text: str):
        self.console.print(f"[red]{CROSS_MARK}[/red] {escape(text)}")
        self.logger.error("%s %s", CROSS_MARK, text)
