"""Crontab management keyed by the application's artisan path."""

from typing import List

from paymentermgr.models import StepResult


class CronService:
    """Keeps exactly one scheduler line per installation in root's crontab.

    Install and removal both match on the absolute ``artisan`` path.
    """

    def __init__(self, runner, logger):
        self.runner = runner
        self.logger = logger

    @staticmethod
    def entry_for(artisan_path: str) -> str:
        return f"* * * * * php {artisan_path} schedule:run >> /dev/null 2>&1"

    def current_lines(self) -> List[str]:
        result = self.runner.run(["crontab", "-l"])
        # crontab -l exits non-zero when the user has no crontab yet.
        if not result.ok:
            return []
        return [line for line in result.output.splitlines() if line.strip()]

    def install(self, artisan_path: str) -> StepResult:
        lines = [line for line in self.current_lines() if artisan_path not in line]
        lines.append(self.entry_for(artisan_path))
        result = self._write(lines)
        if not result.ok:
            return result
        return StepResult.success("Cron job added")

    def remove(self, artisan_path: str) -> StepResult:
        current = self.current_lines()
        remaining = [line for line in current if artisan_path not in line]
        if len(remaining) == len(current):
            return StepResult.success("No cron entry to remove")
        result = self._write(remaining)
        if not result.ok:
            return result
        return StepResult.success("Cron entry removed")

    def _write(self, lines: List[str]) -> StepResult:
        content = "\n".join(lines) + "\n" if lines else ""
        result = self.runner.run(["crontab", "-"], input_text=content)
        if not result.ok:
            return StepResult.failure(f"Failed to update crontab: {result.message}", result.exit_code)
        return result
