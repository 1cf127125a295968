"""Paymenter application CLI (artisan, composer) and .env templating."""

import os
import re
from typing import Dict, List

from paymentermgr.models import StepResult

COMPOSER_ENV = {"COMPOSER_ALLOW_SUPERUSER": "1", "COMPOSER_NO_INTERACTION": "1"}


def _format_env_value(value: str) -> str:
    if value == "" or re.fullmatch(r"[A-Za-z0-9_./:@+-]+", value):
        return value
    # Single-quoted values are not interpolated by phpdotenv.
    return "'" + value + "'"


def render_env(template: str, values: Dict[str, str]) -> str:
    """Set ``KEY=value`` lines in a dotenv template, appending keys it lacks."""
    pending = dict(values)
    lines: List[str] = []
    for line in template.splitlines():
        key = line.split("=", 1)[0].strip()
        if "=" in line and not line.lstrip().startswith("#") and key in pending:
            lines.append(f"{key}={_format_env_value(pending.pop(key))}")
        else:
            lines.append(line)
    for key, value in pending.items():
        lines.append(f"{key}={_format_env_value(value)}")
    return "\n".join(lines) + "\n"


class ApplicationService:
    """Runs the target application's own entrypoints from its install dir."""

    def __init__(self, config, runner, logger):
        self.config = config
        self.runner = runner
        self.logger = logger

    @property
    def root(self) -> str:
        return self.config.install_dir

    def artisan(self, *args: str, interactive: bool = False) -> StepResult:
        return self.runner.run(
            ["php", str(self.config.artisan_path), *args],
            cwd=self.root,
            interactive=interactive,
        )

    def _named(self, label: str, result: StepResult, success_message: str) -> StepResult:
        if result.ok:
            return StepResult.success(success_message, output=result.output)
        return StepResult.failure(f"{label} failed: {result.message}", result.exit_code, result.output)

    def write_env(self, values: Dict[str, str]) -> StepResult:
        example = os.path.join(self.root, ".env.example")
        target = os.path.join(self.root, ".env")
        try:
            with open(example, "r", encoding="utf-8") as file_obj:
                template = file_obj.read()
            with open(target, "w", encoding="utf-8", newline="\n") as file_obj:
                file_obj.write(render_env(template, values))
        except OSError as exc:
            return StepResult.failure(f"Could not write {target}: {exc}")
        return StepResult.success("Application configured")

    def composer_install(self) -> StepResult:
        result = self.runner.run(
            ["composer", "install", "--no-dev", "--optimize-autoloader"],
            cwd=self.root,
            env=COMPOSER_ENV,
        )
        return self._named("composer install", result, "Dependencies installed")

    def generate_key(self) -> StepResult:
        return self._named("key:generate", self.artisan("key:generate", "--force"), "Application key generated")

    def storage_link(self) -> StepResult:
        return self._named("storage:link", self.artisan("storage:link"), "Storage linked")

    def migrate(self, force: bool = True, seed: bool = True) -> StepResult:
        args = ["migrate"]
        if force:
            args.append("--force")
        if seed:
            args.append("--seed")
        return self._named("Database migration", self.artisan(*args), "Database migrated")

    def self_update(self) -> StepResult:
        return self._named("Automatic update (p:upgrade)", self.artisan("p:upgrade"), "Application updated")

    def maintenance_on(self) -> StepResult:
        return self._named("Enabling maintenance mode", self.artisan("down"), "Maintenance mode enabled")

    def maintenance_off(self) -> StepResult:
        return self._named("Disabling maintenance mode", self.artisan("up"), "Maintenance mode disabled")

    def clear_caches(self) -> StepResult:
        for command in ("config:clear", "view:clear"):
            result = self.artisan(command)
            if not result.ok:
                return self._named(command, result, "")
        return StepResult.success("Caches cleared")

    def create_admin_user(self) -> StepResult:
        return self._named(
            "Admin user creation",
            self.artisan("p:user:create", interactive=True),
            "Admin user created",
        )
