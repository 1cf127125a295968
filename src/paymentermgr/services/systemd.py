"""systemd unit management for the queue worker."""

from typing import Sequence

from paymentermgr.models import StepResult


class SystemdService:
    """Thin wrapper over ``systemctl`` plus the queue-worker unit file."""

    def __init__(self, config, runner, logger):
        self.config = config
        self.runner = runner
        self.logger = logger

    def render_unit(self) -> str:
        return f"""
[Unit]
Description=Paymenter Queue Worker
After=network.target {self.config.database_service}.service redis.service

[Service]
User={self.config.web_user}
Group={self.config.web_group}
Restart=always
ExecStart=/usr/bin/php {self.config.artisan_path} queue:work
StartLimitInterval=180
StartLimitBurst=30
RestartSec=5s

[Install]
WantedBy=multi-user.target
""".lstrip()

    def write_unit(self) -> StepResult:
        unit_path = self.config.unit_path
        try:
            unit_path.parent.mkdir(parents=True, exist_ok=True)
            with open(unit_path, "w", encoding="utf-8", newline="\n") as file_obj:
                file_obj.write(self.render_unit())
        except OSError as exc:
            return StepResult.failure(f"Could not write {unit_path}: {exc}")

        result = self.daemon_reload()
        if not result.ok:
            return result
        return StepResult.success("Queue worker service created")

    def daemon_reload(self) -> StepResult:
        return self._systemctl("daemon-reload")

    def enable_now(self, unit: str) -> StepResult:
        return self._systemctl("enable", "--now", unit)

    def restart(self, units: Sequence[str]) -> StepResult:
        return self._systemctl("restart", *units)

    def stop(self, unit: str) -> StepResult:
        return self._systemctl("stop", unit)

    def disable(self, unit: str) -> StepResult:
        return self._systemctl("disable", unit)

    def _systemctl(self, *args: str) -> StepResult:
        result = self.runner.run(["systemctl", *args])
        if not result.ok:
            return StepResult.failure(
                f"systemctl {' '.join(args)} failed: {result.message}", result.exit_code, result.output
            )
        return StepResult.success(f"systemctl {' '.join(args)} completed")
