"""Subprocess execution service for paymentermgr."""

import os
import subprocess
from typing import Dict, List, Optional

from paymentermgr.models import StepResult


class CommandRunner:
    """Runs external commands and folds every failure into a StepResult."""

    def __init__(self, logger, default_timeout: Optional[float] = None):
        self.logger = logger
        self.default_timeout = default_timeout

    def run(
        self,
        cmd: List[str],
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[str] = None,
        input_text: Optional[str] = None,
        stdout_path: Optional[str] = None,
        interactive: bool = False,
        timeout: Optional[float] = None,
    ) -> StepResult:
        cmd_str = " ".join(cmd)
        self.logger.info("Running: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout
        run_env = None
        if env:
            run_env = dict(os.environ)
            run_env.update(env)

        try:
            if interactive:
                result = subprocess.run(cmd, env=run_env, cwd=cwd, timeout=effective_timeout)
                output = ""
            elif stdout_path:
                with open(stdout_path, "w", encoding="utf-8") as file_obj:
                    result = subprocess.run(
                        cmd,
                        stdout=file_obj,
                        stderr=subprocess.PIPE,
                        input=input_text,
                        text=True,
                        env=run_env,
                        cwd=cwd,
                        timeout=effective_timeout,
                    )
                output = result.stderr or ""
            else:
                result = subprocess.run(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    input=input_text,
                    text=True,
                    env=run_env,
                    cwd=cwd,
                    timeout=effective_timeout,
                )
                output = result.stdout or ""
        except FileNotFoundError:
            message = f"Required command not found: {cmd[0]}"
            self.logger.error(message)
            return StepResult.failure(message, exit_code=127)
        except subprocess.TimeoutExpired:
            message = f"Command timed out after {effective_timeout}s: {cmd_str}"
            self.logger.error(message)
            return StepResult.failure(message, exit_code=124)
        except OSError as exc:
            message = f"Failed to execute command: {cmd_str}. {exc}"
            self.logger.error(message)
            return StepResult.failure(message, exit_code=126)

        for line in output.splitlines():
            if line.strip():
                self.logger.debug("  %s", line.rstrip())

        if result.returncode == 0:
            self.logger.info("Command succeeded: %s", cmd_str)
            return StepResult.success(output=output)

        message = f"Command failed ({result.returncode}): {cmd_str}"
        tail = [line for line in output.splitlines() if line.strip()][-5:]
        if tail:
            message = f"{message}\n" + "\n".join(tail)
        self.logger.error(message)
        return StepResult.failure(message, exit_code=result.returncode, output=output)
