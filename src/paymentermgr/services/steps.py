"""Ordered, fail-fast step execution."""

from typing import List, Optional, Sequence, Union

from paymentermgr.errors import ManagerError
from paymentermgr.models import GuardedSteps, PipelineRun, RunStatus, Step, StepResult

Entry = Union[Step, GuardedSteps]


class StepRegistry:
    """Runs steps in declared order and stops at the first failure.

    There is no automatic rollback. A guarded group's exit step runs whenever
    its enter step succeeded, however the body ends.
    """

    def __init__(self, reporter, steps: Optional[Sequence[Entry]] = None):
        self.reporter = reporter
        self._entries: List[Entry] = list(steps or [])

    def add(self, step: Step) -> "StepRegistry":
        self._entries.append(step)
        return self

    def add_guarded(self, enter: Step, exit: Step, steps: Sequence[Step]) -> "StepRegistry":
        self._entries.append(GuardedSteps(enter=enter, exit=exit, steps=tuple(steps)))
        return self

    @property
    def steps(self) -> List[Step]:
        flat: List[Step] = []
        for entry in self._entries:
            if isinstance(entry, GuardedSteps):
                flat.append(entry.enter)
                flat.extend(entry.steps)
                flat.append(entry.exit)
            else:
                flat.append(entry)
        return flat

    def execute(self, run: PipelineRun) -> PipelineRun:
        if run.status == RunStatus.PENDING:
            run.start()

        for entry in self._entries:
            if isinstance(entry, GuardedSteps):
                ok = self._execute_guarded(entry, run)
            else:
                ok = self._execute_step(entry, run)
            if not ok:
                return run

        run.succeed()
        return run

    def _execute_guarded(self, group: GuardedSteps, run: PipelineRun) -> bool:
        if not self._execute_step(group.enter, run):
            return False

        body_ok = False
        try:
            body_ok = all(self._execute_step(step, run) for step in group.steps)
        finally:
            exit_result = self._invoke(group.exit)
            run.record(group.exit.name, exit_result)
            if exit_result.ok:
                self.reporter.success(f"{group.exit.label.capitalize()} completed")
            else:
                self.reporter.error(f"{group.exit.label.capitalize()} failed: {exit_result.message}")
                if body_ok:
                    self._fail(run, group.exit, exit_result)
        return body_ok and exit_result.ok

    def _execute_step(self, step: Step, run: PipelineRun) -> bool:
        self.reporter.status(f"{step.label.capitalize()}...")
        result = self._invoke(step)
        run.record(step.name, result)

        if result.ok:
            if result.message:
                self.reporter.success(result.message)
            return True

        self._fail(run, step, result)
        return False

    def _fail(self, run: PipelineRun, step: Step, result: StepResult):
        error = result.error or step.error_type(result.message)
        self.reporter.error(f"Step '{step.name}' failed: {result.message}")
        run.fail(error, step_name=step.name)

    @staticmethod
    def _invoke(step: Step) -> StepResult:
        try:
            return step.action()
        except ManagerError as exc:
            return StepResult.failure(str(exc), error=exc)
        except OSError as exc:
            return StepResult.failure(str(exc), error=step.error_type(str(exc)))
