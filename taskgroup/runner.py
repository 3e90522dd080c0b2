"""
TaskGroupRunner - runs a group of run tasks in sequence.

The runner implements:
- Registration of run tasks, an optional output task and an optional fallback
- Identity enforcement: no two tasks of a run may share an id (case-insensitive)
- Sequential execution, stopping at the first failed task
- Rollback planning after every task, rollback in reverse order on failure
- Output extraction once all tasks succeeded
- One-shot fallback to another plan when the run fails with a version mismatch

Execution flow of run():
1. Run all tasks in registration order
   a. Create the task executor (renders meta)
   b. Verify the task identity is unique in this run
   c. Drop any result recorded earlier for the identity, then execute the task
   d. Redact the raw json result from the values
   e. Plan rollback for the object(s) the task created
2. On success, render the output task and return its bytes
3. On failure, roll back everything planned so far (best effort), then
   either fall back to the configured plan or re-raise the failure

NOTE: values is mutated, i.e. it is enriched after each task execution so
the result of a task is available to the tasks that follow it.
"""

import logging
from enum import Enum
from typing import Any, Callable, Optional, TYPE_CHECKING

from taskgroup.context import (
    OBJECT_NAME_KEY,
    TASK_RESULT_KEY,
    clear_task_result,
    get_nested_string,
    redact_json_result,
)
from taskgroup.errors import DuplicateTaskIdentityError, InvalidTaskError, is_version_mismatch
from taskgroup.executor import RollbackAction, TaskExecutor, new_task_executor
from taskgroup.schemas import RunTask
from taskgroup.template import to_yaml

if TYPE_CHECKING:
    from taskgroup.fallback import FallbackRunner
    from taskgroup.handlers import HandlerRegistry
    from taskgroup.registry import PlanRegistry

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[RunTask, dict[str, Any]], TaskExecutor]
FallbackFactory = Callable[[str, dict[str, Any]], "FallbackRunner"]


class RunnerState(str, Enum):
    """State of a group run."""
    IDLE = "idle"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    EXTRACTING_OUTPUT = "extracting_output"
    FAILED = "failed"
    ROLLING_BACK = "rolling_back"
    FALLING_BACK = "falling_back"
    DONE = "done"


class TaskGroupRunner:
    """
    Runs a set of run tasks in sequence.

    Usage:
        runner = TaskGroupRunner(handlers=HandlerRegistry.create_memory())
        runner.add_run_task(create_service)
        runner.add_run_task(create_volume)
        runner.set_output_task(volume_output)
        runner.set_fallback("volume-create-0.6.0")

        output = runner.run(values)

    run() either returns the output bytes (None when no output task is set)
    or raises; output and error are never both present.
    """

    def __init__(
        self,
        handlers: Optional["HandlerRegistry"] = None,
        plans: Optional["PlanRegistry"] = None,
        executor_factory: Optional[ExecutorFactory] = None,
        fallback_factory: Optional[FallbackFactory] = None,
        lineage: tuple[str, ...] = (),
    ):
        """
        Initialize the runner.

        Args:
            handlers: HandlerRegistry the task executors dispatch to
            plans: PlanRegistry to look up the fallback plan in
            executor_factory: Creates a task executor for (runtask, values);
                defaults to new_task_executor bound to handlers
            fallback_factory: Creates a fallback runner for (plan_id, values);
                defaults to new_fallback_runner bound to plans and handlers
            lineage: Ids of the plans run so far in this fallback chain,
                ending with the plan this runner belongs to
        """
        self._handlers = handlers
        self._plans = plans
        self._executor_factory = executor_factory or self._new_task_executor
        self._fallback_factory = fallback_factory or self._new_fallback_runner
        self._lineage = tuple(lineage)

        self._all_tasks: list[RunTask] = []
        self._output_task: Optional[RunTask] = None
        self._fallback_plan = ""

        # run scoped; reset at the start of every run()
        self._all_task_ids: set[str] = set()
        self._rollbacks: list[RollbackAction] = []

        self.state = RunnerState.IDLE

    @property
    def tasks(self) -> list[RunTask]:
        """Registered run tasks in execution order."""
        return list(self._all_tasks)

    @property
    def output_task(self) -> Optional[RunTask]:
        return self._output_task

    @property
    def fallback_plan(self) -> str:
        return self._fallback_plan

    @property
    def rollbacks(self) -> list[RollbackAction]:
        """Rollback actions planned by the current (or last) run."""
        return list(self._rollbacks)

    def add_run_task(self, runtask: Optional[RunTask]) -> None:
        """
        Add a run task to this group.

        Task identity is not checked here; it depends on the values
        the meta gets rendered with and is verified during run().

        Raises:
            InvalidTaskError: If the task is None or has no meta specs
        """
        if runtask is None:
            raise InvalidTaskError("nil runtask: failed to add run task")

        if not runtask.spec.meta:
            raise InvalidTaskError(
                f"failed to add run task: nil meta task specs found: task name '{runtask.name}'"
            )

        self._all_tasks.append(runtask)

    def set_output_task(self, runtask: Optional[RunTask]) -> None:
        """
        Set the run task used to render the output of this group.

        Raises:
            InvalidTaskError: If the task is None, or its meta or task specs are empty
        """
        if runtask is None:
            raise InvalidTaskError("failed to set output task: nil run task found")

        if not runtask.spec.meta:
            raise InvalidTaskError(
                f"failed to set output task: nil meta task specs found: task name '{runtask.name}'"
            )

        if not runtask.spec.task:
            raise InvalidTaskError(
                f"failed to set output task: nil task specs found: task name '{runtask.name}'"
            )

        self._output_task = runtask

    def set_fallback(self, plan_id: Optional[str]) -> None:
        """
        Set the plan to fall back to when the run fails with a version mismatch.

        An empty plan id means no fallback.
        """
        self._fallback_plan = (plan_id or "").strip()

    def _new_task_executor(self, runtask: RunTask, values: dict[str, Any]) -> TaskExecutor:
        return new_task_executor(runtask, values, self._handlers)

    def _new_fallback_runner(self, plan_id: str, values: dict[str, Any]) -> "FallbackRunner":
        from taskgroup.fallback import new_fallback_runner
        return new_fallback_runner(
            plan_id, values, plans=self._plans, handlers=self._handlers, lineage=self._lineage
        )

    def _reset(self) -> None:
        self._all_task_ids = set()
        self._rollbacks = []
        self.state = RunnerState.IDLE

    def _is_task_id_unique(self, identity: str) -> bool:
        """Check the identity is not yet used in this run and record it."""
        task_id = identity.lower()
        if task_id in self._all_task_ids:
            return False
        self._all_task_ids.add(task_id)
        return True

    def _plan_for_rollback(self, te: TaskExecutor, object_name: str) -> None:
        """
        Plan the rollback of the object(s) created by a task.

        This is just the planning; the actions only run if the group
        fails later. A task may create several objects, in which case
        object_name is a comma separated list of names.

        Raises:
            RollbackPlanError: If a compensating action cannot be derived
        """
        for name in object_name.split(","):
            action = te.as_rollback_instance(name.strip())
            if action is None:
                # this object does not need a rollback
                continue
            self._rollbacks.append(action)

    def _rollback(self) -> None:
        """Run the planned rollback actions in reverse order, best effort."""
        if not self._rollbacks:
            logger.warning("nothing to rollback: no rollback tasks were found")
            return

        logger.warning("will rollback previously executed runtask(s)")

        for action in reversed(self._rollbacks):
            try:
                action.execute_it()
            except Exception as e:
                # warn & continue with the remaining rollbacks
                logger.warning(f"failed to rollback run task: '{action}': error '{e}'")

    def _fallback(self, values: dict[str, Any]) -> Optional[bytes]:
        """Run the fallback plan with the current values."""
        from taskgroup.fallback import run_fallback

        logger.warning(f"task group runner will fallback to '{self._fallback_plan}'")
        fallback = self._fallback_factory(self._fallback_plan, values)
        return run_fallback(fallback)

    def _run_a_task(self, runtask: RunTask, values: dict[str, Any]) -> None:
        """
        Run one task, then plan its rollback.

        An execution error outranks a rollback planning error; the
        planning error is raised only when execution succeeded.
        """
        try:
            te = self._executor_factory(runtask, values)
        except Exception:
            logger.error(
                f"failed to initialize runtask executor: name '{runtask.name}': "
                f"meta yaml '{runtask.spec.meta}': template values in yaml '{to_yaml(values)}'"
            )
            raise

        identity = te.get_task_identity()
        if not self._is_task_id_unique(identity):
            raise DuplicateTaskIdentityError(identity)

        # only objects created by this execution may be rolled back
        clear_task_result(values, identity)

        err_execute: Optional[Exception] = None
        try:
            te.execute()
        except Exception as e:
            err_execute = e

        # the raw json doc is not needed anymore & must not clutter the logs
        redact_json_result(values)

        if err_execute is not None:
            logger.error(
                f"failed to execute runtask: name '{runtask.name}': meta yaml '{runtask.spec.meta}': "
                f"task yaml '{runtask.spec.task}': template values in yaml '{to_yaml(values)}': "
                f"error '{err_execute}'"
            )

        err_rollback: Optional[Exception] = None
        try:
            self._plan_for_rollback(
                te, get_nested_string(values, TASK_RESULT_KEY, identity, OBJECT_NAME_KEY)
            )
        except Exception as e:
            err_rollback = e
            logger.error(f"failed to plan for rollback: '{e}'")

        if err_execute is not None:
            raise err_execute
        if err_rollback is not None:
            raise err_rollback

    def _run_all_tasks(self, values: dict[str, Any]) -> None:
        """Run all tasks in registration order, stopping at the first error."""
        for runtask in self._all_tasks:
            self._run_a_task(runtask, values)

    def _run_output(self, values: dict[str, Any]) -> Optional[bytes]:
        """Render the output of this group once all tasks succeeded."""
        if self._output_task is None or not self._output_task.spec.task:
            return None

        te = self._executor_factory(self._output_task, values)
        try:
            return te.output()
        except Exception:
            logger.error(
                f"failed to execute output task: runtask '{self._output_task.name}': "
                f"template values in yaml '{to_yaml(values)}'"
            )
            raise

    def run(self, values: dict[str, Any]) -> Optional[bytes]:
        """
        Run all tasks; roll back, and possibly fall back, on failure.

        Args:
            values: Shared values; mutated by every task

        Returns:
            Output bytes of the output task, or None if none is set

        Raises:
            Exception: The error of the failed task, or whatever the
                fallback plan raised if a fallback was attempted
        """
        self._reset()
        self.state = RunnerState.EXECUTING

        err: Optional[Exception] = None
        try:
            self._run_all_tasks(values)
        except Exception as e:
            err = e

        try:
            if err is None:
                self.state = RunnerState.EXTRACTING_OUTPUT
                return self._run_output(values)

            self.state = RunnerState.FAILED
            logger.warning(f"{err}: failed to execute runtasks")

            self.state = RunnerState.ROLLING_BACK
            self._rollback()

            if is_version_mismatch(err) and self._fallback_plan:
                self.state = RunnerState.FALLING_BACK
                return self._fallback(values)

            raise err
        finally:
            self.state = RunnerState.DONE
            redact_json_result(values)
