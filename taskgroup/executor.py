"""
Task executor - runs a single run task against the shared values.

A TaskExecutor is bound to one RunTask and the values of the group run:
- construction renders the meta template and fails if it cannot be resolved
- execute() renders the task body and dispatches it to the kind's handler
- output() renders the task body as the output document of a group
- as_rollback_instance() derives the compensating action for one object

Execution flow for execute():
1. Skip if the meta disables the task
2. Render the task body (YAML) against the values
3. Dispatch a TaskRequest through the HandlerRegistry
4. Record the raw JSON result under values["JsonResult"]
5. Record objectName and the result under values["TaskResult"][<id>]
"""

import json
import logging
from typing import Any, Optional

from taskgroup import template
from taskgroup.context import (
    JSON_RESULT_KEY,
    OBJECT_NAME_KEY,
    RESULT_KEY,
    TASK_RESULT_KEY,
    set_nested_field,
)
from taskgroup.errors import (
    InvalidTaskError,
    RollbackPlanError,
    TaskExecutionError,
    TaskGroupError,
)
from taskgroup.handlers import HandlerRegistry
from taskgroup.schemas import Action, RunTask, TaskMeta, TaskRequest

logger = logging.getLogger(__name__)


class RollbackAction:
    """
    A compensating action for one object created by an executed task.

    Dispatches a delete of the object to the handler of its kind.
    """

    def __init__(self, task_name: str, meta: TaskMeta, handlers: HandlerRegistry):
        self.task_name = task_name
        self.meta = meta
        self._handlers = handlers

    def execute_it(self) -> dict[str, Any]:
        """Run the compensating action."""
        logger.info(f"rolling back: {self}")
        return self._handlers.dispatch(TaskRequest.from_meta(self.meta))

    def __str__(self) -> str:
        ns = f"{self.meta.namespace}/" if self.meta.namespace else ""
        return (
            f"rollback of '{self.task_name}': {self.meta.action.value} "
            f"{self.meta.kind} '{ns}{self.meta.object_name}'"
        )

    def __repr__(self) -> str:
        return (
            f"RollbackAction(task={self.task_name!r}, kind={self.meta.kind!r}, "
            f"action={self.meta.action.value!r}, object_name={self.meta.object_name!r})"
        )


class TaskExecutor:
    """
    Executes one run task against the shared values.

    Use new_task_executor() to construct; it renders the meta first.
    """

    def __init__(
        self,
        runtask: RunTask,
        meta: TaskMeta,
        values: dict[str, Any],
        handlers: HandlerRegistry,
    ):
        self.runtask = runtask
        self.meta = meta
        self._values = values
        self._handlers = handlers

    def get_task_identity(self) -> str:
        """Identity of the task as given by its rendered meta."""
        return self.meta.id

    def execute(self) -> None:
        """
        Execute the task.

        Raises:
            TaskGroupError: Template and handler errors of this package, unchanged
            TaskExecutionError: Any other failure while executing
        """
        if self.meta.disable:
            logger.info(f"skipping disabled run task '{self.runtask.name}'")
            return

        if self.meta.action == Action.OUTPUT:
            raise TaskExecutionError(
                self.runtask.name, "output tasks cannot be executed, use them as output task"
            )

        body = self._render_task()
        request = TaskRequest.from_meta(self.meta, body)

        try:
            result = self._handlers.dispatch(request)
        except TaskGroupError:
            raise
        except KeyError as e:
            raise TaskExecutionError(self.runtask.name, f"no handler for kind '{self.meta.kind}'") from e
        except Exception as e:
            raise TaskExecutionError(self.runtask.name, str(e)) from e

        self._record_result(result or {})

    def output(self) -> bytes:
        """
        Render the task body as the output document.

        Returns:
            The rendered document serialized as JSON bytes
        """
        doc = self._render_task()
        return json.dumps(doc, default=str).encode()

    def as_rollback_instance(self, object_name: str) -> Optional[RollbackAction]:
        """
        Derive the compensating action for an object created by this task.

        Returns:
            RollbackAction, or None if the object needs no compensation

        Raises:
            RollbackPlanError: If the object needs compensation but none can be built
        """
        if not object_name or self.meta.disable or not self.meta.action.creates:
            return None

        try:
            handler = self._handlers.get(self.meta.kind)
        except KeyError as e:
            raise RollbackPlanError(
                f"failed to plan rollback of '{self.runtask.name}': no handler for kind '{self.meta.kind}'"
            ) from e

        if not handler.supports(Action.DELETE):
            raise RollbackPlanError(
                f"failed to plan rollback of '{self.runtask.name}': "
                f"kind '{self.meta.kind}' does not support delete"
            )

        return RollbackAction(
            self.runtask.name,
            self.meta.with_action(Action.DELETE, object_name=object_name),
            self._handlers,
        )

    def _render_task(self) -> Any:
        if not self.runtask.spec.task:
            return None
        return template.render_yaml(self.runtask.spec.task, self._values)

    def _record_result(self, result: dict[str, Any]) -> None:
        self._values[JSON_RESULT_KEY] = json.dumps(result, default=str).encode()

        object_name = result.get(OBJECT_NAME_KEY) or self.meta.object_name
        set_nested_field(self._values, object_name, TASK_RESULT_KEY, self.meta.id, OBJECT_NAME_KEY)
        set_nested_field(self._values, result, TASK_RESULT_KEY, self.meta.id, RESULT_KEY)


def new_task_executor(
    runtask: RunTask,
    values: dict[str, Any],
    handlers: Optional[HandlerRegistry] = None,
) -> TaskExecutor:
    """
    Create a task executor for a run task.

    Args:
        runtask: The run task to execute
        values: Shared values of the group run
        handlers: HandlerRegistry for dispatch (defaults to no-op handlers)

    Raises:
        InvalidTaskError: If the run task or its rendered meta is invalid
        TemplateError: If the meta template cannot be rendered
    """
    if runtask is None or not runtask.spec.meta:
        raise InvalidTaskError("failed to create task executor: nil run task or meta specs")

    meta = TaskMeta.from_dict(template.render_yaml(runtask.spec.meta, values))
    return TaskExecutor(runtask, meta, values, handlers or HandlerRegistry.create_noop())
