"""
Error classes for taskgroup execution.

These error types let the group runner decide how a failure is handled:
- InvalidTaskError: Configuration error at registration time
- DuplicateTaskIdentityError: Two tasks in one run resolved to the same id
- TaskExecutionError: A task failed while executing
- RollbackPlanError: Compensation could not be planned for a task
- VersionMismatchError: Recoverable class that makes a plan fall back

Error handling contract:
- Errors are exceptions, not values
- Messages stay concise; diagnostic detail goes to the log
"""


class TaskGroupError(Exception):
    """Base exception for taskgroup."""
    pass


class InvalidTaskError(TaskGroupError):
    """
    Run task is missing required specs.

    Raised when adding a run task or setting the output task with
    a nil task, empty meta or (for output tasks) empty task body.
    """
    pass


class DuplicateTaskIdentityError(TaskGroupError):
    """Two tasks in a single group run share the same identity."""

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(
            "failed to execute the run task: multiple tasks having same identity "
            f"is not allowed in a group run: duplicate id '{identity}'"
        )


class TaskExecutionError(TaskGroupError):
    """Raised when a run task fails to execute."""

    def __init__(self, task_name: str, message: str):
        self.task_name = task_name
        super().__init__(f"failed to execute run task '{task_name}': {message}")


class RollbackPlanError(TaskGroupError):
    """Raised when a compensating action cannot be derived for a task."""
    pass


class TemplateError(TaskGroupError):
    """Raised when a run task template cannot be rendered."""
    pass


class VersionMismatchError(TemplateError):
    """
    Version mismatch - eligible for fallback.

    Raised by templates that verify the version of the values they
    run against. A group runner with a fallback plan configured will
    switch to that plan when its run fails with this error.
    """

    def __init__(self, current: str, desired: str):
        self.current = current
        self.desired = desired
        super().__init__(f"version mismatch: current '{current}': desired '{desired}'")


class FallbackError(TaskGroupError):
    """Raised when a fallback plan cannot be set up."""
    pass


class HandlerError(TaskGroupError):
    """Raised by handlers when an operation against a kind fails."""
    pass


class ObjectNotFoundError(HandlerError):
    """Object does not exist."""
    pass


class ObjectExistsError(HandlerError):
    """Object already exists."""
    pass


def is_version_mismatch(err: BaseException | None) -> bool:
    """
    Check if an error belongs to the version mismatch class.

    The error's cause chain is walked, so a mismatch wrapped by
    another exception still qualifies.
    """
    seen = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, VersionMismatchError):
            return True
        seen.add(id(err))
        err = err.__cause__
    return False
