"""
Handler interface and the no-op handler.

Handlers are responsible for executing TaskRequests dispatched by the
task executor. Each handler acts on one kind of object, e.g. a Service
or a Volume, and decides which actions it supports.
"""

from abc import ABC, abstractmethod
from typing import Any

from taskgroup.schemas import Action, TaskRequest


class Handler(ABC):
    """
    Abstract base class for kind handlers.

    Handlers receive TaskRequests and perform the requested action,
    returning the result as a dictionary. A result may carry an
    "objectName" entry naming the object(s) it created.
    """

    supported_actions: frozenset[Action] = frozenset(
        {Action.GET, Action.LIST, Action.PUT, Action.PATCH, Action.DELETE}
    )

    @abstractmethod
    def execute(self, request: TaskRequest) -> dict[str, Any]:
        """
        Execute a task request.

        Args:
            request: The TaskRequest containing operation details

        Returns:
            The execution result as a dictionary

        Raises:
            Exception: If execution fails
        """
        pass

    def supports(self, action: Action) -> bool:
        """Check if this handler can perform an action."""
        return action in self.supported_actions


class NoOpHandler(Handler):
    """
    Handler that acts on nothing, for dry runs (`--handlers noop`).

    Echoes the request back so tasks still yield an objectName.
    """

    def execute(self, request: TaskRequest) -> dict[str, Any]:
        """Describe the request instead of performing it."""
        return {
            "status": "noop",
            "kind": request.kind,
            "action": request.action.value,
            "objectName": request.object_name,
        }
