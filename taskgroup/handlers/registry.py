"""
Handler Registry for dispatching task requests to kind handlers.

The registry maps object kinds to their corresponding Handler
implementations, providing a central dispatch mechanism for the task
executor and for rollback actions.
"""

from typing import Any

from taskgroup.handlers.base import Handler, NoOpHandler
from taskgroup.schemas import TaskRequest


class HandlerRegistry:
    """
    Registry for handler dispatch by kind.

    Usage:
        registry = HandlerRegistry()
        registry.register("Service", ServiceHandler(client))

        # Dispatch a request
        result = registry.dispatch(request)

        # Or use a factory
        registry = HandlerRegistry.create_memory(["Service", "Volume"])
    """

    def __init__(self, default: Handler | None = None) -> None:
        """
        Initialize an empty handler registry.

        Args:
            default: Handler used for kinds with no registered handler
        """
        self._handlers: dict[str, Handler] = {}
        self._default = default

    def register(self, kind: str, handler: Handler) -> None:
        """
        Register a handler for a kind.

        Args:
            kind: Object kind (e.g. Service, Volume)
            handler: Handler instance for this kind
        """
        self._handlers[kind] = handler

    def get(self, kind: str) -> Handler:
        """
        Get handler for a kind.

        Raises:
            KeyError: If no handler registered for this kind and no default
        """
        if kind in self._handlers:
            return self._handlers[kind]
        if self._default is not None:
            return self._default
        registered = list(self._handlers.keys())
        raise KeyError(
            f"No handler registered for kind: {kind}. "
            f"Registered: {registered}"
        )

    def has(self, kind: str) -> bool:
        """Check if a handler is registered for a kind."""
        return kind in self._handlers

    def list_kinds(self) -> list[str]:
        """List all registered kinds."""
        return list(self._handlers.keys())

    def dispatch(self, request: TaskRequest) -> dict[str, Any]:
        """
        Dispatch a request to the handler of its kind.

        Raises:
            KeyError: If no handler registered for the request's kind
        """
        return self.get(request.kind).execute(request)

    @classmethod
    def create_noop(cls) -> "HandlerRegistry":
        """
        Create a registry that answers every kind with a NoOpHandler.

        Used for dry runs and as the default when no handlers are given.
        """
        return cls(default=NoOpHandler())

    @classmethod
    def create_memory(cls, kinds: list[str] | None = None) -> "HandlerRegistry":
        """
        Create a registry backed by an in-memory object store.

        Listed kinds are registered up front; any other kind is served
        by the same store.
        """
        from taskgroup.handlers.memory import InMemoryHandler, ObjectStore

        store = ObjectStore()
        registry = cls(default=InMemoryHandler(store))
        for kind in kinds or []:
            registry.register(kind, InMemoryHandler(store))
        return registry
