"""
Handlers module for taskgroup.

Handlers perform the action of a run task against one kind of object.
The task executor renders a run task into a TaskRequest and dispatches it
through a HandlerRegistry; rollback actions dispatch their delete requests
the same way.

Usage:
    from taskgroup.handlers import HandlerRegistry, InMemoryHandler

    registry = HandlerRegistry()
    registry.register("Service", InMemoryHandler())

    # Or use a factory
    registry = HandlerRegistry.create_memory()
"""

from taskgroup.handlers.base import Handler, NoOpHandler
from taskgroup.handlers.registry import HandlerRegistry
from taskgroup.handlers.memory import InMemoryHandler, ObjectStore

__all__ = [
    "Handler",
    "NoOpHandler",
    "HandlerRegistry",
    "InMemoryHandler",
    "ObjectStore",
]
