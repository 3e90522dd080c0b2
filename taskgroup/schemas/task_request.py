"""
TaskRequest schema - the dispatchable unit sent to handlers.

A TaskRequest captures everything a handler needs to act on one object:
the rendered meta fields plus the rendered task body.
"""

from dataclasses import dataclass, field
from typing import Any

from .task_meta import Action, TaskMeta


@dataclass(frozen=True)
class TaskRequest:
    """
    A request dispatched to the handler of a kind.

    Attributes:
        task_id: Identity of the task issuing the request
        kind: Kind of object; selects the handler
        action: Action to perform
        namespace: Namespace of the object
        object_name: Name of the object (may be empty for list/put)
        body: Rendered task body
        options: Free form options from the meta
    """
    task_id: str
    kind: str
    action: Action
    namespace: str = ""
    object_name: str = ""
    body: Any = None
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_meta(cls, meta: TaskMeta, body: Any = None) -> "TaskRequest":
        """Create a request from a rendered meta and body."""
        return cls(
            task_id=meta.id,
            kind=meta.kind,
            action=meta.action,
            namespace=meta.namespace,
            object_name=meta.object_name,
            body=body,
            options=dict(meta.options),
        )
