"""
TaskMeta schema - the rendered meta of a run task.

The meta decides the identity of a task within a group run, the kind
of object it acts on (which selects the handler) and the action to
perform. Example rendered meta:

    id: createsvc
    kind: Service
    action: put
    runNamespace: default
    objectName: pvc-123-svc
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

from taskgroup.errors import InvalidTaskError


class Action(str, Enum):
    """Actions a run task can perform against its kind."""
    GET = "get"
    LIST = "list"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    OUTPUT = "output"

    @property
    def creates(self) -> bool:
        """Only put creates objects, hence only put needs compensation."""
        return self is Action.PUT

    @classmethod
    def from_string(cls, value: str) -> "Action":
        """Parse an Action from its string value (case-insensitive)."""
        normalized = (value or "").strip().lower()
        for action in cls:
            if action.value == normalized:
                return action
        raise ValueError(f"Unknown action: {value}")


@dataclass(frozen=True)
class TaskMeta:
    """
    Rendered meta of a run task.

    Attributes:
        id: Identity of the task, unique (case-insensitive) within a group run
        action: Action to perform
        kind: Kind of object the action targets; selects the handler
        object_name: Name of the object acted on, comma separated if many
        namespace: Namespace the object lives in
        api_version: Optional api version of the kind
        disable: Disabled tasks are skipped during execution
        options: Free form options passed to the handler
    """
    id: str
    action: Action
    kind: str = ""
    object_name: str = ""
    namespace: str = ""
    api_version: str = ""
    disable: bool = False
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise InvalidTaskError("invalid task meta: missing 'id'")
        if self.action is not Action.OUTPUT and not self.kind:
            raise InvalidTaskError(f"invalid task meta '{self.id}': missing 'kind'")

    def with_action(self, action: Action, object_name: Optional[str] = None) -> "TaskMeta":
        """Return a copy of this meta targeting a different action."""
        return replace(
            self,
            action=action,
            object_name=self.object_name if object_name is None else object_name,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary using the template field names."""
        return {
            "id": self.id,
            "action": self.action.value,
            **({"kind": self.kind} if self.kind else {}),
            **({"objectName": self.object_name} if self.object_name else {}),
            **({"runNamespace": self.namespace} if self.namespace else {}),
            **({"apiVersion": self.api_version} if self.api_version else {}),
            **({"disable": True} if self.disable else {}),
            **({"options": self.options} if self.options else {}),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TaskMeta":
        """
        Build a TaskMeta from a rendered meta document.

        Raises:
            InvalidTaskError: If the document is not a mapping or is incomplete
        """
        if not isinstance(data, dict):
            raise InvalidTaskError(f"invalid task meta: expected a mapping, got {type(data).__name__}")

        try:
            action = Action.from_string(str(data.get("action", "")))
        except ValueError as e:
            raise InvalidTaskError(f"invalid task meta '{data.get('id', '')}': {e}") from e

        options = data.get("options") or {}
        if not isinstance(options, dict):
            raise InvalidTaskError(f"invalid task meta '{data.get('id', '')}': options must be a mapping")

        return cls(
            id=str(data.get("id") or ""),
            action=action,
            kind=str(data.get("kind") or ""),
            object_name=str(data.get("objectName") or ""),
            namespace=str(data.get("runNamespace") or ""),
            api_version=str(data.get("apiVersion") or ""),
            disable=bool(data.get("disable", False)),
            options=options,
        )
