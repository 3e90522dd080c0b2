"""
RunTask schema - a named, declarative unit of work.

A RunTask carries two templates:
- meta: required; renders to the TaskMeta that identifies and routes the task
- task: the task body; empty for tasks that only describe metadata

Both are rendered against the shared values at execution time, so a
RunTask itself is immutable and owned by the caller.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RunTaskSpec:
    """
    Templates of a run task.

    Attributes:
        meta: Meta template (YAML once rendered)
        task: Task body template (YAML once rendered), may be empty
    """
    meta: str
    task: str = ""


@dataclass(frozen=True)
class RunTask:
    """
    A run task registered with a group runner.

    Attributes:
        name: Human readable name, used in logs and error messages
        spec: The meta and task templates
    """
    name: str
    spec: RunTaskSpec = field(default_factory=lambda: RunTaskSpec(meta=""))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON/YAML output."""
        return {
            "name": self.name,
            "meta": self.spec.meta,
            **({"task": self.spec.task} if self.spec.task else {}),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunTask":
        """Deserialize from dictionary."""
        return cls(
            name=data.get("name", ""),
            spec=RunTaskSpec(
                meta=data.get("meta") or "",
                task=data.get("task") or "",
            ),
        )
