"""
PlanDef schema - the declarative definition of a task group.

A plan lists run tasks in execution order, optionally an output task that
renders the result of the whole group, and optionally a fallback plan to
switch to when the group fails with a version mismatch.

Example (YAML):

    plan_id: volume-create-0.7.0
    version: 0.7.0
    fallback: volume-create-0.6.0
    tasks:
      - name: create-service
        meta: |
          id: createsvc
          kind: Service
          action: put
          objectName: {{ Volume.owner }}-svc
        task: |
          port: 3260
    output:
      name: volume-output
      meta: |
        id: output
        action: output
      task: |
        service: {{ TaskResult.createsvc.objectName }}
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .run_task import RunTask


class PlanDefError(Exception):
    """Raised when a plan definition is malformed."""
    pass


@dataclass(frozen=True)
class PlanDef:
    """
    A plan definition.

    Attributes:
        plan_id: Unique identifier of the plan
        version: Version of the plan definition
        tasks: Run tasks in execution order
        output: Optional output task
        fallback: Plan id to fall back to on version mismatch ("" for none)
        description: Free form description
    """
    plan_id: str
    version: str = ""
    tasks: tuple[RunTask, ...] = field(default_factory=tuple)
    output: Optional[RunTask] = None
    fallback: str = ""
    description: str = ""

    def __post_init__(self):
        names = [t.name for t in self.tasks]
        if len(names) != len(set(names)):
            duplicates = sorted({n for n in names if names.count(n) > 1})
            raise PlanDefError(f"Duplicate task names in plan '{self.plan_id}': {duplicates}")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON/YAML output."""
        return {
            "plan_id": self.plan_id,
            "version": self.version,
            **({"description": self.description} if self.description else {}),
            **({"fallback": self.fallback} if self.fallback else {}),
            "tasks": [t.to_dict() for t in self.tasks],
            **({"output": self.output.to_dict()} if self.output else {}),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlanDef":
        """Deserialize from dictionary."""
        if not isinstance(data, dict):
            raise PlanDefError("plan definition must be a mapping")
        if not data.get("plan_id"):
            raise PlanDefError("plan definition is missing 'plan_id'")

        output_data = data.get("output")
        return cls(
            plan_id=data["plan_id"],
            version=str(data.get("version", "")),
            tasks=tuple(RunTask.from_dict(t) for t in data.get("tasks") or []),
            output=RunTask.from_dict(output_data) if output_data else None,
            fallback=str(data.get("fallback") or "").strip(),
            description=data.get("description", ""),
        )
