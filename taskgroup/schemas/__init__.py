"""
taskgroup.schemas - Schema definitions for task groups.

PlanDef -> RunTask -> TaskMeta -> TaskRequest

Lifecycle:
1. PlanDef: Static, version-controlled list of run tasks plus output and fallback
2. RunTask: Meta and task templates, registered with a group runner
3. TaskMeta: Meta template rendered against the shared values
4. TaskRequest: Dispatchable unit sent to the handler of a kind
"""

from .run_task import RunTask, RunTaskSpec
from .task_meta import Action, TaskMeta
from .task_request import TaskRequest
from .plan_def import PlanDef, PlanDefError

__all__ = [
    "RunTask",
    "RunTaskSpec",
    "Action",
    "TaskMeta",
    "TaskRequest",
    "PlanDef",
    "PlanDefError",
]
