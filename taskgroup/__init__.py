"""
taskgroup - Run groups of declarative tasks with rollback and fallback.

Run tasks execute in sequence against shared values. When a task fails,
everything the group created so far is rolled back in reverse order; a
version mismatch can switch the group to a fallback plan.
"""

__version__ = "0.1.0"


__all__ = [
    "TaskGroupRunner",
    "RunnerState",
    "RunTask",
    "RunTaskSpec",
    "PlanDef",
    "PlanRegistry",
    "HandlerRegistry",
    "run_plan",
    "TaskGroupConfig",
    "load_config",
    "get_taskgroup_home",
]

from .config import TaskGroupConfig, load_config, get_taskgroup_home
from .engine import run_plan
from .handlers import HandlerRegistry
from .registry import PlanRegistry
from .runner import RunnerState, TaskGroupRunner
from .schemas import PlanDef, RunTask, RunTaskSpec
