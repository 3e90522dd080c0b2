"""
Plan engine - run a PlanDef through a TaskGroupRunner.

Used by the CLI and by fallback runners to turn a declarative plan into
a configured group runner.
"""

import logging
from typing import Any, Optional, TYPE_CHECKING

from taskgroup.runner import TaskGroupRunner
from taskgroup.schemas import PlanDef

if TYPE_CHECKING:
    from taskgroup.handlers import HandlerRegistry
    from taskgroup.registry import PlanRegistry

logger = logging.getLogger(__name__)


def build_runner(
    plan_def: PlanDef,
    plans: Optional["PlanRegistry"] = None,
    handlers: Optional["HandlerRegistry"] = None,
    lineage: tuple[str, ...] = (),
) -> TaskGroupRunner:
    """
    Create a group runner configured with the tasks of a plan.

    Args:
        lineage: Ids of the plans that ran before this one in a fallback chain

    Raises:
        InvalidTaskError: If a task or the output task of the plan is invalid
    """
    runner = TaskGroupRunner(handlers=handlers, plans=plans, lineage=(*lineage, plan_def.plan_id))
    for runtask in plan_def.tasks:
        runner.add_run_task(runtask)
    if plan_def.output is not None:
        runner.set_output_task(plan_def.output)
    runner.set_fallback(plan_def.fallback)
    return runner


def run_plan(
    plan_def: PlanDef,
    values: dict[str, Any],
    plans: Optional["PlanRegistry"] = None,
    handlers: Optional["HandlerRegistry"] = None,
    lineage: tuple[str, ...] = (),
) -> Optional[bytes]:
    """
    Run a plan against values.

    Args:
        plan_def: The plan to run
        values: Shared values; mutated by the run
        plans: PlanRegistry used to resolve the fallback plan
        handlers: HandlerRegistry the tasks dispatch to
        lineage: Ids of the plans that ran before this one in a fallback chain

    Returns:
        Output bytes, or None if the plan has no output task
    """
    logger.info(f"Starting plan: {plan_def.plan_id} ({len(plan_def.tasks)} tasks)", extra={"plan_id": plan_def.plan_id})
    runner = build_runner(plan_def, plans=plans, handlers=handlers, lineage=lineage)
    output = runner.run(values)
    logger.info(f"Plan completed: {plan_def.plan_id}", extra={"plan_id": plan_def.plan_id})
    return output
