"""
Fallback runner - run an alternate plan when a group fails.

A group runner falls back when its run fails with a version mismatch and
a fallback plan is configured. The fallback plan runs with the values as
left by the failed run (already mutated and redacted) and its outcome
replaces the outcome of the failed run.

Each runner falls back at most once, but the fallback plan may name a
fallback of its own. The ids of the plans already run are carried along
so a chain that comes back to one of them fails instead of looping.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING

from taskgroup.errors import FallbackError
from taskgroup.schemas import PlanDef

if TYPE_CHECKING:
    from taskgroup.handlers import HandlerRegistry
    from taskgroup.registry import PlanRegistry

logger = logging.getLogger(__name__)


@dataclass
class FallbackRunner:
    """
    A plan ready to be run as a fallback.

    Attributes:
        plan_def: The fallback plan
        values: Values to run the plan with
        plans: PlanRegistry used if the fallback plan falls back again
        handlers: HandlerRegistry the plan's tasks dispatch to
        lineage: Ids of the plans that already ran before this one
    """
    plan_def: PlanDef
    values: dict[str, Any]
    plans: Optional["PlanRegistry"] = None
    handlers: Optional["HandlerRegistry"] = None
    lineage: tuple[str, ...] = ()


def new_fallback_runner(
    plan_id: str,
    values: dict[str, Any],
    plans: Optional["PlanRegistry"] = None,
    handlers: Optional["HandlerRegistry"] = None,
    lineage: tuple[str, ...] = (),
) -> FallbackRunner:
    """
    Create a fallback runner for a plan.

    Raises:
        FallbackError: If the plan id is empty, no registry is available,
            or the plan already ran earlier in the chain
        PlanNotFoundError: If the plan does not exist
    """
    plan_id = (plan_id or "").strip()
    if not plan_id:
        raise FallbackError("failed to create fallback runner: empty plan id")
    if plan_id in lineage:
        raise FallbackError(
            f"failed to create fallback runner: fallback cycle: {' -> '.join((*lineage, plan_id))}"
        )
    if plans is None:
        raise FallbackError(f"failed to create fallback runner for '{plan_id}': no plan registry")

    return FallbackRunner(
        plan_def=plans.load(plan_id),
        values=values,
        plans=plans,
        handlers=handlers,
        lineage=tuple(lineage),
    )


def run_fallback(fallback: FallbackRunner) -> Optional[bytes]:
    """Run the fallback plan and return its output."""
    from taskgroup.engine import run_plan

    logger.info(f"running fallback plan '{fallback.plan_def.plan_id}'")
    return run_plan(
        fallback.plan_def,
        fallback.values,
        plans=fallback.plans,
        handlers=fallback.handlers,
        lineage=fallback.lineage,
    )
