"""
CLI interface for taskgroup.

Provides commands to inspect, validate and run plans.

Plans are defined as YAML or JSON files under the definitions directory
(config `definitions_dir`, or --definitions-dir) and run through a
TaskGroupRunner against values given with --values and --set.
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
import yaml

from taskgroup import __version__


def _definitions_dir(ctx, override: Optional[Path]) -> Path:
    if override is not None:
        return override
    config = ctx.obj.get("config")
    if config is None:
        click.echo(f"✗ Config not loaded: {ctx.obj.get('config_error', 'Unknown error')}", err=True)
        click.echo("Run 'taskgroup init' or pass --definitions-dir.", err=True)
        raise SystemExit(1)
    return config.definitions_path


def _load_values(values_file: Optional[Path], overrides: tuple[str, ...]) -> dict:
    """Load values from a YAML/JSON file and apply key=value overrides."""
    from taskgroup.context import set_nested_field

    values: dict = {}
    if values_file is not None:
        try:
            with open(values_file) as f:
                values = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise click.UsageError(f"values file is not valid YAML: {values_file}: {e}")
        if not isinstance(values, dict):
            raise click.UsageError(f"values file must contain a mapping: {values_file}")

    for item in overrides:
        if "=" not in item:
            raise click.UsageError(f"--set expects key=value, got '{item}'")
        key, raw = item.split("=", 1)
        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise click.UsageError(f"--set value for '{key}' is not valid YAML: {e}")
        set_nested_field(values, value, *key.strip().split("."))

    return values


@click.group()
@click.version_option(version=__version__, prog_name="taskgroup")
@click.pass_context
def main(ctx):
    """
    taskgroup - Run groups of tasks with rollback and fallback.
    """
    from taskgroup.config import load_config
    from taskgroup.utils import setup_logging

    ctx.ensure_object(dict)
    try:
        config = load_config()
    except Exception as e:
        # commands that need config check ctx.obj.get("config")
        ctx.obj["config_error"] = str(e)
        setup_logging(log_level="WARNING", log_format="pretty")
        return

    ctx.obj["config"] = config
    setup_logging(
        log_file=config.get_log_file_path(),
        log_level=config.log_level,
        log_format=config.log_format,
        console_output=config.console_log,
    )


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Initialize taskgroup configuration."""
    from taskgroup.config import TaskGroupConfig, get_taskgroup_home

    home = get_taskgroup_home()
    home.mkdir(parents=True, exist_ok=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    default_cfg = TaskGroupConfig(
        definitions_dir=str(home / "plans"),
        log_file=str(home / "logs" / "taskgroup-{date}.log"),
    )
    cfg_path.write_text(yaml.safe_dump(default_cfg.to_dict(), sort_keys=False))
    (home / "plans").mkdir(exist_ok=True)

    click.echo(f"Initialized taskgroup config at {cfg_path}")


@main.command("run")
@click.argument("plan")
@click.option("--values", "values_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="YAML/JSON file with the values to run the plan with")
@click.option("--set", "overrides", multiple=True, help="Set a value, e.g. --set Volume.owner=pvc-1")
@click.option("--definitions-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Directory containing plan definitions")
@click.option("--handlers", "handler_mode", type=click.Choice(["memory", "noop"]), default="memory",
              show_default=True, help="Handlers the tasks dispatch to")
@click.pass_context
def run(ctx, plan: str, values_file, overrides, definitions_dir, handler_mode: str):
    """
    Run a plan by ID.

    PLAN is the plan ID (filename without extension).

    Examples:

        taskgroup run volume-create-0.7.0 --values volume.yaml

        taskgroup run volume-create-0.7.0 --set Volume.owner=pvc-1 --handlers noop
    """
    from taskgroup.engine import run_plan
    from taskgroup.handlers import HandlerRegistry
    from taskgroup.registry import PlanRegistry

    registry = PlanRegistry(_definitions_dir(ctx, definitions_dir))
    values = _load_values(values_file, overrides)
    handlers = HandlerRegistry.create_noop() if handler_mode == "noop" else HandlerRegistry.create_memory()

    try:
        plan_def = registry.load(plan)
        output = run_plan(plan_def, values, plans=registry, handlers=handlers)
    except Exception as e:
        click.echo(f"✗ {plan} failed: {e}", err=True)
        raise SystemExit(1)

    if output:
        click.echo(output.decode())
    click.echo(f"✓ {plan} completed", err=True)


@main.group("plans")
def plans_group():
    """Manage and inspect plans."""
    pass


@plans_group.command("list")
@click.option("--definitions-dir", type=click.Path(file_okay=False, path_type=Path))
@click.pass_context
def list_plans(ctx, definitions_dir):
    """List available plans."""
    from taskgroup.registry import PlanRegistry

    plan_ids = PlanRegistry(_definitions_dir(ctx, definitions_dir)).list_plans()
    if not plan_ids:
        click.echo("No plan definitions found.")
        return
    for plan_id in plan_ids:
        click.echo(plan_id)


@plans_group.command("show")
@click.argument("plan")
@click.option("--definitions-dir", type=click.Path(file_okay=False, path_type=Path))
@click.pass_context
def show_plan(ctx, plan: str, definitions_dir):
    """Show plan definition details."""
    from taskgroup.registry import PlanRegistry, PlanNotFoundError, PlanValidationError

    try:
        plan_def = PlanRegistry(_definitions_dir(ctx, definitions_dir)).load(plan)
    except (PlanNotFoundError, PlanValidationError) as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Plan: {plan_def.plan_id}")
    click.echo(f"Version: {plan_def.version or '-'}")
    click.echo(f"Tasks: {len(plan_def.tasks)}")
    click.echo(f"Output: {plan_def.output.name if plan_def.output else '-'}")
    click.echo(f"Fallback: {plan_def.fallback or '-'}")
    click.echo(f"Hash: {PlanRegistry.compute_hash(plan_def)}")
    click.echo()
    click.echo(json.dumps(plan_def.to_dict(), indent=2))


@plans_group.command("validate")
@click.argument("plan")
@click.option("--definitions-dir", type=click.Path(file_okay=False, path_type=Path))
@click.pass_context
def validate_plan(ctx, plan: str, definitions_dir):
    """Validate a plan and its fallback chain."""
    from taskgroup.engine import build_runner
    from taskgroup.registry import PlanRegistry

    registry = PlanRegistry(_definitions_dir(ctx, definitions_dir))

    try:
        chain = registry.fallback_chain(plan)
        for plan_id in chain:
            build_runner(registry.load(plan_id))
    except Exception as e:
        click.echo(f"✗ {plan} is invalid: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"✓ {plan} is valid ({' -> '.join(chain)})")


if __name__ == "__main__":
    sys.exit(main())
