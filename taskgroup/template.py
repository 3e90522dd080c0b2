"""
Template rendering for run task specs.

Run task meta and task bodies are Jinja2 templates that render to YAML.
They are rendered against the shared values of the group run, so a task
can refer to anything an earlier task stored, e.g.:

    id: createsvc
    kind: Service
    action: put
    objectName: {{ Volume.owner }}-svc

Templates can pin the version of the values they understand:

    {{ verify_version(Volume.version, "0.7.0") }}

which raises VersionMismatchError when the versions differ.
"""

import json
from typing import Any

import yaml
from jinja2 import Environment, StrictUndefined
from jinja2 import TemplateError as JinjaTemplateError

from taskgroup.errors import TemplateError, VersionMismatchError, is_version_mismatch

__all__ = [
    "render",
    "render_yaml",
    "to_yaml",
    "verify_version",
    "is_version_mismatch",
]


def verify_version(current: Any, desired: Any) -> str:
    """Raise VersionMismatchError unless current matches desired."""
    current_s = str(current or "").strip()
    desired_s = str(desired or "").strip()
    if current_s != desired_s:
        raise VersionMismatchError(current_s, desired_s)
    return ""


def to_yaml(value: Any) -> str:
    """Dump a value as YAML, falling back to repr for non-serializable parts."""
    try:
        return yaml.safe_dump(_plain(value), sort_keys=False, default_flow_style=False)
    except yaml.YAMLError:
        return repr(value)


def _plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _default_if_empty(value: Any, default: Any) -> Any:
    return default if value in (None, "", [], {}) else value


def _create_environment() -> Environment:
    env = Environment(undefined=StrictUndefined, keep_trailing_newline=True)
    env.filters["to_yaml"] = to_yaml
    env.filters["to_json"] = lambda v: json.dumps(_plain(v))
    env.filters["default_if_empty"] = _default_if_empty
    env.globals["verify_version"] = verify_version
    return env


_env = _create_environment()


def render(template: str, values: dict[str, Any]) -> str:
    """
    Render a template string against values.

    Raises:
        VersionMismatchError: If the template verifies a version that differs
        TemplateError: If the template is invalid or refers to missing values
    """
    try:
        return _env.from_string(template).render(values)
    except VersionMismatchError:
        raise
    except JinjaTemplateError as e:
        raise TemplateError(f"failed to render template: {e}") from e


def render_yaml(template: str, values: dict[str, Any]) -> Any:
    """Render a template and parse the result as YAML."""
    rendered = render(template, values)
    try:
        return yaml.safe_load(rendered)
    except yaml.YAMLError as e:
        raise TemplateError(f"rendered template is not valid yaml: {e}") from e
