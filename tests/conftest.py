import logging
from pathlib import Path

import pytest
import yaml

from taskgroup.handlers import HandlerRegistry
from taskgroup.schemas import RunTask, RunTaskSpec


@pytest.fixture(autouse=True)
def reset_taskgroup_logger():
    # the CLI configures the "taskgroup" logger; keep tests independent of it
    yield
    logger = logging.getLogger("taskgroup")
    logger.handlers = []
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def memory_handlers() -> HandlerRegistry:
    return HandlerRegistry.create_memory()


@pytest.fixture
def volume_values() -> dict:
    return {
        "Volume": {
            "owner": "pvc-1",
            "namespace": "default",
            "version": "0.7.0",
        },
    }


def make_task(name: str, meta: str, task: str = "") -> RunTask:
    return RunTask(name=name, spec=RunTaskSpec(meta=meta, task=task))


def write_plan(defs_dir: Path, data: dict, subdir: str = "") -> Path:
    target = defs_dir / subdir if subdir else defs_dir
    target.mkdir(parents=True, exist_ok=True)
    path = target / f"{data['plan_id']}.yaml"
    path.write_text(yaml.safe_dump(data, sort_keys=False))
    return path


VOLUME_PLAN = {
    "plan_id": "volume-create-0.7.0",
    "version": "0.7.0",
    "fallback": "volume-create-0.6.0",
    "tasks": [
        {
            "name": "create-service",
            "meta": (
                '{{ verify_version(Volume.version, "0.7.0") }}\n'
                "id: createsvc\n"
                "kind: Service\n"
                "action: put\n"
                "runNamespace: {{ Volume.namespace }}\n"
                "objectName: {{ Volume.owner }}-svc\n"
            ),
            "task": "port: 3260\n",
        },
        {
            "name": "create-replica",
            "meta": (
                "id: createrep\n"
                "kind: Replica\n"
                "action: put\n"
                "runNamespace: {{ Volume.namespace }}\n"
            ),
            "task": "metadata:\n  name: {{ Volume.owner }}-rep\n",
        },
    ],
    "output": {
        "name": "volume-output",
        "meta": "id: output\naction: output\n",
        "task": (
            "volume: {{ Volume.owner }}\n"
            "service: {{ TaskResult.createsvc.objectName }}\n"
            "replica: {{ TaskResult.createrep.objectName }}\n"
        ),
    },
}

LEGACY_VOLUME_PLAN = {
    "plan_id": "volume-create-0.6.0",
    "version": "0.6.0",
    "tasks": [
        {
            "name": "create-legacy-service",
            "meta": (
                "id: createlegacysvc\n"
                "kind: Service\n"
                "action: put\n"
                "runNamespace: {{ Volume.namespace }}\n"
                "objectName: {{ Volume.owner }}-legacy-svc\n"
            ),
            "task": "port: 3260\n",
        },
    ],
    "output": {
        "name": "volume-output",
        "meta": "id: output\naction: output\n",
        "task": "volume: {{ Volume.owner }}\nservice: {{ TaskResult.createlegacysvc.objectName }}\n",
    },
}


@pytest.fixture
def plans_dir(tmp_path) -> Path:
    defs_dir = tmp_path / "plans"
    write_plan(defs_dir, VOLUME_PLAN, subdir="volume")
    write_plan(defs_dir, LEGACY_VOLUME_PLAN, subdir="volume")
    return defs_dir
