"""
In-memory handler backed by a namespaced object store.

Stores objects per (kind, namespace, name). Used for local runs of plans
(`taskgroup run --handlers memory`) and in tests, where it behaves like a small
API server: put fails on existing objects, delete fails on missing ones.
"""

import copy
import logging
from typing import Any

from taskgroup.errors import HandlerError, ObjectExistsError, ObjectNotFoundError
from taskgroup.handlers.base import Handler
from taskgroup.schemas import Action, TaskRequest

logger = logging.getLogger(__name__)


class ObjectStore:
    """Objects keyed by kind, then namespace, then name."""

    def __init__(self) -> None:
        self._objects: dict[str, dict[str, dict[str, Any]]] = {}

    def _bucket(self, kind: str, namespace: str) -> dict[str, Any]:
        return self._objects.setdefault(kind, {}).setdefault(namespace, {})

    def get(self, kind: str, namespace: str, name: str) -> Any:
        bucket = self._bucket(kind, namespace)
        if name not in bucket:
            raise ObjectNotFoundError(f"{kind} '{namespace}/{name}' not found")
        return copy.deepcopy(bucket[name])

    def list(self, kind: str, namespace: str) -> dict[str, Any]:
        return copy.deepcopy(self._bucket(kind, namespace))

    def create(self, kind: str, namespace: str, name: str, obj: Any) -> None:
        bucket = self._bucket(kind, namespace)
        if name in bucket:
            raise ObjectExistsError(f"{kind} '{namespace}/{name}' already exists")
        bucket[name] = copy.deepcopy(obj)

    def update(self, kind: str, namespace: str, name: str, obj: Any) -> None:
        self._bucket(kind, namespace)[name] = copy.deepcopy(obj)

    def delete(self, kind: str, namespace: str, name: str) -> None:
        bucket = self._bucket(kind, namespace)
        if name not in bucket:
            raise ObjectNotFoundError(f"{kind} '{namespace}/{name}' not found")
        del bucket[name]

    def exists(self, kind: str, namespace: str, name: str) -> bool:
        return name in self._bucket(kind, namespace)


class InMemoryHandler(Handler):
    """
    Handler that acts on an ObjectStore.

    Results carry "objectName" so the group runner can plan rollback
    for objects created by put.
    """

    def __init__(self, store: ObjectStore | None = None):
        self.store = store or ObjectStore()

    def execute(self, request: TaskRequest) -> dict[str, Any]:
        """Perform the request's action against the store."""
        kind, ns = request.kind, request.namespace

        if request.action == Action.GET:
            obj = self.store.get(kind, ns, request.object_name)
            return {"objectName": request.object_name, "object": obj}

        if request.action == Action.LIST:
            objects = self.store.list(kind, ns)
            return {"objectName": ",".join(objects), "items": list(objects.values())}

        if request.action == Action.PUT:
            name = request.object_name or _name_from_body(request.body)
            if not name:
                raise HandlerError(f"cannot put {kind}: no object name in meta or body")
            self.store.create(kind, ns, name, request.body)
            logger.debug(f"created {kind} '{ns}/{name}'")
            return {"objectName": name, "object": request.body}

        if request.action == Action.PATCH:
            current = self.store.get(kind, ns, request.object_name)
            if isinstance(current, dict) and isinstance(request.body, dict):
                current.update(request.body)
            else:
                current = request.body
            self.store.update(kind, ns, request.object_name, current)
            return {"objectName": request.object_name, "object": current}

        if request.action == Action.DELETE:
            self.store.delete(kind, ns, request.object_name)
            logger.debug(f"deleted {kind} '{ns}/{request.object_name}'")
            return {"objectName": request.object_name, "deleted": True}

        raise HandlerError(f"unsupported action '{request.action.value}' for kind {kind}")


def _name_from_body(body: Any) -> str:
    if isinstance(body, dict):
        metadata = body.get("metadata")
        if isinstance(metadata, dict) and metadata.get("name"):
            return str(metadata["name"])
        if body.get("name"):
            return str(body["name"])
    return ""
