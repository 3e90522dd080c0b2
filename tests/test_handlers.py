"""Tests for the handlers module.

Tests cover:
- Handler base class and NoOpHandler
- InMemoryHandler actions against the ObjectStore
- HandlerRegistry dispatch and factory methods
"""

import pytest

from taskgroup.errors import HandlerError, ObjectExistsError, ObjectNotFoundError
from taskgroup.handlers import (
    Handler,
    HandlerRegistry,
    InMemoryHandler,
    NoOpHandler,
    ObjectStore,
)
from taskgroup.schemas import Action, TaskRequest


def _request(action: Action, name: str = "", body=None, kind: str = "Service") -> TaskRequest:
    return TaskRequest(task_id="t", kind=kind, action=action, namespace="default", object_name=name, body=body)


# -----------------------------------------------------------------------------
# Base Handler Tests
# -----------------------------------------------------------------------------


class TestNoOpHandler:
    """Tests for NoOpHandler."""

    def test_is_handler(self):
        assert isinstance(NoOpHandler(), Handler)

    def test_execute_returns_noop_result(self):
        result = NoOpHandler().execute(_request(Action.PUT, "pvc-1-svc"))

        assert result == {
            "status": "noop",
            "kind": "Service",
            "action": "put",
            "objectName": "pvc-1-svc",
        }

    def test_supports_crud_but_not_output(self):
        handler = NoOpHandler()
        assert handler.supports(Action.DELETE)
        assert not handler.supports(Action.OUTPUT)

    def test_handler_is_abstract(self):
        with pytest.raises(TypeError):
            Handler()


# -----------------------------------------------------------------------------
# InMemoryHandler Tests
# -----------------------------------------------------------------------------


class TestInMemoryHandler:
    """Tests for InMemoryHandler."""

    @pytest.fixture
    def handler(self):
        return InMemoryHandler()

    def test_put_and_get(self, handler):
        result = handler.execute(_request(Action.PUT, "svc", {"port": 3260}))
        assert result == {"objectName": "svc", "object": {"port": 3260}}

        result = handler.execute(_request(Action.GET, "svc"))
        assert result["object"] == {"port": 3260}

    def test_put_name_from_body_metadata(self, handler):
        result = handler.execute(_request(Action.PUT, body={"metadata": {"name": "rep-1"}}))
        assert result["objectName"] == "rep-1"
        assert handler.store.exists("Service", "default", "rep-1")

    def test_put_name_from_body(self, handler):
        assert handler.execute(_request(Action.PUT, body={"name": "rep-2"}))["objectName"] == "rep-2"

    def test_put_without_name(self, handler):
        with pytest.raises(HandlerError, match="no object name"):
            handler.execute(_request(Action.PUT, body={"port": 1}))

    def test_put_existing(self, handler):
        handler.execute(_request(Action.PUT, "svc"))
        with pytest.raises(ObjectExistsError):
            handler.execute(_request(Action.PUT, "svc"))

    def test_get_missing(self, handler):
        with pytest.raises(ObjectNotFoundError):
            handler.execute(_request(Action.GET, "svc"))

    def test_list_joins_names(self, handler):
        handler.execute(_request(Action.PUT, "a", {"n": 1}))
        handler.execute(_request(Action.PUT, "b", {"n": 2}))

        result = handler.execute(_request(Action.LIST))

        assert result["objectName"] == "a,b"
        assert result["items"] == [{"n": 1}, {"n": 2}]

    def test_patch_merges(self, handler):
        handler.execute(_request(Action.PUT, "svc", {"port": 1, "type": "iscsi"}))
        result = handler.execute(_request(Action.PATCH, "svc", {"port": 3260}))
        assert result["object"] == {"port": 3260, "type": "iscsi"}

    def test_delete(self, handler):
        handler.execute(_request(Action.PUT, "svc"))
        result = handler.execute(_request(Action.DELETE, "svc"))

        assert result == {"objectName": "svc", "deleted": True}
        assert not handler.store.exists("Service", "default", "svc")

    def test_delete_missing(self, handler):
        with pytest.raises(ObjectNotFoundError):
            handler.execute(_request(Action.DELETE, "svc"))

    def test_output_is_unsupported(self, handler):
        with pytest.raises(HandlerError, match="unsupported action 'output'"):
            handler.execute(_request(Action.OUTPUT))

    def test_kinds_are_separate(self, handler):
        handler.execute(_request(Action.PUT, "x", kind="Service"))
        handler.execute(_request(Action.PUT, "x", kind="Replica"))
        assert handler.store.exists("Replica", "default", "x")


class TestObjectStore:
    def test_get_returns_copy(self):
        store = ObjectStore()
        store.create("Service", "ns", "a", {"port": 1})
        store.get("Service", "ns", "a")["port"] = 2
        assert store.get("Service", "ns", "a") == {"port": 1}


# -----------------------------------------------------------------------------
# HandlerRegistry Tests
# -----------------------------------------------------------------------------


class TestHandlerRegistry:
    """Tests for HandlerRegistry."""

    def test_register_and_get(self):
        registry = HandlerRegistry()
        handler = NoOpHandler()
        registry.register("Service", handler)

        assert registry.get("Service") is handler
        assert registry.has("Service")
        assert registry.list_kinds() == ["Service"]

    def test_get_unregistered(self):
        with pytest.raises(KeyError, match="No handler registered for kind: Volume"):
            HandlerRegistry().get("Volume")

    def test_default_handler(self):
        default = NoOpHandler()
        registry = HandlerRegistry(default=default)

        assert registry.get("Anything") is default
        assert not registry.has("Anything")

    def test_dispatch(self):
        registry = HandlerRegistry.create_noop()
        result = registry.dispatch(_request(Action.GET, "svc"))
        assert result["status"] == "noop"

    def test_create_memory_shares_store(self):
        registry = HandlerRegistry.create_memory(["Service"])

        registry.dispatch(_request(Action.PUT, "svc"))

        assert registry.list_kinds() == ["Service"]
        default = registry.get("Replica")
        assert default.store.exists("Service", "default", "svc")
