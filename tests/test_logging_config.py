import asyncio
import json
import logging

import pytest
import structlog
from structlog.testing import capture_logs

from commhub import CommunicationHub, EventRouter, HubContext
from commhub.logging_config import configure_from_context, configure_logging, get_logger
from commhub.utils import generate_uid


class Module:
    def handle(self, event, payload):
        pass


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


def test_configure_logging_sets_level():
    configure_logging(level="WARNING", colors=False)

    assert logging.getLogger().level == logging.WARNING


def test_configure_logging_to_file(tmp_path):
    log_file = tmp_path / "logs" / "commhub.log"
    configure_logging(level="INFO", json_output=True, log_file=log_file)

    get_logger("commhub.test").info("hub_started", modules=0)

    assert log_file.exists()


def test_configure_from_context_debug():
    configure_from_context(HubContext(debug=True, log_level="ERROR"))

    assert logging.getLogger().level == logging.DEBUG


def test_debug_logs_operational_events():
    with capture_logs() as logs:
        router = EventRouter(debug=True)
        hub = CommunicationHub(router=router, debug=True)
        hub.register_module(Module(), {"foo": "handle"})
        hub.emit("foo", 1)

    events = [entry["event"] for entry in logs]
    assert "router_attached" in events
    assert "interceptor_created" in events
    assert "module_registered" in events
    assert "route_not_found" in events

    miss = next(entry for entry in logs if entry["event"] == "route_not_found")
    assert miss["component"] == "[EventRouter]"
    assert miss["event_name"] == "foo"


def test_router_not_attached_is_logged():
    with capture_logs() as logs:
        hub = CommunicationHub(debug=True)
        hub.register_module(Module(), {"foo": "handle"})
        hub.emit("foo")

    fallback = [entry for entry in logs if entry["event"] == "router_not_attached"]
    assert len(fallback) == 1
    assert fallback[0]["component"] == "[CommunicationHub]"


def test_quiet_without_debug():
    with capture_logs() as logs:
        router = EventRouter({"bar": (lambda data, done: done(), False)})
        hub = CommunicationHub(router=router)
        module = Module()
        hub.register_module(module, {"foo": "handle", "bar": "handle"})
        hub.emit("foo")
        hub.emit("bar")
        hub.deregister_module(module)

    assert logs == []


def test_custom_log_prefix():
    with capture_logs() as logs:
        hub = CommunicationHub(debug=True, log_prefix="[Hub]")
        hub.reset()

    assert logs[-1]["event"] == "hub_reset"
    assert logs[-1]["component"] == "[Hub]"


def test_action_failure_logged_without_debug():
    def action(data, done):
        raise RuntimeError("boom")

    with capture_logs() as logs:
        router = EventRouter({"foo": action})
        hub = CommunicationHub(router=router)
        hub.register_module(Module(), {"foo": "handle"})
        hub.emit("foo")

    assert [entry["event"] for entry in logs] == ["route_action_failed"]
    assert logs[0]["log_level"] == "warning"


def test_generate_uid_prefix_and_uniqueness():
    ids = {generate_uid("mid_") for _ in range(500)}

    assert len(ids) == 500
    assert all(uid.startswith("mid_") for uid in ids)
    assert generate_uid().startswith("uid_")


def test_logger_follows_configuration_applied_after_construction():
    hub = CommunicationHub(debug=True)
    hub.register_module(Module(), {"foo": "handle"})

    with capture_logs() as logs:
        hub.emit("foo")

    assert [entry["event"] for entry in logs] == ["router_not_attached"]


def test_console_output_prefixes_component(tmp_path):
    log_file = tmp_path / "console.log"
    router = EventRouter(debug=True)
    hub = CommunicationHub(router=router, debug=True)
    configure_logging(level="DEBUG", log_file=log_file, colors=False)

    hub.register_module(Module(), {"foo": "handle"})
    hub.emit("foo")

    text = log_file.read_text(encoding="utf-8")
    assert "[CommunicationHub] interceptor_created" in text
    assert "[EventRouter] route_not_found" in text


def test_json_output_keeps_component_field(tmp_path):
    log_file = tmp_path / "json.log"
    configure_logging(level="DEBUG", json_output=True, log_file=log_file)
    router = EventRouter(debug=True)

    router.route("foo", 1, lambda payload: None)

    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    miss = next(line for line in lines if line["event"] == "route_not_found")
    assert miss["component"] == "[EventRouter]"
    assert miss["event_name"] == "foo"


def test_context_variables_are_merged(tmp_path):
    log_file = tmp_path / "ctx.log"
    configure_logging(level="DEBUG", json_output=True, log_file=log_file)
    router = EventRouter(debug=True)

    with structlog.contextvars.bound_contextvars(request_id="req-1"):
        router.route("foo", 1, lambda payload: None)

    line = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
    assert line["request_id"] == "req-1"


@pytest.mark.async_route
def test_cancelled_deferred_route_is_logged():
    started = asyncio.Event()

    async def stall(data):
        started.set()
        await asyncio.sleep(3600)

    router = EventRouter({"foo": stall})
    delivered = []

    async def scenario():
        router.route("foo", 1, delivered.append)
        await started.wait()
        for task in list(router._tasks):
            task.cancel()
        await router.join()

    with capture_logs() as logs:
        asyncio.run(scenario())

    assert delivered == []
    cancelled = [entry for entry in logs if entry["event"] == "route_task_cancelled"]
    assert len(cancelled) == 1
    assert cancelled[0]["task"] == "route:foo"
