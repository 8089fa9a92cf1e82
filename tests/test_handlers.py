from typing import Any

import pytest

from a2aserver.errors import ErrorCode, JSONRPCError
from a2aserver.handlers import (
    METHOD_AGENT_AUTHENTICATED_EXTENDED_CARD,
    EventStream,
    MethodDispatcher,
    TaskManager,
)
from a2aserver.options import ServerSettings
from a2aserver.types import AgentCapabilities, AgentCard

TASK_NOT_FOUND_CODE = -32001


def task_not_found(task_id: str) -> JSONRPCError:
    return JSONRPCError(TASK_NOT_FOUND_CODE, "Task not found", f"task {task_id} not found")


def default_agent_card() -> AgentCard:
    return AgentCard(
        name="Test Agent",
        description="Agent used for server testing.",
        url="http://localhost:8080/",
        version="test-agent-v0.1.0",
        capabilities=AgentCapabilities(streaming=True),
        default_input_modes=["text"],
        default_output_modes=["text", "artifact"],
    )


class MockTaskManager:
    def __init__(self) -> None:
        self.tasks: dict[str, dict[str, Any]] = {}
        self.send_response: Any = None
        self.send_error: Exception | None = None
        self.get_error: Exception | None = None
        self.cancel_error: Exception | None = None
        self.stream_events: list[Any] = []
        self.stream_error: Exception | None = None
        self.push_get_response: Any = None
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def on_send_message(self, params):
        self.calls.append(("send", params))
        if self.send_error:
            raise self.send_error
        return self.send_response if self.send_response is not None else params["message"]

    def on_send_message_stream(self, params):
        self.calls.append(("stream", params))
        if self.stream_error:
            raise self.stream_error
        return list(self.stream_events)

    def on_get_task(self, params):
        if self.get_error:
            raise self.get_error
        try:
            return self.tasks[params["id"]]
        except KeyError:
            raise task_not_found(params["id"]) from None

    def on_cancel_task(self, params):
        if self.cancel_error:
            raise self.cancel_error
        try:
            task = self.tasks[params["id"]]
        except KeyError:
            raise task_not_found(params["id"]) from None
        task["status"]["state"] = "canceled"
        return task

    def on_push_notification_set(self, params):
        self.calls.append(("push_set", params))
        return params

    def on_push_notification_get(self, params):
        if self.push_get_response is None:
            raise RuntimeError(f"push notification config not found for task {params['id']}")
        return self.push_get_response

    def on_resubscribe(self, params):
        if params["id"] not in self.tasks:
            raise task_not_found(params["id"])
        return [{"kind": "status-update", "taskId": params["id"], "status": {"state": "completed"}}]


@pytest.fixture
def manager() -> MockTaskManager:
    return MockTaskManager()


@pytest.fixture
def dispatcher(manager) -> MethodDispatcher:
    return MethodDispatcher(default_agent_card(), manager, ServerSettings())


def text_message(text: str) -> dict[str, Any]:
    return {
        "kind": "message",
        "messageId": "msg-1",
        "role": "user",
        "parts": [{"kind": "text", "text": text}],
    }


def test_mock_satisfies_protocol_and_is_used(manager):
    assert isinstance(manager, TaskManager)
    dispatcher = MethodDispatcher(default_agent_card(), manager, ServerSettings())
    manager.tasks["t"] = {"id": "t", "status": {"state": "working"}}
    assert dispatcher.dispatch("tasks/get", {"id": "t"})["id"] == "t"


def test_requires_task_manager():
    with pytest.raises(ValueError):
        MethodDispatcher(default_agent_card(), None, ServerSettings())


def test_message_send_success(dispatcher, manager):
    response = text_message("Response message")
    manager.send_response = response
    result = dispatcher.dispatch("message/send", {"message": text_message("Input data")})
    assert result == response
    assert manager.calls[0][1]["message"]["parts"][0]["text"] == "Input data"


def test_message_send_error_is_internal(dispatcher, manager):
    manager.send_error = RuntimeError("mock send message failed")
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("message/send", {"message": text_message("Input data")})
    assert info.value.code == ErrorCode.INTERNAL_ERROR
    assert "mock send message failed" in info.value.data


def test_message_send_rpc_error_passes_through(dispatcher, manager):
    manager.send_error = task_not_found("x")
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("message/send", {"message": text_message("hi")})
    assert info.value.code == TASK_NOT_FOUND_CODE


def test_tasks_get_success(dispatcher, manager):
    manager.tasks["test-task-rpc-1"] = {"id": "test-task-rpc-1", "status": {"state": "completed"}}
    result = dispatcher.dispatch("tasks/get", {"id": "test-task-rpc-1"})
    assert result["id"] == "test-task-rpc-1"
    assert result["status"]["state"] == "completed"


def test_tasks_get_not_found(dispatcher):
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("tasks/get", {"id": "task-not-found"})
    assert info.value.code == TASK_NOT_FOUND_CODE


def test_tasks_get_unexpected_error(dispatcher, manager):
    manager.get_error = RuntimeError("boom")
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("tasks/get", {"id": "t"})
    assert info.value.code == ErrorCode.INTERNAL_ERROR
    assert info.value.data == "failed to get task: boom"


def test_tasks_cancel_success(dispatcher, manager):
    manager.tasks["test-task-rpc-1"] = {"id": "test-task-rpc-1", "status": {"state": "working"}}
    result = dispatcher.dispatch("tasks/cancel", {"id": "test-task-rpc-1"})
    assert result["id"] == "test-task-rpc-1"
    assert result["status"]["state"] == "canceled"


def test_tasks_cancel_not_found(dispatcher):
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("tasks/cancel", {"id": "task-cancel-nf"})
    assert info.value.code == TASK_NOT_FOUND_CODE


def test_unknown_method(dispatcher):
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("tasks/unknown", {"data": "foo"})
    assert info.value.code == ErrorCode.METHOD_NOT_FOUND
    assert info.value.data == "method 'tasks/unknown' not supported"


def test_params_must_be_object(dispatcher):
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("tasks/get", [1, 2])
    assert info.value.code == ErrorCode.INVALID_PARAMS


def test_id_must_be_string(dispatcher):
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("tasks/get", {"id": 5})
    assert info.value.code == ErrorCode.INVALID_PARAMS


def test_message_stream_returns_events(dispatcher, manager):
    events = [
        {"kind": "status-update", "taskId": "m", "status": {"state": "working"}},
        {"kind": "artifact-update", "taskId": "m", "artifact": {"artifactId": "a"}},
        {"kind": "status-update", "taskId": "m", "status": {"state": "completed"}, "final": True},
    ]
    manager.stream_events = events
    result = dispatcher.dispatch("message/stream", {"message": text_message("SSE test input")})
    assert isinstance(result, EventStream)
    assert list(result.events) == events


@pytest.mark.parametrize(
    "message",
    [
        {"role": "", "parts": [{"kind": "text", "text": "x"}]},
        {"role": "user", "parts": []},
        {"role": "user"},
    ],
)
def test_message_stream_requires_role_and_parts(dispatcher, message):
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("message/stream", {"message": message})
    assert info.value.code == ErrorCode.INVALID_PARAMS
    assert info.value.data == "message with at least one part is required"


def test_message_stream_errors_become_internal(dispatcher, manager):
    manager.stream_error = task_not_found("x")
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("message/stream", {"message": text_message("hi")})
    assert info.value.code == ErrorCode.INTERNAL_ERROR
    assert info.value.data.startswith("failed to subscribe to message events:")


def test_resubscribe_streams_events(dispatcher, manager):
    manager.tasks["t1"] = {"id": "t1", "status": {"state": "working"}}
    result = dispatcher.dispatch("tasks/resubscribe", {"id": "t1"})
    assert isinstance(result, EventStream)
    assert list(result.events)[0]["status"]["state"] == "completed"


def test_resubscribe_requires_id(dispatcher):
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("tasks/resubscribe", {})
    assert info.value.data == "task ID is required"


def test_resubscribe_not_found(dispatcher):
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("tasks/resubscribe", {"id": "missing"})
    assert info.value.code == TASK_NOT_FOUND_CODE


def test_push_get_requires_id(dispatcher):
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("tasks/pushNotificationConfig/get", {"id": ""})
    assert info.value.code == ErrorCode.INVALID_PARAMS
    assert info.value.data == "task ID is required"


def test_push_get_unexpected_error(dispatcher):
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("tasks/pushNotificationConfig/get", {"id": "t1"})
    assert info.value.code == ErrorCode.INTERNAL_ERROR
    assert info.value.data.startswith("failed to get push notification config:")


def test_push_get_success(dispatcher, manager):
    config = {"taskId": "t1", "pushNotificationConfig": {"url": "http://test.example.com/webhook"}}
    manager.push_get_response = config
    assert dispatcher.dispatch("tasks/pushNotificationConfig/get", {"id": "t1"}) == config


def test_push_set_requires_task_id(dispatcher):
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch(
            "tasks/pushNotificationConfig/set",
            {"pushNotificationConfig": {"url": "http://example.com/hook"}},
        )
    assert info.value.data == "task ID is required"


def test_push_set_requires_url(dispatcher):
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch("tasks/pushNotificationConfig/set", {"taskId": "t1"})
    assert info.value.data == "push notification URL is required"


def test_push_set_without_jwks_is_unchanged(dispatcher):
    params = {"taskId": "t1", "pushNotificationConfig": {"url": "http://example.com/hook"}}
    result = dispatcher.dispatch("tasks/pushNotificationConfig/set", params)
    assert result == params


def test_push_set_with_jwks_adds_bearer_and_url(manager):
    settings = ServerSettings(jwks_enabled=True, push_auth=object())
    dispatcher = MethodDispatcher(default_agent_card(), manager, settings)
    original = {"taskId": "t1", "pushNotificationConfig": {"url": "http://example.com/hook"}}
    result = dispatcher.dispatch("tasks/pushNotificationConfig/set", original)
    config = result["pushNotificationConfig"]
    assert config["authentication"] == {"schemes": ["bearer"]}
    assert config["metadata"]["jwksUrl"] == "http://localhost:8080/.well-known/jwks.json"
    assert "authentication" not in original["pushNotificationConfig"]


def test_push_set_with_jwks_keeps_existing_schemes(manager):
    settings = ServerSettings(jwks_enabled=True, push_auth=object())
    dispatcher = MethodDispatcher(default_agent_card(), manager, settings)
    params = {
        "taskId": "t1",
        "pushNotificationConfig": {
            "url": "http://example.com/hook",
            "authentication": {"schemes": ["basic"]},
            "metadata": {"k": "v"},
        },
    }
    config = dispatcher.dispatch("tasks/pushNotificationConfig/set", params)[
        "pushNotificationConfig"
    ]
    assert config["authentication"]["schemes"] == ["basic", "bearer"]
    assert config["metadata"]["k"] == "v"


def test_push_set_with_bearer_not_duplicated(manager):
    settings = ServerSettings(jwks_enabled=True, push_auth=object())
    dispatcher = MethodDispatcher(default_agent_card(), manager, settings)
    params = {
        "taskId": "t1",
        "pushNotificationConfig": {
            "url": "http://example.com/hook",
            "authentication": {"schemes": ["bearer"]},
        },
    }
    config = dispatcher.dispatch("tasks/pushNotificationConfig/set", params)[
        "pushNotificationConfig"
    ]
    assert config["authentication"]["schemes"] == ["bearer"]


def _extended(manager, supports, handler=None):
    card = default_agent_card()
    card.supports_authenticated_extended_card = supports
    settings = ServerSettings(authenticated_card_handler=handler)
    return MethodDispatcher(card, manager, settings), card


@pytest.mark.parametrize("supports", [None, False])
def test_extended_card_not_configured(manager, supports):
    dispatcher, _ = _extended(manager, supports)
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch(METHOD_AGENT_AUTHENTICATED_EXTENDED_CARD, None)
    assert info.value.code == ErrorCode.INTERNAL_ERROR


def test_extended_card_without_handler(manager):
    dispatcher, card = _extended(manager, True)
    result = dispatcher.dispatch(METHOD_AGENT_AUTHENTICATED_EXTENDED_CARD, None)
    assert result.name == card.name
    assert result.description == card.description


def test_extended_card_with_handler(manager):
    def handler(base: AgentCard) -> AgentCard:
        base.description = "Extended: " + base.description
        return base

    dispatcher, card = _extended(manager, True, handler)
    result = dispatcher.dispatch(METHOD_AGENT_AUTHENTICATED_EXTENDED_CARD, None)
    assert result.description.startswith("Extended: ")
    assert dispatcher.agent_card.description == "Agent used for server testing."


def test_extended_card_handler_error(manager):
    def handler(base: AgentCard) -> AgentCard:
        raise RuntimeError("handler failed")

    dispatcher, _ = _extended(manager, True, handler)
    with pytest.raises(JSONRPCError) as info:
        dispatcher.dispatch(METHOD_AGENT_AUTHENTICATED_EXTENDED_CARD, None)
    assert info.value.code == ErrorCode.INTERNAL_ERROR
    assert info.value.data == "failed to handle extended card: handler failed"