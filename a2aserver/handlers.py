"""JSON-RPC method dispatch from A2A requests to a task manager."""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .errors import JSONRPCError, internal_error, invalid_params, method_not_found
from .options import ServerSettings
from .paths import compose_jwks_url
from .types import AgentCard

logger = logging.getLogger(__name__)

METHOD_MESSAGE_SEND = "message/send"
METHOD_MESSAGE_STREAM = "message/stream"
METHOD_TASKS_GET = "tasks/get"
METHOD_TASKS_CANCEL = "tasks/cancel"
METHOD_TASKS_RESUBSCRIBE = "tasks/resubscribe"
METHOD_TASKS_PUSH_NOTIFICATION_CONFIG_SET = "tasks/pushNotificationConfig/set"
METHOD_TASKS_PUSH_NOTIFICATION_CONFIG_GET = "tasks/pushNotificationConfig/get"
METHOD_AGENT_AUTHENTICATED_EXTENDED_CARD = "agent/getAuthenticatedExtendedCard"


@runtime_checkable
class TaskManager(Protocol):
    """The task logic behind an A2A server.

    Every method receives the request params as a JSON object (a dict).
    Raising a JSONRPCError sends that error to the client; any other
    exception is reported as an internal error.
    """

    def on_send_message(self, params: dict[str, Any]) -> Any:
        """Handle message/send and return the message or task result."""

    def on_send_message_stream(self, params: dict[str, Any]) -> Iterable[Any]:
        """Handle message/stream and return the events to stream."""

    def on_get_task(self, params: dict[str, Any]) -> Any:
        """Return the task named by params."""

    def on_cancel_task(self, params: dict[str, Any]) -> Any:
        """Cancel the task named by params and return it."""

    def on_push_notification_set(self, params: dict[str, Any]) -> Any:
        """Store a push notification configuration and return it."""

    def on_push_notification_get(self, params: dict[str, Any]) -> Any:
        """Return the push notification configuration of a task."""

    def on_resubscribe(self, params: dict[str, Any]) -> Iterable[Any]:
        """Return the events of an existing task to stream again."""


@dataclass
class EventStream:
    """A dispatch result whose events are to be sent as server-sent events."""

    events: Iterable[Any]


def _object_params(params: Any) -> dict[str, Any]:
    if params is None:
        return {}
    if not isinstance(params, Mapping):
        raise invalid_params(
            f"failed to parse params: expected a JSON object, got {type(params).__name__}"
        )
    return copy.deepcopy(dict(params))


def _string_field(params: Mapping[str, Any], key: str) -> str:
    value = params.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise invalid_params(f"failed to parse params: field '{key}' must be a string")
    return value


def _object_field(params: dict[str, Any], key: str) -> dict[str, Any]:
    value = params.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise invalid_params(f"failed to parse params: field '{key}' must be an object")
    return dict(value)


class MethodDispatcher:
    """Routes JSON-RPC methods to the task manager and returns their results."""

    def __init__(
        self,
        agent_card: AgentCard,
        task_manager: TaskManager,
        settings: ServerSettings | None = None,
    ) -> None:
        if task_manager is None:
            raise ValueError("MethodDispatcher requires a task manager")
        self.agent_card = agent_card
        self.task_manager = task_manager
        self.settings = settings if settings is not None else ServerSettings()
        self._routes = {
            METHOD_MESSAGE_SEND: self._message_send,
            METHOD_MESSAGE_STREAM: self._message_stream,
            METHOD_TASKS_PUSH_NOTIFICATION_CONFIG_GET: self._push_notification_get,
            METHOD_TASKS_PUSH_NOTIFICATION_CONFIG_SET: self._push_notification_set,
            METHOD_TASKS_GET: self._tasks_get,
            METHOD_TASKS_CANCEL: self._tasks_cancel,
            METHOD_TASKS_RESUBSCRIBE: self._tasks_resubscribe,
            METHOD_AGENT_AUTHENTICATED_EXTENDED_CARD: self._extended_card,
        }

    def dispatch(self, method: str, params: Any) -> Any:
        """Run one method and return its result or an EventStream.

        Raises JSONRPCError for every failure.
        """
        logger.debug("Received JSON-RPC request (Method: %s)", method)
        route = self._routes.get(method)
        if route is None:
            logger.warning("Method not found: %s", method)
            raise method_not_found(f"method '{method}' not supported")
        return route(params)

    @staticmethod
    def _call(what: str, subject: str, call: Any, params: dict[str, Any]) -> Any:
        try:
            return call(params)
        except JSONRPCError:
            logger.error("Error calling task manager for %s", subject)
            raise
        except Exception as exc:
            logger.error("Unexpected error calling task manager for %s: %s", subject, exc)
            raise internal_error(f"{what}: {exc}") from exc

    def _message_send(self, raw: Any) -> Any:
        params = _object_params(raw)
        return self._call(
            "message processing failed",
            "message/send",
            self.task_manager.on_send_message,
            params,
        )

    def _message_stream(self, raw: Any) -> EventStream:
        params = _object_params(raw)
        message = _object_field(params, "message")
        role = _string_field(message, "role")
        parts = message.get("parts")
        if parts is not None and not isinstance(parts, list):
            raise invalid_params("failed to parse params: field 'parts' must be an array")
        if not role or not parts:
            raise invalid_params("message with at least one part is required")
        try:
            events = self.task_manager.on_send_message_stream(params)
        except Exception as exc:
            logger.error("Error calling OnSendMessageStream: %s", exc)
            raise internal_error(f"failed to subscribe to message events: {exc}") from exc
        return EventStream(events)

    def _tasks_get(self, raw: Any) -> Any:
        params = _object_params(raw)
        task_id = _string_field(params, "id")
        return self._call(
            "failed to get task", f"task {task_id}", self.task_manager.on_get_task, params
        )

    def _tasks_cancel(self, raw: Any) -> Any:
        params = _object_params(raw)
        task_id = _string_field(params, "id")
        return self._call(
            "failed to cancel task", f"task {task_id}", self.task_manager.on_cancel_task, params
        )

    def _push_notification_get(self, raw: Any) -> Any:
        params = _object_params(raw)
        task_id = _string_field(params, "id")
        if not task_id:
            raise invalid_params("task ID is required")
        return self._call(
            "failed to get push notification config",
            f"task {task_id}",
            self.task_manager.on_push_notification_get,
            params,
        )

    def _push_notification_set(self, raw: Any) -> Any:
        params = _object_params(raw)
        task_id = _string_field(params, "taskId")
        config = _object_field(params, "pushNotificationConfig")
        if not task_id:
            raise invalid_params("task ID is required")
        if not _string_field(config, "url"):
            raise invalid_params("push notification URL is required")

        settings = self.settings
        if settings.jwks_enabled and settings.push_auth is not None:
            authentication = config.get("authentication")
            if authentication is None:
                config["authentication"] = {"schemes": ["bearer"]}
            else:
                if not isinstance(authentication, Mapping):
                    raise invalid_params(
                        "failed to parse params: field 'authentication' must be an object"
                    )
                authentication = dict(authentication)
                schemes = list(authentication.get("schemes") or [])
                if "bearer" not in schemes:
                    schemes.append("bearer")
                authentication["schemes"] = schemes
                config["authentication"] = authentication
            jwks_url = compose_jwks_url(self.agent_card.url, settings.jwks_endpoint)
            logger.info("JWKS URL for push notifications: %s", jwks_url)
            metadata = dict(config.get("metadata") or {})
            metadata["jwksUrl"] = jwks_url
            config["metadata"] = metadata
        params["pushNotificationConfig"] = config

        return self._call(
            "push notification setup failed",
            f"task {task_id}",
            self.task_manager.on_push_notification_set,
            params,
        )

    def _tasks_resubscribe(self, raw: Any) -> EventStream:
        params = _object_params(raw)
        task_id = _string_field(params, "id")
        if not task_id:
            raise invalid_params("task ID is required")
        events = self._call(
            "failed to resubscribe to task events",
            f"task {task_id}",
            self.task_manager.on_resubscribe,
            params,
        )
        return EventStream(events)

    def _extended_card(self, raw: Any) -> AgentCard:
        if not self.agent_card.supports_authenticated_extended_card:
            logger.warning("Authenticated extended card not configured")
            raise internal_error("Authenticated extended card not configured")
        base_card = copy.deepcopy(self.agent_card)
        handler = self.settings.authenticated_card_handler
        if handler is None:
            return base_card
        try:
            return handler(base_card)
        except Exception as exc:
            logger.error("Error applying authenticated card handler: %s", exc)
            raise internal_error(f"failed to handle extended card: {exc}") from exc