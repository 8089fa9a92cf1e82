"""Server settings and the option functions that configure them."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Optional, Union

from .paths import (
    AGENT_CARD_PATH,
    DEFAULT_JSONRPC_PATH,
    JWKS_PATH,
    OLD_AGENT_CARD_PATH,
)
from .types import AgentCard

DEFAULT_READ_TIMEOUT = 60.0
DEFAULT_WRITE_TIMEOUT = 60.0
DEFAULT_IDLE_TIMEOUT = 300.0

WSGIApp = Callable[..., Any]
ExtendedCardHandler = Callable[[AgentCard], AgentCard]
Timeout = Union[float, int, timedelta]


def _seconds(timeout: Timeout) -> float:
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    return float(timeout)


@dataclass
class ServerSettings:
    """Configuration of an A2A server, changed by option functions."""

    cors_enabled: bool = True
    jsonrpc_endpoint: str = DEFAULT_JSONRPC_PATH
    agent_card_path: str = AGENT_CARD_PATH
    old_agent_card_path: str = OLD_AGENT_CARD_PATH
    read_timeout: float = DEFAULT_READ_TIMEOUT
    write_timeout: float = DEFAULT_WRITE_TIMEOUT
    idle_timeout: float = DEFAULT_IDLE_TIMEOUT
    agent_card_handler: Optional[WSGIApp] = None
    middleware: list[Any] = field(default_factory=list)
    push_auth: Any = None
    jwks_enabled: bool = False
    jwks_endpoint: str = JWKS_PATH
    authenticated_card_handler: Optional[ExtendedCardHandler] = None

    def paths_are_default(self) -> bool:
        """True if the JSON-RPC, agent card and JWKS paths are unchanged."""
        return (
            self.jsonrpc_endpoint == DEFAULT_JSONRPC_PATH
            and self.agent_card_path == AGENT_CARD_PATH
            and self.jwks_endpoint == JWKS_PATH
        )

    def apply_base_path(self, base_path: str) -> None:
        """Serve every standard endpoint under base_path.

        An empty or root base path leaves the paths as they are; a missing
        leading slash is added and one trailing slash is dropped.
        """
        if base_path in ("", "/"):
            return
        if not base_path.startswith("/"):
            base_path = "/" + base_path
        if base_path.endswith("/"):
            base_path = base_path[:-1]
        self.jsonrpc_endpoint = base_path + "/"
        self.agent_card_path = base_path + AGENT_CARD_PATH
        self.old_agent_card_path = base_path + OLD_AGENT_CARD_PATH
        self.jwks_endpoint = base_path + JWKS_PATH


Option = Callable[[ServerSettings], None]


class MiddlewareChain(list):
    """An ordered list of middlewares; the first becomes the outermost wrapper.

    A middleware is either an object with a ``wrap(app)`` method or a
    callable that takes a WSGI app and returns a wrapped one.
    """

    def wrap(self, app: WSGIApp) -> WSGIApp:
        """Wrap app in every middleware of the chain."""
        for middleware in reversed(self):
            wrap = getattr(middleware, "wrap", None)
            app = wrap(app) if callable(wrap) else middleware(app)
        return app


def with_cors_enabled(enabled: bool) -> Option:
    """Turn permissive CORS headers on or off."""

    def apply(settings: ServerSettings) -> None:
        settings.cors_enabled = enabled

    return apply


def with_jsonrpc_endpoint(path: str) -> Option:
    """Serve JSON-RPC at path instead of the root path."""

    def apply(settings: ServerSettings) -> None:
        settings.jsonrpc_endpoint = path

    return apply


def with_read_timeout(timeout: Timeout) -> Option:
    """Set the read timeout, in seconds or as a timedelta."""

    def apply(settings: ServerSettings) -> None:
        settings.read_timeout = _seconds(timeout)

    return apply


def with_write_timeout(timeout: Timeout) -> Option:
    """Set the write timeout, in seconds or as a timedelta."""

    def apply(settings: ServerSettings) -> None:
        settings.write_timeout = _seconds(timeout)

    return apply


def with_idle_timeout(timeout: Timeout) -> Option:
    """Set the idle timeout, in seconds or as a timedelta."""

    def apply(settings: ServerSettings) -> None:
        settings.idle_timeout = _seconds(timeout)

    return apply


def with_jwks_endpoint(enabled: bool, path: str = "") -> Option:
    """Enable or disable the JWKS endpoint; a non-empty path replaces its location."""

    def apply(settings: ServerSettings) -> None:
        settings.jwks_enabled = enabled
        if path:
            settings.jwks_endpoint = path

    return apply


def with_push_notification_authenticator(authenticator: Any) -> Option:
    """Use the given authenticator for push notification signing."""

    def apply(settings: ServerSettings) -> None:
        settings.push_auth = authenticator

    return apply


def with_base_path(base_path: str) -> Option:
    """Serve every standard endpoint under base_path.

    Takes priority over a path derived from the agent card URL.
    """

    def apply(settings: ServerSettings) -> None:
        settings.apply_base_path(base_path)

    return apply


def with_middleware(*args: Any) -> Option:
    """Add middlewares around the JSON-RPC endpoint, first outermost."""

    def apply(settings: ServerSettings) -> None:
        settings.middleware.extend(args)

    return apply


def with_agent_card_handler(handler: WSGIApp) -> Option:
    """Serve the agent card endpoints with a custom WSGI app."""

    def apply(settings: ServerSettings) -> None:
        settings.agent_card_handler = handler

    return apply


def with_authenticated_extended_card_handler(handler: ExtendedCardHandler) -> Option:
    """Customise the card returned to authenticated callers."""

    def apply(settings: ServerSettings) -> None:
        settings.authenticated_card_handler = handler

    return apply