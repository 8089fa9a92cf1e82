"""The A2A HTTP server: agent card, JWKS and JSON-RPC endpoints as a WSGI app."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, is_dataclass
from enum import Enum
from http import HTTPStatus
from typing import Any, Callable, Iterable, Optional

from werkzeug.serving import BaseWSGIServer, WSGIRequestHandler, make_server
from werkzeug.utils import redirect
from werkzeug.wrappers import Request, Response

from .errors import (
    JSONRPCError,
    http_status_for,
    internal_error,
    invalid_request,
    method_not_found,
    parse_error,
)
from .handlers import EventStream, MethodDispatcher, TaskManager
from .options import MiddlewareChain, Option, ServerSettings
from .paths import extract_base_path_from_url
from .sse import SSETunnel
from .types import AgentCard

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
_JSON_CONTENT_TYPE = "application/json; charset=utf-8"

WSGIApp = Callable[..., Any]

_CORS_HEADERS = (
    ("Access-Control-Allow-Origin", "*"),
    ("Access-Control-Allow-Methods", "POST, GET, OPTIONS"),
    ("Access-Control-Allow-Headers", "Content-Type, Authorization"),
)


def _json_default(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    raise TypeError(f"{type(value).__name__} is not JSON serialisable")


def _encode_json(value: Any) -> bytes:
    text = json.dumps(value, ensure_ascii=False, default=_json_default)
    return (text + "\n").encode("utf-8")


def _set_cors_headers(response: Response) -> None:
    for name, value in _CORS_HEADERS:
        response.headers[name] = value


def _view(view: Callable[[Request], Response]) -> WSGIApp:
    def app(environ: dict, start_response: Callable) -> Iterable[bytes]:
        return view(Request(environ))(environ, start_response)

    return app


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address: {address!r}")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)


class _Router:
    """Routes by path: exact patterns, then the longest subtree pattern ending in '/'."""

    def __init__(self, routes: dict[str, WSGIApp]) -> None:
        self.routes = routes
        self._subtrees = sorted(
            (pattern for pattern in routes if pattern.endswith("/")), key=len, reverse=True
        )

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        path = environ.get("PATH_INFO") or "/"
        app = self.routes.get(path)
        if app is None and not path.endswith("/") and path + "/" in self.routes:
            location = path + "/"
            query = environ.get("QUERY_STRING")
            if query:
                location += "?" + query
            return redirect(location, 301)(environ, start_response)
        if app is None:
            app = next(
                (self.routes[p] for p in self._subtrees if path.startswith(p)), None
            )
        if app is None:
            response = Response("404 page not found\n", 404, content_type="text/plain; charset=utf-8")
            return response(environ, start_response)
        return app(environ, start_response)


class A2AServer:
    """HTTP server for the A2A protocol, usable directly as a WSGI application."""

    def __init__(self, agent_card: AgentCard, task_manager: TaskManager, *args: Option) -> None:
        if task_manager is None:
            raise ValueError("A2AServer requires a task manager")
        self.agent_card = agent_card
        self.task_manager = task_manager
        self.settings = ServerSettings()
        for option in args:
            option(self.settings)

        if self.settings.paths_are_default():
            base_path = extract_base_path_from_url(agent_card.url)
            if base_path:
                self.settings.apply_base_path(base_path)

        if self.settings.jwks_enabled and self.settings.push_auth is None:
            raise ValueError("the JWKS endpoint requires a push notification authenticator")

        self.dispatcher = MethodDispatcher(agent_card, task_manager, self.settings)
        self._server: Optional[BaseWSGIServer] = None

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        return self.handler()(environ, start_response)

    def handler(self) -> WSGIApp:
        """Return a WSGI app serving every endpoint of this server."""
        settings = self.settings
        card_app = settings.agent_card_handler or _view(self._serve_agent_card)
        routes: dict[str, WSGIApp] = {
            settings.agent_card_path: card_app,
            settings.old_agent_card_path: card_app,
        }
        if settings.jwks_enabled and settings.push_auth is not None:
            routes[settings.jwks_endpoint] = self._jwks_app()
        rpc_app = _view(self._serve_jsonrpc)
        if settings.middleware:
            rpc_app = MiddlewareChain(settings.middleware).wrap(rpc_app)
        routes[settings.jsonrpc_endpoint] = rpc_app
        return _Router(routes)

    def start(self, address: str) -> None:
        """Listen on "host:port" and serve requests until stop() is called."""
        host, port = _split_address(address)
        handler_cls = type(
            "_A2ARequestHandler", (WSGIRequestHandler,), {"timeout": self.settings.read_timeout}
        )
        server = make_server(host, port, self, threaded=True, request_handler=handler_cls)
        self._server = server
        logger.info("Starting A2A server listening on %s...", address)
        try:
            server.serve_forever()
        finally:
            server.server_close()
        logger.info("A2A server stopped.")

    def stop(self) -> None:
        """Shut down a server started with start()."""
        server = self._server
        if server is None:
            raise RuntimeError("A2A server not running")
        logger.info("Attempting graceful shutdown of A2A server...")
        self._server = None
        server.shutdown()
        logger.info("A2A server shutdown complete.")

    def _jwks_app(self) -> WSGIApp:
        push_auth = self.settings.push_auth
        handle = getattr(push_auth, "handle_jwks", None)
        if callable(handle):
            return handle
        return push_auth

    def _serve_agent_card(self, request: Request) -> Response:
        response = self._agent_card_response(request)
        if self.settings.cors_enabled:
            _set_cors_headers(response)
        return response

    def _agent_card_response(self, request: Request) -> Response:
        if request.method != "GET":
            return self._plain_error(HTTPStatus.METHOD_NOT_ALLOWED)
        try:
            body = _encode_json(self.agent_card.to_dict())
        except (TypeError, ValueError) as exc:
            logger.error("Failed to encode agent card: %s", exc)
            return self._plain_error(HTTPStatus.INTERNAL_SERVER_ERROR)
        return Response(body, 200, content_type=_JSON_CONTENT_TYPE)

    @staticmethod
    def _plain_error(status: HTTPStatus) -> Response:
        response = Response(
            status.phrase + "\n", int(status), content_type="text/plain; charset=utf-8"
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        return response

    def _serve_jsonrpc(self, request: Request) -> Response:
        if self.settings.cors_enabled and request.method == "OPTIONS":
            response = Response(status=200)
        else:
            response = self._jsonrpc_response(request)
        if self.settings.cors_enabled:
            _set_cors_headers(response)
        return response

    def _jsonrpc_response(self, request: Request) -> Response:
        if request.method != "POST":
            return self._error_response(
                None, method_not_found(f"HTTP method {request.method} not allowed, use POST")
            )

        content_type = request.headers.get("Content-Type", "")
        media_type = content_type.split(";", 1)[0].strip().lower()
        if media_type != "application/json":
            logger.warning("Rejecting request due to invalid Content-Type: '%s'", content_type)
            return self._error_response(
                None,
                invalid_request(
                    f"Content-Type header must be application/json, got: {content_type}"
                ),
            )

        try:
            payload = json.loads(request.get_data())
        except ValueError as exc:
            return self._error_response(None, parse_error(f"failed to parse JSON request: {exc}"))
        if not isinstance(payload, dict):
            return self._error_response(
                None, parse_error("failed to parse JSON request: expected a JSON object")
            )

        rpc_id = payload.get("id")
        if payload.get("jsonrpc") != JSONRPC_VERSION:
            return self._error_response(
                rpc_id, invalid_request(f"jsonrpc field must be '{JSONRPC_VERSION}'")
            )
        method = payload.get("method")
        if method is None:
            method = ""
        if not isinstance(method, str):
            return self._error_response(
                rpc_id, parse_error("failed to parse JSON request: method must be a string")
            )

        logger.debug("Received JSON-RPC request (ID: %s, Method: %s)", rpc_id, method)
        try:
            result = self.dispatcher.dispatch(method, payload.get("params"))
        except JSONRPCError as err:
            return self._error_response(rpc_id, err)

        if isinstance(result, EventStream):
            return self._sse_response(rpc_id, result.events)
        return self._result_response(rpc_id, result)

    @staticmethod
    def _result_response(rpc_id: Any, result: Any) -> Response:
        envelope = {"jsonrpc": JSONRPC_VERSION, "id": rpc_id, "result": result}
        try:
            body = _encode_json(envelope)
        except (TypeError, ValueError) as exc:
            logger.error("Failed to write JSON-RPC success response (ID: %s): %s", rpc_id, exc)
            return A2AServer._error_response(
                rpc_id, internal_error(f"failed to encode result: {exc}")
            )
        return Response(body, 200, content_type=_JSON_CONTENT_TYPE)

    @staticmethod
    def _error_response(rpc_id: Any, error: Optional[JSONRPCError]) -> Response:
        if error is None:
            logger.error("Error response requested without an error (Request ID: %s)", rpc_id)
            error = internal_error("writeJSONRPCError called with nil error")
        envelope = {"jsonrpc": JSONRPC_VERSION, "id": rpc_id, "error": error.to_dict()}
        try:
            body = _encode_json(envelope)
        except (TypeError, ValueError):
            envelope["error"] = {"code": error.code, "message": error.message}
            body = _encode_json(envelope)
        return Response(body, int(http_status_for(error.code)), content_type=_JSON_CONTENT_TYPE)

    def _sse_response(self, rpc_id: Any, events: Optional[Iterable[Any]]) -> Response:
        tunnel = SSETunnel(rpc_id)
        logger.debug("SSE stream opened for request ID: %s", rpc_id)
        response = Response(
            tunnel.stream(events if events is not None else ()),
            200,
            content_type="text/event-stream",
            direct_passthrough=True,
        )
        response.headers["Cache-Control"] = "no-cache"
        response.headers["Connection"] = "keep-alive"
        return response