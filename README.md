# a2aserver

A WSGI application and server for the Agent-to-Agent (A2A) protocol.

`a2aserver.server.A2AServer` publishes an agent's metadata card, answers
JSON-RPC 2.0 requests by handing them to a task manager you supply, and
streams task events to clients as Server-Sent Events.

## Endpoints

With default settings the server exposes:

| Path                             | Purpose                                          |
|----------------------------------|--------------------------------------------------|
| `/.well-known/agent-card.json`   | The agent card (GET only, not behind middleware) |
| `/.well-known/agent.json`        | The same card at the older location              |
| `/`                              | The JSON-RPC endpoint (POST)                     |
| `/.well-known/jwks.json`         | Public keys for push notifications, when enabled |

Any other path gets a plain `404`. Paths ending in `/` also match everything
beneath them, so the default JSON-RPC endpoint catches unknown paths too.

## JSON-RPC methods

The dispatcher (`a2aserver.handlers.MethodDispatcher`) routes these methods
to the task manager:

| Method                                 | Task manager method          |
|----------------------------------------|------------------------------|
| `message/send`                         | `on_send_message`            |
| `message/stream`                       | `on_send_message_stream`     |
| `tasks/get`                            | `on_get_task`                |
| `tasks/cancel`                         | `on_cancel_task`             |
| `tasks/resubscribe`                    | `on_resubscribe`             |
| `tasks/pushNotificationConfig/set`     | `on_push_notification_set`   |
| `tasks/pushNotificationConfig/get`     | `on_push_notification_get`   |
| `agent/getAuthenticatedExtendedCard`   | answered from the agent card |

Some checks happen before the task manager is called:

- `message/stream` needs `message.role` and a non-empty `message.parts`.
- `tasks/resubscribe` and `tasks/pushNotificationConfig/get` need `id`.
- `tasks/pushNotificationConfig/set` needs `taskId` and
  `pushNotificationConfig.url`.
- `agent/getAuthenticatedExtendedCard` fails with an internal error unless
  the card sets `supports_authenticated_extended_card`.

The request must be a POST with `Content-Type: application/json` and
`"jsonrpc": "2.0"`. Errors come back as JSON-RPC error objects
(`a2aserver.errors.JSONRPCError`), with the HTTP status taken from the code
by `http_status_for`: parse errors, invalid requests and invalid params give
400, method not found gives 404 (also used for a non-POST request), anything
else 500. With CORS enabled an `OPTIONS` request is answered with 200 and
the CORS headers.

## The task manager

`a2aserver.handlers.TaskManager` describes the object you pass in. Every
method receives the request `params` as a dict. The non-streaming methods
return a JSON-serialisable result (dicts, or objects with a `to_dict()`
method, enums or dataclasses); the streaming methods return an iterable of
events. Raise a `JSONRPCError` to send that exact error; any other exception
is reported as an internal error.

Streaming events are dicts (or objects with `to_dict()`) whose `kind` is
`status-update`, `artifact-update`, `message` or `task`; they are sent as the
SSE event types `task_status_update`, `task_artifact_update`, `message` and
`task`, each wrapped in a JSON-RPC response carrying the request ID. Events
of any other kind are skipped. `a2aserver.sse.SSETunnel` batches events:
a chunk is written when five events are waiting or every 50 ms.

## Using it

```python
from a2aserver.errors import JSONRPCError
from a2aserver.options import with_cors_enabled
from a2aserver.server import A2AServer
from a2aserver.types import AgentCapabilities, AgentCard


class EchoTaskManager:
    def on_send_message(self, params):
        return params["message"]

    def on_send_message_stream(self, params):
        yield {"kind": "message", **params["message"]}

    def on_get_task(self, params):
        raise JSONRPCError(-32001, "Task not found", params.get("id"))

    on_cancel_task = on_get_task
    on_push_notification_get = on_get_task

    def on_push_notification_set(self, params):
        return params

    def on_resubscribe(self, params):
        return []


card = AgentCard(
    name="Echo Agent",
    description="Repeats what it is told.",
    url="http://localhost:8080/",
    version="1.0.0",
    capabilities=AgentCapabilities(streaming=True),
    default_input_modes=["text"],
    default_output_modes=["text"],
)

server = A2AServer(card, EchoTaskManager(), with_cors_enabled(True))
server.start("localhost:8080")
```

`start("host:port")` serves with Werkzeug's threaded development server until
`stop()` is called from another thread; `stop()` raises `RuntimeError` if the
server is not running. `A2AServer` is itself a WSGI application, so it can
instead be mounted in any WSGI host; `handler()` returns the routed WSGI app.

`AgentCard.to_dict()` and `AgentCard.from_dict()` convert a card to and from
its JSON form (camelCase keys, empty optional fields left out).

## Endpoint paths

If the agent card's URL has a path, such as `http://localhost:8080/agent`,
every endpoint moves under it: `/agent/`, `/agent/.well-known/agent-card.json`
and so on. `with_base_path("/api/v1/agent")` sets the prefix explicitly and
takes priority over the card URL. A missing leading slash is added and a
trailing slash removed; an empty path or `/` leaves the defaults in place.
The helpers behind this are `extract_base_path_from_url` and
`compose_jwks_url` in `a2aserver.paths`.

## Options

Options from `a2aserver.options` are passed after the task manager and change
the server's `ServerSettings`:

- `with_cors_enabled(enabled)`: permissive CORS headers (on by default)
- `with_jsonrpc_endpoint(path)`: a different JSON-RPC path
- `with_read_timeout(timeout)`, `with_write_timeout(timeout)`,
  `with_idle_timeout(timeout)`: timeouts in seconds or as a `timedelta`
  (defaults 60, 60 and 300); `start()` applies only the read timeout
- `with_jwks_endpoint(enabled, path)`: publish the JWKS endpoint; push
  notification configurations set through the server then gain the `bearer`
  scheme and a `jwksUrl` entry in their metadata
- `with_push_notification_authenticator(authenticator)`: the object that
  serves the JWKS endpoint, through its `handle_jwks` WSGI callable or by
  being a WSGI app itself
- `with_middleware(*middlewares)`: wrap the JSON-RPC endpoint; each is an
  object with `wrap(app)` or a callable taking and returning a WSGI app, and
  the first is the outermost (see `MiddlewareChain`)
- `with_agent_card_handler(handler)`: serve both agent card paths with your
  own WSGI application
- `with_authenticated_extended_card_handler(handler)`: a callable that takes a
  copy of the card and returns the card for `agent/getAuthenticatedExtendedCard`

## What it does not do

The package contains no task manager, no client, no authentication providers
and no key handling. Task storage and processing are up to the `TaskManager`
you supply. Enabling the JWKS endpoint without passing an authenticator
raises `ValueError`; the server does not generate keys or sign push
notifications itself.