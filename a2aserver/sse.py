"""Server-sent event framing and batched streaming of task events."""

from __future__ import annotations

import json
import logging
import queue
import threading
import time
from collections.abc import Iterable, Iterator, Mapping
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_FLUSH_INTERVAL = 0.05

EVENT_STATUS_UPDATE = "task_status_update"
EVENT_ARTIFACT_UPDATE = "task_artifact_update"
EVENT_MESSAGE = "message"
EVENT_TASK = "task"

_EVENT_TYPES = {
    "status-update": EVENT_STATUS_UPDATE,
    "artifact-update": EVENT_ARTIFACT_UPDATE,
    "message": EVENT_MESSAGE,
    "task": EVENT_TASK,
}

_END = object()


class UnknownEventError(Exception):
    """The event is of a kind that cannot be streamed."""


def _payload(event: Any) -> Any:
    if hasattr(event, "to_dict"):
        return event.to_dict()
    return event


def _kind_of(event: Any) -> Any:
    payload = _payload(event)
    if isinstance(payload, Mapping):
        kind = payload.get("kind")
    else:
        kind = getattr(event, "kind", None)
    return kind.value if isinstance(kind, Enum) else kind


def event_type_for(event: Any) -> str:
    """Return the SSE event name for a streaming event."""
    if event is None:
        raise ValueError("event is nil")
    kind = _kind_of(event)
    try:
        return _EVENT_TYPES[kind]
    except (KeyError, TypeError):
        raise UnknownEventError(f"unknown event type: {type(event).__name__}") from None


def _json_default(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"{type(value).__name__} is not JSON serialisable")


def format_event(event_type: str, rpc_id: Any, event: Any) -> bytes:
    """Frame one event as an SSE record holding a JSON-RPC response."""
    envelope = {"jsonrpc": "2.0", "id": rpc_id, "result": _payload(event)}
    data = json.dumps(envelope, separators=(",", ":"), default=_json_default)
    return f"event: {event_type}\ndata: {data}\n\n".encode("utf-8")


def format_event_batch(batch: Iterable[tuple[str, Any]], rpc_id: Any) -> bytes:
    """Frame several (event_type, event) pairs into one write."""
    return b"".join(format_event(event_type, rpc_id, event) for event_type, event in batch)


class SSETunnel:
    """Streams events as SSE records, batching them between flushes."""

    def __init__(
        self,
        rpc_id: Any = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if flush_interval <= 0:
            raise ValueError("flush_interval must be positive")
        self.rpc_id = "" if rpc_id is None else rpc_id
        self.batch_size = batch_size
        self.flush_interval = flush_interval

    def _encode(self, batch: list[Any]) -> bytes:
        pairs = []
        for event in batch:
            try:
                pairs.append((event_type_for(event), event))
            except UnknownEventError:
                logger.warning(
                    "Unknown event type received for request ID: %s: %s. Skipping.",
                    self.rpc_id,
                    type(event).__name__,
                )
        return format_event_batch(pairs, self.rpc_id)

    @staticmethod
    def _pump(events: Iterable[Any], sink: queue.Queue, stop: threading.Event) -> None:
        try:
            for event in events:
                if stop.is_set():
                    break
                sink.put(event)
        except Exception:
            logger.exception("Event source failed")
        finally:
            sink.put(_END)

    def stream(self, events: Iterable[Any]) -> Iterator[bytes]:
        """Yield SSE chunks for the events until the source is exhausted.

        A chunk is emitted when a batch fills up or when the flush interval
        passes with events pending; closing the generator stops the stream.
        """
        pending: queue.Queue = queue.Queue()
        stop = threading.Event()
        threading.Thread(target=self._pump, args=(events, pending, stop), daemon=True).start()
        batch: list[Any] = []
        deadline = time.monotonic() + self.flush_interval
        try:
            while True:
                try:
                    item = pending.get(timeout=max(0.0, deadline - time.monotonic()))
                except queue.Empty:
                    deadline = time.monotonic() + self.flush_interval
                    if batch:
                        chunk = self._encode(batch)
                        batch = []
                        if chunk:
                            yield chunk
                    continue
                if item is _END:
                    if batch:
                        chunk = self._encode(batch)
                        if chunk:
                            yield chunk
                    return
                batch.append(item)
                if len(batch) >= self.batch_size:
                    deadline = time.monotonic() + self.flush_interval
                    chunk = self._encode(batch)
                    batch = []
                    if chunk:
                        yield chunk
        except ValueError as exc:
            logger.error("Error determining event type for request ID: %s: %s", self.rpc_id, exc)
        finally:
            stop.set()