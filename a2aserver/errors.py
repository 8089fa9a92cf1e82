"""JSON-RPC 2.0 errors and their HTTP status mapping."""

from __future__ import annotations

from enum import IntEnum
from http import HTTPStatus
from typing import Any


class ErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class JSONRPCError(Exception):
    """A JSON-RPC error that can be raised and sent to a client."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = int(code)
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        """Return the error object as it appears in a response."""
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out

    def __str__(self) -> str:
        if self.data is None:
            return f"jsonrpc error {self.code}: {self.message}"
        return f"jsonrpc error {self.code}: {self.message} ({self.data})"

    def __repr__(self) -> str:
        return f"JSONRPCError(code={self.code!r}, message={self.message!r}, data={self.data!r})"


def parse_error(data: Any = None) -> JSONRPCError:
    """Error for a body that is not valid JSON."""
    return JSONRPCError(ErrorCode.PARSE_ERROR, "Parse error", data)


def invalid_request(data: Any = None) -> JSONRPCError:
    """Error for a request that is not a valid JSON-RPC request."""
    return JSONRPCError(ErrorCode.INVALID_REQUEST, "Invalid Request", data)


def method_not_found(data: Any = None) -> JSONRPCError:
    """Error for a method the server does not provide."""
    return JSONRPCError(ErrorCode.METHOD_NOT_FOUND, "Method not found", data)


def invalid_params(data: Any = None) -> JSONRPCError:
    """Error for parameters that cannot be used."""
    return JSONRPCError(ErrorCode.INVALID_PARAMS, "Invalid params", data)


def internal_error(data: Any = None) -> JSONRPCError:
    """Error for a failure inside the server."""
    return JSONRPCError(ErrorCode.INTERNAL_ERROR, "Internal error", data)


_HTTP_STATUS = {
    ErrorCode.PARSE_ERROR: HTTPStatus.BAD_REQUEST,
    ErrorCode.INVALID_REQUEST: HTTPStatus.BAD_REQUEST,
    ErrorCode.METHOD_NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorCode.INVALID_PARAMS: HTTPStatus.BAD_REQUEST,
}


def http_status_for(code: int) -> HTTPStatus:
    """HTTP status to send with an error response of the given code."""
    return _HTTP_STATUS.get(code, HTTPStatus.INTERNAL_SERVER_ERROR)