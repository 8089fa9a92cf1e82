"""WSGI server for the Agent-to-Agent JSON-RPC protocol: agent cards, method dispatch and SSE."""

__version__ = "0.1.0"