from __future__ import annotations

from typing import Any, Callable, Dict, Type

from rentcast_mcp.mcp.models import ToolRequest

_REGISTRY: Dict[str, Dict[str, Any]] = {}


def tool(name: str, description: str, request_model: Type[ToolRequest]):
    """Decorator to register an MCP tool implementation.

    The input schema is derived from *request_model*; the implementation is
    awaited as ``fn(client, request)`` and must return display text.

    Example:
        @tool("get_server_status", "Show remaining API calls", ServerStatusRequest)
        async def get_server_status(client, request) -> str:
            return format_status(client.get_status())
    """

    def _decorator(fn: Callable):
        _REGISTRY[name] = {
            "fn": fn,
            "description": description,
            "model": request_model,
            "inputSchema": request_model.model_json_schema(),
        }
        return fn

    return _decorator


def discover() -> Dict[str, Dict[str, Any]]:
    """Populate the registry from the implementations module and return it."""

    # Import for side-effects: each @tool call registers itself
    import importlib

    importlib.import_module("rentcast_mcp.mcp.implementations")
    return _REGISTRY
