"""use_mcp_tool: forwards a call to a connected MCP server."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from agentcore.errors import ToolValidationError
from agentcore.tools.base import BaseTool
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.tools import ToolDef, ToolName, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext

_DEFINITION = ToolCatalog()[ToolName.USE_MCP_TOOL]


@runtime_checkable
class McpHub(Protocol):
    """Connected MCP servers, owned by the host."""

    def server_names(self) -> list[str]: ...

    def tool_names(self, server: str) -> list[str]: ...

    async def call_tool(self, server: str, tool: str, arguments: dict[str, Any]) -> ToolResultData: ...


class UseMcpTool(BaseTool):
    """Calls one tool on one server and returns its result verbatim."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def validate(self, params: dict[str, Any], turn: TurnContext) -> None:
        hub = turn.collaborators.mcp
        if hub is None:
            raise ToolValidationError("No MCP servers are connected.")
        server = params["server_name"]
        servers = hub.server_names()
        if server not in servers:
            listed = ", ".join(servers) or "none"
            raise ToolValidationError(f"Unknown MCP server '{server}'. Connected servers: {listed}")
        tools = hub.tool_names(server)
        if params["tool_name"] not in tools:
            raise ToolValidationError(
                f"Server '{server}' has no tool '{params['tool_name']}'. "
                f"Available: {', '.join(tools) or 'none'}"
            )

    async def prepare(self, params: dict[str, Any], turn: TurnContext) -> ToolPreview:
        return ToolPreview(
            payload=self._payload(
                params,
                arguments_json=json.dumps(params.get("arguments", {}), indent=2),
            ),
        )

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        hub = turn.collaborators.mcp
        if hub is None:
            return self._error("No MCP servers are connected.")
        result = await hub.call_tool(
            params["server_name"], params["tool_name"], params.get("arguments") or {},
        )
        if not result.text.strip() and not result.is_error:
            return self._ok("(No response)")
        return result
