"""browser_action: drives a host-provided browser session."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from agentcore.errors import MissingParameterError, ToolValidationError
from agentcore.tools.base import BaseTool
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.tools import ToolDef, ToolName, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext

_DEFINITION = ToolCatalog()[ToolName.BROWSER_ACTION]

# Parameter each action needs besides ``action`` itself.
_REQUIRED_BY_ACTION = {
    "launch": "url",
    "click": "coordinate",
    "hover": "coordinate",
    "type": "text",
    "resize": "size",
}


@dataclass(frozen=True, slots=True)
class BrowserResult:
    screenshot: bytes | None = None
    logs: str = ""
    current_url: str | None = None


@runtime_checkable
class BrowserSession(Protocol):
    """Headless browser owned by the host."""

    async def perform(self, action: str, **kwargs: Any) -> BrowserResult: ...


def _pair(value: str, name: str) -> tuple[int, int]:
    try:
        a, b = (int(part.strip()) for part in value.split(","))
    except ValueError:
        raise ToolValidationError(f"{name} must look like 'x,y', got '{value}'") from None
    return a, b


class BrowserActionTool(BaseTool):
    """One browser step per call; returns a screenshot and console logs."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def validate(self, params: dict[str, Any], turn: TurnContext) -> None:
        action: str = params["action"]
        needed = _REQUIRED_BY_ACTION.get(action)
        if needed and not params.get(needed):
            raise MissingParameterError(ToolName.BROWSER_ACTION.value, needed)
        if action in ("click", "hover"):
            _pair(params["coordinate"], "coordinate")
        if action == "resize":
            _pair(params["size"], "size")

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        session = turn.collaborators.browser
        if session is None:
            return self._error("No browser session is available.")

        action: str = params["action"]
        kwargs = {k: params[k] for k in ("url", "text") if params.get(k)}
        if params.get("coordinate"):
            kwargs["coordinate"] = _pair(params["coordinate"], "coordinate")
        if params.get("size"):
            kwargs["size"] = _pair(params["size"], "size")

        result = await session.perform(action, **kwargs)

        if action == "close":
            return self._ok("The browser has been closed.")

        summary = f"Browser action '{action}' executed."
        if result.current_url:
            summary += f"\nCurrent URL: {result.current_url}"
        summary += f"\nConsole logs:\n{result.logs or '(no new logs)'}"
        if result.screenshot is None:
            return self._ok(summary)

        return self._ok([
            {"type": "text", "text": summary},
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": "image/png",
                    "data": base64.b64encode(result.screenshot).decode("ascii"),
                },
            },
        ], display=summary)
