"""web_fetch: HTTP GET a page and return its text."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import httpx

from agentcore.errors import ToolValidationError
from agentcore.tools.base import BaseTool
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.tools import ToolDef, ToolName, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext

MAX_CONTENT_LENGTH = 50_000
_USER_AGENT = "agentcore-web-fetch"

_DEFINITION = ToolCatalog()[ToolName.WEB_FETCH]


def _html_to_text(html: str) -> str:
    """Simple HTML to text conversion; strips tags and decodes entities."""
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", "", html, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r"<(br|p|div|h[1-6]|li|tr)[^>]*>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    for entity, char in [("&amp;", "&"), ("&lt;", "<"), ("&gt;", ">"),
                         ("&quot;", '"'), ("&#39;", "'"), ("&nbsp;", " ")]:
        text = text.replace(entity, char)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    return text.strip()


class WebFetchTool(BaseTool):
    """Fetch content from a URL via HTTP GET."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def validate(self, params: dict[str, Any], turn: TurnContext) -> None:
        if not params["url"].startswith(("http://", "https://")):
            raise ToolValidationError("URL must start with http:// or https://")

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        url: str = params["url"]
        max_length: int = params.get("max_length", MAX_CONTENT_LENGTH)

        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=30.0,
                headers={"User-Agent": _USER_AGENT},
                transport=self._transport,
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            return self._error(f"Fetch failed: {type(e).__name__}: {e}")

        body = resp.text
        if "html" in resp.headers.get("content-type", ""):
            body = _html_to_text(body)

        if len(body) > max_length:
            body = body[:max_length] + f"\n\n[Truncated: {len(resp.text):,} chars total]"
        return self._ok(body)
