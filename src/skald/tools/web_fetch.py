"""
Web fetch tool for retrieving URL contents over HTTP.
"""

from __future__ import annotations

import re as _re
import typing as _typing

import httpx as _httpx

import skald.constants as _constants
import skald.tools.base as base
import skald.tools.context as context

_SCRIPT_RE = _re.compile(r"<script[^>]*>.*?</script>", _re.IGNORECASE | _re.DOTALL)
_STYLE_RE = _re.compile(r"<style[^>]*>.*?</style>", _re.IGNORECASE | _re.DOTALL)
_TAG_RE = _re.compile(r"<[^>]+>")
_SPACE_RE = _re.compile(r"\s+")


def html_to_text(html: str) -> str:
    """Strip scripts, styles and tags, collapsing whitespace."""
    text = _SCRIPT_RE.sub("", html)
    text = _STYLE_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)
    return _SPACE_RE.sub(" ", text).strip()


class WebFetchTool(base.Tool):
    """Fetch a URL; HTML is reduced to plain text."""

    def __init__(self, client: _httpx.AsyncClient | None = None) -> None:
        """
        Args:
            client: Optional shared client (tests inject a mock transport).
        """
        self._client = client

    @property
    def name(self) -> str:
        return "web_fetch"

    @property
    def description(self) -> str:
        return (
            "Fetch content from a URL. HTML pages are converted to plain text. "
            "Long responses are truncated."
        )

    @property
    def input_schema(self) -> dict[str, _typing.Any]:
        return {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "The URL to fetch"},
            },
            "required": ["url"],
        }

    async def execute(
        self,
        input: dict[str, _typing.Any],
        ctx: context.ToolExecutionContext,
    ) -> base.ToolResult:
        url = self._require_input(input, "url")
        if isinstance(url, base.ToolResult):
            return url

        try:
            response = await context.run_cancellable(self._get(url), ctx.cancellation)
        except context.OperationCancelledError as e:
            return base.ToolResult.failure(e.reason)
        except _httpx.HTTPError as e:
            return base.ToolResult.failure(f"Fetch failed: {e}")

        if not response.is_success:
            return base.ToolResult.failure(
                f"HTTP {response.status_code}: {response.reason_phrase}"
            )

        body = response.text
        if "text/html" in response.headers.get("content-type", ""):
            body = html_to_text(body)
        return base.ToolResult(
            success=True, output=base.truncate(body, _constants.WEB_FETCH_MAX_CHARS)
        )

    async def _get(self, url: str) -> _httpx.Response:
        headers = {
            "User-Agent": _constants.USER_AGENT,
            "Accept": "text/html, application/json, text/plain, */*",
        }
        if self._client is not None:
            return await self._client.get(url, headers=headers, follow_redirects=True)
        async with _httpx.AsyncClient(
            timeout=_constants.WEB_FETCH_TIMEOUT_SECONDS, follow_redirects=True
        ) as client:
            return await client.get(url, headers=headers)
