"""Tests for tools/web_fetch.py."""

import json as _json

import httpx as _httpx
import pytest as _pytest

import skald.tools.web_fetch as web_fetch


def _client(handler) -> _httpx.AsyncClient:
    return _httpx.AsyncClient(transport=_httpx.MockTransport(handler))


class TestWebFetchTool:
    @_pytest.mark.asyncio
    async def test_html_reduced_to_text(self, tool_ctx) -> None:
        html = "<html><head><style>p{}</style><script>x()</script></head><body><p>Hello <b>world</b></p></body></html>"

        def handler(request: _httpx.Request) -> _httpx.Response:
            return _httpx.Response(200, text=html, headers={"content-type": "text/html"})

        tool = web_fetch.WebFetchTool(_client(handler))
        result = await tool.execute({"url": "https://example.com"}, tool_ctx)
        assert result.output == "Hello world"

    @_pytest.mark.asyncio
    async def test_plain_body_kept(self, tool_ctx) -> None:
        def handler(request: _httpx.Request) -> _httpx.Response:
            return _httpx.Response(200, json={"ok": True})

        result = await web_fetch.WebFetchTool(_client(handler)).execute(
            {"url": "https://example.com/api"}, tool_ctx
        )
        assert _json.loads(result.output) == {"ok": True}

    @_pytest.mark.asyncio
    async def test_http_error(self, tool_ctx) -> None:
        def handler(request: _httpx.Request) -> _httpx.Response:
            return _httpx.Response(404)

        result = await web_fetch.WebFetchTool(_client(handler)).execute(
            {"url": "https://example.com/missing"}, tool_ctx
        )
        assert result.error == "HTTP 404: Not Found"

    @_pytest.mark.asyncio
    async def test_transport_error(self, tool_ctx) -> None:
        def handler(request: _httpx.Request) -> _httpx.Response:
            raise _httpx.ConnectError("no route")

        result = await web_fetch.WebFetchTool(_client(handler)).execute(
            {"url": "https://example.com"}, tool_ctx
        )
        assert result.error == "Fetch failed: no route"

    def test_permission_asks(self) -> None:
        assert web_fetch.WebFetchTool().permission_level.value == "ask"
