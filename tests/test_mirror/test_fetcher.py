"""Tests for the content fetcher."""

import socket
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from src.mirror.fetcher import ContentFetcher
from tests.conftest import DOC_URL


async def _fetch(url: str = DOC_URL, check_host: bool = False) -> str:
    async with httpx.AsyncClient() as client:
        return await ContentFetcher(client, check_host=check_host).fetch(url)


class TestFetch:
    """Tests for ContentFetcher.fetch."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_returns_body_text(self):
        respx.get(DOC_URL).mock(return_value=httpx.Response(200, text="# Rules\r\n"))

        assert await _fetch() == "# Rules\r\n"

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_status_returns_empty(self):
        respx.get(DOC_URL).mock(return_value=httpx.Response(404, text="Not Found"))

        assert await _fetch() == ""

    @pytest.mark.asyncio
    @respx.mock
    async def test_server_error_returns_empty(self):
        respx.get(DOC_URL).mock(return_value=httpx.Response(503))

        assert await _fetch() == ""

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_returns_empty(self):
        respx.get(DOC_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        assert await _fetch() == ""

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_returns_empty(self):
        respx.get(DOC_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

        assert await _fetch() == ""


class TestHostCheck:
    """Tests for the host reachability pre-check."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_unresolvable_host_skips_request(self):
        route = respx.get(DOC_URL).mock(return_value=httpx.Response(200, text="Hello"))

        async with httpx.AsyncClient() as client:
            fetcher = ContentFetcher(client, check_host=True)
            with patch.object(fetcher, "_host_resolves", AsyncMock(return_value=False)) as resolves:
                result = await fetcher.fetch(DOC_URL)

        assert result == ""
        resolves.assert_awaited_once_with("docs.test")
        assert not route.called

    @pytest.mark.asyncio
    @respx.mock
    async def test_resolvable_host_fetches(self):
        respx.get(DOC_URL).mock(return_value=httpx.Response(200, text="Hello"))

        async with httpx.AsyncClient() as client:
            fetcher = ContentFetcher(client, check_host=True)
            with patch.object(fetcher, "_host_resolves", AsyncMock(return_value=True)):
                result = await fetcher.fetch(DOC_URL)

        assert result == "Hello"

    @pytest.mark.asyncio
    async def test_url_without_host(self):
        assert await _fetch("not a url", check_host=True) == ""

    @pytest.mark.asyncio
    async def test_resolution_failure_reported_false(self):
        async with httpx.AsyncClient() as client:
            fetcher = ContentFetcher(client, check_host=True)
            with patch(
                "asyncio.BaseEventLoop.getaddrinfo",
                AsyncMock(side_effect=socket.gaierror(-2, "Name or service not known")),
            ):
                assert await fetcher._host_resolves("nowhere.invalid") is False

    @pytest.mark.asyncio
    async def test_resolution_success_reported_true(self):
        async with httpx.AsyncClient() as client:
            fetcher = ContentFetcher(client, check_host=True)
            with patch(
                "asyncio.BaseEventLoop.getaddrinfo",
                AsyncMock(return_value=[(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("127.0.0.1", 0))]),
            ):
                assert await fetcher._host_resolves("docs.test") is True
