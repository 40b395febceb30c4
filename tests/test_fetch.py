"""Tests for downloading remote media."""

import os

import httpx
import pytest

from conftest import VIDEO_BYTES
from python_nostr_media.errors import DownloadError, NetworkError
from python_nostr_media.fetch import download


@pytest.mark.asyncio
async def test_download_to_temp_file():
    def handler(request):
        assert request.method == "GET"
        return httpx.Response(200, content=VIDEO_BYTES)

    async with download("https://cdn.example.com/v/clip.mp4", transport=httpx.MockTransport(handler)) as path:
        assert path.endswith(".mp4")
        with open(path, "rb") as f:
            assert f.read() == VIDEO_BYTES

    assert not os.path.exists(path)


@pytest.mark.asyncio
async def test_download_accepts_partial_content():
    transport = httpx.MockTransport(lambda request: httpx.Response(206, content=b"abc"))

    async with download("https://cdn.example.com/a", transport=transport) as path:
        assert os.path.getsize(path) == 3


@pytest.mark.asyncio
async def test_download_removes_file_when_block_raises():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"abc"))

    with pytest.raises(RuntimeError):
        async with download("https://cdn.example.com/a.png", transport=transport) as path:
            raise RuntimeError("consumer failed")
    assert not os.path.exists(path)


@pytest.mark.asyncio
async def test_download_bad_status():
    transport = httpx.MockTransport(lambda request: httpx.Response(404, text="missing"))

    with pytest.raises(DownloadError, match="404"):
        async with download("https://cdn.example.com/missing.mp4", transport=transport):
            pass


@pytest.mark.asyncio
async def test_download_transport_error():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(NetworkError):
        async with download("https://cdn.example.com/slow.mp4", transport=httpx.MockTransport(handler)):
            pass
