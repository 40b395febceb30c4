"""Download remote media to a scoped temporary file."""

import logging
import os
import posixpath
import tempfile
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from urllib.parse import urlparse

import httpx

from .errors import DownloadError

logger = logging.getLogger(__name__)

OK_STATUSES = (200, 206)


def _suffix_for(url: str) -> str:
    ext = posixpath.splitext(urlparse(url).path)[1]
    return ext if 0 < len(ext) <= 8 else ""


@asynccontextmanager
async def download(
    url: str, timeout: float = 60.0, transport: Optional[httpx.AsyncBaseTransport] = None
) -> AsyncIterator[str]:
    """Download ``url`` into a temporary file and yield its path.

    The file is removed when the block exits, whatever the outcome.

    :param url: Remote media URL.
    :param timeout: Deadline for the whole request in seconds.
    :param transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """
    fd, path = tempfile.mkstemp(prefix="media-", suffix=_suffix_for(url))
    try:
        with os.fdopen(fd, "wb") as f:
            try:
                async with httpx.AsyncClient(
                    transport=transport, timeout=timeout, follow_redirects=True
                ) as client:
                    async with client.stream("GET", url) as resp:
                        if resp.status_code not in OK_STATUSES:
                            raise DownloadError(f"failed to download {url}: HTTP {resp.status_code}")
                        async for chunk in resp.aiter_bytes():
                            f.write(chunk)
            except httpx.HTTPError as e:
                raise DownloadError(f"failed to download {url}: {e}") from e
        logger.info("downloaded %s to %s (%d bytes)", url, path, os.path.getsize(path))
        yield path
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
