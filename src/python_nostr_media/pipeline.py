"""Orchestration: media in, signed event out, then relays."""

import asyncio
import logging
import os
import threading
from typing import List, Optional, Sequence, Tuple

import httpx
from pynostr.event import Event

from .client import BlossomClient, UploadResult
from .config import PublishConfig
from .errors import SignError, ValidationError, WorkCancelledError
from .event import (
    MediaItem,
    build_picture_event,
    build_video_event,
    name_from_url,
    resolve_published_at,
    validate_timestamp,
    validate_url,
)
from .fetch import download
from .media import IMAGE, VIDEO, MediaFingerprint, fingerprint, sniff_file
from .pow import stamp_work
from .relay import RelayPublisher, RelayResult
from .signer import Signer

logger = logging.getLogger(__name__)


def _check_file(path: str) -> None:
    if not path:
        raise ValidationError("file path cannot be empty")
    if not os.path.isfile(path):
        raise ValidationError(f"file not found: {path}")


class MediaPublisher:
    """Builds, proves work on, signs and publishes media events.

    :param signer: Signer used for the media event, Blossom auth and relay auth.
    :param config: Runtime settings (defaults to ``PublishConfig()``).
    :param uploader: Blossom client; one is built from ``config`` if None.
    :param relay_publisher: Relay publisher; one is built from ``config`` if None.
    :param transport: Optional httpx transport shared by download and upload.
    """

    def __init__(
        self,
        signer: Signer,
        config: Optional[PublishConfig] = None,
        uploader: Optional[BlossomClient] = None,
        relay_publisher: Optional[RelayPublisher] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.signer = signer
        self.config = config or PublishConfig()
        self.transport = transport
        self.uploader = uploader or BlossomClient(
            signer,
            self.config.blossom_server,
            expiration_seconds=self.config.auth_expiration,
            timeout=self.config.upload_timeout,
            transport=transport,
        )
        self.relay_publisher = relay_publisher or RelayPublisher(
            signer,
            connect_timeout=self.config.connect_timeout,
            publish_timeout=self.config.publish_timeout,
            auth_timeout=self.config.auth_timeout,
        )

    # ----------------------- Stages -----------------------
    async def _fingerprint(self, path: str, media_class: str) -> MediaFingerprint:
        return await asyncio.to_thread(
            fingerprint, path, media_class, self.config.ffmpeg, self.config.frame_timeout
        )

    async def _upload(self, path: str, media_class: str, mime_type: str) -> Tuple[MediaItem, UploadResult]:
        result = await self.uploader.upload_blob(path, mime_type)
        fp = await self._fingerprint(path, media_class)
        return MediaItem(result.url, fp, os.path.basename(path)), result

    async def _fetch(self, url: str, media_class: str) -> MediaItem:
        async with download(url, self.config.download_timeout, self.transport) as path:
            fp = await self._fingerprint(path, media_class)
        return MediaItem(url, fp, name_from_url(url))

    async def _public_key(self) -> str:
        try:
            return await asyncio.wait_for(self.signer.get_public_key(), self.config.signer_timeout)
        except asyncio.TimeoutError:
            raise SignError("signer did not return a public key in time") from None

    async def _stamp_work(self, event: Event) -> Event:
        difficulty = self.config.difficulty
        if difficulty <= 0:
            return event
        cancel = threading.Event()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(stamp_work, event, difficulty, cancel), self.config.pow_timeout
            )
        except asyncio.TimeoutError:
            raise WorkCancelledError(
                f"no nonce for difficulty {difficulty} within {self.config.pow_timeout}s"
            ) from None
        finally:
            cancel.set()

    async def _sign(self, event: Event) -> Event:
        try:
            await asyncio.wait_for(self.signer.sign(event), self.config.signer_timeout)
        except asyncio.TimeoutError:
            raise SignError("signer did not respond in time") from None
        return event

    async def _finish(self, event: Event) -> Event:
        event = await self._stamp_work(event)
        return await self._sign(event)

    # ----------------------- Operations -----------------------
    async def create_picture_event(
        self,
        files: Sequence[str] = (),
        urls: Sequence[str] = (),
        title: Optional[str] = None,
        description: str = "",
        published_at: Optional[str] = None,
        hashtags: bool = False,
    ) -> Event:
        """Build a signed kind 20 picture event.

        Local files are uploaded to the Blossom server, remote URLs are
        referenced as they are. Items keep supply order, files first.
        """
        files = list(files or [])
        urls = list(urls or [])
        if not files and not urls:
            raise ValidationError("at least one image file or URL is required")
        if published_at:
            validate_timestamp(published_at)
        for path in files:
            _check_file(path)
        for url in urls:
            validate_url(url)
        mime_types = [sniff_file(path, IMAGE) for path in files]

        items: List[MediaItem] = []
        uploaded = None
        for path, mime_type in zip(files, mime_types):
            item, result = await self._upload(path, IMAGE, mime_type)
            items.append(item)
            if result.uploaded is not None:
                uploaded = result.uploaded
        for url in urls:
            items.append(await self._fetch(url, IMAGE))

        pubkey = await self._public_key()
        event = build_picture_event(
            items,
            pubkey,
            resolve_published_at(published_at, uploaded),
            title=title,
            description=description,
            hashtags=hashtags,
        )
        return await self._finish(event)

    async def create_video_event(
        self,
        file: Optional[str] = None,
        url: Optional[str] = None,
        title: Optional[str] = None,
        description: str = "",
        published_at: Optional[str] = None,
        descriptor: Optional[str] = None,
        legacy: bool = False,
        duration: int = 0,
        hashtags: bool = False,
    ) -> Event:
        """Build a signed NIP-71 video event from exactly one of ``file`` or ``url``."""
        if bool(file) == bool(url):
            raise ValidationError("exactly one of a video file or URL is required")
        if published_at:
            validate_timestamp(published_at)
        if duration < 0:
            raise ValidationError(f"duration must not be negative: {duration}")

        uploaded = None
        if file:
            _check_file(file)
            mime_type = sniff_file(file, VIDEO)
            item, result = await self._upload(file, VIDEO, mime_type)
            uploaded = result.uploaded
        else:
            validate_url(url)
            item = await self._fetch(url, VIDEO)

        pubkey = await self._public_key()
        event = build_video_event(
            item.fingerprint,
            item.url,
            pubkey,
            resolve_published_at(published_at, uploaded),
            title=title,
            description=description,
            descriptor=descriptor,
            legacy=legacy,
            duration=duration,
            hashtags=hashtags,
        )
        return await self._finish(event)

    async def publish(self, event: Event, relays: Sequence[str]) -> List[RelayResult]:
        if not relays:
            logger.info("no relays given, event %s not published", event.id)
            return []
        results = await self.relay_publisher.publish(event, relays)
        published = sum(1 for r in results if r.ok)
        logger.info("event %s published to %d of %d relays", event.id, published, len(results))
        return results
