"""Async Blossom upload client (BUD-02 ``PUT /upload``)."""

import base64
import hashlib
import json
import logging
import mimetypes
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .errors import BlossomError, get_error_from_status
from .event import KIND_BLOSSOM_AUTH, new_event
from .media import SNIFF_LENGTH, detect_mime_type
from .signer import Signer

logger = logging.getLogger(__name__)

AUTH_KIND = KIND_BLOSSOM_AUTH
DEFAULT_EXPIRATION_SECONDS = 300
SUCCESS_STATUSES = (200, 201, 202)


@dataclass
class UploadResult:
    """Blob descriptor returned by the server."""

    url: str
    sha256: str
    size: int
    mime_type: str
    uploaded: Optional[int] = None


class BlossomClient:
    """Uploads blobs to a Blossom server, authorizing with a signed kind 24242 event.

    :param signer: Signer used for the authorization event.
    :param server: Blossom server base URL.
    :param expiration_seconds: Lifetime of the authorization event.
    :param timeout: Request deadline in seconds.
    :param transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        signer: Signer,
        server: str,
        expiration_seconds: int = DEFAULT_EXPIRATION_SECONDS,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not server:
            raise BlossomError("Server URL required.")
        self.signer = signer
        self.server = server
        self.expiration_seconds = expiration_seconds
        self.timeout = timeout
        self._transport = transport

    # ----------------------- Internal Helpers -----------------------
    def _sha256_bytes(self, data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    def _detect_mime_type(self, data: bytes, file_path: Optional[str] = None) -> str:
        """Sniff magic bytes first, then fall back to the file extension."""
        sniffed = detect_mime_type(data[:SNIFF_LENGTH])
        if sniffed:
            return sniffed
        if file_path:
            guessed, _ = mimetypes.guess_type(file_path)
            if guessed:
                return guessed
        return "application/octet-stream"

    async def _build_auth_event(self, verb: str, x_hashes: Optional[List[str]] = None, content: Optional[str] = None) -> str:
        """Build and sign an authorization event, returned base64 encoded."""
        created_at = int(time.time())
        tags: List[List[str]] = [["t", verb]]
        for h in x_hashes or []:
            tags.append(["x", h])
        tags.append(["expiration", str(created_at + self.expiration_seconds)])
        pubkey = await self.signer.get_public_key()
        ev = new_event(AUTH_KIND, pubkey, tags, content or f"{verb.capitalize()} Blob", created_at)
        await self.signer.sign(ev)
        ev_json = json.dumps(ev.to_dict())
        return base64.b64encode(ev_json.encode()).decode()

    async def _auth_header(self, verb: str, x_hashes: Optional[List[str]] = None, content: Optional[str] = None) -> Dict[str, str]:
        return {"Authorization": f"Nostr {await self._build_auth_event(verb, x_hashes, content)}"}

    def _full_url(self, path: str) -> str:
        return self.server.rstrip("/") + "/" + path.lstrip("/")

    def _handle_response(self, resp: httpx.Response) -> Dict[str, Any]:
        if resp.status_code not in SUCCESS_STATUSES:
            reason = resp.headers.get("X-Reason") or resp.text
            raise get_error_from_status(resp.status_code, reason)
        try:
            data = resp.json()
        except ValueError:
            raise BlossomError("Invalid JSON in response") from None
        if not isinstance(data, dict):
            raise BlossomError("Expected JSON blob descriptor")
        return data

    # ----------------------- Endpoint Methods -----------------------
    async def upload_blob(self, file_path: str, mime_type: Optional[str] = None, description: Optional[str] = None) -> UploadResult:
        """Upload a local file (PUT /upload).

        :param file_path: Path to file to read.
        :param mime_type: Content-Type header value (sniffed if None).
        :param description: Human readable content of the auth event.
        :return: UploadResult with the public URL and server upload time.
        """
        try:
            with open(file_path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise BlossomError(f"cannot read {file_path}: {e}") from e

        body_hash = self._sha256_bytes(data)
        if mime_type is None:
            mime_type = self._detect_mime_type(data, file_path)

        headers = {"Content-Type": mime_type, "Content-Length": str(len(data))}
        headers.update(await self._auth_header("upload", [body_hash], content=description or "Upload file"))

        url = self._full_url("upload")
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                resp = await client.put(url, headers=headers, content=data)
        except httpx.HTTPError as e:
            raise BlossomError(f"upload to {url} failed: {e}") from e
        descriptor = self._handle_response(resp)

        blob_url = descriptor.get("url")
        if not isinstance(blob_url, str) or not blob_url.strip():
            raise BlossomError("Blob descriptor missing required field: url")
        uploaded = descriptor.get("uploaded")
        if isinstance(uploaded, bool) or not isinstance(uploaded, (int, float)):
            uploaded = None
        logger.info("uploaded %s to %s", file_path, blob_url)
        return UploadResult(
            url=blob_url,
            sha256=descriptor.get("sha256") or body_hash,
            size=len(data),
            mime_type=mime_type,
            uploaded=int(uploaded) if uploaded is not None else None,
        )
