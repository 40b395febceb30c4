"""Publishing signed events to relays, with NIP-42 authentication retry."""

import asyncio
import enum
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import websockets
from pynostr.event import Event
from websockets.exceptions import WebSocketException

from .errors import NostrMediaError, RelayError, ValidationError
from .event import KIND_CLIENT_AUTH, new_event
from .signer import Signer

logger = logging.getLogger(__name__)

RELAY_SCHEMES = ("ws://", "wss://")
AUTH_REQUIRED_PREFIX = "auth-required:"

_RELAY_FAILURES = (asyncio.TimeoutError, WebSocketException, OSError, NostrMediaError)


class RelayStatus(enum.Enum):
    PUBLISHED = "published"
    FAILED = "failed"
    CONNECT_FAILED = "connect_failed"


@dataclass
class RelayResult:
    """Outcome of publishing one event to one relay."""

    url: str
    status: RelayStatus
    message: str = ""
    authenticated: bool = False

    @property
    def ok(self) -> bool:
        return self.status is RelayStatus.PUBLISHED

    def describe(self) -> str:
        if self.ok:
            suffix = " after auth" if self.authenticated else ""
            return f"Published event to relay {self.url} successfully{suffix}"
        if self.status is RelayStatus.CONNECT_FAILED:
            return f"Error connecting to relay {self.url}: {self.message}"
        return f"Error publishing event to relay {self.url}: {self.message}"


def _describe_error(e: BaseException) -> str:
    return str(e) or type(e).__name__


# ----------------------- Relay targets -----------------------

def is_relay_uri(value: str) -> bool:
    return value.startswith(RELAY_SCHEMES)


def load_relays_file(path: str) -> List[str]:
    """Read a JSON array of relay URIs."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ValidationError(f"Error opening {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ValidationError(f"Error decoding {path}: {e}") from e
    if not isinstance(data, list):
        raise ValidationError(f"{path} must contain a JSON array of relay URLs")
    for relay in data:
        if not isinstance(relay, str) or not is_relay_uri(relay):
            raise ValidationError(f"invalid relay URL in {path}: {relay!r}")
    return data


def load_relays(param: Optional[str]) -> List[str]:
    """Resolve a relay option: a ws(s) URI, or a path to a relay-list file.

    Anything else yields no relays.
    """
    if not param:
        return []
    if is_relay_uri(param):
        return [param]
    if os.path.isfile(param):
        return load_relays_file(param)
    return []


def resolve_relays(primary: Optional[str], secondary: Optional[str] = None) -> List[str]:
    """Resolve ``primary``; fall back to ``secondary`` only when it yields nothing."""
    relays = load_relays(primary)
    if not relays:
        relays = load_relays(secondary)
    return relays


# ----------------------- Publishing -----------------------

class _RelaySession:
    """Message handling on one open relay connection."""

    def __init__(self, url: str, websocket: Any):
        self.url = url
        self.websocket = websocket
        self.challenge: Optional[str] = None

    async def send(self, *message: Any) -> None:
        await self.websocket.send(json.dumps(list(message)))

    async def _receive(self) -> Optional[list]:
        raw = await self.websocket.recv()
        try:
            msg = json.loads(raw)
        except ValueError:
            logger.debug("ignoring malformed message from %s: %r", self.url, raw)
            return None
        if not isinstance(msg, list) or not msg:
            return None
        if msg[0] == "AUTH" and len(msg) > 1 and isinstance(msg[1], str):
            self.challenge = msg[1]
        elif msg[0] == "NOTICE" and len(msg) > 1:
            logger.info("notice from %s: %s", self.url, msg[1])
        return msg

    async def wait_ok(self, event_id: str) -> Tuple[bool, str]:
        while True:
            msg = await self._receive()
            if msg and msg[0] == "OK" and len(msg) >= 3 and msg[1] == event_id:
                return msg[2] is True, str(msg[3]) if len(msg) > 3 else ""

    async def wait_challenge(self) -> str:
        while self.challenge is None:
            await self._receive()
        return self.challenge


class RelayPublisher:
    """Publishes an event to many relays concurrently, one connection each.

    :param signer: Signs NIP-42 auth events when a relay asks for them.
    :param connect_timeout: Deadline for opening a connection.
    :param publish_timeout: Deadline for the first publish attempt.
    :param auth_timeout: Deadline for the auth handshake and for the retried
        publish. Longer, since a remote signer may be involved.
    """

    def __init__(self, signer: Signer, connect_timeout: float = 5.0, publish_timeout: float = 5.0, auth_timeout: float = 20.0):
        self.signer = signer
        self.connect_timeout = connect_timeout
        self.publish_timeout = publish_timeout
        self.auth_timeout = auth_timeout

    async def publish(self, event: Event, relays: Sequence[str]) -> List[RelayResult]:
        """Publish ``event`` to every relay. Results follow the order of ``relays``."""
        tasks = [self.publish_to_relay(event, url) for url in relays]
        return list(await asyncio.gather(*tasks))

    async def publish_to_relay(self, event: Event, url: str) -> RelayResult:
        try:
            websocket = await asyncio.wait_for(
                websockets.connect(url, open_timeout=self.connect_timeout), self.connect_timeout
            )
        except (*_RELAY_FAILURES, ValueError) as e:
            logger.warning("Error connecting to relay %s: %s", url, _describe_error(e))
            return RelayResult(url, RelayStatus.CONNECT_FAILED, _describe_error(e))

        session = _RelaySession(url, websocket)
        try:
            result = await self._publish(session, event)
        except _RELAY_FAILURES as e:
            logger.warning("Error publishing event to relay %s: %s", url, _describe_error(e))
            result = RelayResult(url, RelayStatus.FAILED, _describe_error(e))
        finally:
            await websocket.close()
        return result

    async def _send_event(self, session: _RelaySession, event: Event) -> Tuple[bool, str]:
        await session.send("EVENT", event.to_dict())
        return await session.wait_ok(event.id)

    async def _publish(self, session: _RelaySession, event: Event) -> RelayResult:
        url = session.url
        accepted, message = await asyncio.wait_for(self._send_event(session, event), self.publish_timeout)
        if accepted:
            logger.info("Published event to relay %s successfully", url)
            return RelayResult(url, RelayStatus.PUBLISHED, message)
        if not message.startswith(AUTH_REQUIRED_PREFIX):
            logger.warning("Error publishing event to relay %s: %s", url, message)
            return RelayResult(url, RelayStatus.FAILED, message)

        # The signer is pluggable, so any failure it raises stays with this relay.
        try:
            await asyncio.wait_for(self._authenticate(session), self.auth_timeout)
        except Exception as e:
            logger.warning("Error sending auth event to relay %s: %s", url, _describe_error(e))
            return RelayResult(url, RelayStatus.FAILED, f"auth failed: {_describe_error(e)}")

        accepted, message = await asyncio.wait_for(self._send_event(session, event), self.auth_timeout)
        if accepted:
            logger.info("Published event to relay %s successfully after auth", url)
            return RelayResult(url, RelayStatus.PUBLISHED, message, authenticated=True)
        logger.warning("Error publishing event to relay %s after auth: %s", url, message)
        return RelayResult(url, RelayStatus.FAILED, message, authenticated=True)

    async def _authenticate(self, session: _RelaySession) -> None:
        challenge = session.challenge or await session.wait_challenge()
        pubkey = await self.signer.get_public_key()
        auth_event = new_event(KIND_CLIENT_AUTH, pubkey, [["relay", session.url], ["challenge", challenge]])
        await self.signer.sign(auth_event)
        await session.send("AUTH", auth_event.to_dict())
        accepted, message = await session.wait_ok(auth_event.id)
        if not accepted:
            raise RelayError(f"auth rejected: {message}")
