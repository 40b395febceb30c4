"""Construction and serialization of NIP-68 picture and NIP-71 video events."""

import json
import posixpath
import re
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence
from urllib.parse import unquote, urlparse

from pynostr.event import Event

from .errors import ValidationError
from .media import MediaFingerprint

KIND_PICTURE = 20  # NIP-68 picture-first feeds
KIND_VIDEO = 21  # NIP-71 horizontal video
KIND_SHORT_VIDEO = 22  # NIP-71 vertical video
KIND_LEGACY_VIDEO = 34235
KIND_LEGACY_SHORT_VIDEO = 34236
KIND_CLIENT_AUTH = 22242  # NIP-42
KIND_BLOSSOM_AUTH = 24242  # BUD-01 authorization

HORIZONTAL_ALT = "Horizontal Video"
VERTICAL_ALT = "Vertical Video"

_TIMESTAMP_RE = re.compile(r"[+-]?[0-9]+")
_HASHTAG_RE = re.compile(r"#(\w+)", re.ASCII)


@dataclass(frozen=True)
class MediaItem:
    """A media file ready to be described in an imeta tag."""

    url: str
    fingerprint: MediaFingerprint
    name: str = ""


# ----------------------- Wire form -----------------------

_FIELD_TYPES = (
    ("pubkey", str),
    ("created_at", int),
    ("kind", int),
    ("tags", list),
    ("content", str),
)


def event_to_json(event: Event) -> str:
    return json.dumps(event.to_dict(), ensure_ascii=False)


def event_from_json(text: str) -> Event:
    """Parse the wire JSON form of an event.

    The id is recomputed from the content; a supplied id that does not match
    is rejected.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"invalid event JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("event JSON must be an object")
    missing = [name for name, _ in _FIELD_TYPES if name not in data]
    if missing:
        raise ValidationError(f"event JSON missing fields: {', '.join(missing)}")
    for name, expected in _FIELD_TYPES:
        value = data[name]
        if not isinstance(value, expected) or isinstance(value, bool):
            raise ValidationError(f"event field {name!r} must be of type {expected.__name__}")
    for tag in data["tags"]:
        if not isinstance(tag, list) or not all(isinstance(item, str) for item in tag):
            raise ValidationError(f"event tags must be lists of strings: {tag!r}")

    event = Event.from_dict({**data, "sig": data.get("sig")})
    if data.get("id") is not None and data["id"] != event.id:
        raise ValidationError(f"event id {data['id']} does not match its content")
    return event


def new_event(kind: int, pubkey: str, tags: List[List[str]], content: str = "", created_at: Optional[int] = None) -> Event:
    """Create an unsigned event; pynostr computes its id."""
    return Event(
        content=content,
        pubkey=pubkey,
        created_at=created_at if created_at is not None else int(time.time()),
        kind=kind,
        tags=tags,
    )


# ----------------------- Validation & defaults -----------------------

def validate_url(url: Optional[str]) -> str:
    if not url:
        raise ValidationError("media URL cannot be empty")
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValidationError(f"invalid media URL: {url}")
    return url


def validate_timestamp(value: Optional[str]) -> str:
    if value is None or not _TIMESTAMP_RE.fullmatch(value):
        raise ValidationError(f"invalid published_at timestamp: {value!r}")
    return value


def resolve_published_at(explicit: Optional[str], uploaded: Optional[int] = None, now: Optional[int] = None) -> str:
    """Pick the publish time: explicit value, then upload time, then now."""
    if explicit:
        return validate_timestamp(explicit)
    if uploaded is not None:
        return str(int(uploaded))
    return str(now if now is not None else int(time.time()))


def name_from_url(url: str) -> str:
    return unquote(posixpath.basename(urlparse(url).path)) or url


def extract_hashtags(content: str) -> List[List[str]]:
    return [["t", tag] for tag in _HASHTAG_RE.findall(content or "")]


# ----------------------- Video (NIP-71) -----------------------

def video_kind(fingerprint: MediaFingerprint, legacy: bool = False) -> int:
    kind = KIND_LEGACY_VIDEO if legacy else KIND_VIDEO
    if fingerprint.vertical:
        kind += 1
    return kind


def build_video_imeta(url: str, fingerprint: MediaFingerprint, alt: str) -> List[str]:
    return [
        "imeta",
        f"url {url}",
        f"m {fingerprint.mime_type}",
        f"alt {alt}",
        f"x {fingerprint.sha256}",
        f"size {fingerprint.size}",
        f"dim {fingerprint.dim}",
        f"blurhash {fingerprint.blurhash}",
    ]


def build_video_event(
    fingerprint: MediaFingerprint,
    url: str,
    pubkey: str,
    published_at: str,
    title: Optional[str] = None,
    description: str = "",
    descriptor: Optional[str] = None,
    legacy: bool = False,
    duration: int = 0,
    hashtags: bool = False,
    created_at: Optional[int] = None,
) -> Event:
    """Build an unsigned NIP-71 video event.

    Vertical videos (height > width) get kind 22, or 34236 in legacy mode.
    Legacy events carry a ``d`` tag: ``descriptor`` when given (even empty),
    otherwise the content hash.
    """
    validate_url(url)
    validate_timestamp(published_at)
    alt = VERTICAL_ALT if fingerprint.vertical else HORIZONTAL_ALT
    tags = [
        ["alt", alt],
        ["title", title or url],
        ["published_at", published_at],
        build_video_imeta(url, fingerprint, alt),
    ]
    if legacy:
        tags.append(["d", descriptor if descriptor is not None else fingerprint.sha256])
    if duration > 0:
        tags.append(["duration", str(duration)])
    if hashtags:
        tags.extend(extract_hashtags(description))
    return new_event(video_kind(fingerprint, legacy), pubkey, tags, description or "", created_at)


# ----------------------- Picture (NIP-68) -----------------------

def build_picture_imeta(url: str, fingerprint: MediaFingerprint) -> List[str]:
    return [
        "imeta",
        f"url {url}",
        f"x {fingerprint.sha256}",
        f"dim {fingerprint.dim}",
        f"m {fingerprint.mime_type}",
        f"blurhash {fingerprint.blurhash}",
    ]


def build_picture_event(
    items: Sequence[MediaItem],
    pubkey: str,
    published_at: str,
    title: Optional[str] = None,
    description: str = "",
    hashtags: bool = False,
    created_at: Optional[int] = None,
) -> Event:
    """Build an unsigned NIP-68 picture event with one imeta tag per item.

    Items keep the order they are given in. Without a title the first item's
    file name is used.
    """
    if not items:
        raise ValidationError("at least one image is required")
    for item in items:
        validate_url(item.url)
    validate_timestamp(published_at)
    first = items[0]
    tags = [
        ["title", title or first.name or name_from_url(first.url)],
        ["published_at", published_at],
    ]
    tags.extend(build_picture_imeta(item.url, item.fingerprint) for item in items)
    if hashtags:
        tags.extend(extract_hashtags(description))
    return new_event(KIND_PICTURE, pubkey, tags, description or "", created_at)
