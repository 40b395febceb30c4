"""Build, sign and publish Nostr picture (NIP-68) and video (NIP-71) events."""

__version__ = "0.1.0"

from .client import BlossomClient, UploadResult
from .config import PublishConfig
from .errors import (
    BlossomError,
    DownloadError,
    KeyDecodeError,
    MediaError,
    NetworkError,
    NostrMediaError,
    PowError,
    RelayError,
    SignError,
    TypeMismatchError,
    UnknownTypeError,
    ValidationError,
    WorkCancelledError,
)
from .event import MediaItem, build_picture_event, build_video_event, event_from_json, event_to_json
from .media import MediaFingerprint, fingerprint
from .pipeline import MediaPublisher
from .pow import stamp_work
from .relay import RelayPublisher, RelayResult, RelayStatus, load_relays, resolve_relays
from .signer import LocalSigner, RemoteSigner, Signer

__all__ = [
    "BlossomClient",
    "BlossomError",
    "DownloadError",
    "KeyDecodeError",
    "LocalSigner",
    "MediaError",
    "MediaFingerprint",
    "MediaItem",
    "MediaPublisher",
    "NetworkError",
    "NostrMediaError",
    "PowError",
    "PublishConfig",
    "RelayError",
    "RelayPublisher",
    "RelayResult",
    "RelayStatus",
    "RemoteSigner",
    "SignError",
    "Signer",
    "TypeMismatchError",
    "UnknownTypeError",
    "UploadResult",
    "ValidationError",
    "WorkCancelledError",
    "build_picture_event",
    "build_video_event",
    "event_from_json",
    "event_to_json",
    "fingerprint",
    "load_relays",
    "resolve_relays",
    "stamp_work",
]
