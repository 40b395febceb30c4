"""Runtime configuration with documented defaults."""

import os
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Tuple

from .errors import ValidationError

DEFAULT_BLOSSOM_SERVER = "https://cdn.nostrcheck.me"
DEFAULT_DIFFICULTY = 16
DEFAULT_RELAYS: Tuple[str, ...] = ("wss://relay.damus.io", "wss://nos.lol")
DEFAULT_AUTH_EXPIRATION_SECONDS = 300  # Blossom upload authorization lifetime

ENV_PREFIX = "NOSTR_MEDIA_"


def _env_number(name: str, convert: Callable):
    value = os.getenv(ENV_PREFIX + name)
    if not value:
        return None
    try:
        return convert(value)
    except ValueError:
        raise ValidationError(f"{ENV_PREFIX}{name} must be a number, got {value!r}") from None


@dataclass(frozen=True)
class PublishConfig:
    """Settings shared by the pipeline stages.

    Timeouts are in seconds. ``pow_timeout`` of None means proof of work runs
    until a nonce is found. ``default_relays`` is only used when publishing is
    requested without an explicit relay target.
    """

    blossom_server: str = DEFAULT_BLOSSOM_SERVER
    difficulty: int = DEFAULT_DIFFICULTY
    default_relays: Tuple[str, ...] = field(default=DEFAULT_RELAYS)
    connect_timeout: float = 5.0
    publish_timeout: float = 5.0
    auth_timeout: float = 20.0
    signer_timeout: float = 15.0
    download_timeout: float = 60.0
    upload_timeout: float = 120.0
    auth_expiration: int = DEFAULT_AUTH_EXPIRATION_SECONDS
    ffmpeg: str = "ffmpeg"
    frame_timeout: float = 60.0
    pow_timeout: Optional[float] = None

    @classmethod
    def from_env(cls, **overrides) -> "PublishConfig":
        """Build a config from ``NOSTR_MEDIA_*`` environment variables.

        Recognized: BLOSSOM_SERVER, DIFFICULTY, RELAYS (comma separated),
        CONNECT_TIMEOUT, PUBLISH_TIMEOUT, AUTH_TIMEOUT, FFMPEG, POW_TIMEOUT.
        Keyword overrides win over the environment.
        """
        config = cls()
        env = {}
        server = os.getenv(ENV_PREFIX + "BLOSSOM_SERVER")
        if server:
            env["blossom_server"] = server
        difficulty = _env_number("DIFFICULTY", int)
        if difficulty is not None:
            env["difficulty"] = difficulty
        relays = os.getenv(ENV_PREFIX + "RELAYS")
        if relays:
            env["default_relays"] = tuple(r.strip() for r in relays.split(",") if r.strip())
        for name in ("connect_timeout", "publish_timeout", "auth_timeout", "pow_timeout"):
            value = _env_number(name.upper(), float)
            if value is not None:
                env[name] = value
        ffmpeg = os.getenv(ENV_PREFIX + "FFMPEG")
        if ffmpeg:
            env["ffmpeg"] = ffmpeg
        env.update({k: v for k, v in overrides.items() if v is not None})
        return replace(config, **env)
