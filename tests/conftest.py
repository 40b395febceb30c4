"""Test configuration and shared fixtures."""
import os

import pytest
from PIL import Image
from pynostr.event import Event

from python_nostr_media import media
from python_nostr_media.signer import LocalSigner

# Fixed test identity, never used outside the test suite
SECRET_HEX = "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"

BLOSSOM_SERVER = "https://blossom.test"

# Minimal ISO-BMFF header: enough for the sniffer to call it video/mp4
MP4_HEADER = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom"
VIDEO_BYTES = MP4_HEADER + bytes(range(256)) * 4


def write_image(path, size, fmt="PNG"):
    """Write a small gradient image so the blurhash has something to encode."""
    width, height = size
    img = Image.new("RGB", size)
    img.putdata([
        (x * 255 // max(width - 1, 1), y * 255 // max(height - 1, 1), 128)
        for y in range(height)
        for x in range(width)
    ])
    img.save(path, fmt)
    return str(path)


def write_video(path):
    with open(path, "wb") as f:
        f.write(VIDEO_BYTES)
    return str(path)


def canonical_id(event):
    """The id pynostr derives from the event's current fields."""
    return Event(
        content=event.content,
        pubkey=event.pubkey,
        created_at=event.created_at,
        kind=event.kind,
        tags=event.tags,
    ).id


class FakeFFmpeg:
    """Stands in for the ffmpeg call, writing a JPEG frame of ``size``."""

    def __init__(self):
        self.size = (64, 36)
        self.frames = []
        self.empty = False

    def __call__(self, ffmpeg, video_path, frame_path, offset, timeout):
        self.frames.append(frame_path)
        if not self.empty:
            write_image(frame_path, self.size, "JPEG")


@pytest.fixture
def fake_ffmpeg(monkeypatch):
    fake = FakeFFmpeg()
    monkeypatch.setattr(media, "_run_ffmpeg", fake)
    return fake


@pytest.fixture
def signer():
    return LocalSigner(SECRET_HEX)


@pytest.fixture
def image_file(tmp_path):
    """A 48x32 landscape JPEG named cat.jpg."""
    return write_image(tmp_path / "cat.jpg", (48, 32), "JPEG")


@pytest.fixture
def portrait_file(tmp_path):
    return write_image(tmp_path / "portrait.png", (20, 40))


@pytest.fixture
def video_file(tmp_path):
    return write_video(tmp_path / "clip.mp4")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of config-dependent tests."""
    for name in list(os.environ):
        if name.startswith("NOSTR_MEDIA_") or name == "NOSTR_SECRET_KEY":
            monkeypatch.delenv(name)
