"""Tests for media sniffing and fingerprinting."""

import hashlib
import os

import pytest

from conftest import MP4_HEADER, VIDEO_BYTES
from python_nostr_media.errors import MediaError, TypeMismatchError, UnknownTypeError
from python_nostr_media.media import IMAGE, VIDEO, detect_mime_type, fingerprint


@pytest.mark.parametrize(
    "head,expected",
    [
        (b"\x89PNG\r\n\x1a\n" + b"\x00" * 16, "image/png"),
        (b"\xff\xd8\xff\xe0" + b"\x00" * 16, "image/jpeg"),
        (b"GIF89a" + b"\x00" * 16, "image/gif"),
        (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
        (MP4_HEADER, "video/mp4"),
        (b"\x00\x00\x00\x14ftypqt  \x00\x00\x00\x00", "video/quicktime"),
        (b"\x1a\x45\xdf\xa3\x9f\x42\x86\x81\x01webm", "video/webm"),
        (b"hello world", None),
    ],
)
def test_detect_mime_type(head, expected):
    assert detect_mime_type(head) == expected


def test_fingerprint_image(image_file):
    fp = fingerprint(image_file, IMAGE)

    with open(image_file, "rb") as f:
        data = f.read()
    assert fp.width == 48
    assert fp.height == 32
    assert fp.dim == "48x32"
    assert fp.mime_type == "image/jpeg"
    assert fp.sha256 == hashlib.sha256(data).hexdigest()
    assert fp.size == len(data)
    assert fp.blurhash
    assert not fp.vertical


def test_fingerprint_is_deterministic(image_file):
    assert fingerprint(image_file, IMAGE) == fingerprint(image_file, IMAGE)


def test_fingerprint_portrait_image(portrait_file):
    fp = fingerprint(portrait_file, IMAGE)

    assert fp.mime_type == "image/png"
    assert fp.dim == "20x40"
    assert fp.vertical


def test_fingerprint_rejects_unknown_type(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("not an image")

    with pytest.raises(UnknownTypeError):
        fingerprint(str(path), IMAGE)


def test_fingerprint_rejects_wrong_media_class(image_file):
    with pytest.raises(TypeMismatchError) as exc_info:
        fingerprint(image_file, VIDEO)
    assert exc_info.value.mime_type == "image/jpeg"
    assert isinstance(exc_info.value, MediaError)


def test_fingerprint_undecodable_image(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n" + b"garbage" * 20)

    with pytest.raises(MediaError):
        fingerprint(str(path), IMAGE)


def test_fingerprint_video_uses_extracted_frame(video_file, fake_ffmpeg):
    fake_ffmpeg.size = (32, 18)

    fp = fingerprint(video_file, VIDEO)

    assert fp.mime_type == "video/mp4"
    assert fp.dim == "32x18"
    assert fp.sha256 == hashlib.sha256(VIDEO_BYTES).hexdigest()
    assert fp.size == len(VIDEO_BYTES)
    assert len(fake_ffmpeg.frames) == 1
    assert not os.path.exists(fake_ffmpeg.frames[0])


def test_fingerprint_vertical_video(video_file, fake_ffmpeg):
    fake_ffmpeg.size = (18, 32)

    assert fingerprint(video_file, VIDEO).vertical


def test_fingerprint_video_without_frame(video_file, fake_ffmpeg):
    fake_ffmpeg.empty = True

    with pytest.raises(MediaError, match="no frame extracted"):
        fingerprint(video_file, VIDEO)
    assert not os.path.exists(fake_ffmpeg.frames[0])


def test_fingerprint_video_missing_ffmpeg(video_file, tmp_path):
    with pytest.raises(MediaError, match="not found"):
        fingerprint(video_file, VIDEO, ffmpeg=str(tmp_path / "no-such-ffmpeg"))
