"""Media fingerprinting: MIME sniffing, dimensions, blurhash and content hash."""

import hashlib
import logging
import os
import subprocess
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import blurhash
from PIL import Image, UnidentifiedImageError

from .errors import MediaError, TypeMismatchError, UnknownTypeError

logger = logging.getLogger(__name__)

IMAGE = "image"
VIDEO = "video"
MEDIA_CLASSES = (IMAGE, VIDEO)

SNIFF_LENGTH = 261
FRAME_OFFSET = "00:00:01.000"
BLURHASH_COMPONENTS = (9, 7)
BLURHASH_SAMPLE_SIZE = 64  # longest side of the thumbnail fed to the encoder
_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class MediaFingerprint:
    """Metadata derived from a single media file."""

    width: int
    height: int
    blurhash: str
    sha256: str
    size: int
    mime_type: str

    @property
    def dim(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def vertical(self) -> bool:
        return self.height > self.width


def _iso_bmff_type(brand: bytes) -> str:
    if brand == b"qt  ":
        return "video/quicktime"
    if brand.startswith(b"M4V"):
        return "video/x-m4v"
    if brand.startswith(b"3gp"):
        return "video/3gpp"
    if brand in (b"avif", b"avis"):
        return "image/avif"
    if brand in (b"heic", b"heix", b"heim", b"heis"):
        return "image/heic"
    if brand in (b"mif1", b"msf1"):
        return "image/heif"
    return "video/mp4"


def detect_mime_type(head: bytes) -> Optional[str]:
    """Detect the MIME type of media from its leading bytes.

    :param head: First bytes of the file (``SNIFF_LENGTH`` is enough).
    :return: MIME type string, or None when no signature matches.
    """
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    elif head.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    elif head.startswith(b"GIF87a") or head.startswith(b"GIF89a"):
        return "image/gif"
    elif head.startswith(b"RIFF") and head[8:12] == b"WEBP":
        return "image/webp"
    elif head.startswith(b"BM") and len(head) >= 14:
        return "image/bmp"
    elif head.startswith(b"II*\x00") or head.startswith(b"MM\x00*"):
        return "image/tiff"
    elif head[4:8] == b"ftyp":
        return _iso_bmff_type(head[8:12])
    elif head.startswith(b"\x1a\x45\xdf\xa3"):
        return "video/webm" if b"webm" in head[:64] else "video/x-matroska"
    elif head.startswith(b"RIFF") and head[8:12] == b"AVI ":
        return "video/x-msvideo"
    elif head.startswith(b"FLV\x01"):
        return "video/x-flv"
    elif head.startswith(b"\x00\x00\x01\xba") or head.startswith(b"\x00\x00\x01\xb3"):
        return "video/mpeg"
    elif len(head) > 188 and head[0] == 0x47 and head[188] == 0x47:
        return "video/mp2t"
    return None


def sniff_file(path: str, media_class: str) -> str:
    """Sniff ``path`` and check it belongs to ``media_class``.

    :raises UnknownTypeError: no known signature.
    :raises TypeMismatchError: sniffed class differs from ``media_class``.
    """
    if media_class not in MEDIA_CLASSES:
        raise ValueError(f"unknown media class: {media_class}")
    try:
        with open(path, "rb") as f:
            head = f.read(SNIFF_LENGTH)
    except OSError as e:
        raise MediaError(f"cannot read {path}: {e}") from e
    mime_type = detect_mime_type(head)
    if mime_type is None:
        raise UnknownTypeError(f"unknown file type: {path}")
    if mime_type.split("/", 1)[0] != media_class:
        raise TypeMismatchError(media_class, mime_type)
    return mime_type


def sha256_file(path: str) -> Tuple[str, int]:
    """Stream ``path`` through SHA-256.

    :return: (hex digest, byte count)
    """
    digest = hashlib.sha256()
    size = 0
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
                size += len(chunk)
    except OSError as e:
        raise MediaError(f"hashing {path}: {e}") from e
    return digest.hexdigest(), size


def encode_blurhash(img: Image.Image) -> str:
    """Blurhash of ``img`` using a 9x7 grid, 7x9 for portrait images."""
    x_components, y_components = BLURHASH_COMPONENTS
    if img.width < img.height:
        x_components, y_components = y_components, x_components
    sample = img.convert("RGB")
    sample.thumbnail((BLURHASH_SAMPLE_SIZE, BLURHASH_SAMPLE_SIZE))
    width, height = sample.size
    data = sample.tobytes()
    stride = width * 3
    rows = [
        [data[y * stride + x * 3:y * stride + x * 3 + 3] for x in range(width)]
        for y in range(height)
    ]
    return blurhash.encode(rows, x_components, y_components)


def image_info(path: str) -> Tuple[int, int, str]:
    """Decode an image file.

    :return: (width, height, blurhash)
    """
    try:
        with Image.open(path) as img:
            img.load()
            return img.width, img.height, encode_blurhash(img)
    except (UnidentifiedImageError, OSError) as e:
        raise MediaError(f"decode({path}): {e}") from e


@contextmanager
def extract_frame(
    video_path: str, ffmpeg: str = "ffmpeg", offset: str = FRAME_OFFSET, timeout: float = 60.0
) -> Iterator[str]:
    """Extract one JPEG frame from a video into a temporary file.

    The frame file only lives for the duration of the ``with`` block.
    """
    fd, frame_path = tempfile.mkstemp(prefix="frame-", suffix=".jpg")
    os.close(fd)
    try:
        _run_ffmpeg(ffmpeg, video_path, frame_path, offset, timeout)
        if os.path.getsize(frame_path) == 0:
            raise MediaError(f"no frame extracted at {offset} from {video_path}")
        yield frame_path
    finally:
        try:
            os.remove(frame_path)
        except FileNotFoundError:
            pass


def _run_ffmpeg(ffmpeg: str, video_path: str, frame_path: str, offset: str, timeout: float) -> None:
    cmd = [ffmpeg, "-y", "-loglevel", "error", "-ss", offset, "-i", video_path, "-frames:v", "1", frame_path]
    logger.debug("extracting frame: %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        raise MediaError(f"{ffmpeg} binary not found in system PATH") from None
    except subprocess.TimeoutExpired:
        raise MediaError(f"frame extraction timed out after {timeout} seconds") from None
    if proc.returncode != 0:
        detail = proc.stderr.strip() if proc.stderr else f"exit code {proc.returncode}"
        raise MediaError(f"extracting frame from video: {detail}")


def fingerprint(
    path: str, media_class: str, ffmpeg: str = "ffmpeg", frame_timeout: float = 60.0
) -> MediaFingerprint:
    """Fingerprint a local media file.

    :param path: Local file path.
    :param media_class: ``"image"`` or ``"video"``.
    :param ffmpeg: ffmpeg executable used for video frames.
    :param frame_timeout: Deadline for the frame extraction process.
    :return: MediaFingerprint for the file.
    """
    mime_type = sniff_file(path, media_class)
    if media_class == VIDEO:
        with extract_frame(path, ffmpeg=ffmpeg, timeout=frame_timeout) as frame_path:
            width, height, bhash = image_info(frame_path)
    else:
        width, height, bhash = image_info(path)
    sha256, size = sha256_file(path)
    logger.debug("fingerprinted %s: %s %dx%d %s", path, mime_type, width, height, sha256)
    return MediaFingerprint(width=width, height=height, blurhash=bhash, sha256=sha256, size=size, mime_type=mime_type)
