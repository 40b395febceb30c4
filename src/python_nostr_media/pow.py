"""NIP-13 proof of work."""

import hashlib
import logging
import threading
import uuid
from itertools import count
from typing import Optional

from pynostr.event import Event

from .errors import PowError, WorkCancelledError

logger = logging.getLogger(__name__)

NONCE_TAG = "nonce"


def count_leading_zero_bits(hex_id: str) -> int:
    """Leading zero bits of a hex identifier read as a big-endian bit string."""
    total_bits = len(hex_id) * 4
    return total_bits - int(hex_id, 16).bit_length()


def stamp_work(event: Event, target_bits: int, cancel: Optional[threading.Event] = None) -> Event:
    """Mine a nonce tag until the event id has ``target_bits`` leading zero bits.

    Appends ``["nonce", <n>, <target>]`` to ``event.tags`` and updates
    ``event.id``. No-op when ``target_bits <= 0``. Runs until it succeeds
    unless ``cancel`` is set, in which case the event is left untouched.

    :raises WorkCancelledError: ``cancel`` was set before a nonce was found.
    :raises PowError: the event could not be serialized.
    """
    if target_bits <= 0:
        return event
    target = str(target_bits)

    # The serialization only differs in the nonce value, so split it once
    # around a placeholder and splice each candidate in.
    placeholder = uuid.uuid4().hex
    try:
        template_event = Event(
            content=event.content,
            pubkey=event.pubkey,
            created_at=event.created_at,
            kind=event.kind,
            tags=event.tags + [[NONCE_TAG, placeholder, target]],
        )
        template = template_event.serialize().decode("utf-8")
    except (TypeError, ValueError) as e:
        raise PowError(f"error generating proof of work: {e}") from e
    prefix, _, suffix = template.partition(placeholder)
    prefix_bytes = prefix.encode("utf-8")
    suffix_bytes = suffix.encode("utf-8")

    for nonce in count():
        if cancel is not None and cancel.is_set():
            raise WorkCancelledError(f"proof of work cancelled after {nonce} attempts")
        digest = hashlib.sha256(prefix_bytes + str(nonce).encode() + suffix_bytes).hexdigest()
        if count_leading_zero_bits(digest) >= target_bits:
            event.tags.append([NONCE_TAG, str(nonce), target])
            event.id = digest
            logger.info("proof of work found: difficulty=%d nonce=%d id=%s", target_bits, nonce, digest)
            return event
    raise PowError("nonce space exhausted")  # unreachable, count() never ends
