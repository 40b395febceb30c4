"""Event signers.

Both signers expose the same capability surface (``get_public_key`` and
``sign``); callers depend on the ``Signer`` protocol, never on a concrete class.
"""

from typing import Protocol

from pynostr.event import Event
from pynostr.key import PrivateKey

from .errors import KeyDecodeError, SignError

NSEC_PREFIX = "nsec1"


class Signer(Protocol):
    async def get_public_key(self) -> str:
        """Hex-encoded public key of the signing identity."""
        ...

    async def sign(self, event: Event) -> None:
        """Set ``pubkey`` if missing, then ``id`` and ``sig`` on ``event``."""
        ...


def load_private_key(private_key_input: str) -> PrivateKey:
    """Normalize a private key from nsec or 64-char hex to a PrivateKey."""
    private_key_input = (private_key_input or "").strip()
    if not private_key_input:
        raise KeyDecodeError("private key must not be empty")

    if private_key_input.startswith(NSEC_PREFIX):
        try:
            return PrivateKey.from_nsec(private_key_input)
        except Exception as e:
            raise KeyDecodeError(f"Invalid nsec format: {e}") from e

    if len(private_key_input) == 64:
        try:
            return PrivateKey(bytes.fromhex(private_key_input))
        except ValueError as e:
            raise KeyDecodeError(f"Private key is not valid hex: {e}") from e

    raise KeyDecodeError("Unsupported private key format. Expected nsec or 64-char hex string.")


class LocalSigner:
    """Signs with key material held in this process."""

    def __init__(self, private_key: str):
        self._priv = load_private_key(private_key)
        self.pubkey_hex = self._priv.public_key.hex()

    async def get_public_key(self) -> str:
        return self.pubkey_hex

    async def sign(self, event: Event) -> None:
        if event.pubkey and event.pubkey != self.pubkey_hex:
            raise SignError(f"event pubkey {event.pubkey} does not match signing key {self.pubkey_hex}")
        event.pubkey = self.pubkey_hex
        try:
            event.sign(self._priv.hex())
        except Exception as e:
            raise SignError(f"signing event failed: {e}") from e
        if not event.sig:
            raise SignError("signing produced no signature")


class RemoteSigner:
    """Placeholder for NIP-46 remote signing. Every call fails."""

    def __init__(self, bunker_uri: str):
        self.bunker_uri = bunker_uri

    async def get_public_key(self) -> str:
        raise SignError("remote signing is not implemented")

    async def sign(self, event: Event) -> None:
        raise SignError("remote signing is not implemented")
