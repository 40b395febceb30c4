"""Exception hierarchy for python-nostr-media."""

from typing import Dict, Optional, Type


class NostrMediaError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(NostrMediaError):
    """Bad or missing input. Fatal, never retried."""


class MediaError(NostrMediaError):
    """Unreadable, unrecognized or mismatched media file."""


class UnknownTypeError(MediaError):
    """The file's leading bytes match no known media signature."""


class TypeMismatchError(MediaError):
    """The sniffed media class differs from the requested one."""

    def __init__(self, expected: str, mime_type: str):
        super().__init__(f"expected {expected} file, got {mime_type}")
        self.expected = expected
        self.mime_type = mime_type


class KeyDecodeError(NostrMediaError):
    """Malformed private key encoding."""


class PowError(NostrMediaError):
    """Internal fault while computing proof of work."""


class WorkCancelledError(PowError):
    """Proof of work was cancelled before a nonce was found."""


class SignError(NostrMediaError):
    """Signing primitive failure."""


class NetworkError(NostrMediaError):
    """Download, upload or relay failure."""


class DownloadError(NetworkError):
    """Remote media could not be fetched."""


class RelayError(NetworkError):
    """A relay rejected or dropped a message."""


class BlossomError(NetworkError):
    """Blossom server error. Carries the HTTP status when there is one."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BadRequest(BlossomError):
    pass


class Unauthorized(BlossomError):
    pass


class PaymentRequired(BlossomError):
    pass


class Forbidden(BlossomError):
    pass


class NotFound(BlossomError):
    pass


class PayloadTooLarge(BlossomError):
    pass


class UnsupportedMediaType(BlossomError):
    pass


class TooManyRequests(BlossomError):
    pass


class ServerError(BlossomError):
    pass


_STATUS_ERRORS: Dict[int, Type[BlossomError]] = {
    400: BadRequest,
    401: Unauthorized,
    402: PaymentRequired,
    403: Forbidden,
    404: NotFound,
    413: PayloadTooLarge,
    415: UnsupportedMediaType,
    429: TooManyRequests,
}


def get_error_from_status(status_code: int, reason: Optional[str] = None) -> BlossomError:
    """Map an HTTP status code to the matching BlossomError subclass.

    :param status_code: HTTP status returned by the server.
    :param reason: ``X-Reason`` header or response body, if any.
    :return: Exception instance (not raised).
    """
    if status_code in _STATUS_ERRORS:
        cls = _STATUS_ERRORS[status_code]
    elif status_code >= 500:
        cls = ServerError
    else:
        cls = BlossomError
    message = f"HTTP {status_code}"
    if reason:
        message += f": {reason.strip()}"
    return cls(message, status_code=status_code)
