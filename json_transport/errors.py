"""Error types raised by the JSON transport and payload codec."""
from __future__ import annotations

import re
from typing import Dict, Optional, Type

import requests


class TransportError(RuntimeError):
    """Raised when the server rejects a request with a recognised status."""

    status = 0
    reason = "request failed"

    def __init__(self, url: str) -> None:
        super().__init__(f"HTTP {self.status} {self.reason}: {url}")
        self.url = url


class UnauthorizedError(TransportError):
    """The server requires (different) credentials for the url."""

    status = 401
    reason = "unauthorized"


class ForbiddenError(TransportError):
    """The authenticated user may not access the url."""

    status = 403
    reason = "forbidden"


class NotAllowedError(TransportError):
    """The server does not allow the request for the url."""

    status = 405
    reason = "not allowed"


class UnknownRequestError(TransportError):
    """The server does not recognise the request."""

    status = 501
    reason = "unknown request"


class CodecSyntaxError(ValueError):
    """Raised when a JSON payload or one of its dates cannot be decoded."""

    def __init__(self, message: str, text: str) -> None:
        super().__init__(message)
        self.text = text


class TrustPolicyError(RuntimeError):
    """Raised when the TLS trust configuration cannot be constructed."""


_STATUS_ERRORS: Dict[int, Type[TransportError]] = {
    error.status: error
    for error in (UnauthorizedError, ForbiddenError, NotAllowedError, UnknownRequestError)
}

# only consulted when an HTTPError was raised without a response attached
_STATUS_IN_MESSAGE = re.compile(r"\b(401|403|405|501)\b")


def classify_status(url: str, status: Optional[int]) -> Optional[TransportError]:
    """Return the classified error for ``status`` or ``None`` when it has none."""

    error_type = _STATUS_ERRORS.get(status) if status is not None else None
    if error_type is None:
        return None
    return error_type(url)


def status_from_exception(exc: requests.RequestException) -> Optional[int]:
    """Return the HTTP status carried by a requests exception, if any."""

    response = getattr(exc, "response", None)
    if response is not None:
        return response.status_code
    if isinstance(exc, requests.HTTPError):
        match = _STATUS_IN_MESSAGE.search(str(exc))
        if match:
            return int(match.group(1))
    return None


__all__ = [
    "CodecSyntaxError",
    "ForbiddenError",
    "NotAllowedError",
    "TransportError",
    "TrustPolicyError",
    "UnauthorizedError",
    "UnknownRequestError",
    "classify_status",
    "status_from_exception",
]
