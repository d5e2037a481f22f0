"""JSON over HTTP(S) transport with classified errors and a UTC date codec."""

from __future__ import annotations

from .codec import DATE_FORMAT, PayloadCodec, UtcDateConverter, UtcDateTime, from_json, to_json
from .config import TransportConfig
from .errors import (
    CodecSyntaxError,
    ForbiddenError,
    NotAllowedError,
    TransportError,
    TrustPolicyError,
    UnauthorizedError,
    UnknownRequestError,
)
from .http import (
    CHARSET,
    JsonTransport,
    retrieve_json,
    retrieve_json_string,
    send_json,
    send_json_string,
)
from .models import Credentials
from .trust import TrustPolicy, default_trust_policy

__all__ = [
    "CHARSET",
    "CodecSyntaxError",
    "Credentials",
    "DATE_FORMAT",
    "ForbiddenError",
    "JsonTransport",
    "NotAllowedError",
    "PayloadCodec",
    "TransportConfig",
    "TransportError",
    "TrustPolicy",
    "TrustPolicyError",
    "UnauthorizedError",
    "UnknownRequestError",
    "UtcDateConverter",
    "UtcDateTime",
    "default_trust_policy",
    "from_json",
    "retrieve_json",
    "retrieve_json_string",
    "send_json",
    "send_json_string",
    "to_json",
]
