"""Fetch and send JSON documents over HTTP(S)."""

from __future__ import annotations

import logging
import warnings
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

import requests
from urllib3.exceptions import InsecureRequestWarning

from .codec import PayloadCodec
from .config import TransportConfig, settings
from .errors import classify_status, status_from_exception
from .models import Credentials
from .trust import TrustPolicy, TrustPolicyAdapter, default_trust_policy

LOGGER = logging.getLogger(__name__)

CHARSET = "UTF-8"


class JsonTransport:
    """One-shot GET/POST round-trips carrying JSON text.

    Every call opens its own session, so a transport may be shared between
    threads. Responses with status 401, 403, 405 or 501 are raised as the
    matching :class:`~json_transport.errors.TransportError`; any other failure
    is re-raised as the original :mod:`requests` exception.
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        trust: Optional[TrustPolicy] = None,
        codec: Optional[PayloadCodec] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self._config = config or settings
        if trust is None:
            trust = default_trust_policy() if self._config.trust_all else TrustPolicy.system_default()
        self._trust = trust
        self._codec = codec or PayloadCodec()
        self._session_factory = session_factory

    @property
    def trust(self) -> TrustPolicy:
        return self._trust

    @contextmanager
    def _insecure_warnings_muted(self) -> Iterator[None]:
        """Silence urllib3's unverified-HTTPS warning for trust-all policies only."""

        if self._trust.verify_certificates:
            yield
            return
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", InsecureRequestWarning)
            yield

    def _open_session(self) -> requests.Session:
        session = self._session_factory()
        session.mount("https://", TrustPolicyAdapter(self._trust))
        return session

    def _headers(self, credentials: Optional[Credentials]) -> Dict[str, str]:
        if credentials is None:
            credentials = self._config.credentials
        headers = {"Cache-Control": "no-cache"}
        headers.update(credentials.headers())
        return headers

    def _read_text(self, response: requests.Response) -> str:
        response.encoding = CHARSET
        chunks = []
        for chunk in response.iter_content(chunk_size=self._config.chunk_size, decode_unicode=True):
            chunks.append(chunk)
        return "".join(chunks)

    def fetch_text(self, url: str, credentials: Optional[Credentials] = None) -> str:
        """GET ``url`` and return the response body decoded as UTF-8."""

        headers = self._headers(credentials)
        headers["Accept-Charset"] = CHARSET
        LOGGER.debug("GET %s", url)
        try:
            with self._insecure_warnings_muted(), self._open_session() as session:
                with session.get(
                    url,
                    headers=headers,
                    stream=True,
                    timeout=self._config.timeout,
                    verify=self._trust.verify_certificates,
                ) as response:
                    response.raise_for_status()
                    text = self._read_text(response)
        except requests.RequestException as exc:
            classified = classify_status(url, status_from_exception(exc))
            if classified is None:
                raise
            raise classified from exc
        LOGGER.debug("GET %s returned %d characters", url, len(text))
        return text

    def send_text(self, url: str, text: str, credentials: Optional[Credentials] = None) -> int:
        """POST ``text`` to ``url`` and return the HTTP status code."""

        body = text.encode(CHARSET)
        headers = self._headers(credentials)
        headers["Content-Type"] = f"text/plain; charset={CHARSET}"
        headers["Content-Length"] = str(len(body))
        LOGGER.debug("POST %s (%d bytes)", url, len(body))
        try:
            with self._insecure_warnings_muted(), self._open_session() as session:
                with session.post(
                    url,
                    data=body,
                    headers=headers,
                    timeout=self._config.timeout,
                    verify=self._trust.verify_certificates,
                ) as response:
                    status = response.status_code
        except requests.RequestException as exc:
            classified = classify_status(url, status_from_exception(exc))
            if classified is None:
                raise
            raise classified from exc
        LOGGER.debug("POST %s returned status %d", url, status)
        classified = classify_status(url, status)
        if classified is not None:
            raise classified
        return status

    def fetch_typed(self, url: str, target: Any, credentials: Optional[Credentials] = None) -> Any:
        """GET ``url`` and decode the body into ``target``.

        An empty (or blank) body yields ``None`` rather than an error.
        """

        text = self.fetch_text(url, credentials)
        if not text.strip():
            LOGGER.debug("GET %s returned an empty body", url)
            return None
        return self._codec.decode(text, target)

    def send_typed(self, url: str, value: Any, credentials: Optional[Credentials] = None) -> int:
        """Encode ``value`` as JSON and POST it to ``url``."""

        return self.send_text(url, self._codec.encode(value), credentials)


# Built at import, together with its trust policy.
_default_transport = JsonTransport(settings)


def retrieve_json_string(url: str, credentials: Optional[Credentials] = None) -> str:
    return _default_transport.fetch_text(url, credentials)


def retrieve_json(url: str, target: Any, credentials: Optional[Credentials] = None) -> Any:
    return _default_transport.fetch_typed(url, target, credentials)


def send_json_string(url: str, text: str, credentials: Optional[Credentials] = None) -> int:
    return _default_transport.send_text(url, text, credentials)


def send_json(url: str, value: Any, credentials: Optional[Credentials] = None) -> int:
    return _default_transport.send_typed(url, value, credentials)


__all__ = [
    "CHARSET",
    "JsonTransport",
    "retrieve_json",
    "retrieve_json_string",
    "send_json",
    "send_json_string",
]
