"""TLS trust configuration for HTTPS requests."""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass

from requests.adapters import HTTPAdapter

from .errors import TrustPolicyError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrustPolicy:
    """How server certificates and hostnames are validated.

    A policy is built once and only read afterwards, so the same instance
    can be shared by concurrent requests.
    """

    ssl_context: ssl.SSLContext
    verify_certificates: bool
    verify_hostnames: bool

    @classmethod
    def trust_all(cls) -> "TrustPolicy":
        """Accept any certificate and any hostname.

        This reaches servers with self-signed certificates but offers no
        protection against an intercepting proxy.
        """

        LOGGER.debug("Building trust-all TLS context")
        try:
            context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        except (ssl.SSLError, OSError, ValueError) as exc:
            raise TrustPolicyError(f"Unable to build trust-all TLS context: {exc}") from exc
        return cls(ssl_context=context, verify_certificates=False, verify_hostnames=False)

    @classmethod
    def system_default(cls) -> "TrustPolicy":
        """Validate certificates against the system trust store."""

        try:
            context = ssl.create_default_context()
        except (ssl.SSLError, OSError, ValueError) as exc:
            raise TrustPolicyError(f"Unable to build default TLS context: {exc}") from exc
        return cls(ssl_context=context, verify_certificates=True, verify_hostnames=True)


# Built at import so a broken TLS stack aborts startup.
_TRUST_ALL = TrustPolicy.trust_all()


def default_trust_policy() -> TrustPolicy:
    """Return the process-wide trust-all policy."""

    return _TRUST_ALL


class TrustPolicyAdapter(HTTPAdapter):
    """Transport adapter that applies a :class:`TrustPolicy` to HTTPS pools."""

    def __init__(self, policy: TrustPolicy, **kwargs) -> None:
        # init_poolmanager runs inside HTTPAdapter.__init__
        self.policy = policy
        super().__init__(**kwargs)

    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        pool_kwargs["ssl_context"] = self.policy.ssl_context
        if not self.policy.verify_hostnames:
            pool_kwargs["assert_hostname"] = False
        return super().init_poolmanager(connections, maxsize, block=block, **pool_kwargs)


__all__ = ["TrustPolicy", "TrustPolicyAdapter", "default_trust_policy"]
