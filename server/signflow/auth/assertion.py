"""
Signed assertion builder for the DocuSign JWT grant.

The assertion is a compact JWS: base64url(header).base64url(claims).base64url(signature),
signed RS256 with the integration's private key. A new assertion is built for
every token exchange; nothing here is cached.
"""

import time
from typing import Callable, Optional

from jose import jwk, jwt
from jose.constants import ALGORITHMS
from jose.exceptions import JOSEError

from signflow.core.config import MAX_ASSERTION_LIFETIME_SECONDS
from signflow.core.errors import SigningUnavailable

DEFAULT_SCOPE = "signature impersonation"


def audience_from_auth_server(auth_server: str) -> str:
    """DocuSign expects the bare host as ``aud``, not the full URL."""
    audience = auth_server.strip()
    for scheme in ("https://", "http://"):
        if audience.startswith(scheme):
            audience = audience[len(scheme):]
    return audience.rstrip("/")


def signing_available(algorithm: str = ALGORITHMS.RS256) -> bool:
    if algorithm not in ALGORITHMS.SUPPORTED:
        return False
    try:
        return jwk.get_key(algorithm) is not None
    except ImportError:
        return False


class SignedAssertionBuilder:
    """Builds RS256 bearer assertions for the JWT grant."""

    def __init__(
        self,
        lifetime_seconds: int = MAX_ASSERTION_LIFETIME_SECONDS,
        scope: str = DEFAULT_SCOPE,
        algorithm: str = ALGORITHMS.RS256,
        clock: Optional[Callable[[], float]] = None,
    ):
        if lifetime_seconds > MAX_ASSERTION_LIFETIME_SECONDS:
            raise ValueError(f"assertion lifetime must not exceed {MAX_ASSERTION_LIFETIME_SECONDS} seconds")
        self.lifetime_seconds = lifetime_seconds
        self.scope = scope
        self.algorithm = algorithm
        self._clock = clock or time.time

    def claims(self, principal: str, integration_key: str, audience: str) -> dict:
        now = int(self._clock())
        return {
            "iss": integration_key,
            "sub": principal,
            "iat": now,
            "exp": now + self.lifetime_seconds,
            "aud": audience_from_auth_server(audience),
            "scope": self.scope,
        }

    def build(self, principal: str, integration_key: str, audience: str, private_key: str) -> str:
        """
        Sign a fresh assertion.

        Raises:
            SigningUnavailable: RS256 is not supported by the installed jose
                backend, or the key could not be used to sign.
        """
        if not signing_available(self.algorithm):
            raise SigningUnavailable(
                f"{self.algorithm} signing is not available; install python-jose with the cryptography backend."
            )

        try:
            return jwt.encode(
                self.claims(principal, integration_key, audience),
                private_key,
                algorithm=self.algorithm,
                headers={"typ": "JWT"},
            )
        except JOSEError as exc:
            raise SigningUnavailable("Failed to cryptographically sign the JWT payload.") from exc
