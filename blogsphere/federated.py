"""
Federated identity: exchanges an external ID token for verified claims.

The Identity Service only depends on the ``TokenVerifier`` protocol, so
tests substitute a fake and production uses Google's verifier.
"""
import logging
from dataclasses import dataclass
from typing import Protocol

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from starlette.concurrency import run_in_threadpool

from blogsphere.errors import InvalidCredentialError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FederatedClaims:
    email: str
    name: str
    picture: str = ""


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> FederatedClaims: ...


class GoogleTokenVerifier:
    """Verifies Google-issued ID tokens (signature, expiry, audience)."""

    def __init__(self, client_id: str | None = None) -> None:
        self.client_id = client_id
        self._request = google_requests.Request()

    async def verify(self, token: str) -> FederatedClaims:
        try:
            # Fetches Google's certificates over HTTP; keep it off the event loop.
            info = await run_in_threadpool(
                id_token.verify_oauth2_token, token, self._request, self.client_id
            )
        except ValueError as exc:
            logger.warning("Rejected federated token: %s", exc)
            raise InvalidCredentialError(
                "Failed to authenticate you with Google. Try with some other Google account"
            ) from exc

        email = info.get("email")
        if not email:
            raise InvalidCredentialError("Google account has no email address")
        return FederatedClaims(
            email=email,
            name=info.get("name") or email.split("@")[0],
            picture=info.get("picture", ""),
        )
