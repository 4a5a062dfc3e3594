"""Google ID token verification for federated sign-in."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from wynngrid_accounts.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FederatedIdentity:
    """Identity asserted by a federated provider."""

    email: str
    given_name: str | None = None
    family_name: str | None = None
    full_name: str | None = None


class VerificationError(Exception):
    """The assertion token could not be verified."""

    pass


class FederatedVerifier(Protocol):
    """Turns an opaque assertion token into a verified identity."""

    async def verify(self, token: str) -> FederatedIdentity:
        """Verify the token, raising VerificationError on failure."""
        ...


class GoogleVerifier:
    """Verifies Google ID tokens issued for this application's client ID."""

    CLOCK_SKEW_SECONDS = 60

    def __init__(
        self,
        client_id: str | None = None,
        request: google_requests.Request | None = None,
    ) -> None:
        """
        Initialize the verifier.

        Args:
            client_id: Google OAuth client ID the tokens must be issued for
                (defaults to settings)
            request: Transport used to fetch Google's signing certificates
        """
        self.client_id = client_id or settings.google_client_id
        self._request = request or google_requests.Request()

        if not self.client_id:
            raise VerificationError(
                "Google client ID not configured. Set GOOGLE_CLIENT_ID environment variable."
            )

    def _verify_sync(self, token: str) -> dict[str, Any]:
        try:
            return id_token.verify_oauth2_token(
                token,
                self._request,
                self.client_id,
                clock_skew_in_seconds=self.CLOCK_SKEW_SECONDS,
            )
        except (ValueError, google_exceptions.GoogleAuthError) as e:
            # Provider details stay in the log only.
            logger.warning("Google ID token rejected: %s", e)
            raise VerificationError("Invalid Google ID token") from e

    async def verify(self, token: str) -> FederatedIdentity:
        """
        Verify a Google ID token.

        Returns:
            FederatedIdentity with the token's email and name claims

        Raises:
            VerificationError: If the token is invalid or carries no email
        """
        if not token:
            raise VerificationError("Google ID token is required")

        idinfo = await asyncio.to_thread(self._verify_sync, token)

        email = idinfo.get("email")
        if not email:
            raise VerificationError("Google token missing email")

        return FederatedIdentity(
            email=str(email),
            given_name=idinfo.get("given_name") or None,
            family_name=idinfo.get("family_name") or None,
            full_name=idinfo.get("name") or None,
        )
