"""Supabase Auth backed identity provider."""

import logging
from dataclasses import dataclass
from uuid import UUID

from supabase import Client
from supabase_auth.errors import AuthApiError, AuthError

from calorie_ledger.domain.errors import IdentityUnavailableError
from calorie_ledger.services.auth import IdentityProvider

logger = logging.getLogger(__name__)

_SERVER_ERROR_STATUS = 500


@dataclass
class SupabaseIdentityProvider(IdentityProvider):
    """Resolves access tokens issued by Supabase Auth.

    Only a rejection of the token itself yields None; outages and transport
    failures raise IdentityUnavailableError.
    """

    client: Client

    def resolve(self, token: str) -> UUID | None:
        """Return the user id for a valid access token."""
        try:
            response = self.client.auth.get_user(token)
        except AuthApiError as exc:
            if (exc.status or 0) >= _SERVER_ERROR_STATUS:
                raise IdentityUnavailableError("Identity provider unavailable") from exc
            logger.info("Supabase rejected access token", extra={"status": exc.status})
            return None
        except AuthError as exc:
            raise IdentityUnavailableError("Identity provider unavailable") from exc
        user = getattr(response, "user", None) if response is not None else None
        if user is None:
            return None
        try:
            return UUID(str(user.id))
        except ValueError:
            logger.warning("Supabase returned a non-UUID user id")
            return None
