"""Supabase Auth lookup of the user behind an access token."""

import logging
from dataclasses import dataclass
from uuid import UUID

import httpx
from supabase import AuthApiError, AuthError, Client

from not_at_home.domain.errors import PersistenceError
from not_at_home.services.identity import IdentityResolver

logger = logging.getLogger(__name__)


@dataclass
class SupabaseIdentityResolver(IdentityResolver):
    """Validates Supabase JWTs with ``auth.get_user``."""

    client: Client

    def resolve_user_id(self, access_token: str) -> UUID | None:
        """Return the Supabase user id for the token, if it is valid."""
        try:
            response = self.client.auth.get_user(access_token)
        except AuthApiError as exc:
            logger.info("Rejected access token", extra={"error": exc.message})
            return None
        except (AuthError, httpx.HTTPError) as exc:
            raise PersistenceError(f"Failed to verify access token: {exc}") from exc
        if response is None or response.user is None:
            return None
        return UUID(str(response.user.id))
