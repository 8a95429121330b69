"""Resolution of the acting user from an access token."""

from typing import Protocol
from uuid import UUID


class IdentityResolver(Protocol):
    """Maps a bearer token to the user it was issued to."""

    def resolve_user_id(self, access_token: str) -> UUID | None:
        """Return the user id, or ``None`` for an invalid or expired token."""
