"""Domain models for collection sessions."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted collection session."""

    id: UUID
    code: str
    congregation_id: UUID
    created_by: UUID
    map_number: int | None
    is_active: bool
    created_at: datetime
    expires_at: datetime

    def is_joinable(self, now: datetime) -> bool:
        """Return true while the session is active and not yet expired."""
        return self.is_active and now < self.expires_at

    def is_expired(self, now: datetime) -> bool:
        """Return true once the time-to-live has elapsed."""
        return self.expires_at <= now
