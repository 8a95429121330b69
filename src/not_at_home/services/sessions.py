"""Session store: create, join, list and tear down collection sessions."""

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from not_at_home.domain.errors import (
    AuthorizationError,
    DuplicateSessionCodeError,
    InvalidSessionCodeError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from not_at_home.domain.sessions import SessionRecord
from not_at_home.services.codes import generate_session_code

logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence interface for sessions."""

    def create_session(  # noqa: PLR0913
        self,
        code: str,
        congregation_id: UUID,
        created_by: UUID,
        map_number: int | None,
        created_at: datetime,
        expires_at: datetime,
    ) -> SessionRecord:
        """Insert an active session and return it."""

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        """Return a session by id, if present."""

    def code_in_use(self, code: str) -> bool:
        """Return true when any stored session holds the code."""

    def find_active_by_code(self, code: str, now: datetime) -> SessionRecord | None:
        """Return the active, unexpired session with the code, if any."""

    def list_active(
        self, congregation_id: UUID | None, created_by: UUID | None, now: datetime
    ) -> list[SessionRecord]:
        """Return active, unexpired sessions, newest first."""

    def list_expired(self, now: datetime) -> list[SessionRecord]:
        """Return sessions whose expiry is at or before ``now``."""

    def set_active(self, session_id: UUID, is_active: bool) -> None:
        """Flip the active flag of a session."""

    def delete_session(self, session_id: UUID) -> None:
        """Hard-delete a session; its ledger rows cascade."""


class RoleRepository(Protocol):
    """Read access to congregation role bindings."""

    def has_role_binding(self, user_id: UUID, congregation_id: UUID) -> bool:
        """Return true when the user holds any role in the congregation."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionService:
    """Application service owning the session lifecycle."""

    repository: SessionRepository
    role_repository: RoleRepository
    ttl: timedelta = timedelta(hours=24)
    code_length: int = 4
    code_attempts: int = 5
    clock: Callable[[], datetime] = _utcnow
    rng: random.Random | None = None
    on_deleted: Callable[[UUID], None] | None = None

    def create_session(
        self,
        congregation_id: UUID | None,
        created_by: UUID | None,
        map_number: int | None = None,
    ) -> SessionRecord:
        """Open a new session for a congregation and return it."""
        if congregation_id is None:
            raise ValidationError("A congregation is required to start a session.")
        if created_by is None:
            raise ValidationError("A creator is required to start a session.")
        if map_number is not None and map_number < 0:
            raise ValidationError("Map number must not be negative.")
        self.ensure_member(created_by, congregation_id)

        for attempt in range(1, self.code_attempts + 1):
            code = generate_session_code(self.code_length, self.rng)
            if self.repository.code_in_use(code):
                logger.info("Session code collision", extra={"attempt": attempt})
                continue
            created_at = self.clock()
            try:
                session = self.repository.create_session(
                    code=code,
                    congregation_id=congregation_id,
                    created_by=created_by,
                    map_number=map_number,
                    created_at=created_at,
                    expires_at=created_at + self.ttl,
                )
            except DuplicateSessionCodeError:
                logger.info("Session code taken at insert", extra={"attempt": attempt})
                continue
            logger.info(
                "Session created",
                extra={"session_id": str(session.id), "map_number": map_number},
            )
            return session
        raise PersistenceError(
            f"Could not allocate a unique session code in {self.code_attempts} attempts"
        )

    def get_session(self, session_id: UUID) -> SessionRecord:
        """Return a session by id."""
        session = self.repository.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    def ensure_member(self, user_id: UUID, congregation_id: UUID) -> None:
        """Raise unless the user holds a role in the congregation."""
        if not self.role_repository.has_role_binding(user_id, congregation_id):
            raise AuthorizationError(
                f"User {user_id} has no role in congregation {congregation_id}"
            )

    def get_session_for_member(self, session_id: UUID, user_id: UUID) -> SessionRecord:
        """Return a session the user may act on."""
        session = self.get_session(session_id)
        self.ensure_member(user_id, session.congregation_id)
        return session

    def find_active_session_by_code(self, code: str) -> SessionRecord:
        """Resolve a join code to an active, unexpired session."""
        cleaned = (code or "").strip()
        if not cleaned:
            raise ValidationError("Enter a session code.")
        session = self.repository.find_active_by_code(cleaned, self.clock())
        if session is None:
            raise InvalidSessionCodeError(f"No active session for code {cleaned}")
        return session

    def get_joinable_session(self, session_id: UUID) -> SessionRecord:
        """Return a session that still accepts entries."""
        session = self.get_session(session_id)
        if not session.is_joinable(self.clock()):
            raise NotFoundError(f"Session {session_id} has ended or expired")
        return session

    def list_active_sessions(
        self, congregation_id: UUID, created_by: UUID | None = None
    ) -> list[SessionRecord]:
        """Return active sessions for a congregation dashboard."""
        return self.repository.list_active(congregation_id, created_by, self.clock())

    def list_all_active_sessions(self) -> list[SessionRecord]:
        """Return active sessions across all congregations."""
        return self.repository.list_active(None, None, self.clock())

    def list_expired_sessions(self) -> list[SessionRecord]:
        """Return sessions past their expiry, active or not."""
        return self.repository.list_expired(self.clock())

    def deactivate(self, session_id: UUID) -> None:
        """Soft-close a session so it no longer accepts joins."""
        self.repository.set_active(session_id, is_active=False)

    def delete_session(self, session_id: UUID) -> None:
        """Hard-delete a session and its ledger. Missing sessions are a no-op."""
        self.repository.delete_session(session_id)
        logger.info("Session deleted", extra={"session_id": str(session_id)})
        if self.on_deleted is not None:
            self.on_deleted(session_id)
