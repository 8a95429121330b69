"""Supabase-backed session repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from not_at_home.adapters.supabase_errors import store_errors
from not_at_home.domain.errors import PersistenceError
from not_at_home.domain.sessions import SessionRecord
from not_at_home.services.sessions import SessionRepository

_TABLE = "sessions"
_COLUMNS = (
    "id, code, congregation_id, created_by, map_number, is_active, "
    "created_at, expires_at"
)


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for collection sessions."""

    client: Client

    def create_session(  # noqa: PLR0913
        self,
        code: str,
        congregation_id: UUID,
        created_by: UUID,
        map_number: int | None,
        created_at: datetime,
        expires_at: datetime,
    ) -> SessionRecord:
        """Insert an active session row and return it."""
        with store_errors("Failed to create session"):
            response = (
                self.client.table(_TABLE)
                .insert(
                    {
                        "code": code,
                        "congregation_id": str(congregation_id),
                        "created_by": str(created_by),
                        "map_number": map_number,
                        "is_active": True,
                        "created_at": created_at.isoformat(),
                        "expires_at": expires_at.isoformat(),
                    }
                )
                .execute()
            )
        if not response.data:
            raise PersistenceError("Failed to create session")
        return _parse_row(response.data[0])

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        """Return a session by id, if present."""
        with store_errors("Failed to load session"):
            response = (
                self.client.table(_TABLE)
                .select(_COLUMNS)
                .eq("id", str(session_id))
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def code_in_use(self, code: str) -> bool:
        """Return true when a stored session already holds the code."""
        with store_errors("Failed to check session code"):
            response = (
                self.client.table(_TABLE)
                .select("id")
                .eq("code", code)
                .limit(1)
                .execute()
            )
        return bool(response.data)

    def find_active_by_code(self, code: str, now: datetime) -> SessionRecord | None:
        """Return the active, unexpired session for a join code."""
        with store_errors("Failed to look up session code"):
            response = (
                self.client.table(_TABLE)
                .select(_COLUMNS)
                .eq("code", code)
                .eq("is_active", True)
                .gt("expires_at", now.isoformat())
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def list_active(
        self, congregation_id: UUID | None, created_by: UUID | None, now: datetime
    ) -> list[SessionRecord]:
        """Return active, unexpired sessions, newest first."""
        with store_errors("Failed to list active sessions"):
            query = (
                self.client.table(_TABLE)
                .select(_COLUMNS)
                .eq("is_active", True)
                .gt("expires_at", now.isoformat())
            )
            if congregation_id is not None:
                query = query.eq("congregation_id", str(congregation_id))
            if created_by is not None:
                query = query.eq("created_by", str(created_by))
            response = query.order("created_at", desc=True).execute()
        return [_parse_row(row) for row in response.data or []]

    def list_expired(self, now: datetime) -> list[SessionRecord]:
        """Return sessions whose expiry has passed, active or not."""
        with store_errors("Failed to list expired sessions"):
            response = (
                self.client.table(_TABLE)
                .select(_COLUMNS)
                .lte("expires_at", now.isoformat())
                .execute()
            )
        return [_parse_row(row) for row in response.data or []]

    def set_active(self, session_id: UUID, is_active: bool) -> None:
        """Update the active flag of a session."""
        with store_errors("Failed to update session"):
            self.client.table(_TABLE).update({"is_active": is_active}).eq(
                "id", str(session_id)
            ).execute()

    def delete_session(self, session_id: UUID) -> None:
        """Delete a session row; ledger rows go with it via ON DELETE CASCADE."""
        with store_errors("Failed to delete session"):
            self.client.table(_TABLE).delete().eq("id", str(session_id)).execute()


def _parse_row(row: dict[str, object]) -> SessionRecord:
    map_number = row.get("map_number")
    return SessionRecord(
        id=UUID(str(row["id"])),
        code=str(row["code"]),
        congregation_id=UUID(str(row["congregation_id"])),
        created_by=UUID(str(row["created_by"])),
        map_number=int(map_number) if map_number is not None else None,
        is_active=bool(row.get("is_active", False)),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        expires_at=datetime.fromisoformat(str(row["expires_at"])),
    )
