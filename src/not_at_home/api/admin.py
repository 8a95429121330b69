"""Operator endpoints guarded by a shared admin token."""

from __future__ import annotations

import hmac
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

from not_at_home.api.models import SessionResponse

if TYPE_CHECKING:
    from not_at_home.containers import AppContainer

_admin_token_header = APIKeyHeader(name="X-Admin-Token", auto_error=False)


async def require_admin(
    request: Request, provided: str | None = Depends(_admin_token_header)
) -> None:
    """Reject requests whose ``X-Admin-Token`` does not match the configured one."""
    container: AppContainer = request.app.state.container
    expected = container.settings.admin_token
    if not provided or not hmac.compare_digest(provided, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)]
)


@router.get("/health")
async def admin_health(request: Request) -> dict[str, object]:
    """Report whether the expiry sweeper is scheduled."""
    container: AppContainer = request.app.state.container
    return {"status": "ok", "sweeper_running": container.sweeper.running}


@router.get("/sessions")
async def list_active_sessions(request: Request) -> dict[str, object]:
    """Return active sessions across every congregation."""
    container: AppContainer = request.app.state.container
    sessions = container.session_service.list_all_active_sessions()
    return {
        "count": len(sessions),
        "sessions": [
            SessionResponse.from_record(session).model_dump(mode="json")
            for session in sessions
        ],
    }


@router.post("/sweep")
async def sweep_expired_sessions(request: Request) -> dict[str, object]:
    """Delete expired sessions now instead of waiting for the next tick."""
    container: AppContainer = request.app.state.container
    deleted = container.sweeper.sweep()
    return {
        "deleted": deleted,
        "message": f"Checked for expired sessions. Deleted {deleted} sessions.",
    }
