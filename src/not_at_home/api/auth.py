"""Request identity for session routes."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import Header, Request, WebSocket

from not_at_home.domain.errors import AuthenticationError

if TYPE_CHECKING:
    from not_at_home.containers import AppContainer

_BEARER_PREFIX = "bearer "


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.lower().startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None


def _resolve(container: AppContainer, token: str | None) -> UUID:
    if token is None:
        raise AuthenticationError("Missing bearer token")
    user_id = container.identity_resolver.resolve_user_id(token)
    if user_id is None:
        raise AuthenticationError("Invalid or expired access token")
    return user_id


async def require_user(
    request: Request, authorization: str | None = Header(default=None)
) -> UUID:
    """Resolve the caller from the ``Authorization: Bearer`` header."""
    container: AppContainer = request.app.state.container
    return _resolve(container, _bearer_token(authorization))


def resolve_websocket_user(websocket: WebSocket) -> UUID:
    """Resolve a stream caller from the header or the ``access_token`` query.

    Browsers cannot set headers on WebSocket upgrades, so the query parameter
    is accepted here only.
    """
    container: AppContainer = websocket.app.state.container
    token = _bearer_token(websocket.headers.get("authorization"))
    if token is None:
        token = websocket.query_params.get("access_token") or None
    return _resolve(container, token)
