"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import Depends, FastAPI, Request, WebSocket, status
from fastapi.responses import JSONResponse

from not_at_home.api.admin import router as admin_router
from not_at_home.api.auth import require_user, resolve_websocket_user
from not_at_home.api.models import (
    AddressResponse,
    CreateSessionRequest,
    EndSessionRequest,
    EndSessionResponse,
    ExportRequest,
    ExportResponse,
    RecordAddressRequest,
    SessionResponse,
)
from not_at_home.app_logging import configure_logging
from not_at_home.containers import AppContainer
from not_at_home.domain.addresses import AddressEntry, Coordinates
from not_at_home.domain.errors import (
    AuthenticationError,
    AuthorizationError,
    NotAtHomeError,
    NotFoundError,
    PersistenceError,
    ShareError,
    TeardownError,
    ValidationError,
)
from not_at_home.services.sharing import (
    DEVICE_TARGETS,
    ReportedShareTarget,
    ShareTarget,
    ShareTargetName,
)

_ERROR_STATUS: list[tuple[type[NotAtHomeError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (TeardownError, status.HTTP_502_BAD_GATEWAY),
    (ShareError, status.HTTP_502_BAD_GATEWAY),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        if state_container.settings.sweeper_enabled:
            try:
                state_container.sweeper.start(
                    state_container.settings.sweep_interval_minutes
                )
            except Exception:
                logger.exception("Failed to start expiration sweeper")
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(NotAtHomeError)
    async def handle_service_error(
        request: Request, exc: NotAtHomeError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                "Request failed",
                extra={"path": request.url.path, "error": exc.message},
            )
        state_container: AppContainer = request.app.state.container
        return JSONResponse(
            status_code=status_code,
            content={
                "error": exc.code,
                "message": _user_message(state_container, exc),
            },
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/sessions", status_code=status.HTTP_201_CREATED)
    async def create_session(
        body: CreateSessionRequest,
        request: Request,
        user_id: UUID = Depends(require_user),
    ) -> SessionResponse:
        """Open a session for a congregation map."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_service.create_session(
            congregation_id=body.congregation_id,
            created_by=user_id,
            map_number=body.map_number,
        )
        return SessionResponse.from_record(session)

    @app.get("/sessions")
    async def list_sessions(
        congregation_id: UUID,
        request: Request,
        created_by: UUID | None = None,
        user_id: UUID = Depends(require_user),
    ) -> dict[str, list[SessionResponse]]:
        """List active sessions for an overseer dashboard."""
        state_container: AppContainer = request.app.state.container
        sessions_service = state_container.session_service
        sessions_service.ensure_member(user_id, congregation_id)
        sessions = sessions_service.list_active_sessions(congregation_id, created_by)
        return {"sessions": [SessionResponse.from_record(s) for s in sessions]}

    @app.get("/sessions/code/{code}")
    async def join_session(
        code: str, request: Request, user_id: UUID = Depends(require_user)
    ) -> SessionResponse:
        """Resolve a join code to its active session."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_service.find_active_session_by_code(code)
        state_container.session_service.ensure_member(user_id, session.congregation_id)
        return SessionResponse.from_record(session)

    @app.get("/sessions/{session_id}")
    async def get_session(
        session_id: UUID, request: Request, user_id: UUID = Depends(require_user)
    ) -> SessionResponse:
        """Return a session by id."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_service.get_session_for_member(
            session_id, user_id
        )
        return SessionResponse.from_record(session)

    @app.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_session(
        session_id: UUID, request: Request, user_id: UUID = Depends(require_user)
    ) -> None:
        """Delete a session whose data was already shared."""
        state_container: AppContainer = request.app.state.container
        try:
            state_container.session_service.get_session_for_member(session_id, user_id)
        except NotFoundError:
            return
        state_container.session_service.delete_session(session_id)

    @app.post("/sessions/{session_id}/addresses", status_code=status.HTTP_201_CREATED)
    async def record_address(
        session_id: UUID,
        body: RecordAddressRequest,
        request: Request,
        user_id: UUID = Depends(require_user),
    ) -> AddressResponse:
        """Record a not-at-home address or geotag."""
        state_container: AppContainer = request.app.state.container
        state_container.session_service.get_session_for_member(session_id, user_id)
        coordinates = (
            Coordinates(body.coordinates.latitude, body.coordinates.longitude)
            if body.coordinates
            else None
        )
        entry = state_container.ledger_service.record_address(
            session_id=session_id,
            block_number=body.block_number,
            address=body.address,
            coordinates=coordinates,
            recorded_by=user_id,
        )
        return AddressResponse.from_entry(entry)

    @app.get("/sessions/{session_id}/addresses")
    async def list_addresses(
        session_id: UUID, request: Request, user_id: UUID = Depends(require_user)
    ) -> dict[str, list[AddressResponse]]:
        """Return the session ledger in export order."""
        state_container: AppContainer = request.app.state.container
        state_container.session_service.get_session_for_member(session_id, user_id)
        entries = state_container.ledger_service.list_addresses(session_id)
        return {"addresses": [AddressResponse.from_entry(e) for e in entries]}

    @app.post("/sessions/{session_id}/export")
    async def export_session(
        session_id: UUID,
        body: ExportRequest,
        request: Request,
        user_id: UUID = Depends(require_user),
    ) -> ExportResponse:
        """Format the ledger for sharing without ending the session."""
        state_container: AppContainer = request.app.state.container
        state_container.session_service.get_session_for_member(session_id, user_id)
        export = state_container.export_service.prepare_export(
            session_id, body.congregation_name
        )
        return ExportResponse.from_export(export)

    @app.post("/sessions/{session_id}/end")
    async def end_session(
        session_id: UUID,
        body: EndSessionRequest,
        request: Request,
        user_id: UUID = Depends(require_user),
    ) -> EndSessionResponse:
        """Share the ledger and delete the session once the share succeeded."""
        state_container: AppContainer = request.app.state.container
        state_container.session_service.get_session_for_member(session_id, user_id)
        share_target = _resolve_share_target(state_container, body)
        ended = await state_container.export_service.export_and_end(
            session_id, body.congregation_name, share_target
        )
        if ended:
            return EndSessionResponse(
                ended=True, message="Session data shared and session ended."
            )
        return EndSessionResponse(
            ended=False,
            message="Session data was not shared. The session is still open.",
        )

    @app.websocket("/sessions/{session_id}/stream")
    async def session_stream(websocket: WebSocket, session_id: UUID) -> None:
        """Send the current ledger, then every new entry until the session ends."""
        state_container: AppContainer = websocket.app.state.container
        await websocket.accept()
        try:
            user_id = resolve_websocket_user(websocket)
            state_container.session_service.get_session_for_member(session_id, user_id)
        except NotAtHomeError as exc:
            await websocket.send_json({"type": "error", "error": exc.code})
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[AddressEntry | None] = asyncio.Queue()
        unsubscribe = await state_container.realtime_hub.subscribe(
            session_id,
            lambda entry: loop.call_soon_threadsafe(queue.put_nowait, entry),
            lambda: loop.call_soon_threadsafe(queue.put_nowait, None),
        )
        try:
            snapshot = state_container.ledger_service.list_addresses(session_id)
            seen = {entry.id for entry in snapshot}
            await websocket.send_json(
                {
                    "type": "snapshot",
                    "addresses": [
                        AddressResponse.from_entry(entry).model_dump(mode="json")
                        for entry in snapshot
                    ],
                }
            )
            tasks = {
                asyncio.create_task(_pump_events(websocket, queue, seen)),
                asyncio.create_task(_drain_client(websocket)),
            }
            _done, pending = await asyncio.wait(
                tasks, return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            await unsubscribe()

    return app


async def _pump_events(
    websocket: WebSocket,
    queue: "asyncio.Queue[AddressEntry | None]",
    seen: set[UUID],
) -> None:
    """Forward inserts until the session ends, then close the socket."""
    while True:
        entry = await queue.get()
        if entry is None:
            await websocket.send_json({"type": "ended"})
            await websocket.close()
            return
        if entry.id in seen:
            continue
        seen.add(entry.id)
        await websocket.send_json(
            {
                "type": "insert",
                "address": AddressResponse.from_entry(entry).model_dump(mode="json"),
            }
        )


async def _drain_client(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


def _resolve_share_target(
    state_container: AppContainer, body: EndSessionRequest
) -> ShareTarget:
    """Pick the share target for an end-session request."""
    if body.target == ShareTargetName.TELEGRAM:
        if state_container.telegram_share_target is None:
            raise ValidationError("Telegram sharing is not configured.")
        return state_container.telegram_share_target
    if body.target in DEVICE_TARGETS:
        if body.share_outcome is None:
            raise ValidationError("Report whether the share on your device succeeded.")
        return ReportedShareTarget(body.share_outcome)
    raise ValidationError(f"Unsupported share target: {body.target}")


def _status_for(exc: NotAtHomeError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _user_message(state_container: AppContainer, exc: NotAtHomeError) -> str:
    """Return a user-facing message with debug info in local environments."""
    if state_container.settings.environment == "local" and exc.message:
        if exc.message != exc.user_message:
            return f"{exc.user_message} (debug: {exc.message})"
    return exc.user_message
