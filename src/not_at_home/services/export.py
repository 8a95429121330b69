"""Session export and teardown."""

import logging
from dataclasses import dataclass
from itertools import groupby
from uuid import UUID
from zoneinfo import ZoneInfo

from not_at_home.domain.addresses import AddressEntry
from not_at_home.domain.errors import PersistenceError, ShareError, TeardownError
from not_at_home.domain.exports import SessionExport, ShareOutcome
from not_at_home.domain.sessions import SessionRecord
from not_at_home.services.addresses import AddressLedgerService
from not_at_home.services.sessions import SessionService
from not_at_home.services.sharing import ShareTarget, build_share_links

logger = logging.getLogger(__name__)


@dataclass
class ExportService:
    """Formats a session ledger and destroys it only after a confirmed share."""

    session_service: SessionService
    ledger_service: AddressLedgerService
    timezone_name: str = "UTC"

    def prepare_export(self, session_id: UUID, congregation_name: str) -> SessionExport:
        """Fetch the session and its ledger and format them for sharing."""
        session = self.session_service.get_session(session_id)
        addresses = self.ledger_service.list_addresses(session_id)
        title = f"Not At Home - Session {session.code}"
        text = format_session_export(
            session, addresses, congregation_name, ZoneInfo(self.timezone_name)
        )
        return SessionExport(
            session=session,
            addresses=addresses,
            title=title,
            text=text,
            share_links=build_share_links(title, text),
        )

    async def export_and_end(
        self, session_id: UUID, congregation_name: str, share_target: ShareTarget
    ) -> bool:
        """Share the session export, then delete the session.

        Returns ``False`` without touching any data when the share fails or is
        cancelled. Raises ``TeardownError`` when the share succeeded but the
        session could not be deleted.
        """
        export = self.prepare_export(session_id, congregation_name)
        try:
            outcome = await share_target.share(export.title, export.text)
        except ShareError:
            logger.exception(
                "Session export share failed", extra={"session_id": str(session_id)}
            )
            return False
        if outcome is not ShareOutcome.SUCCESS:
            logger.info(
                "Session export not shared",
                extra={"session_id": str(session_id), "outcome": outcome.value},
            )
            return False

        try:
            self.session_service.deactivate(session_id)
        except PersistenceError:
            logger.warning(
                "Could not soft-close session before delete",
                extra={"session_id": str(session_id)},
            )
        try:
            self.session_service.delete_session(session_id)
        except PersistenceError as exc:
            logger.exception(
                "Session shared but not deleted", extra={"session_id": str(session_id)}
            )
            raise TeardownError(
                f"Session {session_id} was shared but not deleted"
            ) from exc
        return True


def format_session_export(
    session: SessionRecord,
    addresses: list[AddressEntry],
    congregation_name: str,
    tz: ZoneInfo,
) -> str:
    """Format a ledger as a plain-text table grouped by block number."""
    created_local = session.created_at.astimezone(tz)
    map_label = session.map_number if session.map_number is not None else "N/A"
    lines = [
        f"Not At Home - {congregation_name}",
        f"Session: {session.code} - Map: {map_label}",
        f"Date: {created_local.date().isoformat()} - "
        f"Time: {created_local.strftime('%H:%M')}",
    ]
    if not addresses:
        lines.extend(["", "No addresses recorded for this session."])
        return "\n".join(lines)

    ordered = sorted(addresses, key=lambda entry: entry.block_number)
    for block_number, entries in groupby(ordered, key=lambda entry: entry.block_number):
        heading = f"Block {block_number}"
        lines.extend(["", heading, "-" * len(heading)])
        lines.extend(_format_entry(entry) for entry in entries)
    return "\n".join(lines)


def _format_entry(entry: AddressEntry) -> str:
    if entry.address:
        return entry.address
    coordinates = entry.coordinates
    if coordinates is None:
        return "(no location)"
    return f"Lat: {coordinates.latitude:.6f}, Lng: {coordinates.longitude:.6f}"
