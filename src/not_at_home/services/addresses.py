"""Append-only ledger of not-at-home addresses."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from not_at_home.domain.addresses import AddressEntry, Coordinates, ledger_sort_key
from not_at_home.domain.errors import ValidationError
from not_at_home.services.sessions import SessionService

logger = logging.getLogger(__name__)


class AddressRepository(Protocol):
    """Persistence interface for ledger rows."""

    def create_address(
        self,
        session_id: UUID,
        block_number: int,
        address: str | None,
        coordinates: Coordinates | None,
        created_by: UUID | None,
    ) -> AddressEntry:
        """Insert a ledger row and return it."""

    def list_addresses(self, session_id: UUID) -> list[AddressEntry]:
        """Return ledger rows for a session."""


@dataclass
class AddressLedgerService:
    """Records and lists entries for a session."""

    repository: AddressRepository
    session_service: SessionService
    publish: Callable[[AddressEntry], None] | None = None

    def record_address(
        self,
        session_id: UUID | None,
        block_number: int | None,
        address: str | None = None,
        coordinates: Coordinates | None = None,
        recorded_by: UUID | None = None,
    ) -> AddressEntry:
        """Validate and append an entry, then fan it out to subscribers."""
        if session_id is None:
            raise ValidationError("A session is required to record an address.")
        if block_number is None or block_number < 1:
            raise ValidationError("Select a block number before recording.")
        cleaned = address.strip() if address else None
        if not cleaned and coordinates is None:
            raise ValidationError("Enter an address or capture your location.")

        self.session_service.get_joinable_session(session_id)
        entry = self.repository.create_address(
            session_id=session_id,
            block_number=block_number,
            address=cleaned or None,
            coordinates=coordinates,
            created_by=recorded_by,
        )
        logger.info(
            "Address recorded",
            extra={"session_id": str(session_id), "block_number": block_number},
        )
        if self.publish is not None:
            self.publish(entry)
        return entry

    def list_addresses(self, session_id: UUID) -> list[AddressEntry]:
        """Return entries ordered by block number, then recording time."""
        return sorted(self.repository.list_addresses(session_id), key=ledger_sort_key)
