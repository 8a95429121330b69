"""Supabase-backed address ledger repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from not_at_home.adapters.supabase_errors import store_errors
from not_at_home.domain.addresses import AddressEntry, Coordinates
from not_at_home.domain.errors import PersistenceError
from not_at_home.services.addresses import AddressRepository

ADDRESS_TABLE = "not_at_home_addresses"
_COLUMNS = (
    "id, session_id, block_number, address, latitude, longitude, "
    "created_by, created_at, updated_at"
)


@dataclass
class SupabaseAddressRepository(AddressRepository):
    """Supabase implementation for ledger rows."""

    client: Client

    def create_address(
        self,
        session_id: UUID,
        block_number: int,
        address: str | None,
        coordinates: Coordinates | None,
        created_by: UUID | None,
    ) -> AddressEntry:
        """Insert a ledger row and return it."""
        with store_errors("Failed to record address"):
            response = (
                self.client.table(ADDRESS_TABLE)
                .insert(
                    {
                        "session_id": str(session_id),
                        "block_number": block_number,
                        "address": address,
                        "latitude": coordinates.latitude if coordinates else None,
                        "longitude": coordinates.longitude if coordinates else None,
                        "created_by": str(created_by) if created_by else None,
                    }
                )
                .execute()
            )
        if not response.data:
            raise PersistenceError("Failed to record address")
        return parse_address_row(response.data[0])

    def list_addresses(self, session_id: UUID) -> list[AddressEntry]:
        """Return ledger rows ordered by block and recording time."""
        with store_errors("Failed to list addresses"):
            response = (
                self.client.table(ADDRESS_TABLE)
                .select(_COLUMNS)
                .eq("session_id", str(session_id))
                .order("block_number", desc=False)
                .order("created_at", desc=False)
                .execute()
            )
        return [parse_address_row(row) for row in response.data or []]


def parse_address_row(row: dict[str, object]) -> AddressEntry:
    """Build an entry from a table row or a realtime record."""
    created_at = datetime.fromisoformat(str(row["created_at"]))
    updated_raw = row.get("updated_at")
    created_by = row.get("created_by")
    latitude = row.get("latitude")
    longitude = row.get("longitude")
    return AddressEntry(
        id=UUID(str(row["id"])),
        session_id=UUID(str(row["session_id"])),
        block_number=int(row["block_number"]),
        address=row.get("address") or None,
        latitude=float(latitude) if latitude is not None else None,
        longitude=float(longitude) if longitude is not None else None,
        created_by=UUID(str(created_by)) if created_by else None,
        created_at=created_at,
        updated_at=(
            datetime.fromisoformat(str(updated_raw)) if updated_raw else created_at
        ),
    )
