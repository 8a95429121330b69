"""Domain models for the not-at-home address ledger."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from not_at_home.domain.errors import ValidationError

MAX_LATITUDE = 90.0
MAX_LONGITUDE = 180.0


@dataclass(frozen=True)
class Coordinates:
    """A device geotag."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -MAX_LATITUDE <= self.latitude <= MAX_LATITUDE:
            raise ValidationError("Latitude must be between -90 and 90.")
        if not -MAX_LONGITUDE <= self.longitude <= MAX_LONGITUDE:
            raise ValidationError("Longitude must be between -180 and 180.")


@dataclass(frozen=True)
class AddressEntry:
    """One recorded not-at-home address or geotag."""

    id: UUID
    session_id: UUID
    block_number: int
    address: str | None
    latitude: float | None
    longitude: float | None
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime

    @property
    def coordinates(self) -> Coordinates | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinates(self.latitude, self.longitude)


def ledger_sort_key(entry: AddressEntry) -> tuple[int, datetime, str]:
    """Ordering used for dashboards and export tables."""
    return entry.block_number, entry.created_at, str(entry.id)
