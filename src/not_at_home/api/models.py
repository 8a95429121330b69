"""Pydantic models for the HTTP API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from not_at_home.domain.addresses import AddressEntry
from not_at_home.domain.exports import SessionExport, ShareOutcome
from not_at_home.domain.sessions import SessionRecord
from not_at_home.services.sharing import ShareTargetName


class CreateSessionRequest(BaseModel):
    """Body for opening a session; the creator is the caller."""

    congregation_id: UUID
    map_number: int | None = None


class SessionResponse(BaseModel):
    """Session payload."""

    id: UUID
    code: str
    congregation_id: UUID
    created_by: UUID
    map_number: int | None
    is_active: bool
    created_at: datetime
    expires_at: datetime

    @classmethod
    def from_record(cls, record: SessionRecord) -> "SessionResponse":
        return cls(
            id=record.id,
            code=record.code,
            congregation_id=record.congregation_id,
            created_by=record.created_by,
            map_number=record.map_number,
            is_active=record.is_active,
            created_at=record.created_at,
            expires_at=record.expires_at,
        )


class CoordinatesPayload(BaseModel):
    """Device geotag."""

    latitude: float
    longitude: float


class RecordAddressRequest(BaseModel):
    """Body for recording a not-at-home entry."""

    block_number: int
    address: str | None = None
    coordinates: CoordinatesPayload | None = None


class AddressResponse(BaseModel):
    """Ledger entry payload."""

    id: UUID
    session_id: UUID
    block_number: int
    address: str | None
    latitude: float | None
    longitude: float | None
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entry(cls, entry: AddressEntry) -> "AddressResponse":
        return cls(
            id=entry.id,
            session_id=entry.session_id,
            block_number=entry.block_number,
            address=entry.address,
            latitude=entry.latitude,
            longitude=entry.longitude,
            created_by=entry.created_by,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )


class ExportRequest(BaseModel):
    """Body for formatting a session export."""

    congregation_name: str = Field(min_length=1)


class ExportResponse(BaseModel):
    """Formatted export with device share links."""

    session_id: UUID
    title: str
    text: str
    address_count: int
    share_links: dict[str, str]

    @classmethod
    def from_export(cls, export: SessionExport) -> "ExportResponse":
        return cls(
            session_id=export.session.id,
            title=export.title,
            text=export.text,
            address_count=len(export.addresses),
            share_links=export.share_links,
        )


class EndSessionRequest(BaseModel):
    """Body for exporting and ending a session."""

    congregation_name: str = Field(min_length=1)
    target: ShareTargetName
    share_outcome: ShareOutcome | None = None


class EndSessionResponse(BaseModel):
    """Result of an export-and-end attempt."""

    ended: bool
    message: str
