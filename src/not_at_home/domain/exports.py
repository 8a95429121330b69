"""Domain models for session exports."""

from dataclasses import dataclass, field
from enum import StrEnum

from not_at_home.domain.addresses import AddressEntry
from not_at_home.domain.sessions import SessionRecord


class ShareOutcome(StrEnum):
    """Result reported by a share target."""

    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SessionExport:
    """Formatted ledger ready to be shared."""

    session: SessionRecord
    addresses: list[AddressEntry]
    title: str
    text: str
    share_links: dict[str, str] = field(default_factory=dict)
