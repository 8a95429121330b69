"""Supabase Realtime channels for ledger inserts."""

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from supabase import AsyncClient, acreate_client

from not_at_home.adapters.supabase_address_repository import (
    ADDRESS_TABLE,
    parse_address_row,
)
from not_at_home.services.realtime import InsertCallback

logger = logging.getLogger(__name__)


@dataclass
class SupabaseRealtimeChannel:
    """An open ``postgres_changes`` subscription."""

    client: AsyncClient
    channel: Any

    async def close(self) -> None:
        """Unsubscribe and drop the channel."""
        await self.client.remove_channel(self.channel)


@dataclass
class SupabaseRealtimeChannelFactory:
    """Opens one Realtime channel per session over a shared async client."""

    supabase_url: str
    supabase_key: str
    _client: AsyncClient | None = field(default=None, init=False)

    async def open(
        self, session_id: UUID, deliver: InsertCallback
    ) -> SupabaseRealtimeChannel:
        """Subscribe to ledger inserts filtered by session id."""
        client = await self._get_client()

        def on_insert(payload: dict[str, Any]) -> None:
            record = _extract_record(payload)
            if record is None:
                return
            try:
                entry = parse_address_row(record)
            except (KeyError, TypeError, ValueError):
                logger.warning(
                    "Ignoring malformed realtime record",
                    extra={"session_id": str(session_id)},
                )
                return
            deliver(entry)

        channel = client.channel(f"{ADDRESS_TABLE}:session:{session_id}")
        channel.on_postgres_changes(
            "INSERT",
            schema="public",
            table=ADDRESS_TABLE,
            filter=f"session_id=eq.{session_id}",
            callback=on_insert,
        )
        await channel.subscribe()
        logger.info("Realtime channel opened", extra={"session_id": str(session_id)})
        return SupabaseRealtimeChannel(client=client, channel=channel)

    async def close(self) -> None:
        """Drop every channel opened through this factory."""
        if self._client is not None:
            await self._client.remove_all_channels()
            self._client = None

    async def _get_client(self) -> AsyncClient:
        if self._client is None:
            self._client = await acreate_client(self.supabase_url, self.supabase_key)
        return self._client


def _extract_record(payload: dict[str, Any]) -> dict[str, Any] | None:
    """Pull the inserted row out of a postgres_changes payload."""
    data = payload.get("data", payload)
    if not isinstance(data, dict):
        return None
    for key in ("record", "new"):
        record = data.get(key)
        if isinstance(record, dict) and record:
            return record
    return None
