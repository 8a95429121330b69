"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from not_at_home.adapters.supabase_address_repository import (
    SupabaseAddressRepository,
)
from not_at_home.adapters.supabase_identity import SupabaseIdentityResolver
from not_at_home.adapters.supabase_realtime import SupabaseRealtimeChannelFactory
from not_at_home.adapters.supabase_role_repository import SupabaseRoleRepository
from not_at_home.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from not_at_home.adapters.telegram_share_target import HttpxTelegramShareTarget
from not_at_home.config import Settings, parse_chat_id
from not_at_home.services.addresses import AddressLedgerService
from not_at_home.services.export import ExportService
from not_at_home.services.identity import IdentityResolver
from not_at_home.services.realtime import RealtimeHub
from not_at_home.services.sessions import SessionService
from not_at_home.services.sharing import ShareTarget
from not_at_home.services.sweeper import ExpirationSweeper


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_service: SessionService
    ledger_service: AddressLedgerService
    realtime_hub: RealtimeHub
    export_service: ExportService
    sweeper: ExpirationSweeper
    identity_resolver: IdentityResolver
    telegram_share_target: ShareTarget | None
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    channel_factory = (
        SupabaseRealtimeChannelFactory(
            supabase_url=resolved_settings.supabase_url,
            supabase_key=resolved_settings.supabase_service_key,
        )
        if resolved_settings.realtime_enabled
        else None
    )
    realtime_hub = RealtimeHub(channel_factory=channel_factory)
    session_service = SessionService(
        repository=SupabaseSessionRepository(supabase_client),
        role_repository=SupabaseRoleRepository(supabase_client),
        ttl=timedelta(hours=resolved_settings.session_ttl_hours),
        code_length=resolved_settings.session_code_length,
        code_attempts=resolved_settings.code_attempts,
        on_deleted=realtime_hub.end_session,
    )
    ledger_service = AddressLedgerService(
        repository=SupabaseAddressRepository(supabase_client),
        session_service=session_service,
        publish=realtime_hub.publish,
    )
    export_service = ExportService(
        session_service=session_service,
        ledger_service=ledger_service,
        timezone_name=resolved_settings.export_timezone,
    )
    sweeper = ExpirationSweeper(session_service)

    chat_id = parse_chat_id(resolved_settings.telegram_share_chat_id)
    telegram_share_target = (
        HttpxTelegramShareTarget.create(resolved_settings.telegram_bot_token, chat_id)
        if resolved_settings.telegram_bot_token and chat_id is not None
        else None
    )

    async def close_resources() -> None:
        sweeper.stop()
        await realtime_hub.close()
        if channel_factory is not None:
            await channel_factory.close()
        if telegram_share_target is not None:
            await telegram_share_target.close()

    return AppContainer(
        settings=resolved_settings,
        session_service=session_service,
        ledger_service=ledger_service,
        realtime_hub=realtime_hub,
        export_service=export_service,
        sweeper=sweeper,
        identity_resolver=SupabaseIdentityResolver(supabase_client),
        telegram_share_target=telegram_share_target,
        close_resources=close_resources,
    )
