"""Supabase lookup of congregation role bindings."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from not_at_home.adapters.supabase_errors import store_errors
from not_at_home.services.sessions import RoleRepository


@dataclass
class SupabaseRoleRepository(RoleRepository):
    """Reads the ``user_roles`` table."""

    client: Client

    def has_role_binding(self, user_id: UUID, congregation_id: UUID) -> bool:
        """Return true when the user holds any role in the congregation."""
        with store_errors("Failed to check user role"):
            response = (
                self.client.table("user_roles")
                .select("id")
                .eq("user_id", str(user_id))
                .eq("congregation_id", str(congregation_id))
                .limit(1)
                .execute()
            )
        return bool(response.data)
