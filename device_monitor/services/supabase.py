"""
Supabase Service

Handles the connection to Supabase (PostgreSQL via PostgREST) for the
unit store, the notification ledger and the push gateway lookups.
"""

from typing import Optional

from supabase import create_client, Client

from ..common.exceptions import ConfigError
from ..common.settings import get_settings


class SupabaseService:
    """
    Supabase client wrapper.

    The client is created on first access.
    """

    def __init__(self):
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        """Get or create Supabase client."""
        if self._client is None:
            settings = get_settings()
            if not settings.supabase_url or not settings.supabase_key:
                raise ConfigError(
                    "Supabase credentials not configured. "
                    "Set SUPABASE_URL and SUPABASE_SERVICE_KEY in .env file.",
                    recoverable=False,
                )
            self._client = create_client(
                settings.supabase_url,
                settings.supabase_key
            )
        return self._client


# Singleton instance
supabase_service = SupabaseService()


def get_supabase() -> Client:
    """Get the shared Supabase client."""
    return supabase_service.client
