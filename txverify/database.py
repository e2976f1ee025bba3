"""Supabase connection and replay store selection."""

import logging

from supabase import Client, create_client

from .config import Settings, get_settings
from .payments.replay import InMemoryReplayGuard, ReplayGuard, SupabaseReplayGuard

logger = logging.getLogger(__name__)

_supabase_client: Client | None = None


def get_supabase_client(settings: Settings | None = None) -> Client:
    """Process-wide Supabase client for the replay store."""
    global _supabase_client
    if _supabase_client is None:
        if settings is None:
            settings = get_settings()
        if not settings.supabase_url or not settings.supabase_secret_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SECRET_KEY must be set")
        _supabase_client = create_client(settings.supabase_url, settings.supabase_secret_key)
    return _supabase_client


def create_replay_guard(settings: Settings) -> ReplayGuard:
    """Supabase-backed replay guard when configured, in-memory otherwise."""
    if settings.supabase_url and settings.supabase_secret_key:
        return SupabaseReplayGuard(
            get_supabase_client(settings),
            table=settings.used_transactions_table,
        )

    logger.warning(
        "Supabase not configured - used transactions are tracked in memory only"
    )
    return InMemoryReplayGuard()
