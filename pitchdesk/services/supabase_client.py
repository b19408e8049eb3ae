"""Supabase client wrapper with async context manager support."""

import logging
from typing import Any, Optional
from supabase import create_client, Client
from supabase.client import ClientOptions

from pitchdesk.utils.config import AppConfig
from pitchdesk.utils.errors import (
    ConfigurationError,
    DuplicatePitchError,
    DuplicateProfileError,
    StoreError,
)

logger = logging.getLogger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = AppConfig.get("SUPABASE_URL")
        key = AppConfig.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


async def close_supabase_client() -> None:
    """Drop the client reference."""
    global _client
    if _client:
        _client = None
        logger.info("Supabase client closed")


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


def _first(result) -> Optional[dict]:
    return result.data[0] if result.data and len(result.data) > 0 else None


def _is_duplicate_key(error: Exception) -> bool:
    message = str(error).lower()
    return "duplicate key" in message or "23505" in message


# Users table operations
async def get_user_by_id(user_id: str) -> Optional[dict]:
    """Get user account by ID."""
    async with SupabaseClient() as client:
        try:
            result = client.table("users").select("*").eq("id", user_id).execute()
            return _first(result)
        except Exception as e:
            raise StoreError(f"Failed to get user: {e}")


async def get_users_by_ids(user_ids: list[str]) -> list[dict]:
    """Get user accounts by IDs."""
    if not user_ids:
        return []
    async with SupabaseClient() as client:
        try:
            result = client.table("users").select("*").in_("id", user_ids).execute()
            return result.data if result.data else []
        except Exception as e:
            raise StoreError(f"Failed to get users: {e}")


# Agents table operations
async def get_agent_by_id(agent_id: str) -> Optional[dict]:
    """Get agent by ID."""
    async with SupabaseClient() as client:
        try:
            result = client.table("agents").select("*").eq("id", agent_id).execute()
            return _first(result)
        except Exception as e:
            raise StoreError(f"Failed to get agent: {e}")


async def get_agent_by_user_id(user_id: str) -> Optional[dict]:
    """Get agent profile owned by a user account."""
    async with SupabaseClient() as client:
        try:
            result = client.table("agents").select("*").eq("user_id", user_id).execute()
            return _first(result)
        except Exception as e:
            raise StoreError(f"Failed to get agent by user_id: {e}")


async def get_agents_by_ids(agent_ids: list[str]) -> list[dict]:
    """Get agents by IDs."""
    if not agent_ids:
        return []
    async with SupabaseClient() as client:
        try:
            result = client.table("agents").select("*").in_("id", agent_ids).execute()
            return result.data if result.data else []
        except Exception as e:
            raise StoreError(f"Failed to get agents: {e}")


async def list_agents(min_experience: int = 0, min_volume: float = 0) -> list[dict]:
    """List agents meeting minimum experience and volume, highest volume first."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("agents")
                .select("*")
                .gte("years_experience", min_experience)
                .gte("sales_volume", min_volume)
                .order("sales_volume", desc=True)
                .execute()
            )
            return result.data if result.data else []
        except Exception as e:
            raise StoreError(f"Failed to list agents: {e}")


async def create_agent(agent_data: dict) -> dict:
    """Create a new agent record."""
    async with SupabaseClient() as client:
        try:
            result = client.table("agents").insert(agent_data).execute()
        except Exception as e:
            if _is_duplicate_key(e):
                raise DuplicateProfileError("Agent profile already exists")
            raise StoreError(f"Failed to create agent: {e}")
        row = _first(result)
        if row is None:
            raise StoreError("Failed to create agent: no data returned")
        return row


async def update_agent(agent_id: str, updates: dict) -> dict:
    """Update an agent record."""
    async with SupabaseClient() as client:
        try:
            result = client.table("agents").update(updates).eq("id", agent_id).execute()
        except Exception as e:
            raise StoreError(f"Failed to update agent: {e}")
        row = _first(result)
        if row is None:
            raise StoreError(f"Failed to update agent: {agent_id}")
        return row


async def reveal_agent(agent_id: str) -> None:
    """Set is_anonymous to false. Never set back to true."""
    async with SupabaseClient() as client:
        try:
            client.table("agents").update({"is_anonymous": False}).eq("id", agent_id).eq("is_anonymous", True).execute()
        except Exception as e:
            raise StoreError(f"Failed to reveal agent: {e}")


# Brokerages table operations
async def get_brokerage_by_id(brokerage_id: str) -> Optional[dict]:
    """Get brokerage by ID."""
    async with SupabaseClient() as client:
        try:
            result = client.table("brokerages").select("*").eq("id", brokerage_id).execute()
            return _first(result)
        except Exception as e:
            raise StoreError(f"Failed to get brokerage: {e}")


async def get_brokerage_by_user_id(user_id: str) -> Optional[dict]:
    """Get brokerage profile owned by a user account."""
    async with SupabaseClient() as client:
        try:
            result = client.table("brokerages").select("*").eq("user_id", user_id).execute()
            return _first(result)
        except Exception as e:
            raise StoreError(f"Failed to get brokerage by user_id: {e}")


async def get_brokerages_by_ids(brokerage_ids: list[str]) -> list[dict]:
    """Get brokerages by IDs."""
    if not brokerage_ids:
        return []
    async with SupabaseClient() as client:
        try:
            result = client.table("brokerages").select("*").in_("id", brokerage_ids).execute()
            return result.data if result.data else []
        except Exception as e:
            raise StoreError(f"Failed to get brokerages: {e}")


async def create_brokerage(brokerage_data: dict) -> dict:
    """Create a new brokerage record."""
    async with SupabaseClient() as client:
        try:
            result = client.table("brokerages").insert(brokerage_data).execute()
        except Exception as e:
            if _is_duplicate_key(e):
                raise DuplicateProfileError("Brokerage profile already exists")
            raise StoreError(f"Failed to create brokerage: {e}")
        row = _first(result)
        if row is None:
            raise StoreError("Failed to create brokerage: no data returned")
        return row


async def update_brokerage(brokerage_id: str, updates: dict) -> dict:
    """Update a brokerage record."""
    async with SupabaseClient() as client:
        try:
            result = client.table("brokerages").update(updates).eq("id", brokerage_id).execute()
        except Exception as e:
            raise StoreError(f"Failed to update brokerage: {e}")
        row = _first(result)
        if row is None:
            raise StoreError(f"Failed to update brokerage: {brokerage_id}")
        return row


# Pitches table operations
async def get_pitch_by_id(pitch_id: str) -> Optional[dict]:
    """Get pitch by ID."""
    async with SupabaseClient() as client:
        try:
            result = client.table("pitches").select("*").eq("id", pitch_id).execute()
            return _first(result)
        except Exception as e:
            raise StoreError(f"Failed to get pitch: {e}")


async def get_pitch_by_pair(agent_id: str, brokerage_id: str) -> Optional[dict]:
    """Get the pitch for an (agent, brokerage) pair, if any."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("pitches")
                .select("*")
                .eq("agent_id", agent_id)
                .eq("brokerage_id", brokerage_id)
                .execute()
            )
            return _first(result)
        except Exception as e:
            raise StoreError(f"Failed to get pitch by pair: {e}")


async def get_pitch_by_session(session_id: str) -> Optional[dict]:
    """Get the pitch whose checkout session reference matches."""
    async with SupabaseClient() as client:
        try:
            result = client.table("pitches").select("*").eq("stripe_payment_id", session_id).execute()
            return _first(result)
        except Exception as e:
            raise StoreError(f"Failed to get pitch by session: {e}")


async def insert_pitch(pitch_data: dict) -> dict:
    """Insert a pitch. The (agent_id, brokerage_id) unique index rejects duplicates."""
    async with SupabaseClient() as client:
        try:
            result = client.table("pitches").insert(pitch_data).execute()
        except Exception as e:
            if _is_duplicate_key(e):
                raise DuplicatePitchError("You have already pitched this agent")
            raise StoreError(f"Failed to create pitch: {e}")
        row = _first(result)
        if row is None:
            raise StoreError("Failed to create pitch: no data returned")
        return row


async def transition_pitch(
    pitch_id: str,
    updates: dict,
    where: Optional[dict[str, Any]] = None,
    where_not: Optional[dict[str, Any]] = None,
) -> Optional[dict]:
    """
    Conditionally update a pitch (compare-and-set).

    The update only applies when every `where` column equals its value and
    every `where_not` column differs from its value. Returns the updated row,
    or None when the guard did not match.
    """
    async with SupabaseClient() as client:
        try:
            query = client.table("pitches").update(updates).eq("id", pitch_id)
            for column, value in (where or {}).items():
                query = query.eq(column, value)
            for column, value in (where_not or {}).items():
                query = query.neq(column, value)
            result = query.execute()
            return _first(result)
        except Exception as e:
            raise StoreError(f"Failed to update pitch: {e}")


async def list_pitches_by_brokerage(brokerage_id: str) -> list[dict]:
    """Pitches sent by a brokerage, newest first."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("pitches")
                .select("*")
                .eq("brokerage_id", brokerage_id)
                .order("created_at", desc=True)
                .execute()
            )
            return result.data if result.data else []
        except Exception as e:
            raise StoreError(f"Failed to list pitches: {e}")


async def list_pitches_by_agent(agent_id: str) -> list[dict]:
    """Pitches received by an agent, newest first."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("pitches")
                .select("*")
                .eq("agent_id", agent_id)
                .order("created_at", desc=True)
                .execute()
            )
            return result.data if result.data else []
        except Exception as e:
            raise StoreError(f"Failed to list pitches: {e}")


# Notification queue operations
async def enqueue_notification(job_data: dict) -> str:
    """Insert a notification job into the outbox."""
    async with SupabaseClient() as client:
        try:
            result = client.table("notification_queue").insert(job_data).execute()
        except Exception as e:
            raise StoreError(f"Failed to enqueue notification: {e}")
        row = _first(result)
        if row is None:
            raise StoreError("Failed to enqueue notification: no ID returned")
        return row["id"]


async def get_notification_batch(batch_size: int = 10) -> list[dict]:
    """Get the oldest unprocessed notification jobs."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("notification_queue")
                .select("*")
                .is_("processed_at", "null")
                .order("created_at")
                .limit(batch_size)
                .execute()
            )
            return result.data if result.data else []
        except Exception as e:
            raise StoreError(f"Failed to get notification batch: {e}")


async def mark_notification_processed(job_id: str, processed_at: str, error_message: Optional[str] = None) -> None:
    """Mark a notification job as processed (sent, skipped or failed)."""
    async with SupabaseClient() as client:
        try:
            client.table("notification_queue").update({
                "processed_at": processed_at,
                "error_message": error_message,
            }).eq("id", job_id).execute()
        except Exception as e:
            raise StoreError(f"Failed to mark notification processed: {e}")
