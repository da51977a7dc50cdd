"""Conversation bookkeeping endpoints."""

from datetime import datetime, timezone
from typing import Any

from mercurio.api.http_client import AsyncHttpClient

_TABLE = "/conversations"


async def upsert_conversation(
    http: AsyncHttpClient,
    conversation_id: str,
    participant_a: str,
    participant_b: str,
    last_message: str,
) -> None:
    """Create or bump a conversation. Participants are stored sorted."""
    first, second = sorted((participant_a, participant_b))
    now = datetime.now(timezone.utc).isoformat()
    await http.request(
        "POST",
        _TABLE,
        json={
            "id": conversation_id,
            "participant1_id": first,
            "participant2_id": second,
            "last_message": last_message,
            "last_message_at": now,
            "updated_at": now,
        },
        params={"on_conflict": "id"},
        headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
    )


async def fetch_conversations(http: AsyncHttpClient, identifier: str) -> list[dict[str, Any]]:
    """Conversations the user takes part in, most recently updated first."""
    rows = await http.request(
        "GET",
        _TABLE,
        params={
            "select": "*",
            "or": f"(participant1_id.eq.{identifier},participant2_id.eq.{identifier})",
            "order": "updated_at.desc",
        },
    )
    return list(rows or [])
