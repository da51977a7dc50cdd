"""Message relay endpoints."""

from datetime import datetime, timezone

from mercurio.api.http_client import AsyncHttpClient
from mercurio.models.messaging import MessageRecord, MessageStatus

_TABLE = "/messages"


async def insert_message(http: AsyncHttpClient, message: MessageRecord) -> MessageRecord:
    """
    Store an encrypted message.

    Returns:
        The stored row, including server-assigned id and timestamp.
    """
    rows = await http.request(
        "POST",
        _TABLE,
        json=message.to_row(),
        headers={"Prefer": "return=representation"},
    )
    if not rows:
        return message
    return MessageRecord.from_row(rows[0])


async def fetch_messages(http: AsyncHttpClient, conversation_id: str) -> list[MessageRecord]:
    """All messages of a conversation, oldest first."""
    rows = await http.request(
        "GET",
        _TABLE,
        params={
            "select": "*",
            "conversation_id": f"eq.{conversation_id}",
            "order": "created_at.asc",
        },
    )
    return [MessageRecord.from_row(row) for row in rows or []]


async def fetch_messages_since(
    http: AsyncHttpClient, conversation_id: str, after: datetime
) -> list[MessageRecord]:
    """Messages inserted strictly after ``after``, oldest first."""
    rows = await http.request(
        "GET",
        _TABLE,
        params={
            "select": "*",
            "conversation_id": f"eq.{conversation_id}",
            "created_at": f"gt.{after.isoformat()}",
            "order": "created_at.asc",
        },
    )
    return [MessageRecord.from_row(row) for row in rows or []]


async def mark_message_read(http: AsyncHttpClient, message_id: str) -> None:
    await http.request(
        "PATCH",
        _TABLE,
        json={
            "read_at": datetime.now(timezone.utc).isoformat(),
            "status": MessageStatus.READ.value,
        },
        params={"id": f"eq.{message_id}"},
        headers={"Prefer": "return=minimal"},
    )
