"""User directory endpoints."""

from mercurio.api.http_client import AsyncHttpClient
from mercurio.models.messaging import UserRecord

_TABLE = "/users"


async def upsert_user(http: AsyncHttpClient, user: UserRecord) -> None:
    """Publish or refresh a user's public keys."""
    await http.request(
        "POST",
        _TABLE,
        json=user.to_row(),
        params={"on_conflict": "mercurio_id"},
        headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
    )


async def fetch_user(http: AsyncHttpClient, identifier: str) -> UserRecord | None:
    """Look up a user by identifier."""
    rows = await http.request(
        "GET",
        _TABLE,
        params={"select": "*", "mercurio_id": f"eq.{identifier}", "limit": 1},
    )
    if not rows:
        return None
    return UserRecord.from_row(rows[0])


async def set_presence(http: AsyncHttpClient, identifier: str, *, is_online: bool) -> None:
    """Update the presence flag without touching key columns."""
    await http.request(
        "PATCH",
        _TABLE,
        json={"is_online": is_online},
        params={"mercurio_id": f"eq.{identifier}"},
        headers={"Prefer": "return=minimal"},
    )
