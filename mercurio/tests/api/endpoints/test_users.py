from unittest.mock import Mock

import pytest

from mercurio.api.endpoints.users import fetch_user, set_presence, upsert_user
from mercurio.models.messaging import UserRecord
from mercurio.tests.api.endpoints.conftest import make_user_row
from mercurio.tests.constants import ALICE_ID


@pytest.mark.asyncio
async def test_upsert_user_merges_on_identifier(mock_http: Mock) -> None:
    record = UserRecord.from_row(make_user_row())

    await upsert_user(mock_http, record)

    args, kwargs = mock_http.request.call_args
    assert args == ("POST", "/users")
    assert kwargs["params"] == {"on_conflict": "mercurio_id"}
    assert "resolution=merge-duplicates" in kwargs["headers"]["Prefer"]
    assert kwargs["json"]["mercurio_id"] == ALICE_ID
    assert kwargs["json"]["rsa_public_key_exponent"] == "AQAB"


@pytest.mark.asyncio
async def test_fetch_user_returns_record(mock_http: Mock) -> None:
    mock_http.request.return_value = [make_user_row()]

    user = await fetch_user(mock_http, ALICE_ID)

    assert user is not None
    assert user.identifier == ALICE_ID
    assert user.rsa_public_key_modulus == "AMEj"
    assert user.is_online is True
    assert user.last_seen is not None and user.last_seen.year == 2026
    params = mock_http.request.call_args.kwargs["params"]
    assert params["mercurio_id"] == f"eq.{ALICE_ID}"
    assert params["limit"] == 1


@pytest.mark.asyncio
async def test_fetch_user_returns_none_when_absent(mock_http: Mock) -> None:
    mock_http.request.return_value = []

    assert await fetch_user(mock_http, ALICE_ID) is None


@pytest.mark.asyncio
async def test_set_presence_only_patches_presence(mock_http: Mock) -> None:
    await set_presence(mock_http, ALICE_ID, is_online=False)

    args, kwargs = mock_http.request.call_args
    assert args == ("PATCH", "/users")
    assert kwargs["json"] == {"is_online": False}
    assert kwargs["params"] == {"mercurio_id": f"eq.{ALICE_ID}"}
