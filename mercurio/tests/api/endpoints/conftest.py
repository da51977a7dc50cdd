from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from mercurio.models.crypto import EncryptedPayload
from mercurio.tests.constants import ALICE_ID, BOB_ID


@pytest.fixture
def mock_http() -> Mock:
    http = Mock()
    http.request = AsyncMock(return_value=None)
    return http


@pytest.fixture
def payload() -> EncryptedPayload:
    return EncryptedPayload(ciphertext="Y3Q=", wrapped_key="d2s=", nonce="bm9uY2U=", tag="dGFn")


def make_user_row(identifier: str = ALICE_ID, **overrides: Any) -> dict[str, Any]:
    row = {
        "mercurio_id": identifier,
        "ed25519_public_key": "c2lnbmluZw==",
        "rsa_public_key_modulus": "AMEj",
        "rsa_public_key_exponent": "AQAB",
        "is_online": True,
        "last_seen": "2026-01-02T03:04:05+00:00",
        "created_at": "2026-01-01T00:00:00+00:00",
    }
    row.update(overrides)
    return row


def make_message_row(
    sender: str = ALICE_ID, recipient: str = BOB_ID, **overrides: Any
) -> dict[str, Any]:
    first, second = sorted((sender, recipient))
    row = {
        "id": "6f1c1f0e-0000-4000-8000-000000000001",
        "conversation_id": f"{first}_{second}",
        "sender_mercurio_id": sender,
        "recipient_mercurio_id": recipient,
        "encrypted_content": "Y3Q=",
        "encrypted_aes_key": "d2s=",
        "nonce": "bm9uY2U=",
        "mac": "dGFn",
        "status": "sent",
        "created_at": "2026-01-02T03:04:05.123456+00:00",
        "read_at": None,
    }
    row.update(overrides)
    return row
