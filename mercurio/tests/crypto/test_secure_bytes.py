from collections.abc import Callable

import pytest

from mercurio.crypto.recovery import derive_signing_seed
from mercurio.crypto.secure_bytes import SecureBytes
from mercurio.tests.constants import VALID_PHRASE

BIP39_SEED = bytes(range(64))


def test_scope_exit_zeroes_owned_buffer() -> None:
    with SecureBytes(BIP39_SEED) as seed:
        owned = seed._data
        assert bytes(seed) == BIP39_SEED

    assert seed.is_cleared
    assert owned == bytearray(64)
    assert not seed


def test_prefix_survives_clearing_the_parent_seed() -> None:
    with SecureBytes(BIP39_SEED) as seed:
        signing_seed = seed.prefix(32)

    with signing_seed:
        assert bytes(signing_seed) == BIP39_SEED[:32]
        assert len(signing_seed) == 32
    assert signing_seed.is_cleared


@pytest.mark.parametrize(
    "use",
    [
        pytest.param(bytes, id="read"),
        pytest.param(lambda value: value.prefix(32), id="prefix"),
    ],
)
def test_cleared_material_cannot_be_reused(use: Callable[[SecureBytes], object]) -> None:
    seed = SecureBytes(BIP39_SEED)
    seed.clear()

    with pytest.raises(RuntimeError, match="has been cleared"):
        use(seed)


def test_derived_signing_seed_is_owned_by_caller() -> None:
    signing_seed = derive_signing_seed(VALID_PHRASE)

    assert len(signing_seed) == 32
    assert not signing_seed.is_cleared
    signing_seed.clear()


def test_comparison_and_repr_do_not_leak_content() -> None:
    key = SecureBytes(b"\x00" * 31 + b"\x01")

    assert key == b"\x00" * 31 + b"\x01"
    assert key != SecureBytes(b"\x00" * 32)
    assert "\\x01" not in repr(key)
    assert repr(key) == "SecureBytes(<32 bytes>)"

    key.clear()
    assert key != b"\x00" * 32
    assert repr(key) == "SecureBytes(<cleared>)"
    with pytest.raises(TypeError):
        hash(key)
