import base64

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from mercurio.crypto.key_codec import (
    WIRE_EXPONENT,
    WIRE_MODULUS,
    decode_public_key_from_der,
    encode_public_key_to_der,
    from_wire_format,
    public_key_from_crypto,
    to_wire_format,
)
from mercurio.exceptions import MalformedKeyEncodingError
from mercurio.models.crypto import RSAPublicKey

# SEQUENCE { INTEGER 00 c1 23, INTEGER 01 00 01 }
SMALL_DER = bytes.fromhex("300a020300c123020301" "0001")


def test_decode_keeps_pad_byte_verbatim() -> None:
    key = decode_public_key_from_der(SMALL_DER)

    assert key.modulus == b"\x00\xc1\x23"
    assert key.exponent == b"\x01\x00\x01"


def test_decode_short_form_without_pad() -> None:
    der = bytes.fromhex("3008020241420202" "0003")

    key = decode_public_key_from_der(der)

    assert key.modulus == b"AB"
    assert key.exponent == b"\x00\x03"


def test_decode_real_2048_bit_key_uses_long_form_lengths(
    rsa_private_key: rsa.RSAPrivateKey,
) -> None:
    der = rsa_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.PKCS1,
    )
    assert der[1] == 0x82

    key = decode_public_key_from_der(der)

    numbers = rsa_private_key.public_key().public_numbers()
    assert key.n == numbers.n
    assert key.e == 65537
    assert len(key.modulus) == 257
    assert key.modulus[0] == 0x00
    assert key.key_size == 2048


def test_encode_reproduces_platform_der(rsa_private_key: rsa.RSAPrivateKey) -> None:
    der = rsa_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.PKCS1,
    )

    assert encode_public_key_to_der(decode_public_key_from_der(der)) == der


def test_encode_adds_pad_byte_when_high_bit_set() -> None:
    der = encode_public_key_to_der(RSAPublicKey(modulus=b"\xc1\x23", exponent=b"\x01\x00\x01"))

    assert der == SMALL_DER


def test_encode_uses_long_form_for_large_integers() -> None:
    modulus = b"\x7f" + b"\x11" * 255
    der = encode_public_key_to_der(RSAPublicKey(modulus=modulus, exponent=b"\x03"))

    assert der[:4] == bytes([0x30, 0x82, 0x01, 0x07])
    assert der[4:8] == bytes([0x02, 0x82, 0x01, 0x00])
    assert decode_public_key_from_der(der).modulus == modulus


def test_public_key_from_crypto_matches_numbers(rsa_private_key: rsa.RSAPrivateKey) -> None:
    key = public_key_from_crypto(rsa_private_key.public_key())

    assert key.n == rsa_private_key.public_key().public_numbers().n


@pytest.mark.parametrize(
    "data",
    [
        pytest.param(b"", id="empty"),
        pytest.param(bytes.fromhex("310a020300c123020301" "0001"), id="wrong-sequence-tag"),
        pytest.param(bytes.fromhex("300a040300c123020301" "0001"), id="wrong-integer-tag"),
        pytest.param(bytes.fromhex("3020020300c123020301" "0001"), id="sequence-overruns-buffer"),
        pytest.param(bytes.fromhex("3003020300c123"), id="modulus-overruns-sequence"),
        pytest.param(bytes.fromhex("300a020300c123020301"), id="truncated-exponent"),
        pytest.param(bytes.fromhex("3080020300c123020301" "0001"), id="indefinite-length"),
        pytest.param(bytes.fromhex("3085"), id="too-many-length-bytes"),
        pytest.param(bytes.fromhex("3082"), id="truncated-long-length"),
        pytest.param(bytes.fromhex("30"), id="missing-length"),
        pytest.param(bytes.fromhex("30040200020100"), id="empty-modulus"),
        pytest.param(SMALL_DER + b"\x00", id="trailing-data"),
    ],
)
def test_decode_rejects_malformed_input(data: bytes) -> None:
    with pytest.raises(MalformedKeyEncodingError):
        decode_public_key_from_der(data)


def test_malformed_error_reports_offset() -> None:
    with pytest.raises(MalformedKeyEncodingError) as exc_info:
        decode_public_key_from_der(bytes.fromhex("300a040300c123020301" "0001"))

    assert exc_info.value.offset == 2


def test_wire_format_roundtrip(recipient_key: RSAPublicKey) -> None:
    wire = to_wire_format(recipient_key)

    assert set(wire) == {WIRE_MODULUS, WIRE_EXPONENT}
    assert wire[WIRE_EXPONENT] == "AQAB"
    assert from_wire_format(wire) == recipient_key


def test_from_wire_format_accepts_unpadded_base64url() -> None:
    modulus = b"\xfb\xff" + b"\x01" * 5
    wire = {
        WIRE_MODULUS: base64.urlsafe_b64encode(modulus).decode().rstrip("="),
        WIRE_EXPONENT: "AQAB",
    }

    assert from_wire_format(wire).modulus == modulus


@pytest.mark.parametrize(
    "wire",
    [
        pytest.param({WIRE_EXPONENT: "AQAB"}, id="missing-modulus"),
        pytest.param({WIRE_MODULUS: "", WIRE_EXPONENT: "AQAB"}, id="empty-modulus"),
        pytest.param({WIRE_MODULUS: "not base64!", WIRE_EXPONENT: "AQAB"}, id="invalid-base64"),
        pytest.param({WIRE_MODULUS: 12345, WIRE_EXPONENT: "AQAB"}, id="not-a-string"),
    ],
)
def test_from_wire_format_rejects_bad_input(wire: dict) -> None:
    with pytest.raises(MalformedKeyEncodingError):
        from_wire_format(wire)
