"""
RSA public key interchange encoding.

Converts an exchange key between its raw integer components, the DER
``RSAPublicKey ::= SEQUENCE { modulus INTEGER, publicExponent INTEGER }``
structure expected by key import APIs, and the base64 wire format stored in
the directory.
"""

import base64
import binascii
from collections.abc import Mapping

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from mercurio.exceptions import MalformedKeyEncodingError
from mercurio.models.crypto import RSAPublicKey

_TAG_SEQUENCE = 0x30
_TAG_INTEGER = 0x02
_LONG_FORM = 0x80
_MAX_LENGTH_BYTES = 4

# (field name, expected tag). The sequence header wraps the two integers.
_LAYOUT: tuple[tuple[str, int], ...] = (
    ("sequence", _TAG_SEQUENCE),
    ("modulus", _TAG_INTEGER),
    ("exponent", _TAG_INTEGER),
)

WIRE_MODULUS = "modulus"
WIRE_EXPONENT = "exponent"


def decode_public_key_from_der(data: bytes) -> RSAPublicKey:
    """
    Parse a DER/BER encoded RSA public key.

    Integer contents are kept verbatim, so a leading 0x00 pad byte is part of
    the returned modulus.

    Args:
        data: Encoded ``SEQUENCE { INTEGER, INTEGER }``.

    Returns:
        The decoded key components.

    Raises:
        MalformedKeyEncodingError: On a wrong tag, a bad length or a length
            that overruns the buffer.
    """
    offset = 0
    sequence_end = 0
    fields: dict[str, bytes] = {}

    for name, tag in _LAYOUT:
        offset = _expect_tag(data, offset, tag, name)
        length, offset = _read_length(data, offset, name)
        end = offset + length
        if end > len(data):
            msg = f"{name} length {length} overruns buffer"
            raise MalformedKeyEncodingError(msg, offset=offset)

        if tag == _TAG_SEQUENCE:
            sequence_end = end
            continue

        if end > sequence_end:
            msg = f"{name} extends past the end of the sequence"
            raise MalformedKeyEncodingError(msg, offset=offset)
        if length == 0:
            msg = f"{name} integer is empty"
            raise MalformedKeyEncodingError(msg, offset=offset)
        fields[name] = data[offset:end]
        offset = end

    if offset != sequence_end or sequence_end != len(data):
        msg = "Unexpected trailing data after public key"
        raise MalformedKeyEncodingError(msg, offset=offset)

    return RSAPublicKey(modulus=fields["modulus"], exponent=fields["exponent"])


def encode_public_key_to_der(key: RSAPublicKey) -> bytes:
    """
    Encode key components as a DER ``SEQUENCE { INTEGER, INTEGER }``.

    A 0x00 byte is prepended to any integer whose leading byte has the high
    bit set so the value stays non-negative.
    """
    body = _encode_integer(key.modulus) + _encode_integer(key.exponent)
    return bytes([_TAG_SEQUENCE]) + _encode_length(len(body)) + body


def to_wire_format(key: RSAPublicKey) -> dict[str, str]:
    """Base64 representation stored by the directory."""
    return {
        WIRE_MODULUS: base64.b64encode(key.modulus).decode("ascii"),
        WIRE_EXPONENT: base64.b64encode(key.exponent).decode("ascii"),
    }


def from_wire_format(wire: Mapping[str, str]) -> RSAPublicKey:
    """
    Inverse of ``to_wire_format``.

    Also accepts the unpadded base64url form that JWK exports produce.

    Raises:
        MalformedKeyEncodingError: If a field is missing, empty or not base64.
    """
    try:
        modulus = _decode_base64(wire[WIRE_MODULUS])
        exponent = _decode_base64(wire[WIRE_EXPONENT])
    except KeyError as e:
        msg = f"Missing wire field: {e.args[0]}"
        raise MalformedKeyEncodingError(msg) from None

    if not modulus or not exponent:
        msg = "Empty key component"
        raise MalformedKeyEncodingError(msg)
    return RSAPublicKey(modulus=modulus, exponent=exponent)


def public_key_from_crypto(public_key: rsa.RSAPublicKey) -> RSAPublicKey:
    """Extract components from a ``cryptography`` key through its PKCS#1 DER export."""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.PKCS1,
    )
    return decode_public_key_from_der(der)


def _expect_tag(data: bytes, offset: int, tag: int, name: str) -> int:
    if offset >= len(data):
        msg = f"Missing {name} tag"
        raise MalformedKeyEncodingError(msg, offset=offset)
    if data[offset] != tag:
        msg = f"Expected {name} tag 0x{tag:02x}, got 0x{data[offset]:02x}"
        raise MalformedKeyEncodingError(msg, offset=offset)
    return offset + 1


def _read_length(data: bytes, offset: int, name: str) -> tuple[int, int]:
    if offset >= len(data):
        msg = f"Missing {name} length"
        raise MalformedKeyEncodingError(msg, offset=offset)

    first = data[offset]
    offset += 1
    if not first & _LONG_FORM:
        return first, offset

    count = first & 0x7F
    if count == 0 or count > _MAX_LENGTH_BYTES:
        msg = f"Unsupported {name} length encoding: {count} length bytes"
        raise MalformedKeyEncodingError(msg, offset=offset - 1)
    if offset + count > len(data):
        msg = f"Truncated {name} length"
        raise MalformedKeyEncodingError(msg, offset=offset)

    length = int.from_bytes(data[offset : offset + count], "big")
    return length, offset + count


def _encode_length(length: int) -> bytes:
    if length < _LONG_FORM:
        return bytes([length])
    length_bytes = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([_LONG_FORM | len(length_bytes)]) + length_bytes


def _encode_integer(value: bytes) -> bytes:
    if value[0] & 0x80:
        value = b"\x00" + value
    return bytes([_TAG_INTEGER]) + _encode_length(len(value)) + value


def _decode_base64(value: str) -> bytes:
    if not isinstance(value, str):
        msg = f"Key component must be a string, got {type(value).__name__}"
        raise MalformedKeyEncodingError(msg)
    value = value.strip()
    if "-" in value or "_" in value:
        value = value.replace("-", "+").replace("_", "/")
    value += "=" * (-len(value) % 4)
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        msg = "Key component is not valid base64"
        raise MalformedKeyEncodingError(msg) from e
