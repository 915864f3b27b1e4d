"""
Minimal DER writer — tag + length + value triples.

Only what the PKCS#8 re-encoders need: definite lengths, INTEGER, NULL,
OBJECT IDENTIFIER, OCTET STRING and SEQUENCE. This is not a general ASN.1
encoder; structured values (certificates, keys) are parsed elsewhere with
asn1crypto and passed through here as opaque, already-encoded bytes.

Length encoding (X.690 §8.1.3):
  - short form for 0..127:   a single byte holding the length
  - long form otherwise:     0x80 | n, followed by n big-endian length bytes
"""

from __future__ import annotations

INTEGER = 0x02
OCTET_STRING = 0x04
NULL = 0x05
OBJECT_IDENTIFIER = 0x06
SEQUENCE = 0x30


def encode_length(length: int) -> bytes:
    """Encode a definite length in the shortest DER form."""
    if length < 0:
        raise ValueError(f"DER length must be non-negative, got {length}")
    if length < 0x80:
        return bytes([length])
    body = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([0x80 | len(body)]) + body


def encode_tlv(tag: int, value: bytes) -> bytes:
    return bytes([tag]) + encode_length(len(value)) + value


def encode_integer(value: int) -> bytes:
    """Encode a non-negative INTEGER (two's complement, minimal octets)."""
    if value < 0:
        raise ValueError("Only non-negative integers are supported")
    # One extra bit keeps the sign bit clear: 0x80 encodes as 00 80.
    body = value.to_bytes(value.bit_length() // 8 + 1, "big")
    return encode_tlv(INTEGER, body)


def encode_null() -> bytes:
    return encode_tlv(NULL, b"")


def encode_oid(dotted: str) -> bytes:
    """Encode a dotted-decimal OBJECT IDENTIFIER, e.g. "1.2.840.113549.1.1.1"."""
    arcs = [int(arc) for arc in dotted.split(".")]
    if len(arcs) < 2 or arcs[0] > 2 or (arcs[0] < 2 and arcs[1] > 39):
        raise ValueError(f"Invalid object identifier: {dotted!r}")

    body = bytearray()
    for arc in [arcs[0] * 40 + arcs[1], *arcs[2:]]:
        chunk = [arc & 0x7F]
        arc >>= 7
        while arc:
            chunk.append(0x80 | (arc & 0x7F))
            arc >>= 7
        body.extend(reversed(chunk))
    return encode_tlv(OBJECT_IDENTIFIER, bytes(body))


def encode_octet_string(value: bytes) -> bytes:
    return encode_tlv(OCTET_STRING, value)


def encode_sequence(*elements: bytes) -> bytes:
    """Wrap already-encoded elements in a SEQUENCE."""
    return encode_tlv(SEQUENCE, b"".join(elements))
