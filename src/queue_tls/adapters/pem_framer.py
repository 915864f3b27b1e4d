"""
PEM framer — splits raw PEM text into labelled base64 blocks.

Adapter layer — an explicit cursor scanner over the file text:

  raw text
    → find "-----BEGIN <label>-----"
    → find the matching "-----END <label>-----"
    → strip whitespace from everything in between
    → PemBlock(label, payload, index)

Text outside BEGIN/END markers (comments, `Bag Attributes` dumps, `openssl x509
-text` output) is skipped. Labels are not filtered here; callers pick the blocks
they understand.

The DER decoder (`decode_payload`) is the second half of this stage: it turns a
block's base64 payload into raw DER bytes.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterator

from queue_tls.domain.errors import FormatError
from queue_tls.domain.models import PemBlock

_DASHES = "-----"
_BEGIN = "-----BEGIN "
_END = "-----END "


class PemDocument:
    """
    Lazy, restartable sequence of the PEM blocks in one piece of text.

    Iterating scans the text from the start each time, so a document can be
    walked more than once (e.g. once for certificates, once for keys).
    Malformed framing raises FormatError when the scanner reaches it.
    """

    def __init__(self, text: str, source: str | None = None) -> None:
        self._text = text
        self._source = source

    @classmethod
    def from_bytes(cls, raw: bytes, source: str | None = None) -> PemDocument:
        """Decode file bytes as text. Undecodable bytes can only matter inside a payload."""
        return cls(raw.decode("utf-8", errors="replace"), source=source)

    def __iter__(self) -> Iterator[PemBlock]:
        return _scan(self._text, self._source)

    def blocks(self) -> list[PemBlock]:
        return list(self)


def _read_label(text: str, start: int, source: str | None, index: int) -> tuple[str, int]:
    """Read `<label>-----` starting right after a BEGIN/END prefix."""
    close = text.find(_DASHES, start)
    line_end = text.find("\n", start)
    if close == -1 or (line_end != -1 and line_end < close):
        raise FormatError("Malformed PEM boundary line", source=source, block_index=index)
    return text[start:close].strip(), close + len(_DASHES)


def _scan(text: str, source: str | None) -> Iterator[PemBlock]:
    cursor = 0
    index = 0
    while True:
        begin = text.find(_BEGIN, cursor)
        if begin == -1:
            return

        label, body_start = _read_label(text, begin + len(_BEGIN), source, index)
        end_marker = f"{_END}{label}{_DASHES}"
        end = text.find(end_marker, body_start)
        nested = text.find(_BEGIN, body_start)
        if end == -1 or (nested != -1 and nested < end):
            raise FormatError(
                f"Unterminated PEM block: BEGIN {label} has no matching END {label}",
                source=source,
                block_index=index,
            )

        payload = "".join(text[body_start:end].split())
        yield PemBlock(label=label, payload=payload, index=index)

        cursor = end + len(end_marker)
        index += 1


def decode_payload(block: PemBlock, source: str | None = None) -> bytes:
    """
    Base64-decode a block's payload into DER bytes.

    Strict decoding — characters outside the base64 alphabet (including
    RFC 1421 headers such as `Proc-Type:`) fail with FormatError.
    """
    try:
        return base64.b64decode(block.payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FormatError(
            f"Invalid base64 in {block.label} block",
            source=source,
            block_index=block.index,
        ) from e
