"""
Error kinds raised by the TLS material loader.

Every failure of the loader is one of three kinds, all sharing the
TlsMaterialError base so the connection configurator can catch them in
one place:

  - FormatError          — malformed PEM framing, base64, or DER
  - ConfigError          — input that is well-formed but unusable as given
                           (encrypted key, missing or duplicated blocks,
                           unreadable files, contradictory settings)
  - UnsupportedAlgorithm — key material that is neither RSA nor EC

Errors carry the offending source (file path) and PEM block index when
known, so the user-facing message can point at the exact block.
"""

from __future__ import annotations


class TlsMaterialError(Exception):
    """Base class for all loader failures."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        block_index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.source = source
        self.block_index = block_index

    def __str__(self) -> str:
        location = []
        if self.source is not None:
            location.append(self.source)
        if self.block_index is not None:
            location.append(f"block #{self.block_index}")
        if not location:
            return self.message
        return f"{self.message} ({', '.join(location)})"


class FormatError(TlsMaterialError):
    """PEM framing, base64 payload, or DER content is malformed."""


class ConfigError(TlsMaterialError):
    """The supplied material or settings cannot be used as configured."""


class UnsupportedAlgorithm(TlsMaterialError):
    """Decoded key material is neither RSA nor EC."""
