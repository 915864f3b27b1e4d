"""
Ports — Protocol-based interfaces between the connection configurator and loaders.

These define WHAT the configurator needs (contracts) without specifying
HOW it's done (implementation). Following hexagonal architecture:

  Domain ← Ports (protocols) ← Adapters (implementations)

Each port is a Protocol (structural typing) so adapters satisfy
the contract simply by implementing the methods — no inheritance.

Loaders raise TlsMaterialError subclasses on failure and never return
partial results.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from queue_tls.domain.models import CredentialBundle, TrustAnchorSet


@runtime_checkable
class CredentialLoader(Protocol):
    """
    Port: build a client-identity bundle from PEM input.

    Two layouts are supported:
      1. Separate files — certificate chain in one, private key in the other
      2. Combined file  — certificates and the private key in one PEM file

    `password` gates encrypted keys and becomes the bundle's protection
    password (empty bytes when None).
    """

    def load_identity(
        self,
        cert_path: Path,
        key_path: Path,
        password: bytes | None = None,
    ) -> CredentialBundle: ...

    def load_combined_identity(
        self,
        pem_path: Path,
        password: bytes | None = None,
    ) -> CredentialBundle: ...


@runtime_checkable
class TrustAnchorLoader(Protocol):
    """Port: collect every certificate of a PEM CA bundle into a trust-anchor set."""

    def load_trust_anchors(self, ca_path: Path) -> TrustAnchorSet: ...


@runtime_checkable
class TlsMaterialLoader(CredentialLoader, TrustAnchorLoader, Protocol):
    """Port: a single loader serving both client identity and trust anchors."""
