"""
PEM loader adapter — files on disk → CredentialBundle / TrustAnchorSet.

Adapter layer — implements the CredentialLoader and TrustAnchorLoader ports.

Pipeline (per file):
  path
    → read bytes (unreadable file → ConfigError)
    → PemDocument: frame BEGIN/END blocks
    → certificates: CERTIFICATE blocks → Certificate records (file order)
    → private_keys: the single key block → PrivateKeyMaterial (PKCS#8)
    → build_credential_bundle / build_trust_anchor_set

Fail-fast: the first error aborts the whole load and no partial bundle or
set is returned. Nothing here logs — errors propagate to the configurator.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from queue_tls.adapters.certificates import assemble_certificates
from queue_tls.adapters.pem_framer import PemDocument
from queue_tls.adapters.private_keys import decode_private_key, select_private_key_block
from queue_tls.domain.errors import ConfigError
from queue_tls.domain.models import CredentialBundle, PemBlock, TrustAnchorSet

# ─────────────────────── Assembly ───────────────────────


def build_credential_bundle(
    cert_blocks: Iterable[PemBlock],
    key_block: PemBlock,
    password: bytes | None = None,
    *,
    cert_source: str | None = None,
    key_source: str | None = None,
) -> CredentialBundle:
    """
    Combine a certificate chain and one private key into a client identity.

    Requires at least one CERTIFICATE block. `password` gates encrypted keys
    and becomes the bundle's protection password (b"" when None).
    """
    chain = assemble_certificates(cert_blocks, source=cert_source)
    if not chain:
        raise ConfigError("No certificate found", source=cert_source)
    key = decode_private_key(key_block, password=password, source=key_source)
    return CredentialBundle(
        chain=tuple(chain),
        key=key,
        protection_password=password if password is not None else b"",
    )


def build_trust_anchor_set(
    cert_blocks: Iterable[PemBlock],
    source: str | None = None,
) -> TrustAnchorSet:
    """One anchor per CERTIFICATE block. Zero blocks yields an empty set."""
    return TrustAnchorSet(anchors=frozenset(assemble_certificates(cert_blocks, source=source)))


# ─────────────────────── File Loader ───────────────────────


def _read_document(path: Path) -> PemDocument:
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Cannot read file: {e.strerror or e}", source=str(path)) from e
    return PemDocument.from_bytes(raw, source=str(path))


class PemFileLoader:
    """
    Load PEM identity and trust material from files.

    Implements the CredentialLoader and TrustAnchorLoader ports. Stateless —
    every call reads its own files and returns freshly built values.
    """

    def load_identity(
        self,
        cert_path: Path,
        key_path: Path,
        password: bytes | None = None,
    ) -> CredentialBundle:
        """Certificate chain from `cert_path`, private key from `key_path`."""
        cert_blocks = _read_document(cert_path).blocks()
        key_blocks = _read_document(key_path).blocks()
        key_block = select_private_key_block(key_blocks, source=str(key_path))
        return build_credential_bundle(
            cert_blocks,
            key_block,
            password,
            cert_source=str(cert_path),
            key_source=str(key_path),
        )

    def load_combined_identity(
        self,
        pem_path: Path,
        password: bytes | None = None,
    ) -> CredentialBundle:
        """Certificates and the private key from one PEM file."""
        source = str(pem_path)
        blocks = _read_document(pem_path).blocks()
        key_block = select_private_key_block(blocks, source=source)
        return build_credential_bundle(
            blocks,
            key_block,
            password,
            cert_source=source,
            key_source=source,
        )

    def load_trust_anchors(self, ca_path: Path) -> TrustAnchorSet:
        source = str(ca_path)
        return build_trust_anchor_set(_read_document(ca_path), source=source)
