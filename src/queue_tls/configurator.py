"""
Connection configurator — decides which TLS material to load for a connection.

Domain layer — no file I/O of its own. Loading is injected via ports
(CredentialLoader, TrustAnchorLoader) so this module is pure dispatch:

  TlsSettings
    → create_trust_store(): ca_cert, or a PEM trust_store → TrustAnchorSet
    → create_key_store():   client_cert + client_key, or a PEM key_store → CredentialBundle
    → TlsMaterial

Anything not configured as PEM (PKCS#12 / JKS stores) is left as None and
handled by the transport layer from the file path directly.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from queue_tls.config import TlsSettings
from queue_tls.domain.models import CredentialBundle, TlsMaterial, TrustAnchorSet
from queue_tls.domain.ports import CredentialLoader, TlsMaterialLoader, TrustAnchorLoader

log = structlog.get_logger()

PEM_SUFFIXES = (".pem", ".crt", ".cer")


def is_pem_file(path: Path | str) -> bool:
    """PEM stores are recognised by extension, case-insensitively."""
    return str(path).lower().endswith(PEM_SUFFIXES)


def create_key_store(
    settings: TlsSettings,
    loader: CredentialLoader,
) -> CredentialBundle | None:
    """
    Build the client identity from PEM input, or None when it is not PEM.

    Separate client_cert/client_key take precedence over a PEM key_store.
    """
    password = settings.private_key_password_bytes()
    if settings.client_cert is not None and settings.client_key is not None:
        return loader.load_identity(settings.client_cert, settings.client_key, password)
    if settings.key_store is not None and is_pem_file(settings.key_store):
        return loader.load_combined_identity(settings.key_store, password)
    return None


def create_trust_store(
    settings: TlsSettings,
    loader: TrustAnchorLoader,
) -> TrustAnchorSet | None:
    """Build the trust anchors from PEM input, or None when it is not PEM."""
    if settings.ca_cert is not None:
        return loader.load_trust_anchors(settings.ca_cert)
    if settings.trust_store is not None and is_pem_file(settings.trust_store):
        return loader.load_trust_anchors(settings.trust_store)
    return None


def resolve_tls_material(
    settings: TlsSettings,
    loader: TlsMaterialLoader,
) -> TlsMaterial:
    """
    Resolve all PEM material for one connection setup.

    Trust anchors are loaded first, then the client identity — both fail-fast.
    Returns empty material when TLS is disabled.
    """
    if not settings.is_ssl_enabled:
        return TlsMaterial()

    trust_anchors = create_trust_store(settings, loader)
    if trust_anchors is not None:
        log.info("tls.trust_store_loaded", anchors=len(trust_anchors))

    credentials = None
    if settings.has_client_certificate:
        credentials = create_key_store(settings, loader)
        if credentials is not None:
            log.info(
                "tls.key_store_loaded",
                subject=credentials.leaf.subject,
                chain_length=len(credentials.chain),
                algorithm=credentials.key.algorithm.value,
            )

    return TlsMaterial(credentials=credentials, trust_anchors=trust_anchors)
