"""
SSL context adapter — TlsMaterial + TlsSettings → client-side ssl.SSLContext.

Adapter layer — the transport's handshake configuration:

  - minimum protocol version from settings.tls_version
  - skip_cert_validation disables hostname checks and peer verification
  - trust:    TrustAnchorSet → PKCS#12 trust store file → system default CAs
  - identity: CredentialBundle → PKCS#12 key store file → none

The stdlib ssl module only loads client certificates from files, so the
bundle is written to a private temporary directory for the duration of
load_cert_chain() and removed immediately afterwards.
"""

from __future__ import annotations

import ssl
import tempfile
from pathlib import Path

from cryptography.hazmat.primitives.serialization import (
    BestAvailableEncryption,
    Encoding,
    NoEncryption,
    PrivateFormat,
)

from queue_tls.adapters.certificates import certificate_to_pem
from queue_tls.adapters.keystore import load_pkcs12_identity, load_pkcs12_trust_anchors
from queue_tls.adapters.private_keys import load_private_key
from queue_tls.config import TlsSettings
from queue_tls.configurator import is_pem_file
from queue_tls.domain.errors import ConfigError
from queue_tls.domain.models import CredentialBundle, TlsMaterial, TrustAnchorSet

_PROTOCOLS = {
    "TLSv1": ssl.TLSVersion.TLSv1,
    "TLSv1.1": ssl.TLSVersion.TLSv1_1,
    "TLSv1.2": ssl.TLSVersion.TLSv1_2,
    "TLSv1.3": ssl.TLSVersion.TLSv1_3,
}


def _reject_jks(path: Path) -> None:
    if path.suffix.lower() == ".jks":
        raise ConfigError(
            "JKS stores are not supported; convert to PKCS#12 or PEM", source=str(path)
        )


def _file_backed_trust(settings: TlsSettings) -> TrustAnchorSet | None:
    store = settings.trust_store
    if store is None or is_pem_file(store):
        return None
    _reject_jks(store)
    return load_pkcs12_trust_anchors(store, settings.trust_store_password_bytes())


def _file_backed_identity(settings: TlsSettings) -> CredentialBundle | None:
    store = settings.key_store
    if store is None or is_pem_file(store):
        return None
    _reject_jks(store)
    return load_pkcs12_identity(store, settings.key_store_password_bytes())


def _load_trust(context: ssl.SSLContext, trust_anchors: TrustAnchorSet) -> None:
    """An empty set is kept empty: nothing is trusted rather than the system CAs."""
    if len(trust_anchors):
        context.load_verify_locations(cadata=b"".join(cert.der for cert in trust_anchors))


def _load_identity(context: ssl.SSLContext, credentials: CredentialBundle) -> None:
    password = credentials.protection_password or None
    encryption = BestAvailableEncryption(password) if password else NoEncryption()
    key_pem = load_private_key(credentials.key).private_bytes(
        Encoding.PEM, PrivateFormat.PKCS8, encryption
    )
    chain_pem = b"".join(certificate_to_pem(cert) for cert in credentials.chain)

    with tempfile.TemporaryDirectory(prefix="queue-tls-") as workdir:
        cert_file = Path(workdir) / "chain.pem"
        key_file = Path(workdir) / "key.pem"
        cert_file.write_bytes(chain_pem)
        key_file.write_bytes(key_pem)
        try:
            context.load_cert_chain(cert_file, key_file, password=password)
        except ssl.SSLError as e:
            raise ConfigError(
                f"TLS layer rejected the client identity: {e.reason or e}"
            ) from e


def build_ssl_context(settings: TlsSettings, material: TlsMaterial) -> ssl.SSLContext:
    """Create the client SSLContext for one broker connection."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.minimum_version = _PROTOCOLS[settings.tls_version]
    if settings.skip_cert_validation:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    trust_anchors = material.trust_anchors
    if trust_anchors is None:
        trust_anchors = _file_backed_trust(settings)
    if trust_anchors is not None:
        _load_trust(context, trust_anchors)
    else:
        context.load_default_certs(ssl.Purpose.SERVER_AUTH)

    credentials = material.credentials
    if credentials is None and settings.has_client_certificate:
        credentials = _file_backed_identity(settings)
    if credentials is not None:
        _load_identity(context, credentials)

    return context
