"""
PKCS#12 key store adapter — CredentialBundle ↔ PKCS#12 bytes.

Adapter layer — uses cryptography's pkcs12 module for both directions:

  export_pkcs12():               CredentialBundle → PKCS#12 (the in-memory "key store")
  load_pkcs12_identity():        file-backed PKCS#12 key store → CredentialBundle
  load_pkcs12_trust_anchors():   file-backed PKCS#12 trust store → TrustAnchorSet

File-backed stores bypass the PEM loader entirely; they are read here so the
transport layer can consume the same domain types either way. Keys read from
PKCS#12 still go through import_pkcs8, so only RSA and EC identities pass.
"""

from __future__ import annotations

from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.hazmat.primitives.serialization import (
    BestAvailableEncryption,
    Encoding,
    NoEncryption,
    PrivateFormat,
    pkcs12,
)

from queue_tls.adapters.certificates import certificate_from_der
from queue_tls.adapters.private_keys import import_pkcs8, load_private_key
from queue_tls.domain.errors import ConfigError, FormatError
from queue_tls.domain.models import Certificate, CredentialBundle, TrustAnchorSet


def export_pkcs12(bundle: CredentialBundle, alias: str = "client") -> bytes:
    """
    Serialise a bundle as PKCS#12.

    The leaf becomes the key's certificate; the rest of the chain is stored
    as additional certificates. Encrypted with the protection password when
    it is non-empty.
    """
    leaf, *rest = [x509.load_der_x509_certificate(cert.der) for cert in bundle.chain]
    encryption = (
        BestAvailableEncryption(bundle.protection_password)
        if bundle.protection_password
        else NoEncryption()
    )
    return pkcs12.serialize_key_and_certificates(
        alias.encode("utf-8"),
        load_private_key(bundle.key),
        leaf,
        rest or None,
        encryption,
    )


def _read_pkcs12(
    path: Path,
    password: bytes | None,
) -> tuple[PrivateKeyTypes | None, x509.Certificate | None, list[x509.Certificate]]:
    source = str(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Cannot read file: {e.strerror or e}", source=source) from e
    try:
        return pkcs12.load_key_and_certificates(data, password)
    except ValueError as e:
        raise FormatError(
            "Cannot open PKCS#12 store (corrupt file or wrong password)", source=source
        ) from e


def _to_certificate(cert: x509.Certificate) -> Certificate:
    return certificate_from_der(cert.public_bytes(Encoding.DER))


def load_pkcs12_identity(path: Path, password: bytes | None = None) -> CredentialBundle:
    """Read a PKCS#12 key store holding one private key and its chain."""
    key, cert, additional = _read_pkcs12(path, password)
    if key is None:
        raise ConfigError("No private key found", source=str(path))
    if cert is None:
        raise ConfigError("No certificate found", source=str(path))

    pkcs8_der = key.private_bytes(Encoding.DER, PrivateFormat.PKCS8, NoEncryption())
    return CredentialBundle(
        chain=tuple(_to_certificate(c) for c in [cert, *additional]),
        key=import_pkcs8(pkcs8_der),
        protection_password=password if password is not None else b"",
    )


def load_pkcs12_trust_anchors(path: Path, password: bytes | None = None) -> TrustAnchorSet:
    """Read every certificate of a PKCS#12 trust store. Keys, if any, are ignored."""
    _, cert, additional = _read_pkcs12(path, password)
    certs = [cert, *additional] if cert is not None else additional
    return TrustAnchorSet(anchors=frozenset(_to_certificate(c) for c in certs))
