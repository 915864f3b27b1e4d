"""
Certificate assembler — CERTIFICATE PEM blocks → Certificate records.

Adapter layer — uses cryptography (PyCA) for DER parsing and X.509 metadata
extraction (subject, issuer, serial, validity, SKI).

Pipeline:
  PemBlock(label="CERTIFICATE")
    → decode_payload(): base64 → DER
    → cryptography: x509.load_der_x509_certificate()
    → Certificate (domain model)

File order is preserved; nothing is reordered or deduplicated.
"""

from __future__ import annotations

from collections.abc import Iterable

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import CertificatePublicKeyTypes
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.extensions import ExtensionNotFound

from queue_tls.adapters.pem_framer import decode_payload
from queue_tls.domain.errors import FormatError
from queue_tls.domain.models import Certificate, PemBlock


def _extract_ski(cert: x509.Certificate) -> str | None:
    """Extract Subject Key Identifier extension as hex string, or None if absent."""
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
        return ext.value.digest.hex()
    except (ExtensionNotFound, ValueError):
        return None


def certificate_from_der(der_bytes: bytes) -> Certificate:
    """
    Convert DER-encoded X.509 bytes into a Certificate.

    Raises ValueError if the bytes are not a single valid certificate.
    A missing SKI results in None — it does NOT cause a failure.
    """
    cert = x509.load_der_x509_certificate(der_bytes)
    return Certificate(
        der=der_bytes,
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        serial_number=hex(cert.serial_number),
        not_valid_before=cert.not_valid_before_utc,
        not_valid_after=cert.not_valid_after_utc,
        subject_key_identifier=_extract_ski(cert),
    )


def decode_certificate(block: PemBlock, source: str | None = None) -> Certificate:
    """Decode one CERTIFICATE block, naming the block index on failure."""
    der_bytes = decode_payload(block, source=source)
    try:
        return certificate_from_der(der_bytes)
    except ValueError as e:
        raise FormatError(
            "Invalid DER in CERTIFICATE block",
            source=source,
            block_index=block.index,
        ) from e


def assemble_certificates(
    blocks: Iterable[PemBlock],
    source: str | None = None,
) -> list[Certificate]:
    """
    Decode every CERTIFICATE block in file order.

    Blocks with other labels are skipped. An empty result is not an error
    here — only callers that require a certificate treat it as one.
    """
    return [decode_certificate(block, source=source) for block in blocks if block.is_certificate]


def public_key_of(certificate: Certificate) -> CertificatePublicKeyTypes:
    """Load the subject public key of a decoded certificate."""
    return x509.load_der_x509_certificate(certificate.der).public_key()


def certificate_to_pem(certificate: Certificate) -> bytes:
    return x509.load_der_x509_certificate(certificate.der).public_bytes(Encoding.PEM)
