"""
Shared test fixtures and helpers for the queue-tls test suite.

Provides path resolution for the PEM/DER fixtures in
tests/fixtures, plus helpers that issue throwaway keys and certificates
with cryptography for tests that need fresh or handshake-capable material.

Fixture files (tests/fixtures):
  rsa1024_pkcs1.pem              fixed 1024-bit RSA key, PKCS#1 ("RSA PRIVATE KEY")
  rsa1024_pkcs8.der              the same key as PKCS#8 DER, from cryptography's `private_bytes`
  rsa1024_encrypted_pkcs8.pem    the same key, "ENCRYPTED PRIVATE KEY" (password "secret")
  rsa1024_encrypted_legacy.pem   the same key, PKCS#1 with a Proc-Type ENCRYPTED header
  ec_p256_sec1.pem / ec_p384_sec1.pem   SEC1 ("EC PRIVATE KEY") keys, named curves
  ed25519_pkcs8.pem              Ed25519 key ("PRIVATE KEY") — not RSA or EC
  ca.pem / intermediate.pem      root and intermediate CA (EC P-256)
  client.pem                     leaf for rsa1024_pkcs1.pem, issued by the intermediate
  client_combined.pem            client.pem + intermediate.pem + rsa1024_pkcs1.pem
  ca_bundle.pem                  ca.pem + intermediate.pem
  no_certificates.pem            text only, zero PEM blocks
  truncated_certificate.pem      BEGIN CERTIFICATE with no END marker
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
)
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from queue_tls.adapters.certificates import certificate_from_der
from queue_tls.adapters.private_keys import import_pkcs8
from queue_tls.domain.models import CredentialBundle

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture()
def fixtures_dir() -> Path:
    """Return the absolute path to the test fixtures directory."""
    return FIXTURES_DIR


def fixture_path(filename: str) -> Path:
    """
    Resolve the absolute path to a test fixture file.

    Raises FileNotFoundError if the fixture does not exist.
    """
    path = FIXTURES_DIR / filename
    if not path.exists():
        raise FileNotFoundError(f"Test fixture not found: {path}")
    return path


def fixture_text(filename: str) -> str:
    return fixture_path(filename).read_text()


# ─────────────────────── Generated PKI ───────────────────────


def issue_certificate(
    common_name: str,
    key: CertificateIssuerPrivateKeyTypes,
    issuer: x509.Certificate | None = None,
    issuer_key: CertificateIssuerPrivateKeyTypes | None = None,
    *,
    ca: bool = False,
    dns_names: tuple[str, ...] = (),
    client_auth: bool = False,
) -> x509.Certificate:
    """Issue a certificate for `key`; self-signed when no issuer is given."""
    subject = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Queue TLS Test"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])
    now = datetime.datetime.now(datetime.UTC)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer.subject if issuer is not None else subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
    )
    if ca:
        builder = builder.add_extension(
            x509.KeyUsage(
                digital_signature=True, content_commitment=False, key_encipherment=False,
                data_encipherment=False, key_agreement=False, key_cert_sign=True,
                crl_sign=True, encipher_only=False, decipher_only=False,
            ),
            critical=True,
        )
    if issuer is not None:
        builder = builder.add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer.public_key()),  # type: ignore[arg-type]
            critical=False,
        )
    if dns_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(name) for name in dns_names]),
            critical=False,
        )
    usages = [ExtendedKeyUsageOID.CLIENT_AUTH] if client_auth else []
    if dns_names:
        usages.append(ExtendedKeyUsageOID.SERVER_AUTH)
    if usages:
        builder = builder.add_extension(x509.ExtendedKeyUsage(usages), critical=False)

    return builder.sign(issuer_key if issuer_key is not None else key, hashes.SHA256())


def cert_pem(*certs: x509.Certificate) -> bytes:
    return b"".join(cert.public_bytes(Encoding.PEM) for cert in certs)


def traditional_key_pem(key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey) -> bytes:
    """PKCS#1 for RSA ("RSA PRIVATE KEY"), SEC1 for EC ("EC PRIVATE KEY")."""
    return key.private_bytes(Encoding.PEM, PrivateFormat.TraditionalOpenSSL, NoEncryption())


def pkcs8_key_pem(key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey) -> bytes:
    return key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())


def make_bundle(
    key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey,
    *chain: x509.Certificate,
    password: bytes = b"",
) -> CredentialBundle:
    """Build a CredentialBundle straight from cryptography objects."""
    return CredentialBundle(
        chain=tuple(certificate_from_der(cert.public_bytes(Encoding.DER)) for cert in chain),
        key=import_pkcs8(key.private_bytes(Encoding.DER, PrivateFormat.PKCS8, NoEncryption())),
        protection_password=password,
    )


@dataclass(frozen=True)
class GeneratedPki:
    """A root CA with a server leaf (SAN localhost) and two client leaves (RSA, EC)."""

    ca_key: ec.EllipticCurvePrivateKey
    ca_cert: x509.Certificate
    server_key: ec.EllipticCurvePrivateKey
    server_cert: x509.Certificate
    rsa_client_key: rsa.RSAPrivateKey
    rsa_client_cert: x509.Certificate
    ec_client_key: ec.EllipticCurvePrivateKey
    ec_client_cert: x509.Certificate


@pytest.fixture(scope="session")
def pki() -> GeneratedPki:
    """Generate one PKI per test session (RSA key generation is slow)."""
    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_cert = issue_certificate("Queue TLS Test Root CA", ca_key, ca=True)
    server_key = ec.generate_private_key(ec.SECP256R1())
    server_cert = issue_certificate(
        "localhost", server_key, ca_cert, ca_key, dns_names=("localhost",)
    )
    rsa_client_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    rsa_client_cert = issue_certificate(
        "rsa-client", rsa_client_key, ca_cert, ca_key, client_auth=True
    )
    ec_client_key = ec.generate_private_key(ec.SECP384R1())
    ec_client_cert = issue_certificate(
        "ec-client", ec_client_key, ca_cert, ca_key, client_auth=True
    )
    return GeneratedPki(
        ca_key=ca_key,
        ca_cert=ca_cert,
        server_key=server_key,
        server_cert=server_cert,
        rsa_client_key=rsa_client_key,
        rsa_client_cert=rsa_client_cert,
        ec_client_key=ec_client_key,
        ec_client_cert=ec_client_cert,
    )
