"""
Build the PEM/DER key and certificate fixtures used by the unit tests.

Infrastructure script — regenerates tests/fixtures/ with cryptography: the
same set of files with the same structure (fresh keys and serials), for when
the certificates need to be reissued. The reference PKCS#8 DER comes from
cryptography's own PKCS#8 serialiser, independent of the DER writer it checks.

Output:
  Keys (one fixed RSA-1024 key in several encodings)
    rsa1024_pkcs1.pem              "RSA PRIVATE KEY"
    rsa1024_pkcs8.der              reference PKCS#8 DER of the same key
    rsa1024_encrypted_pkcs8.pem    "ENCRYPTED PRIVATE KEY", password "secret"
    rsa1024_encrypted_legacy.pem   "RSA PRIVATE KEY" with Proc-Type: 4,ENCRYPTED
    ec_p256_sec1.pem / ec_p384_sec1.pem   "EC PRIVATE KEY", named curves
    ed25519_pkcs8.pem              "PRIVATE KEY", neither RSA nor EC

  Certificates
    ca.pem                 Queue TLS Test Root CA (EC P-256)
    intermediate.pem       Queue TLS Test Intermediate CA (EC P-256)
    client.pem             queue-client leaf for the RSA key, issued by the intermediate
    client_combined.pem    client + intermediate + RSA key
    ca_bundle.pem          ca + intermediate

  Edge cases
    no_certificates.pem        text only
    truncated_certificate.pem  first 8 lines of ca.pem, no END marker

Usage:
  python scripts/build_tls_fixtures.py
"""

from __future__ import annotations

import datetime
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.hazmat.primitives.serialization import (
    BestAvailableEncryption,
    Encoding,
    NoEncryption,
    PrivateFormat,
)
from cryptography.x509.oid import NameOID

FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures"
PASSWORD = b"secret"
VALIDITY = datetime.timedelta(days=3650)


def _name(common_name: str) -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "NL"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Queue TLS Test"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])


def _issue(
    subject: x509.Name,
    public_key: rsa.RSAPublicKey | ec.EllipticCurvePublicKey,
    issuer: x509.Name,
    signing_key: ec.EllipticCurvePrivateKey,
    *,
    ca: bool,
) -> x509.Certificate:
    now = datetime.datetime.now(datetime.UTC)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + VALIDITY)
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(signing_key.public_key()),
            critical=False,
        )
        .sign(signing_key, hashes.SHA256())
    )


def _pem(*certs: x509.Certificate) -> bytes:
    return b"".join(cert.public_bytes(Encoding.PEM) for cert in certs)


def _write(name: str, data: bytes) -> None:
    (FIXTURES_DIR / name).write_bytes(data)
    print(f"  {name} ({len(data)} bytes)")  # noqa: T201


def build_keys() -> rsa.RSAPrivateKey:
    """Write the key fixtures; return the RSA key the client leaf is issued for."""
    rsa_key = rsa.generate_private_key(public_exponent=65537, key_size=1024)
    _write(
        "rsa1024_pkcs1.pem",
        rsa_key.private_bytes(Encoding.PEM, PrivateFormat.TraditionalOpenSSL, NoEncryption()),
    )
    _write(
        "rsa1024_pkcs8.der",
        rsa_key.private_bytes(Encoding.DER, PrivateFormat.PKCS8, NoEncryption()),
    )
    _write(
        "rsa1024_encrypted_pkcs8.pem",
        rsa_key.private_bytes(
            Encoding.PEM, PrivateFormat.PKCS8, BestAvailableEncryption(PASSWORD)
        ),
    )
    _write(
        "rsa1024_encrypted_legacy.pem",
        rsa_key.private_bytes(
            Encoding.PEM, PrivateFormat.TraditionalOpenSSL, BestAvailableEncryption(PASSWORD)
        ),
    )

    for filename, curve in (("ec_p256_sec1.pem", ec.SECP256R1()), ("ec_p384_sec1.pem", ec.SECP384R1())):
        ec_key = ec.generate_private_key(curve)
        _write(
            filename,
            ec_key.private_bytes(Encoding.PEM, PrivateFormat.TraditionalOpenSSL, NoEncryption()),
        )

    _write(
        "ed25519_pkcs8.pem",
        ed25519.Ed25519PrivateKey.generate().private_bytes(
            Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()
        ),
    )
    return rsa_key


def build_certificates(client_key: rsa.RSAPrivateKey) -> None:
    root_key = ec.generate_private_key(ec.SECP256R1())
    root_name = _name("Queue TLS Test Root CA")
    root = _issue(root_name, root_key.public_key(), root_name, root_key, ca=True)

    intermediate_key = ec.generate_private_key(ec.SECP256R1())
    intermediate_name = _name("Queue TLS Test Intermediate CA")
    intermediate = _issue(
        intermediate_name, intermediate_key.public_key(), root_name, root_key, ca=True
    )

    client = _issue(
        _name("queue-client"), client_key.public_key(), intermediate_name, intermediate_key, ca=False
    )

    _write("ca.pem", _pem(root))
    _write("intermediate.pem", _pem(intermediate))
    _write("client.pem", _pem(client))
    _write("ca_bundle.pem", _pem(root, intermediate))
    _write(
        "client_combined.pem",
        _pem(client, intermediate)
        + client_key.private_bytes(Encoding.PEM, PrivateFormat.TraditionalOpenSSL, NoEncryption()),
    )

    truncated = b"".join(_pem(root).splitlines(keepends=True)[:8])
    _write("truncated_certificate.pem", truncated)


def build_edge_cases() -> None:
    _write(
        "no_certificates.pem",
        b"Queue TLS test: CA bundle with no certificates.\n# intentionally empty\n",
    )


def main() -> None:
    FIXTURES_DIR.mkdir(parents=True, exist_ok=True)
    print(f"Writing fixtures to {FIXTURES_DIR}")  # noqa: T201
    client_key = build_keys()
    build_certificates(client_key)
    build_edge_cases()


if __name__ == "__main__":
    main()
