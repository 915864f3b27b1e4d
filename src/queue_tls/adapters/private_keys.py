"""
Private-key decoder — one private-key PEM block → PrivateKeyMaterial (PKCS#8).

Adapter layer — dispatches on the block's KeyFormat:

  PRIVATE KEY            → PKCS#8 passthrough, checked to be a PrivateKeyInfo
  RSA PRIVATE KEY        → PKCS#1 body wrapped into PKCS#8 (pkcs1_to_pkcs8)
  EC PRIVATE KEY         → SEC1 body wrapped into PKCS#8 (sec1_to_pkcs8)
  ENCRYPTED PRIVATE KEY  → ConfigError, decryption is not implemented
  anything else          → UnsupportedAlgorithm

Libraries:
  - der_writer: builds the PrivateKeyInfo envelope around legacy bodies
  - asn1crypto: reads the curve parameters out of a SEC1 ECPrivateKey and
    checks the structure of PKCS#8 input
  - cryptography (PyCA): imports the final PKCS#8 DER to prove it is a
    usable RSA or EC key

PrivateKeyInfo (RFC 5208):

  SEQUENCE {
      version              INTEGER (0),
      privateKeyAlgorithm  SEQUENCE { algorithm OID, parameters ANY },
      privateKey           OCTET STRING   -- the PKCS#1 / SEC1 bytes, unchanged
  }
"""

from __future__ import annotations

from collections.abc import Iterable

from asn1crypto import core, keys
from cryptography import exceptions as crypto_exceptions
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from queue_tls.adapters.der_writer import (
    encode_integer,
    encode_null,
    encode_octet_string,
    encode_oid,
    encode_sequence,
)
from queue_tls.adapters.pem_framer import decode_payload
from queue_tls.domain.errors import (
    ConfigError,
    FormatError,
    TlsMaterialError,
    UnsupportedAlgorithm,
)
from queue_tls.domain.models import KeyAlgorithm, KeyFormat, PemBlock, PrivateKeyMaterial

RSA_ENCRYPTION_OID = "1.2.840.113549.1.1.1"
EC_PUBLIC_KEY_OID = "1.2.840.10045.2.1"


# ─────────────────────── Block Selection ───────────────────────


def select_private_key_block(blocks: Iterable[PemBlock], source: str | None = None) -> PemBlock:
    """Return the single private-key block of a file; zero or several is a ConfigError."""
    key_blocks = [block for block in blocks if block.is_private_key]
    if not key_blocks:
        raise ConfigError("No private key found", source=source)
    if len(key_blocks) > 1:
        raise ConfigError(
            f"Expected exactly one private key, found {len(key_blocks)}",
            source=source,
            block_index=key_blocks[1].index,
        )
    return key_blocks[0]


# ─────────────────────── PKCS#8 Re-encoding ───────────────────────


def pkcs1_to_pkcs8(pkcs1_der: bytes) -> bytes:
    """
    Wrap a PKCS#1 RSAPrivateKey in a PKCS#8 PrivateKeyInfo.

    The RSA body is copied unchanged; only the envelope is synthesised.
    Lengths are DER-minimal, so bodies of any size encode correctly.
    """
    algorithm = encode_sequence(encode_oid(RSA_ENCRYPTION_OID), encode_null())
    return encode_sequence(encode_integer(0), algorithm, encode_octet_string(pkcs1_der))


def _sec1_curve_parameters(sec1_der: bytes) -> bytes:
    """
    Return the DER of the curve parameters carried in a SEC1 ECPrivateKey.

      ECPrivateKey ::= SEQUENCE {
          version        INTEGER { ecPrivkeyVer1(1) },
          privateKey     OCTET STRING,
          parameters [0] ECParameters {{ NamedCurve }} OPTIONAL,
          publicKey  [1] BIT STRING OPTIONAL
      }

    Named-curve OIDs and explicit domain parameters are both copied verbatim.
    """
    try:
        ec_key = keys.ECPrivateKey.load(sec1_der, strict=True)
        version = ec_key["version"].native
        parameters = ec_key["parameters"]
    except (ValueError, TypeError) as e:
        raise FormatError("Invalid DER in SEC1 EC private key") from e

    if version not in (1, "ecPrivkeyVer1"):
        raise FormatError(f"Unexpected SEC1 ECPrivateKey version {version}")
    if isinstance(parameters, core.Void):
        raise UnsupportedAlgorithm("SEC1 EC private key does not name its curve")
    if parameters.name == "implicit_ca":
        raise UnsupportedAlgorithm("SEC1 EC private key uses implicitlyCA curve parameters")
    return parameters.chosen.dump()


def sec1_to_pkcs8(sec1_der: bytes) -> bytes:
    """Wrap a SEC1 ECPrivateKey in a PKCS#8 PrivateKeyInfo (id-ecPublicKey + its curve)."""
    algorithm = encode_sequence(encode_oid(EC_PUBLIC_KEY_OID), _sec1_curve_parameters(sec1_der))
    return encode_sequence(encode_integer(0), algorithm, encode_octet_string(sec1_der))


# ─────────────────────── Key Import ───────────────────────


def require_private_key_info(der: bytes) -> None:
    """
    Reject DER that is not a PKCS#8 PrivateKeyInfo.

    cryptography's DER loader also accepts bare PKCS#1 and SEC1 bodies, so a
    `PRIVATE KEY` block is checked structurally before it is imported.
    """
    try:
        info = keys.PrivateKeyInfo.load(der, strict=True)
        algorithm_oid = info["private_key_algorithm"]["algorithm"].dotted
        body = info["private_key"].contents
    except (ValueError, TypeError, AttributeError) as e:
        raise FormatError("PRIVATE KEY block is not a PKCS#8 PrivateKeyInfo") from e
    if not algorithm_oid or not body:
        raise FormatError("PRIVATE KEY block is not a PKCS#8 PrivateKeyInfo")


def import_pkcs8(pkcs8_der: bytes, expected: KeyAlgorithm | None = None) -> PrivateKeyMaterial:
    """
    Import PKCS#8 DER and classify it as RSA or EC.

    Any other key type (Ed25519, DSA, ...) is UnsupportedAlgorithm. DER that
    cryptography cannot parse at all is a FormatError.
    """
    try:
        key = serialization.load_der_private_key(pkcs8_der, password=None)
    except crypto_exceptions.UnsupportedAlgorithm as e:
        raise UnsupportedAlgorithm("Private key algorithm is not supported") from e
    except (ValueError, TypeError) as e:
        raise FormatError("Invalid DER in private key") from e

    if isinstance(key, rsa.RSAPrivateKey):
        algorithm = KeyAlgorithm.RSA
    elif isinstance(key, ec.EllipticCurvePrivateKey):
        algorithm = KeyAlgorithm.EC
    else:
        raise UnsupportedAlgorithm(
            f"Private key must be RSA or EC, got {type(key).__name__}"
        )

    if expected is not None and algorithm is not expected:
        raise FormatError(f"Expected an {expected.value} key, decoded an {algorithm.value} key")
    return PrivateKeyMaterial(algorithm=algorithm, pkcs8_der=pkcs8_der)


def load_private_key(material: PrivateKeyMaterial) -> rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey:
    """Load decoded material back into a cryptography key object."""
    key = serialization.load_der_private_key(material.pkcs8_der, password=None)
    assert isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey))
    return key


# ─────────────────────── Public Decoder ───────────────────────


def _decode(block: PemBlock, password: bytes | None) -> PrivateKeyMaterial:
    match KeyFormat.of(block):
        case KeyFormat.ENCRYPTED:
            if password is None:
                raise ConfigError("Private key is encrypted but no password provided")
            raise ConfigError(
                "Encrypted private keys are not supported; "
                "provide the key unencrypted (e.g. `openssl pkcs8 -topk8 -nocrypt`)"
            )
        case KeyFormat.PKCS8:
            pkcs8_der = decode_payload(block)
            require_private_key_info(pkcs8_der)
            return import_pkcs8(pkcs8_der)
        case KeyFormat.PKCS1_RSA:
            return import_pkcs8(pkcs1_to_pkcs8(decode_payload(block)), KeyAlgorithm.RSA)
        case KeyFormat.SEC1_EC:
            return import_pkcs8(sec1_to_pkcs8(decode_payload(block)), KeyAlgorithm.EC)
        case KeyFormat.UNKNOWN:
            raise UnsupportedAlgorithm(f"Unsupported private key type: {block.label}")
    raise TypeError("unreachable")  # pragma: no cover


def decode_private_key(
    block: PemBlock,
    password: bytes | None = None,
    source: str | None = None,
) -> PrivateKeyMaterial:
    """
    Decode a private-key block into PKCS#8 material.

    The ENCRYPTED gate runs before any base64 or DER decoding. Errors are
    annotated with the source file and block index.
    """
    try:
        return _decode(block, password)
    except TlsMaterialError as e:
        if e.source is None:
            e.source = source
        if e.block_index is None:
            e.block_index = block.index
        raise
