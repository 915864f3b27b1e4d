"""
Domain models — immutable value objects for TLS identity material.

These are pure value objects with no behavior beyond self-validation.
They represent PEM input after framing and the credential material
handed to the transport layer for a TLS handshake.

Lifecycle: every value here is built fresh for one connection setup and
discarded once the transport layer has consumed it. Nothing is cached.

All models are frozen dataclasses (immutable) following functional principles.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, unique

from queue_tls.domain.errors import ConfigError

CERTIFICATE_LABEL = "CERTIFICATE"


@dataclass(frozen=True, slots=True)
class PemBlock:
    """
    One `-----BEGIN <label>----- ... -----END <label>-----` region of a PEM file.

    `payload` is the base64 text between the markers with all whitespace
    removed. `index` is the block's position in its file, starting at 0.
    """

    label: str
    payload: str = field(repr=False)
    index: int = 0

    @property
    def is_certificate(self) -> bool:
        return self.label == CERTIFICATE_LABEL

    @property
    def is_private_key(self) -> bool:
        return self.label.endswith("PRIVATE KEY")


@dataclass(frozen=True, slots=True)
class Certificate:
    """
    A decoded X.509 certificate.

    Equality and hashing use the raw DER bytes only, so the same
    certificate loaded twice compares equal regardless of how its
    metadata was rendered.
    """

    der: bytes = field(repr=False)
    subject: str = field(default="", compare=False)
    issuer: str = field(default="", compare=False)
    serial_number: str = field(default="", compare=False)
    not_valid_before: datetime | None = field(default=None, compare=False)
    not_valid_after: datetime | None = field(default=None, compare=False)
    subject_key_identifier: str | None = field(default=None, compare=False)


@unique
class KeyAlgorithm(Enum):
    """Key algorithms a client identity may use."""

    RSA = "RSA"
    EC = "EC"


@unique
class KeyFormat(Enum):
    """
    Encoding of a private-key PEM block, derived from its label.

    ENCRYPTED covers both `ENCRYPTED PRIVATE KEY` blocks and legacy
    blocks whose payload carries an `ENCRYPTED` Proc-Type header.
    UNKNOWN covers any other `... PRIVATE KEY` label (DSA, OpenSSH, ...).
    """

    PKCS8 = "PRIVATE KEY"
    PKCS1_RSA = "RSA PRIVATE KEY"
    SEC1_EC = "EC PRIVATE KEY"
    ENCRYPTED = "ENCRYPTED PRIVATE KEY"
    UNKNOWN = ""

    @classmethod
    def of(cls, block: PemBlock) -> KeyFormat:
        """Classify a private-key block by label, checking the ENCRYPTED marker first."""
        if block.label == cls.ENCRYPTED.value or "ENCRYPTED" in block.payload:
            return cls.ENCRYPTED
        for key_format in (cls.PKCS8, cls.PKCS1_RSA, cls.SEC1_EC):
            if block.label == key_format.value:
                return key_format
        return cls.UNKNOWN


@dataclass(frozen=True, slots=True)
class PrivateKeyMaterial:
    """
    A private key in PKCS#8 `PrivateKeyInfo` DER form.

    By the time this value exists the key is always PKCS#8 — PKCS#1 and
    SEC1 encodings are re-encoded on ingestion and never stored.
    """

    algorithm: KeyAlgorithm
    pkcs8_der: bytes = field(repr=False)


@dataclass(frozen=True, slots=True)
class CredentialBundle:
    """
    Client identity for mutual TLS: one private key plus its certificate chain.

    `chain` preserves the order certificates appeared in the source file;
    the first entry is treated as the leaf. The key is NOT checked
    against the leaf's public key.
    """

    chain: tuple[Certificate, ...]
    key: PrivateKeyMaterial
    protection_password: bytes = field(default=b"", repr=False)

    def __post_init__(self) -> None:
        if not self.chain:
            raise ConfigError("A credential bundle requires at least one certificate")

    @property
    def leaf(self) -> Certificate:
        return self.chain[0]


@dataclass(frozen=True, slots=True)
class TrustAnchorSet:
    """Certificates trusted for validating the peer's chain. Unordered, may be empty."""

    anchors: frozenset[Certificate] = field(default_factory=frozenset)

    def __len__(self) -> int:
        return len(self.anchors)

    def __iter__(self) -> Iterator[Certificate]:
        return iter(self.anchors)

    def __contains__(self, certificate: object) -> bool:
        return certificate in self.anchors


@dataclass(frozen=True, slots=True)
class TlsMaterial:
    """
    Everything the loader produced for one connection setup.

    Either field is None when the corresponding material is not configured
    as PEM input — the transport layer then falls back to file-backed stores.
    """

    credentials: CredentialBundle | None = None
    trust_anchors: TrustAnchorSet | None = None

    @property
    def is_empty(self) -> bool:
        return self.credentials is None and self.trust_anchors is None
