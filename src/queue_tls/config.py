"""
Configuration — typed, validated TLS settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from environment variables (12-factor app)
  - Fall back to .env file
  - Validate types and constraints at startup
  - Keep passwords out of logs (SecretStr)

Command-line flags are passed in as init kwargs by `main`, which take
priority over environment values.

Architecture: Only AppSettings is a BaseSettings instance. TlsSettings is a
plain BaseModel populated by AppSettings via env_nested_delimiter="__", so the
env var TLS__CA_CERT maps to tls.ca_cert, TLS__KEY_STORE maps to tls.key_store, etc.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the .env file relative to the project root (two levels above this file),
# so settings load correctly regardless of the working directory at runtime.
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"

TLS_VERSIONS = ("TLSv1", "TLSv1.1", "TLSv1.2", "TLSv1.3")


def _secret_bytes(secret: SecretStr | None) -> bytes | None:
    return secret.get_secret_value().encode("utf-8") if secret is not None else None


class TlsSettings(BaseModel):
    """
    TLS options for one broker connection.

    PEM input can be given two ways for the client identity:
      1. client_cert + client_key — separate PEM files
      2. key_store               — one file; PEM (.pem/.crt/.cer) is loaded here,
                                   PKCS#12 is handed to the transport layer as-is

    Trust material: ca_cert (PEM) or trust_store (PEM or PKCS#12).
    """

    host: str | None = Field(default=None, description="Broker URL, e.g. tcps://broker:55443")
    ssl: bool = Field(default=False, description="Enable TLS (implied by a tcps:// host)")

    trust_store: Path | None = Field(default=None, description="Trust store (PEM or PKCS#12)")
    trust_store_password: SecretStr | None = Field(default=None)
    key_store: Path | None = Field(default=None, description="Key store (PEM or PKCS#12)")
    key_store_password: SecretStr | None = Field(default=None)
    key_password: SecretStr | None = Field(
        default=None,
        description="Private key password, if different from the key store password",
    )
    key_alias: str = Field(default="client", description="Friendly name of exported key entries")

    client_cert: Path | None = Field(default=None, description="Client certificate chain (PEM)")
    client_key: Path | None = Field(default=None, description="Client private key (PEM)")
    ca_cert: Path | None = Field(default=None, description="CA certificates (PEM)")

    skip_cert_validation: bool = Field(
        default=False,
        description="Skip server certificate validation (NOT recommended for production)",
    )
    tls_version: str = Field(default="TLSv1.2", description="Minimum TLS protocol version")

    @field_validator("tls_version")
    @classmethod
    def validate_tls_version(cls, value: str) -> str:
        """Reject protocol names the transport layer cannot map."""
        if value not in TLS_VERSIONS:
            raise ValueError(
                f"tls_version must be one of {', '.join(TLS_VERSIONS)}, got {value!r}"
            )
        return value

    @model_validator(mode="after")
    def reject_contradictory_identity(self) -> TlsSettings:
        """A key store and separate client cert/key paths cannot both be configured."""
        if self.key_store is not None and (self.client_cert is not None or self.client_key is not None):
            raise ValueError(
                "Configure either key_store or client_cert/client_key, not both"
            )
        return self

    @property
    def is_ssl_enabled(self) -> bool:
        return self.ssl or (self.host is not None and self.host.lower().startswith("tcps://"))

    @property
    def has_client_certificate(self) -> bool:
        return self.key_store is not None or (
            self.client_cert is not None and self.client_key is not None
        )

    def key_store_password_bytes(self) -> bytes | None:
        """Protection password of the client identity."""
        return _secret_bytes(self.key_store_password)

    def private_key_password_bytes(self) -> bytes | None:
        """Password for an encrypted private key; falls back to the key store password when unset."""
        key_password = _secret_bytes(self.key_password)
        if key_password is not None:
            return key_password
        return self.key_store_password_bytes()

    def trust_store_password_bytes(self) -> bytes | None:
        return _secret_bytes(self.trust_store_password)


class AppSettings(BaseSettings):
    """
    Root application settings — aggregates all sub-settings.

    Load order (highest priority first):
      1. Init kwargs (command-line flags)
      2. Environment variables
      3. .env file
      4. Default values
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    tls: TlsSettings = Field(default_factory=lambda: TlsSettings())
    log_level: str = Field(default="INFO")
