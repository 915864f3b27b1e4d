"""
Application entry point — wires settings, loader and transport adapters.

Composition root: parses command-line flags, loads settings, creates the
concrete PEM loader, resolves TLS material and builds the SSL context.

This is the ONLY place where concrete adapter classes are instantiated.
Everything else depends on Protocol interfaces.

Responsibilities:
  1. Parse flags (argparse) and merge them over environment settings
  2. Configure structlog for structured console logging
  3. Resolve TLS material via the connection configurator
  4. Build the client SSLContext and report what was loaded
  5. Optionally export the client identity as PKCS#12

Exit codes: 0 on success, 1 on configuration or material errors.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import ssl
import sys
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from queue_tls import __version__
from queue_tls.adapters.keystore import export_pkcs12
from queue_tls.adapters.pem_loader import PemFileLoader
from queue_tls.adapters.ssl_context import build_ssl_context
from queue_tls.config import TLS_VERSIONS, AppSettings
from queue_tls.configurator import resolve_tls_material
from queue_tls.domain.errors import TlsMaterialError

_PROMPT = "\x00prompt"

_PATH_FLAGS = ("trust_store", "key_store", "client_cert", "client_key", "ca_cert")
_PASSWORD_FLAGS = {
    "trust_store_password": "Trust store password",
    "key_store_password": "Key store password",
    "key_password": "Private key password",
}


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for structured, human-readable console logging.

    Output goes to stderr so stdout stays free for piping.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="queue-tls",
        description="Load and check TLS identity and trust material for a broker connection",
    )
    parser.add_argument("-H", "--host", help="Broker URL (tcps:// enables TLS)")
    parser.add_argument("--ssl", action="store_true", default=None, help="Enable TLS")
    parser.add_argument("--trust-store", type=Path, help="Trust store (PEM or PKCS#12)")
    parser.add_argument("--key-store", type=Path, help="Key store (PEM or PKCS#12)")
    parser.add_argument("--key-alias", help="Friendly name for exported key entries")
    parser.add_argument("--client-cert", type=Path, help="Client certificate chain (PEM)")
    parser.add_argument("--client-key", type=Path, help="Client private key (PEM)")
    parser.add_argument("--ca-cert", type=Path, help="CA certificates (PEM)")
    parser.add_argument(
        "--skip-cert-validation",
        action="store_true",
        default=None,
        help="Skip server certificate validation (NOT recommended for production)",
    )
    parser.add_argument("--tls-version", choices=TLS_VERSIONS, help="Minimum TLS version")
    for name in _PASSWORD_FLAGS:
        parser.add_argument(
            f"--{name.replace('_', '-')}",
            nargs="?",
            const=_PROMPT,
            help="Password; prompted for when the flag is given without a value",
        )
    parser.add_argument("--export-pkcs12", type=Path, help="Write the client identity as PKCS#12")
    parser.add_argument("--log-level", help="Log level (default INFO)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _tls_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Collect the TLS flags that were actually given on the command line."""
    overrides: dict[str, Any] = {}
    for name in ("host", "ssl", "key_alias", "skip_cert_validation", "tls_version", *_PATH_FLAGS):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    for name, prompt in _PASSWORD_FLAGS.items():
        value = getattr(args, name)
        if value == _PROMPT:
            value = getpass.getpass(f"{prompt}: ")
        if value is not None:
            overrides[name] = value
    return overrides


def load_settings(args: argparse.Namespace) -> AppSettings:
    """Environment/.env settings with command-line flags layered on top."""
    overrides: dict[str, Any] = {}
    tls = _tls_overrides(args)
    if tls:
        overrides["tls"] = tls
    if args.log_level:
        overrides["log_level"] = args.log_level
    return AppSettings(**overrides)


def run(settings: AppSettings, export_path: Path | None = None) -> int:
    """Resolve material, build the SSL context, report. Returns the exit code."""
    log = structlog.get_logger()
    tls = settings.tls

    if not tls.is_ssl_enabled:
        log.warning("tls.disabled", host=tls.host, hint="pass --ssl or use a tcps:// host")
        return 0

    try:
        material = resolve_tls_material(tls, PemFileLoader())
        context = build_ssl_context(tls, material)
    except TlsMaterialError as e:
        log.error("app.fatal_error", error=str(e))
        return 1

    log.info(
        "tls.context_ready",
        minimum_version=context.minimum_version.name,
        verify_peer=context.verify_mode != ssl.CERT_NONE,
        client_identity=material.credentials is not None,
        trust_anchors=None if material.trust_anchors is None else len(material.trust_anchors),
    )
    if material.credentials is not None:
        for position, cert in enumerate(material.credentials.chain):
            log.info(
                "tls.chain_certificate",
                position=position,
                subject=cert.subject,
                issuer=cert.issuer,
                not_valid_after=cert.not_valid_after,
            )

    if export_path is None:
        return 0
    if material.credentials is None:
        log.error("app.fatal_error", error="No PEM client identity configured to export")
        return 1
    try:
        export_path.write_bytes(export_pkcs12(material.credentials, alias=tls.key_alias))
    except OSError as e:
        log.error("app.fatal_error", error=f"Cannot write {export_path}: {e.strerror or e}")
        return 1
    log.info("tls.pkcs12_exported", path=str(export_path), alias=tls.key_alias)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parse flags, load settings and run. Used as the `queue-tls` console script."""
    args = build_arg_parser().parse_args(argv)
    try:
        settings = load_settings(args)
    except ValidationError as e:
        print(f"FATAL: Configuration error — {e}", file=sys.stderr)  # noqa: T201
        return 1

    configure_structlog(settings.log_level)
    structlog.get_logger().debug("app.starting", version=__version__, log_level=settings.log_level)
    return run(settings, export_path=args.export_pkcs12)


if __name__ == "__main__":
    sys.exit(main())
