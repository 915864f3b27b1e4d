"""
Acceptance test fixtures — an in-memory TLS server for mutual-TLS handshakes.

No sockets: client and server SSLObjects are wired together through
ssl.MemoryBIO pairs, and the handshake is pumped until both sides finish.
The server requires a client certificate issued by the test root CA.
"""

from __future__ import annotations

import ssl
from pathlib import Path

import pytest

from tests.conftest import GeneratedPki, cert_pem, pkcs8_key_pem

_MAX_ROUNDS = 20


@pytest.fixture()
def server_context(pki: GeneratedPki, tmp_path: Path) -> ssl.SSLContext:
    """Server for `localhost` that requires and verifies client certificates."""
    cert_file = tmp_path / "server.crt"
    key_file = tmp_path / "server.key"
    cert_file.write_bytes(cert_pem(pki.server_cert, pki.ca_cert))
    key_file.write_bytes(pkcs8_key_pem(pki.server_key))

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(cert_file, key_file)
    context.load_verify_locations(cadata=cert_pem(pki.ca_cert).decode("ascii"))
    context.verify_mode = ssl.CERT_REQUIRED
    return context


def handshake(
    client_context: ssl.SSLContext,
    server_context: ssl.SSLContext,
    server_hostname: str = "localhost",
) -> tuple[ssl.SSLObject, ssl.SSLObject]:
    """
    Run a full handshake between two contexts over memory BIOs.

    Returns (client, server) SSLObjects. Any handshake failure on either
    side propagates as ssl.SSLError.
    """
    client_in, client_out = ssl.MemoryBIO(), ssl.MemoryBIO()
    server_in, server_out = ssl.MemoryBIO(), ssl.MemoryBIO()
    client = client_context.wrap_bio(client_in, client_out, server_hostname=server_hostname)
    server = server_context.wrap_bio(server_in, server_out, server_side=True)

    client_done = server_done = False
    for _ in range(_MAX_ROUNDS):
        if not client_done:
            try:
                client.do_handshake()
                client_done = True
            except ssl.SSLWantReadError:
                pass
        server_in.write(client_out.read())

        if not server_done:
            try:
                server.do_handshake()
                server_done = True
            except ssl.SSLWantReadError:
                pass
        client_in.write(server_out.read())

        if client_done and server_done:
            # application data proves both sides accepted the handshake
            client.write(b"ping")
            server_in.write(client_out.read())
            assert server.read(4) == b"ping"
            return client, server

    raise AssertionError("handshake did not complete")
