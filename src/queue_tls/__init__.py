"""
queue_tls — TLS identity-material loader for message-queue connections.

Turns user-supplied PEM files (certificates, private keys, CA chains) into
in-memory credential material for mutual-TLS handshakes, re-encoding legacy
PKCS#1 RSA and SEC1 EC keys into PKCS#8 on the way.
"""

__version__ = "0.1.0"
