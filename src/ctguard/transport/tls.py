"""
Live certificate retrieval.

Opens a TLS connection to the host and returns the leaf certificate in DER.
The chain is not validated: the point is to see what the network actually
presents, including a certificate an interceptor substituted.
"""

from __future__ import annotations

import logging
import socket
import ssl

from ctguard.protocol.enums import ErrorCode
from ctguard.protocol.errors import CTGuardError, FetchTimeout

logger = logging.getLogger(__name__)


def _unverified_context() -> ssl.SSLContext:
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def fetch_certificate(host: str, timeout: float, port: int = 443) -> bytes:
    """
    Fetch the DER certificate a host presents.

    Raises:
        FetchTimeout: If connecting or handshaking exceeds ``timeout`` seconds
        CTGuardError: On any other connection failure (code FETCH_ERROR)
    """
    logger.debug("Fetching certificate from %s:%d (timeout %.1fs)", host, port, timeout)
    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            with _unverified_context().wrap_socket(sock, server_hostname=host) as tls:
                der = tls.getpeercert(binary_form=True)
    except socket.timeout as e:
        raise FetchTimeout(f"Timed out after {timeout}s fetching certificate from {host}") from e
    except (OSError, ssl.SSLError) as e:
        raise CTGuardError(
            f"Unable to fetch certificate from {host}:{port}: {e}", ErrorCode.FETCH_ERROR
        ) from e

    if not der:
        raise CTGuardError(f"{host}:{port} presented no certificate", ErrorCode.FETCH_ERROR)
    return der
