"""
Certificate fingerprinting.

A fingerprint is the lowercase hex SHA-256 of the certificate's DER encoding.
The codec accepts the shapes certificates arrive in from the outer layers:

- raw DER bytes, base64 bytes of the DER, or PEM-armored bytes
- PEM text, or base64 text of the DER
- descriptor mappings:
    {"raw": ...}            Node getPeerCertificate() (Buffer / JSON Buffer / base64)
    {"der": ...}            bytes or base64
    {"pem": "..."}          PEM text
    {"tableNames": [...]}   Chrome debugger Network.getCertificate (leaf first)
    {"fingerprint256": ...} precomputed "AB:CD:..." SHA-256 over the DER

Every form of the same certificate yields the same fingerprint.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import re
from typing import Any, Mapping, Optional

from ctguard.protocol.errors import InvalidCertificateFormat

FINGERPRINT_PREFIX = "SHA256:"
FINGERPRINT_HEX_LENGTH = 64

_PEM_BLOCK = re.compile(
    r"-----BEGIN ([A-Z0-9 ]+)-----(.*?)-----END \1-----",
    re.DOTALL,
)
_HEX = re.compile(r"^[0-9a-f]+$")


def normalize_fingerprint(value: str) -> str:
    """
    Canonicalize a supplied fingerprint.

    Strips an optional ``SHA256:`` prefix, colons and whitespace, and lowercases.
    The result is not checked for length; lookups are exact-match only.
    """
    text = "".join(value.split())
    if text[: len(FINGERPRINT_PREFIX)].upper() == FINGERPRINT_PREFIX:
        text = text[len(FINGERPRINT_PREFIX):]
    return text.replace(":", "").lower()


def is_sha256_hex(value: str) -> bool:
    return len(value) == FINGERPRINT_HEX_LENGTH and bool(_HEX.match(value))


def display_fingerprint(fingerprint: str) -> str:
    return f"{FINGERPRINT_PREFIX}{fingerprint}"


class FingerprintCodec:
    """Turns any accepted certificate form into its SHA-256 fingerprint."""

    def fingerprint(self, cert: Any) -> str:
        if isinstance(cert, Mapping):
            precomputed = self._descriptor_fingerprint(cert)
            if precomputed is not None:
                return precomputed
        der = self.to_der(cert)
        return hashlib.sha256(der).hexdigest()

    def to_der(self, cert: Any) -> bytes:
        """
        Decode a certificate into its DER bytes.

        Raises:
            InvalidCertificateFormat: If the value matches no accepted form
        """
        if isinstance(cert, (bytes, bytearray, memoryview)):
            data = bytes(cert)
            if data.lstrip().startswith(b"-----BEGIN"):
                return self._pem_to_der(data.decode("ascii", errors="replace"))
            # DER certificates open with a SEQUENCE tag; anything else may be base64 text
            if data[:1] != b"\x30":
                decoded = self._try_b64(data)
                if decoded:
                    return decoded
            return self._non_empty(data)

        if isinstance(cert, str):
            if "-----BEGIN" in cert:
                return self._pem_to_der(cert)
            return self._b64_to_der(cert)

        if isinstance(cert, Mapping):
            return self._descriptor_to_der(cert)

        raise InvalidCertificateFormat(
            f"Unsupported certificate type: {type(cert).__name__}"
        )

    # ------------------------------------------------------------------
    # Descriptor handling
    # ------------------------------------------------------------------

    def _descriptor_to_der(self, descriptor: Mapping[str, Any]) -> bytes:
        raw = descriptor.get("raw")
        if raw is not None:
            return self._raw_value_to_der(raw)

        der = descriptor.get("der")
        if der is not None:
            return self._raw_value_to_der(der)

        pem_text = descriptor.get("pem")
        if isinstance(pem_text, str):
            return self._pem_to_der(pem_text)

        table = descriptor.get("tableNames")
        if isinstance(table, (list, tuple)) and table:
            return self._raw_value_to_der(table[0])

        raise InvalidCertificateFormat(
            "Certificate descriptor has no raw, der, pem or tableNames field"
        )

    def _descriptor_fingerprint(self, descriptor: Mapping[str, Any]) -> Optional[str]:
        # Encoded fields win over a precomputed digest when both are present.
        if any(descriptor.get(k) is not None for k in ("raw", "der", "pem", "tableNames")):
            return None
        for key in ("fingerprint256", "fingerprint"):
            value = descriptor.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise InvalidCertificateFormat(f"Descriptor field {key!r} must be a string")
            fp = normalize_fingerprint(value)
            if not is_sha256_hex(fp):
                raise InvalidCertificateFormat(
                    f"Descriptor field {key!r} is not a SHA-256 fingerprint"
                )
            return fp
        return None

    def _raw_value_to_der(self, value: Any) -> bytes:
        # JSON-serialized Node Buffer: {"type": "Buffer", "data": [..]}
        if isinstance(value, Mapping) and isinstance(value.get("data"), list):
            value = value["data"]
        if isinstance(value, list):
            try:
                return self._non_empty(bytes(value))
            except (TypeError, ValueError) as e:
                raise InvalidCertificateFormat(f"Invalid byte list: {e}") from e
        if isinstance(value, (bytes, bytearray, memoryview, str)):
            return self.to_der(value)
        raise InvalidCertificateFormat(
            f"Unsupported raw certificate value: {type(value).__name__}"
        )

    # ------------------------------------------------------------------
    # Encodings
    # ------------------------------------------------------------------

    def _pem_to_der(self, text: str) -> bytes:
        match = _PEM_BLOCK.search(text)
        if match is None:
            raise InvalidCertificateFormat("Unable to parse PEM armor")
        return self._b64_to_der(match.group(2))

    def _b64_to_der(self, text: str) -> bytes:
        compact = "".join(text.split())
        try:
            data = base64.b64decode(compact, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidCertificateFormat(f"Invalid base64 certificate: {e}") from e
        return self._non_empty(data)

    @staticmethod
    def _try_b64(data: bytes) -> Optional[bytes]:
        try:
            compact = "".join(data.decode("ascii").split())
            return base64.b64decode(compact, validate=True)
        except (UnicodeDecodeError, binascii.Error, ValueError):
            return None

    @staticmethod
    def _non_empty(data: bytes) -> bytes:
        if not data:
            raise InvalidCertificateFormat("Certificate encoding is empty")
        return data


_default_codec = FingerprintCodec()


def fingerprint(cert: Any) -> str:
    """Fingerprint a certificate with the default codec."""
    return _default_codec.fingerprint(cert)
