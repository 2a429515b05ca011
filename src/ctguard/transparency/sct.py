"""
Signed Certificate Timestamps.

An SCT binds (domain, fingerprint, log id, timestamp) with HMAC-SHA256 under
a secret held only by the issuing log. Anyone can read an SCT; only holders of
the secret can produce or check its tag.

The token form (base64 of compact JSON) is what the HTTP surface hands out.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Union

from ctguard.utils.json import canonical_json, json_dumps, json_loads
from ctguard.utils.timestamps import now_ms

# RFC 6962 v1 is encoded as 0
SCT_VERSION = 0


def derive_log_id(log_name: str) -> str:
    """Stable public identifier of a log, derived from its name."""
    return hashlib.sha256(log_name.encode("utf-8")).hexdigest()[:32]


def _as_key(key: Union[str, bytes]) -> bytes:
    raw = key.encode("utf-8") if isinstance(key, str) else bytes(key)
    if not raw:
        raise ValueError("SCT key must not be empty")
    return raw


@dataclass(frozen=True)
class SCT:
    """
    Signed Certificate Timestamp.

    Attributes:
        version: SCT format version
        log_id: Identifier of the issuing log
        timestamp: Milliseconds since the epoch at issuance
        signature_tag: Hex HMAC-SHA256 over the signing data
    """
    version: int
    log_id: str
    timestamp: int
    signature_tag: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "logId": self.log_id,
            "timestamp": self.timestamp,
            "signatureTag": self.signature_tag,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SCT":
        version = data["version"]
        timestamp = data["timestamp"]
        if not isinstance(version, int) or not isinstance(timestamp, int):
            raise ValueError("SCT version and timestamp must be integers")
        log_id = data["logId"]
        tag = data["signatureTag"]
        if not isinstance(log_id, str) or not isinstance(tag, str):
            raise ValueError("SCT logId and signatureTag must be strings")
        return cls(version=version, log_id=log_id, timestamp=timestamp, signature_tag=tag)

    def encode(self) -> str:
        return base64.b64encode(json_dumps(self.to_dict()).encode("utf-8")).decode("ascii")

    @classmethod
    def decode(cls, token: str) -> "SCT":
        """
        Parse an encoded SCT token.

        Raises:
            ValueError: If the token is not valid base64 JSON of an SCT
        """
        try:
            data = json_loads(base64.b64decode(token, validate=True).decode("utf-8"))
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Malformed SCT token: {e}") from e
        if not isinstance(data, dict):
            raise ValueError("Malformed SCT token: not an object")
        try:
            return cls.from_dict(data)
        except KeyError as e:
            raise ValueError(f"Malformed SCT token: missing {e}") from e


def compute_signing_data(
    version: int,
    log_id: str,
    timestamp: int,
    domain: str,
    fingerprint: str,
) -> bytes:
    """Compute the data covered by the SCT tag."""
    return canonical_json({
        "version": version,
        "logId": log_id,
        "timestamp": timestamp,
        "domain": domain,
        "fingerprint": fingerprint,
    })


class SCTIssuer:
    """
    Issues SCTs for newly logged entries.

    Usage:
        issuer = SCTIssuer(key)
        sct = issuer.issue("a.example", fingerprint, log_id)

        # Random key (for testing or an ephemeral log only)
        issuer = SCTIssuer.generate()
    """

    def __init__(self, key: Union[str, bytes], clock: Callable[[], int] = now_ms):
        self._key = _as_key(key)
        self._clock = clock

    @classmethod
    def generate(cls, clock: Callable[[], int] = now_ms) -> "SCTIssuer":
        return cls(secrets.token_bytes(32), clock=clock)

    def issue(self, domain: str, fingerprint: str, log_id: str) -> SCT:
        timestamp = self._clock()
        data = compute_signing_data(SCT_VERSION, log_id, timestamp, domain, fingerprint)
        tag = hmac.new(self._key, data, hashlib.sha256).hexdigest()
        return SCT(
            version=SCT_VERSION,
            log_id=log_id,
            timestamp=timestamp,
            signature_tag=tag,
        )

    def verifier(self) -> "SCTVerifier":
        """A verifier holding the same secret."""
        return SCTVerifier(self._key)


class SCTVerifier:
    """
    Re-checks SCTs. Fails closed: every malformed or mismatching input
    yields False.
    """

    def __init__(self, key: Union[str, bytes]):
        self._key = _as_key(key)

    def verify(
        self,
        sct: Union[SCT, str, Mapping[str, Any]],
        domain: str,
        fingerprint: str,
        log_id: str,
    ) -> bool:
        try:
            if isinstance(sct, str):
                sct = SCT.decode(sct)
            elif not isinstance(sct, SCT):
                sct = SCT.from_dict(sct)

            if sct.version != SCT_VERSION or sct.log_id != log_id:
                return False

            data = compute_signing_data(sct.version, sct.log_id, sct.timestamp, domain, fingerprint)
            expected = hmac.new(self._key, data, hashlib.sha256).hexdigest()
            return hmac.compare_digest(expected, sct.signature_tag)
        except (ValueError, TypeError, KeyError, AttributeError):
            return False
