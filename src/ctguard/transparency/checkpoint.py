"""
Signed tree heads.

A tree head commits to the log root at a specific size. Clients that pin a
signed head can later check inclusion proofs against a root the log operator
cannot silently replace.

REQUIREMENTS:
- Signatures use Ed25519
- Key IDs are SHA256 hashes of public keys (first 16 chars)
- Verification is offline (no network required)
"""

from __future__ import annotations

import base64
import binascii
import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from ctguard.utils.json import canonical_json
from ctguard.utils.timestamps import now_ms


def _key_id(public_key: Ed25519PublicKey) -> str:
    public_bytes = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return hashlib.sha256(public_bytes).hexdigest()[:16]


@dataclass
class LogSnapshot:
    """Root and size of the log, captured together."""
    root: str
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {"root": self.root, "size": self.size}


@dataclass
class SignedTreeHead:
    """
    Signed commitment to the log at one size.

    Attributes:
        log_id: ID of the log
        tree_size: Number of entries at this head
        root_hash: Merkle root at this size
        timestamp: Milliseconds since the epoch
        signature: Base64 Ed25519 signature over the signing data
        key_id: Key ID used for signing
    """
    log_id: str
    tree_size: int
    root_hash: str
    timestamp: int = field(default_factory=now_ms)
    signature: Optional[str] = None
    key_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "logId": self.log_id,
            "treeSize": self.tree_size,
            "rootHash": self.root_hash,
            "timestamp": self.timestamp,
            "signature": self.signature,
            "keyId": self.key_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignedTreeHead":
        return cls(
            log_id=data["logId"],
            tree_size=data["treeSize"],
            root_hash=data["rootHash"],
            timestamp=data["timestamp"],
            signature=data.get("signature"),
            key_id=data.get("keyId"),
        )

    def compute_signing_data(self) -> bytes:
        return canonical_json({
            "logId": self.log_id,
            "treeSize": self.tree_size,
            "rootHash": self.root_hash,
            "timestamp": self.timestamp,
        })

    @property
    def snapshot(self) -> LogSnapshot:
        return LogSnapshot(root=self.root_hash, size=self.tree_size)


class TreeHeadSigner:
    """
    Ed25519 signer for tree heads.

    Usage:
        signer = TreeHeadSigner.from_private_bytes(seed)
        sth = signer.sign(log_id, snapshot)

        # Generate new key (ephemeral logs and tests)
        signer = TreeHeadSigner.generate()
    """

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self._key_id = _key_id(self._public_key)

    @property
    def key_id(self) -> str:
        return self._key_id

    @property
    def public_key_bytes(self) -> bytes:
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    @classmethod
    def generate(cls) -> "TreeHeadSigner":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_private_bytes(cls, key_bytes: bytes) -> "TreeHeadSigner":
        """Create signer from a raw 32-byte private key."""
        return cls(Ed25519PrivateKey.from_private_bytes(key_bytes))

    def sign(self, log_id: str, snapshot: LogSnapshot) -> SignedTreeHead:
        head = SignedTreeHead(
            log_id=log_id,
            tree_size=snapshot.size,
            root_hash=snapshot.root,
        )
        signature = self._private_key.sign(head.compute_signing_data())
        head.signature = base64.b64encode(signature).decode("ascii")
        head.key_id = self._key_id
        return head

    def verifier(self) -> "TreeHeadVerifier":
        return TreeHeadVerifier(self.public_key_bytes)


class TreeHeadVerifier:
    """
    Verifies signed tree heads with the log's public key. Fails closed.
    """

    def __init__(self, public_key_bytes: bytes):
        self._public_key = Ed25519PublicKey.from_public_bytes(public_key_bytes)
        self._key_id = _key_id(self._public_key)

    def verify(self, head: SignedTreeHead, log_id: Optional[str] = None) -> bool:
        if log_id is not None and head.log_id != log_id:
            return False
        if head.signature is None or head.key_id != self._key_id:
            return False

        try:
            signature = base64.b64decode(head.signature, validate=True)
            self._public_key.verify(signature, head.compute_signing_data())
            return True
        except (InvalidSignature, binascii.Error, ValueError, TypeError):
            return False
