"""
Certificate transparency log.

Key concepts:
- Append-only log of (domain, certificate fingerprint) entries
- Merkle tree over fingerprints
- Signed Certificate Timestamps issued at append
- Signed tree heads for pinning a root
"""

from ctguard.transparency.checkpoint import (
    LogSnapshot,
    SignedTreeHead,
    TreeHeadSigner,
    TreeHeadVerifier,
)
from ctguard.transparency.sct import SCT, SCTIssuer, SCTVerifier, derive_log_id
from ctguard.transparency.store import CTLogStore, LogEntry, RootSummary

__all__ = [
    "CTLogStore",
    "LogEntry",
    "LogSnapshot",
    "RootSummary",
    "SCT",
    "SCTIssuer",
    "SCTVerifier",
    "SignedTreeHead",
    "TreeHeadSigner",
    "TreeHeadVerifier",
    "derive_log_id",
]
