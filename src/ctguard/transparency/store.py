"""
Certificate transparency log store.

Owns the Merkle log and the indexes over it:
- domain -> ordered entry positions
- (domain, fingerprint) -> position of the most recent matching entry

CRITICAL INVARIANTS:
1. append() is the only mutation path; entries are never modified or removed
2. Leaf i of the Merkle log is the fingerprint of entry i
3. Tree and indexes are derived state, rebuilt by restore() from the entries

Concurrency: appends are serialized by a lock. Readers hold it only to
capture an entry together with the (root, size) snapshot; proofs for a
captured size are built without the lock, since the nodes of any prefix of
the tree are immutable once written.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ctguard.core.domains import resolve_domain
from ctguard.core.fingerprint import FingerprintCodec, display_fingerprint, is_sha256_hex
from ctguard.merkle.tree import InclusionProof, MerkleLog, hash_leaf
from ctguard.protocol.errors import IndexOutOfRange, VerificationError
from ctguard.transparency.checkpoint import LogSnapshot, SignedTreeHead, TreeHeadSigner
from ctguard.transparency.sct import SCT, SCTIssuer, SCTVerifier, derive_log_id
from ctguard.utils.timestamps import ms_to_iso

logger = logging.getLogger(__name__)

DEFAULT_LOG_NAME = "ctguard-log"


# ===========================================================================
# Log Entry
# ===========================================================================


@dataclass(frozen=True)
class LogEntry:
    """
    An entry in the log.

    Attributes:
        index: Position in the global append order (0-indexed)
        domain: Host name the certificate was logged for
        fingerprint: Hex SHA-256 of the certificate
        issued_at: Milliseconds since the epoch (the SCT timestamp)
        sct: Signed certificate timestamp issued at append
    """
    index: int
    domain: str
    fingerprint: str
    issued_at: int
    sct: SCT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "domain": self.domain,
            "fingerprint": self.fingerprint,
            "issuedAt": self.issued_at,
            "sct": self.sct.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogEntry":
        return cls(
            index=data["index"],
            domain=data["domain"],
            fingerprint=data["fingerprint"],
            issued_at=data["issuedAt"],
            sct=SCT.from_dict(data["sct"]),
        )

    def summary(self) -> Dict[str, Any]:
        """Public view of the entry, as listed by the introspection routes."""
        return {
            "index": self.index,
            "fingerprint": display_fingerprint(self.fingerprint),
            "timestamp": self.issued_at,
            "issuedAt": ms_to_iso(self.issued_at),
            "sct": self.sct.encode(),
        }


@dataclass
class RootSummary:
    root: str
    entry_count: int
    domain_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "entryCount": self.entry_count,
            "domainCount": self.domain_count,
        }


# ===========================================================================
# Store
# ===========================================================================


class CTLogStore:
    """
    In-memory certificate transparency log.

    One instance lives for the whole process and is handed to request
    handlers by reference; reset() exists for test harnesses only.
    """

    def __init__(
        self,
        *,
        log_name: str = DEFAULT_LOG_NAME,
        sct_issuer: Optional[SCTIssuer] = None,
        tree_head_signer: Optional[TreeHeadSigner] = None,
        codec: Optional[FingerprintCodec] = None,
    ):
        self._log_id = derive_log_id(log_name)
        self._issuer = sct_issuer or SCTIssuer.generate()
        self._sct_verifier = self._issuer.verifier()
        self._signer = tree_head_signer or TreeHeadSigner.generate()
        self._codec = codec or FingerprintCodec()
        self._lock = threading.Lock()
        self._reset_state()

    def _reset_state(self) -> None:
        self._tree = MerkleLog()
        self._entries: List[LogEntry] = []
        self._by_domain: Dict[str, List[int]] = {}
        self._latest: Dict[Tuple[str, str], int] = {}

    @property
    def log_id(self) -> str:
        return self._log_id

    @property
    def codec(self) -> FingerprintCodec:
        return self._codec

    @property
    def sct_verifier(self) -> SCTVerifier:
        return self._sct_verifier

    @property
    def tree_head_signer(self) -> TreeHeadSigner:
        return self._signer

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def append(self, domain: str, certificate: Any) -> LogEntry:
        """
        Log a certificate for a domain.

        Raises:
            InvalidDomain: If no host name can be resolved
            InvalidCertificateFormat: If the certificate cannot be decoded
        """
        host = resolve_domain(domain)
        fingerprint = self._codec.fingerprint(certificate)

        with self._lock:
            entry = self._append_locked(host, fingerprint, None)
            root = self._tree.root()

        logger.info(
            "Logged %s for %s at index %d (root %s)",
            display_fingerprint(fingerprint), host, entry.index, root,
        )
        return entry

    def restore(self, entries: Iterable[LogEntry]) -> None:
        """
        Rebuild the log from an ordered entry sequence, keeping its SCTs.

        A rejected sequence leaves the current log untouched.

        Raises:
            VerificationError: If the entries are not in append order or an
                entry fingerprint is not a SHA-256 hex digest
        """
        entries = list(entries)
        for position, entry in enumerate(entries):
            if entry.index != position:
                raise VerificationError(
                    f"Entry index {entry.index} found at position {position}"
                )
            if not is_sha256_hex(entry.fingerprint):
                raise VerificationError(
                    f"Entry {entry.index} has malformed fingerprint {entry.fingerprint!r}"
                )

        with self._lock:
            previous = (self._tree, self._entries, self._by_domain, self._latest)
            self._reset_state()
            try:
                for entry in entries:
                    self._append_locked(entry.domain, entry.fingerprint, entry.sct)
            except Exception:
                self._tree, self._entries, self._by_domain, self._latest = previous
                raise
            count = len(self._entries)
        logger.info("Restored %d log entries", count)

    def reset(self) -> None:
        with self._lock:
            self._reset_state()
        logger.warning("Log store reset")

    def _append_locked(self, domain: str, fingerprint: str, sct: Optional[SCT]) -> LogEntry:
        expected = len(self._entries)
        index, _ = self._tree.append(fingerprint)
        if index != expected:
            raise VerificationError(
                f"Merkle leaf index {index} does not match entry count {expected}"
            )

        if sct is None:
            sct = self._issuer.issue(domain, fingerprint, self._log_id)

        entry = LogEntry(
            index=index,
            domain=domain,
            fingerprint=fingerprint,
            issued_at=sct.timestamp,
            sct=sct,
        )
        self._entries.append(entry)
        self._by_domain.setdefault(domain, []).append(index)
        self._latest[(domain, fingerprint)] = index
        return entry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def lookup_latest(self, domain: str, fingerprint: str) -> Optional[LogEntry]:
        """
        Most recent entry of ``domain`` with exactly ``fingerprint``.

        ``domain`` may be a URL or an unnormalized host name.

        Raises:
            InvalidDomain: If no host name can be resolved
        """
        host = resolve_domain(domain)
        with self._lock:
            index = self._latest.get((host, fingerprint))
            return None if index is None else self._entries[index]

    def lookup_with_snapshot(
        self, domain: str, fingerprint: str
    ) -> Tuple[Optional[LogEntry], LogSnapshot]:
        """lookup_latest() and snapshot(), taken under one lock acquisition."""
        host = resolve_domain(domain)
        with self._lock:
            index = self._latest.get((host, fingerprint))
            entry = None if index is None else self._entries[index]
            return entry, LogSnapshot(root=self._tree.root(), size=self._tree.size)

    def snapshot(self) -> LogSnapshot:
        with self._lock:
            return LogSnapshot(root=self._tree.root(), size=self._tree.size)

    def prove(self, index: int, tree_size: Optional[int] = None) -> InclusionProof:
        """
        Inclusion proof of entry ``index`` at ``tree_size`` (default: current).

        Raises:
            IndexOutOfRange: If the index or size is outside the log
        """
        return self._tree.prove_inclusion(index, tree_size)

    def root_at(self, tree_size: int) -> str:
        return self._tree.root_at(tree_size)

    def verify_sct(self, entry: LogEntry, domain: str, fingerprint: str) -> bool:
        return self._sct_verifier.verify(entry.sct, domain, fingerprint, self._log_id)

    def get_entry(self, index: int) -> LogEntry:
        with self._lock:
            if index < 0 or index >= len(self._entries):
                raise IndexOutOfRange(
                    f"Entry index {index} outside log of size {len(self._entries)}"
                )
            return self._entries[index]

    def entries(self) -> List[LogEntry]:
        with self._lock:
            return list(self._entries)

    def current_root(self) -> RootSummary:
        with self._lock:
            return RootSummary(
                root=self._tree.root(),
                entry_count=len(self._entries),
                domain_count=len(self._by_domain),
            )

    def list_domain(self, domain: str) -> List[LogEntry]:
        """Entries of one domain in append order; empty if unknown."""
        host = resolve_domain(domain)
        with self._lock:
            return [self._entries[i] for i in self._by_domain.get(host, [])]

    def list_domains(self) -> Dict[str, List[LogEntry]]:
        """All domains in first-logged order, each with its entries."""
        with self._lock:
            return {
                domain: [self._entries[i] for i in positions]
                for domain, positions in self._by_domain.items()
            }

    def checkpoint(self) -> SignedTreeHead:
        """Sign the current snapshot."""
        return self._signer.sign(self._log_id, self.snapshot())

    def check_integrity(self) -> None:
        """
        Cross-check the tree against the entries and indexes.

        Raises:
            VerificationError: On any mismatch
        """
        with self._lock:
            size = self._tree.size
            if size != len(self._entries):
                raise VerificationError(
                    f"Tree holds {size} leaves but the log has {len(self._entries)} entries"
                )
            indexed = sum(len(positions) for positions in self._by_domain.values())
            if indexed != size:
                raise VerificationError(
                    f"Domain index covers {indexed} entries, tree holds {size}"
                )
            for entry in self._entries:
                if self._tree.leaf_hash(entry.index) != hash_leaf(entry.fingerprint):
                    raise VerificationError(
                        f"Leaf {entry.index} does not commit to its entry fingerprint"
                    )
