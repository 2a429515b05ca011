"""
Certificate verification against the log.

Each request ends in exactly one verdict:

    VALID      entry found, inclusion proof and SCT both verify
    NOT_FOUND  no entry for (domain, fingerprint); a warning, since the
               certificate may simply be new
    TAMPERED   entry found but its proof or SCT is inconsistent with the
               current log state
    ERROR      the request could not be evaluated (bad input, fetch timeout,
               internal inconsistency); ``error_code`` says which

The service never raises; failures come back as ERROR results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ctguard.core.domains import resolve_domain
from ctguard.core.fingerprint import display_fingerprint, normalize_fingerprint
from ctguard.merkle.tree import InclusionProof, hash_leaf, verify_inclusion
from ctguard.protocol.enums import ErrorCode, MitmStatus, Verdict
from ctguard.protocol.errors import (
    CTGuardError,
    FetchTimeout,
    FingerprintUnavailable,
    IndexOutOfRange,
    VerificationError,
)
from ctguard.transparency.store import CTLogStore
from ctguard.utils.timestamps import ms_to_iso

logger = logging.getLogger(__name__)

# (host, timeout seconds) -> certificate in any form the codec accepts
CertificateFetcher = Callable[[str, float], Any]

_MITM_STATUS = {
    Verdict.VALID: MitmStatus.SAFE,
    Verdict.NOT_FOUND: MitmStatus.SUSPICIOUS,
    Verdict.TAMPERED: MitmStatus.DANGER,
    Verdict.ERROR: MitmStatus.UNKNOWN,
}


@dataclass
class VerificationResult:
    """
    Outcome of one verification request.

    Attributes:
        domain: Resolved host name (or the raw input if it did not resolve)
        verdict: Terminal state of the request
        fingerprint: Observed fingerprint, when one was obtained
        root: Root the proof was checked against
        tree_size: Tree size of that root
        proof_valid: Inclusion proof verified and binds the fingerprint
        sct_valid: SCT verified
        issued_at: Issuance time of the matching entry (ms since epoch)
        proof: The inclusion proof that was checked
        sct: Encoded SCT of the matching entry
        message: Human-readable explanation
        error_code: Set for ERROR verdicts only
    """
    domain: str
    verdict: Verdict
    fingerprint: Optional[str] = None
    root: Optional[str] = None
    tree_size: int = 0
    proof_valid: bool = False
    sct_valid: bool = False
    issued_at: Optional[int] = None
    proof: Optional[InclusionProof] = None
    sct: Optional[str] = None
    message: str = ""
    error_code: Optional[ErrorCode] = None

    @property
    def mitm_status(self) -> MitmStatus:
        return _MITM_STATUS[self.verdict]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "domain": self.domain,
            "verdict": self.verdict.value,
            "mitmStatus": self.mitm_status.value,
            "fingerprint": self.fingerprint,
            "root": self.root,
            "treeSize": self.tree_size,
            "proofValid": self.proof_valid,
            "sctValid": self.sct_valid,
            "message": self.message,
        }
        if self.issued_at is not None:
            data["issuedAt"] = self.issued_at
            data["issuedAtIso"] = ms_to_iso(self.issued_at)
        if self.proof is not None:
            data["proof"] = self.proof.to_dict()
        if self.sct is not None:
            data["sct"] = self.sct
        if self.error_code is not None:
            data["errorCode"] = self.error_code.value
        return data


class VerificationService:
    """
    Orchestrates a lookup: domain resolution, fingerprint, log lookup,
    inclusion proof and SCT checks.

    Fetching a live certificate is delegated to an optional ``fetcher``
    supplied by the surrounding service layer.
    """

    def __init__(
        self,
        store: CTLogStore,
        *,
        fetcher: Optional[CertificateFetcher] = None,
        fetch_timeout: float = 5.0,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._fetch_timeout = fetch_timeout

    @property
    def store(self) -> CTLogStore:
        return self._store

    def verify(
        self,
        domain: str,
        observed_fingerprint: Optional[str] = None,
        certificate: Any = None,
    ) -> VerificationResult:
        host = domain if isinstance(domain, str) else ""
        try:
            host = resolve_domain(domain)
            fingerprint = self._observe(host, observed_fingerprint, certificate)
            return self._check(host, fingerprint)
        except VerificationError as e:
            logger.error("Log inconsistency while verifying %s: %s", host, e)
            return self._error(host, e)
        except CTGuardError as e:
            logger.info("Verification of %s not possible: %s", host, e)
            return self._error(host, e)
        except Exception as e:
            logger.exception("Unexpected failure verifying %s", host)
            return VerificationResult(
                domain=host,
                verdict=Verdict.ERROR,
                message=f"Internal error: {e}",
                error_code=ErrorCode.INTERNAL_ERROR,
            )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _observe(self, host: str, observed_fingerprint: Optional[str], certificate: Any) -> str:
        if certificate is not None:
            return self._store.codec.fingerprint(certificate)

        if observed_fingerprint:
            fingerprint = normalize_fingerprint(observed_fingerprint)
            if fingerprint:
                return fingerprint

        if self._fetcher is not None:
            try:
                fetched = self._fetcher(host, self._fetch_timeout)
            except FetchTimeout:
                raise
            except CTGuardError as e:
                raise FingerprintUnavailable(
                    f"Unable to fetch certificate from {host}: {e}"
                ) from e
            return self._store.codec.fingerprint(fetched)

        raise FingerprintUnavailable(f"No fingerprint or certificate available for {host}")

    def _check(self, host: str, fingerprint: str) -> VerificationResult:
        entry, snapshot = self._store.lookup_with_snapshot(host, fingerprint)

        if entry is None:
            logger.warning(
                "%s for %s is not in the log", display_fingerprint(fingerprint), host
            )
            return VerificationResult(
                domain=host,
                verdict=Verdict.NOT_FOUND,
                fingerprint=fingerprint,
                root=snapshot.root,
                tree_size=snapshot.size,
                message=(
                    "Certificate not found in the log: it may be new, "
                    "or substituted by an interceptor"
                ),
            )

        if entry.index >= snapshot.size:
            raise VerificationError(
                f"Entry {entry.index} of {host} is beyond the tree size {snapshot.size}"
            )
        try:
            proof = self._store.prove(entry.index, snapshot.size)
        except IndexOutOfRange as e:
            raise VerificationError(f"Unable to prove entry {entry.index}: {e}") from e

        proof_valid = (
            proof.leaf_hash == hash_leaf(fingerprint)
            and verify_inclusion(proof, snapshot.root)
        )
        sct_valid = self._store.verify_sct(entry, host, fingerprint)

        if proof_valid and sct_valid:
            verdict = Verdict.VALID
            message = "Certificate is logged; inclusion proof and SCT verify"
        else:
            verdict = Verdict.TAMPERED
            message = (
                f"Certificate is logged but its "
                f"{'inclusion proof' if not proof_valid else 'SCT'} does not verify"
            )
            logger.warning(
                "Tampering suspected for %s on %s (proof=%s, sct=%s, root=%s)",
                display_fingerprint(fingerprint), host, proof_valid, sct_valid, snapshot.root,
            )

        return VerificationResult(
            domain=host,
            verdict=verdict,
            fingerprint=fingerprint,
            root=snapshot.root,
            tree_size=snapshot.size,
            proof_valid=proof_valid,
            sct_valid=sct_valid,
            issued_at=entry.issued_at,
            proof=proof,
            sct=entry.sct.encode(),
            message=message,
        )

    @staticmethod
    def _error(host: str, error: CTGuardError) -> VerificationResult:
        return VerificationResult(
            domain=host,
            verdict=Verdict.ERROR,
            message=str(error),
            error_code=error.code,
        )
