"""
Offline proof checking for clients that only hold a verdict record.

Given the fingerprint a client observed, the proof document returned by the
gateway and a root the client trusts, decide "safe" or "danger" without
contacting the log.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Union

from ctguard.core.fingerprint import normalize_fingerprint
from ctguard.merkle.tree import InclusionProof, hash_leaf, verify_inclusion
from ctguard.protocol.enums import MitmStatus
from ctguard.utils.json import json_loads


def verify_proof_document(
    domain: str,
    fingerprint: str,
    proof: Union[str, Mapping[str, Any]],
    root: str,
) -> Dict[str, Any]:
    """
    Check a serialized inclusion proof against a trusted root.

    Args:
        domain: Host the certificate was observed on (echoed back)
        fingerprint: Observed fingerprint, any accepted notation
        proof: Proof as a JSON string or the dict from InclusionProof.to_dict()
        root: Trusted root hash

    Returns:
        Dict with ``status`` "safe" or "danger" and ``proofValid``
    """
    valid = False
    try:
        data = json_loads(proof) if isinstance(proof, str) else proof
        parsed = InclusionProof.from_dict(data)
        fp = normalize_fingerprint(fingerprint)
        valid = parsed.leaf_hash == hash_leaf(fp) and verify_inclusion(parsed, root)
    except (ValueError, KeyError, TypeError):
        valid = False

    status = MitmStatus.SAFE if valid else MitmStatus.DANGER
    return {
        "domain": domain,
        "fingerprint": fingerprint,
        "merkleRoot": root,
        "status": status.value,
        "proofValid": valid,
    }
