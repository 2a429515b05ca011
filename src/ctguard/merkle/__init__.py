"""
Merkle log primitives.

Append-only SHA-256 hash tree over certificate fingerprints with
inclusion proofs bound to a specific tree size.
"""

from ctguard.merkle.tree import (
    EMPTY_ROOT,
    InclusionProof,
    MerkleLog,
    MerkleNode,
    ProofStep,
    compute_root,
    expected_path_sides,
    hash_leaf,
    verify_inclusion,
)

__all__ = [
    "EMPTY_ROOT",
    "InclusionProof",
    "MerkleLog",
    "MerkleNode",
    "ProofStep",
    "compute_root",
    "expected_path_sides",
    "hash_leaf",
    "verify_inclusion",
]
