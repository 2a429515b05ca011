"""
Append-only Merkle log over certificate fingerprints.

Key features:
- SHA-256 with domain separation (0x00 leaves, 0x01 internal nodes)
- Unpaired trailing nodes are carried up, never duplicated (RFC 6962 shape)
- O(log N) amortized append over per-level arrays of completed subtrees
- O(1) current root, recomputable roots for every earlier size
- Inclusion proofs as (hash, side) steps from leaf to root
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ctguard.protocol.enums import Side
from ctguard.protocol.errors import IndexOutOfRange

HASH_SIZE = 32
EMPTY_ROOT = hashlib.sha256(b"").hexdigest()


# ===========================================================================
# Merkle Node
# ===========================================================================


@dataclass(frozen=True)
class MerkleNode:
    """
    A completed node of the log.

    Attributes:
        hash: Hex SHA-256 of this node
        level: Height above the leaves (0 for leaves)
        position: Index of the node within its level
    """
    hash: str
    level: int
    position: int

    def is_leaf(self) -> bool:
        return self.level == 0

    @property
    def leaf_range(self) -> Tuple[int, int]:
        """Half-open range of leaf indexes covered by this node."""
        width = 1 << self.level
        return self.position * width, (self.position + 1) * width


# ===========================================================================
# Inclusion Proof
# ===========================================================================


@dataclass(frozen=True)
class ProofStep:
    hash: str
    side: Side

    def to_dict(self) -> Dict[str, Any]:
        return {"hash": self.hash, "side": self.side.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProofStep":
        return cls(hash=data["hash"], side=Side(data["side"]))


@dataclass
class InclusionProof:
    """
    Inclusion proof for one leaf of the log.

    Only valid against the root of the log at ``tree_size``.

    Attributes:
        leaf_index: Position of the leaf in append order
        leaf_hash: Hex hash of the leaf
        sibling_hashes: Sibling hashes from leaf to root, with their side
        tree_size: Size of the log the proof was generated for
    """
    leaf_index: int
    leaf_hash: str
    sibling_hashes: List[ProofStep]
    tree_size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "leafIndex": self.leaf_index,
            "leafHash": self.leaf_hash,
            "siblingHashes": [step.to_dict() for step in self.sibling_hashes],
            "treeSize": self.tree_size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InclusionProof":
        return cls(
            leaf_index=int(data["leafIndex"]),
            leaf_hash=data["leafHash"],
            sibling_hashes=[ProofStep.from_dict(s) for s in data["siblingHashes"]],
            tree_size=int(data["treeSize"]),
        )


# ===========================================================================
# Hash Functions
# ===========================================================================


def _hash_leaf(data: bytes) -> bytes:
    return hashlib.sha256(b"\x00" + data).digest()


def _hash_internal(left: bytes, right: bytes) -> bytes:
    return hashlib.sha256(b"\x01" + left + right).digest()


def _decode_hash(value: str) -> bytes:
    raw = bytes.fromhex(value)
    if len(raw) != HASH_SIZE:
        raise ValueError(f"Expected {HASH_SIZE}-byte hash, got {len(raw)}")
    return raw


def _split(n: int) -> int:
    """Largest power of two strictly less than n (n >= 2)."""
    return 1 << ((n - 1).bit_length() - 1)


def hash_leaf(fingerprint: str) -> str:
    """Leaf hash of a hex fingerprint."""
    return _hash_leaf(bytes.fromhex(fingerprint)).hex()


def expected_path_sides(leaf_index: int, tree_size: int) -> List[Side]:
    """
    Sides of the sibling hashes on the path of ``leaf_index`` in a tree of
    ``tree_size`` leaves, ordered from leaf to root.
    """
    sides: List[Side] = []
    while tree_size > 1:
        k = _split(tree_size)
        if leaf_index < k:
            sides.append(Side.RIGHT)
            tree_size = k
        else:
            sides.append(Side.LEFT)
            leaf_index -= k
            tree_size -= k
    sides.reverse()
    return sides


def compute_root(leaf_hashes: List[str]) -> str:
    """
    Compute the root of a list of leaf hashes by full recursion.

    Reference construction, independent of the incremental state in MerkleLog.
    """
    if not leaf_hashes:
        return EMPTY_ROOT

    def _root(nodes: List[bytes]) -> bytes:
        if len(nodes) == 1:
            return nodes[0]
        k = _split(len(nodes))
        return _hash_internal(_root(nodes[:k]), _root(nodes[k:]))

    return _root([_decode_hash(h) for h in leaf_hashes]).hex()


# ===========================================================================
# Merkle Log
# ===========================================================================


class MerkleLog:
    """
    Append-only Merkle log.

    ``_levels[h][p]`` holds the hash of the perfect subtree of 2**h leaves
    starting at leaf ``p * 2**h``; a node is written once, when its right
    child completes. Nodes covering a prefix of the log never change, so any
    earlier size can still be proven and its root recomputed.
    """

    def __init__(self):
        self._levels: List[List[bytes]] = [[]]
        self._size = 0
        self._root = bytes.fromhex(EMPTY_ROOT)

    @property
    def size(self) -> int:
        return self._size

    def root(self) -> str:
        return self._root.hex()

    def append(self, fingerprint: str) -> Tuple[int, str]:
        """
        Append a fingerprint as the next leaf.

        Returns:
            (leaf index, new root hash)
        """
        try:
            leaf = _hash_leaf(bytes.fromhex(fingerprint))
        except ValueError as e:
            raise ValueError(f"Fingerprint must be hex: {fingerprint!r}") from e

        index = self._size
        self._levels[0].append(leaf)

        level = 0
        while len(self._levels[level]) % 2 == 0:
            nodes = self._levels[level]
            parent = _hash_internal(nodes[-2], nodes[-1])
            if level + 1 == len(self._levels):
                self._levels.append([])
            self._levels[level + 1].append(parent)
            level += 1

        # Size is published after every node it depends on exists.
        self._size = index + 1
        self._root = self._fold_peaks(self._size)
        return index, self._root.hex()

    def root_at(self, tree_size: int) -> str:
        """Root of the log as it was when it held ``tree_size`` leaves."""
        self._check_size(tree_size)
        return self._fold_peaks(tree_size).hex()

    def leaf_hash(self, index: int) -> str:
        if index < 0 or index >= self._size:
            raise IndexOutOfRange(f"Leaf index {index} outside log of size {self._size}")
        return self._levels[0][index].hex()

    def frontier(self, tree_size: Optional[int] = None) -> List[MerkleNode]:
        """
        The perfect subtrees whose fold is the root, left to right.
        """
        size = self._size if tree_size is None else tree_size
        self._check_size(size)
        nodes: List[MerkleNode] = []
        for level in reversed(range(size.bit_length())):
            if (size >> level) & 1:
                position = (size >> level) - 1
                nodes.append(MerkleNode(self._levels[level][position].hex(), level, position))
        return nodes

    def prove_inclusion(self, index: int, tree_size: Optional[int] = None) -> InclusionProof:
        """
        Build the inclusion proof of leaf ``index``.

        Args:
            index: Leaf index
            tree_size: Size to prove against (default: current size)

        Raises:
            IndexOutOfRange: If the size exceeds the log or index >= size
        """
        size = self._size if tree_size is None else tree_size
        self._check_size(size)
        if index < 0 or index >= size:
            raise IndexOutOfRange(f"Leaf index {index} outside tree of size {size}")

        steps: List[ProofStep] = []
        start, end = 0, size
        while end - start > 1:
            k = _split(end - start)
            if index < start + k:
                steps.append(ProofStep(self._subtree(start + k, end).hex(), Side.RIGHT))
                end = start + k
            else:
                steps.append(ProofStep(self._subtree(start, start + k).hex(), Side.LEFT))
                start = start + k
        steps.reverse()

        return InclusionProof(
            leaf_index=index,
            leaf_hash=self._levels[0][index].hex(),
            sibling_hashes=steps,
            tree_size=size,
        )

    @staticmethod
    def verify_inclusion(proof: InclusionProof, root: str) -> bool:
        return verify_inclusion(proof, root)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_size(self, tree_size: int) -> None:
        if tree_size < 0 or tree_size > self._size:
            raise IndexOutOfRange(
                f"Tree size {tree_size} outside log of size {self._size}"
            )

    def _fold_peaks(self, size: int) -> bytes:
        acc: Optional[bytes] = None
        for level in range(size.bit_length()):
            if (size >> level) & 1:
                peak = self._levels[level][(size >> level) - 1]
                acc = peak if acc is None else _hash_internal(peak, acc)
        return acc if acc is not None else bytes.fromhex(EMPTY_ROOT)

    def _subtree(self, start: int, end: int) -> bytes:
        n = end - start
        if n & (n - 1) == 0 and start % n == 0:
            level = n.bit_length() - 1
            return self._levels[level][start >> level]
        k = _split(n)
        return _hash_internal(self._subtree(start, start + k), self._subtree(start + k, end))


# ===========================================================================
# Verification Functions
# ===========================================================================


def verify_inclusion(proof: InclusionProof, root: str) -> bool:
    """
    Verify an inclusion proof against a root.

    The number and sides of the sibling hashes must match the path of
    ``leaf_index`` in a tree of ``tree_size`` leaves. Never raises.
    """
    try:
        if proof.tree_size < 1 or not 0 <= proof.leaf_index < proof.tree_size:
            return False

        sides = expected_path_sides(proof.leaf_index, proof.tree_size)
        if len(proof.sibling_hashes) != len(sides):
            return False

        current = _decode_hash(proof.leaf_hash)
        for step, side in zip(proof.sibling_hashes, sides):
            if Side(step.side) is not side:
                return False
            sibling = _decode_hash(step.hash)
            if side is Side.LEFT:
                current = _hash_internal(sibling, current)
            else:
                current = _hash_internal(current, sibling)

        return current == _decode_hash(root)
    except (ValueError, TypeError, AttributeError):
        return False
