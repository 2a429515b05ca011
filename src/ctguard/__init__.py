__version__ = "0.1.0"

from .core.fingerprint import FingerprintCodec, fingerprint
from .core.runtime import CTGuardRuntime
from .core.verification import VerificationResult, VerificationService
from .merkle.tree import InclusionProof, MerkleLog, verify_inclusion
from .protocol.enums import Verdict
from .transparency.sct import SCT, SCTIssuer, SCTVerifier
from .transparency.store import CTLogStore, LogEntry

__all__ = [
    "CTGuardRuntime",
    "CTLogStore",
    "FingerprintCodec",
    "InclusionProof",
    "LogEntry",
    "MerkleLog",
    "SCT",
    "SCTIssuer",
    "SCTVerifier",
    "Verdict",
    "VerificationResult",
    "VerificationService",
    "fingerprint",
    "verify_inclusion",
]
