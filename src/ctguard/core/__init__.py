from .domains import resolve_domain
from .fingerprint import (
    FingerprintCodec,
    display_fingerprint,
    fingerprint,
    normalize_fingerprint,
)
from .verification import VerificationResult, VerificationService

__all__ = [
    "FingerprintCodec",
    "VerificationResult",
    "VerificationService",
    "display_fingerprint",
    "fingerprint",
    "normalize_fingerprint",
    "resolve_domain",
]
