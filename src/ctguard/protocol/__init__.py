from .enums import ErrorCode, MitmStatus, Side, Verdict
from .errors import (
    CTGuardError,
    FetchTimeout,
    FingerprintUnavailable,
    IndexOutOfRange,
    InvalidCertificateFormat,
    InvalidDomain,
    VerificationError,
)

__all__ = [
    "ErrorCode",
    "MitmStatus",
    "Side",
    "Verdict",
    "CTGuardError",
    "FetchTimeout",
    "FingerprintUnavailable",
    "IndexOutOfRange",
    "InvalidCertificateFormat",
    "InvalidDomain",
    "VerificationError",
]
