from typing import Optional
from .enums import ErrorCode


class CTGuardError(Exception):
    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.code = code or ErrorCode.INTERNAL_ERROR


class InvalidCertificateFormat(CTGuardError):
    """Raised when a certificate value matches none of the accepted forms."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.INVALID_CERTIFICATE)


class IndexOutOfRange(CTGuardError):
    """Raised when a leaf index or tree size is outside the log."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.INDEX_OUT_OF_RANGE)


class FingerprintUnavailable(CTGuardError):
    """Raised when no fingerprint can be supplied, computed or fetched."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.FINGERPRINT_UNAVAILABLE)


class FetchTimeout(CTGuardError):
    """Raised when a live certificate fetch exceeds its timeout."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.FETCH_TIMEOUT)


class VerificationError(CTGuardError):
    """Raised on internal inconsistency of the log state."""


class InvalidDomain(CTGuardError):
    """Raised when no host name can be resolved from the input."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.INVALID_DOMAIN)
