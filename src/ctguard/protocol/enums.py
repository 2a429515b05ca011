from enum import Enum


class ErrorCode(str, Enum):
    INVALID_CERTIFICATE = "invalid_certificate"
    INVALID_DOMAIN = "invalid_domain"
    INDEX_OUT_OF_RANGE = "index_out_of_range"
    FINGERPRINT_UNAVAILABLE = "fingerprint_unavailable"
    FETCH_TIMEOUT = "fetch_timeout"
    FETCH_ERROR = "fetch_error"
    INTERNAL_ERROR = "internal_error"


class Verdict(str, Enum):
    VALID = "VALID"
    NOT_FOUND = "NOT_FOUND"
    TAMPERED = "TAMPERED"
    ERROR = "ERROR"


class MitmStatus(str, Enum):
    SAFE = "safe"
    SUSPICIOUS = "suspicious"
    DANGER = "danger"
    UNKNOWN = "unknown"


class Side(str, Enum):
    """Position of a sibling hash relative to the running hash."""

    LEFT = "left"
    RIGHT = "right"
