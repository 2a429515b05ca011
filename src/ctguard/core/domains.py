"""
Host name resolution for log keys.

Entries are keyed by bare, lowercase host names; callers may hand over full
URLs ("https://user@A.Example:8443/path?q") or host names with a trailing dot.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from ctguard.protocol.errors import InvalidDomain


def resolve_domain(value: str) -> str:
    """
    Resolve the host name of a domain or URL.

    Raises:
        InvalidDomain: If no host name can be extracted
    """
    if not isinstance(value, str):
        raise InvalidDomain(f"Domain must be a string, got {type(value).__name__}")

    text = value.strip()
    if not text:
        raise InvalidDomain("Domain is empty")

    candidate = text if "://" in text else f"https://{text}"
    try:
        host = urlsplit(candidate).hostname
    except ValueError as e:
        raise InvalidDomain(f"Unable to parse domain {value!r}: {e}") from e

    host = (host or "").rstrip(".").lower()
    if not host or any(ch.isspace() for ch in host):
        raise InvalidDomain(f"No host name in {value!r}")
    return host
