from .http import CTServiceClient
from .tls import fetch_certificate

__all__ = ["CTServiceClient", "fetch_certificate"]
