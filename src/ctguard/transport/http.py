"""
HTTP client for the ctguard gateway.

What a browser extension does after grabbing a certificate: post it with the
domain to /ct-check and act on the verdict record.
"""

from __future__ import annotations

import base64
from typing import Any, Dict, Optional

import requests

from ctguard.utils.json import json_dumps


def _encode_certificate(certificate: Any) -> Any:
    if isinstance(certificate, (bytes, bytearray)):
        return base64.b64encode(bytes(certificate)).decode("ascii")
    return certificate


class CTServiceClient:
    """
    Talks to a remote gateway:

        POST /ct-check          { "domain", "certificate"?, "fingerprint"? }
        POST /add-certificate   { "domain", "certificate" }
        GET  /merkle-root
        GET  /ct-logs[/{domain}]
        GET  /checkpoint
    """

    def __init__(self, url: str, timeout: float = 10.0):
        self._url = url.rstrip("/")
        self._timeout = timeout
        self._session = requests.Session()

    def check(
        self,
        domain: str,
        certificate: Any = None,
        fingerprint: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"domain": domain}
        if certificate is not None:
            body["certificate"] = _encode_certificate(certificate)
        if fingerprint is not None:
            body["fingerprint"] = fingerprint
        return self._post("/ct-check", body)

    def add_certificate(self, domain: str, certificate: Any) -> Dict[str, Any]:
        return self._post(
            "/add-certificate",
            {"domain": domain, "certificate": _encode_certificate(certificate)},
        )

    def merkle_root(self) -> Dict[str, Any]:
        return self._get("/merkle-root")

    def ct_logs(self, domain: Optional[str] = None) -> Dict[str, Any]:
        return self._get("/ct-logs" if domain is None else f"/ct-logs/{domain}")

    def checkpoint(self) -> Dict[str, Any]:
        return self._get("/checkpoint")

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        response = self._session.post(
            self._url + path,
            data=json_dumps(body),
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
        )
        response.raise_for_status()
        return response.json()

    def _get(self, path: str) -> Dict[str, Any]:
        response = self._session.get(self._url + path, timeout=self._timeout)
        response.raise_for_status()
        return response.json()
