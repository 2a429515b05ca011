"""
HTTP gateway for the log (FastAPI).

Routes:
    POST /ct-check              verify a certificate or fingerprint for a domain
    POST /add-certificate       log a certificate for a domain
    GET  /merkle-root           current root, entry and domain counts
    GET  /ct-logs               every domain with its entry summaries
    GET  /ct-logs/{domain}      one domain's entry summaries
    GET  /proof/{index}         inclusion proof, optionally at an earlier size
    GET  /checkpoint            signed tree head of the current root
    GET  /health

/ct-check always answers 200 with a verdict record; ERROR verdicts carry an
errorCode. Handlers are plain functions, run in FastAPI's thread pool,
since a check may fetch the live certificate.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from ctguard import __version__
from ctguard.core.fingerprint import display_fingerprint
from ctguard.core.runtime import CTGuardRuntime
from ctguard.protocol.errors import (
    IndexOutOfRange,
    InvalidCertificateFormat,
    InvalidDomain,
)

logger = logging.getLogger(__name__)


class CheckRequest(BaseModel):
    domain: str
    certificate: Optional[Any] = None
    fingerprint: Optional[str] = None


class AddCertificateRequest(BaseModel):
    domain: str
    certificate: Any


def create_app(runtime: Optional[CTGuardRuntime] = None) -> FastAPI:
    runtime = runtime or CTGuardRuntime.from_settings()
    store = runtime.store
    service = runtime.service

    app = FastAPI(title="ctguard Certificate Transparency Service", version=__version__)
    app.state.runtime = runtime

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------
    @app.post("/ct-check")
    def ct_check(body: CheckRequest) -> Dict[str, Any]:
        result = service.verify(
            body.domain,
            observed_fingerprint=body.fingerprint,
            certificate=body.certificate,
        )
        return result.to_dict()

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------
    @app.post("/add-certificate")
    def add_certificate(body: AddCertificateRequest) -> Dict[str, Any]:
        try:
            entry = store.append(body.domain, body.certificate)
        except (InvalidDomain, InvalidCertificateFormat) as e:
            raise HTTPException(status_code=400, detail=str(e))

        return {
            "index": entry.index,
            "domain": entry.domain,
            "fingerprint": entry.fingerprint,
            "fingerprintDisplay": display_fingerprint(entry.fingerprint),
            "issuedAt": entry.issued_at,
            "sct": entry.sct.encode(),
            "merkleRoot": store.root_at(entry.index + 1),
            "treeSize": entry.index + 1,
        }

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @app.get("/merkle-root")
    def merkle_root() -> Dict[str, Any]:
        return store.current_root().to_dict()

    @app.get("/ct-logs")
    def ct_logs() -> Dict[str, Any]:
        domains = store.list_domains()
        return {
            "totalDomains": len(domains),
            "totalCertificates": sum(len(v) for v in domains.values()),
            "logs": [
                {"domain": domain, "entries": [e.summary() for e in entries]}
                for domain, entries in domains.items()
            ],
        }

    @app.get("/ct-logs/{domain}")
    def ct_logs_for_domain(domain: str) -> Dict[str, Any]:
        try:
            entries = store.list_domain(domain)
        except InvalidDomain as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {
            "domain": entries[0].domain if entries else domain,
            "entries": [e.summary() for e in entries],
        }

    @app.get("/proof/{index}")
    def proof(index: int, tree_size: Optional[int] = None) -> Dict[str, Any]:
        try:
            inclusion = store.prove(index, tree_size)
        except IndexOutOfRange as e:
            raise HTTPException(status_code=404, detail=str(e))
        return {
            "proof": inclusion.to_dict(),
            "root": store.root_at(inclusion.tree_size),
        }

    @app.get("/checkpoint")
    def checkpoint() -> Dict[str, Any]:
        head = store.checkpoint()
        data = head.to_dict()
        data["publicKey"] = base64.b64encode(store.tree_head_signer.public_key_bytes).decode("ascii")
        return data

    @app.get("/health")
    def health() -> Dict[str, Any]:
        summary = store.current_root()
        return {
            "status": "ok",
            "service": "ctguard",
            "version": __version__,
            "merkleRoot": summary.root,
            "totalCertificates": summary.entry_count,
        }

    logger.info("Gateway ready for log %s", store.log_id)
    return app
