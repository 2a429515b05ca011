from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List, Optional, Tuple

from ctguard.core.settings import CTGuardSettings, get_settings
from ctguard.core.verification import CertificateFetcher, VerificationService
from ctguard.transparency.checkpoint import TreeHeadSigner
from ctguard.transparency.sct import SCTIssuer
from ctguard.transparency.store import CTLogStore

logger = logging.getLogger(__name__)

BootstrapRecord = Tuple[str, Any]


def load_bootstrap(path: str) -> List[BootstrapRecord]:
    """
    Read a bootstrap file: a JSON list of {"domain": ..., "certificate": ...}.

    Raises:
        ValueError: If the file does not have that shape
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"Bootstrap file {path} must hold a JSON list")

    records: List[BootstrapRecord] = []
    for i, item in enumerate(data):
        if not isinstance(item, dict) or "domain" not in item or "certificate" not in item:
            raise ValueError(f"Bootstrap record {i} needs 'domain' and 'certificate'")
        records.append((item["domain"], item["certificate"]))
    return records


def bootstrap(store: CTLogStore, records: Iterable[BootstrapRecord]) -> int:
    """Append records in order. Returns the number appended."""
    count = 0
    for domain, certificate in records:
        store.append(domain, certificate)
        count += 1
    return count


class CTGuardRuntime:
    """
    Wires together the process-wide pieces:

    - CTLogStore:          the single, long-lived log
    - VerificationService: the query path over it
    - fetcher:             optional live certificate retrieval

    One runtime is created at process start and handed to request handlers.
    """

    def __init__(
        self,
        *,
        store: Optional[CTLogStore] = None,
        fetcher: Optional[CertificateFetcher] = None,
        fetch_timeout: float = 5.0,
    ) -> None:
        self.store: CTLogStore = store or CTLogStore()
        self.service: VerificationService = VerificationService(
            self.store,
            fetcher=fetcher,
            fetch_timeout=fetch_timeout,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[CTGuardSettings] = None,
        *,
        fetcher: Optional[CertificateFetcher] = None,
    ) -> "CTGuardRuntime":
        settings = settings or get_settings()
        log_settings = settings.log

        if log_settings.sct_key:
            issuer = SCTIssuer(log_settings.sct_key)
        else:
            # Ephemeral key; SCTs do not survive a restart with a new one
            logger.warning("CTGUARD_SCT_KEY not set, generated an ephemeral SCT key")
            issuer = SCTIssuer.generate()

        if log_settings.sth_key:
            signer = TreeHeadSigner.from_private_bytes(bytes.fromhex(log_settings.sth_key))
        else:
            logger.warning("CTGUARD_STH_KEY not set, generated an ephemeral tree head key")
            signer = TreeHeadSigner.generate()

        store = CTLogStore(
            log_name=log_settings.log_name,
            sct_issuer=issuer,
            tree_head_signer=signer,
        )

        if fetcher is None and settings.gateway.fetch_live:
            from ctguard.transport.tls import fetch_certificate

            fetcher = fetch_certificate

        runtime = cls(
            store=store,
            fetcher=fetcher,
            fetch_timeout=settings.gateway.fetch_timeout,
        )

        if log_settings.bootstrap_file:
            count = bootstrap(store, load_bootstrap(log_settings.bootstrap_file))
            logger.info(
                "Bootstrapped %d entries from %s (root %s)",
                count, log_settings.bootstrap_file, store.snapshot().root,
            )
        return runtime
