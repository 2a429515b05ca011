"""
Tests for the certificate transparency log store.

Test coverage:
1. Append and lookup
2. Domain listing and root summary
3. Restore, reset and integrity checks
4. Checkpoints
"""

import dataclasses
import hashlib

import pytest

from ctguard.merkle import verify_inclusion
from ctguard.protocol.errors import (
    IndexOutOfRange,
    InvalidCertificateFormat,
    InvalidDomain,
    VerificationError,
)
from ctguard.transparency import CTLogStore, LogEntry, SCTIssuer, TreeHeadSigner


def cert(name: str) -> bytes:
    return b"\x30\x82" + f"certificate for {name}".encode() * 4


def fp(name: str) -> str:
    return hashlib.sha256(cert(name)).hexdigest()


@pytest.fixture
def store():
    return CTLogStore(log_name="test-log")


# ===========================================================================
# 1. Append and lookup
# ===========================================================================


class TestAppend:
    def test_append_returns_entry(self, store):
        entry = store.append("a.example", cert("a"))

        assert entry.index == 0
        assert entry.domain == "a.example"
        assert entry.fingerprint == fp("a")
        assert entry.issued_at == entry.sct.timestamp
        assert entry.sct.log_id == store.log_id
        assert len(store) == 1

    def test_append_resolves_domain(self, store):
        entry = store.append("https://A.Example:8443/login?next=/", cert("a"))
        assert entry.domain == "a.example"
        assert store.lookup_latest("a.example", fp("a")) == entry

    def test_sct_verifies_for_entry(self, store):
        entry = store.append("a.example", cert("a"))
        assert store.verify_sct(entry, "a.example", fp("a"))
        assert not store.verify_sct(entry, "b.example", fp("a"))

    def test_indexes_follow_append_order(self, store):
        entries = [store.append(f"d{i}.example", cert(str(i))) for i in range(6)]
        assert [e.index for e in entries] == list(range(6))
        assert store.snapshot().size == 6

    def test_invalid_certificate_leaves_log_unchanged(self, store):
        with pytest.raises(InvalidCertificateFormat):
            store.append("a.example", "not a certificate!!")
        assert len(store) == 0
        assert store.snapshot().size == 0

    def test_invalid_domain_rejected(self, store):
        with pytest.raises(InvalidDomain):
            store.append("", cert("a"))
        assert len(store) == 0


class TestLookup:
    def test_lookup_is_exact(self, store):
        store.append("a.example", cert("a"))
        assert store.lookup_latest("a.example", fp("a")) is not None
        assert store.lookup_latest("a.example", fp("a")[:40]) is None
        assert store.lookup_latest("b.example", fp("a")) is None
        assert store.lookup_latest("a.example", fp("b")) is None

    def test_duplicate_append_creates_new_entry_and_lookup_returns_latest(self, store):
        first = store.append("a.example", cert("a"))
        store.append("a.example", cert("b"))
        second = store.append("a.example", cert("a"))

        assert first.index == 0 and second.index == 2
        assert store.lookup_latest("a.example", fp("a")).index == 2

    def test_same_certificate_under_two_domains(self, store):
        store.append("a.example", cert("shared"))
        store.append("b.example", cert("shared"))
        assert store.lookup_latest("a.example", fp("shared")).index == 0
        assert store.lookup_latest("b.example", fp("shared")).index == 1

    def test_lookup_with_snapshot(self, store):
        store.append("a.example", cert("a"))
        entry, snapshot = store.lookup_with_snapshot("a.example", fp("a"))
        assert entry.index == 0
        assert snapshot.size == 1
        assert snapshot.root == store.root_at(1)

        missing, snapshot = store.lookup_with_snapshot("a.example", fp("x"))
        assert missing is None
        assert snapshot.size == 1

    @pytest.mark.parametrize("domain", ["A.Example", "https://a.example/path", " a.example. "])
    def test_lookup_resolves_domain(self, store, domain):
        entry = store.append("a.example", cert("a"))

        assert store.lookup_latest(domain, fp("a")) == entry
        found, snapshot = store.lookup_with_snapshot(domain, fp("a"))
        assert found == entry
        assert snapshot.size == 1

    def test_lookup_rejects_invalid_domain(self, store):
        with pytest.raises(InvalidDomain):
            store.lookup_latest("", fp("a"))

    def test_get_entry(self, store):
        entry = store.append("a.example", cert("a"))
        assert store.get_entry(0) == entry
        with pytest.raises(IndexOutOfRange):
            store.get_entry(1)

    def test_prove_entry(self, store):
        for i in range(5):
            store.append("a.example", cert(str(i)))
        proof = store.prove(3)
        assert verify_inclusion(proof, store.snapshot().root)
        with pytest.raises(IndexOutOfRange):
            store.prove(5)


# ===========================================================================
# 2. Listing and summary
# ===========================================================================


class TestListing:
    def test_list_domain_in_append_order(self, store):
        store.append("a.example", cert("a1"))
        store.append("b.example", cert("b1"))
        store.append("a.example", cert("a2"))

        entries = store.list_domain("A.EXAMPLE")
        assert [e.fingerprint for e in entries] == [fp("a1"), fp("a2")]
        assert store.list_domain("unknown.example") == []

    def test_list_domains_first_logged_order(self, store):
        store.append("b.example", cert("b"))
        store.append("a.example", cert("a"))
        store.append("b.example", cert("b2"))

        domains = store.list_domains()
        assert list(domains) == ["b.example", "a.example"]
        assert [e.index for e in domains["b.example"]] == [0, 2]

    def test_current_root(self, store):
        store.append("a.example", cert("a"))
        store.append("b.example", cert("b"))
        store.append("a.example", cert("c"))

        summary = store.current_root()
        assert summary.root == store.snapshot().root
        assert summary.entry_count == 3
        assert summary.domain_count == 2
        assert summary.to_dict() == {
            "root": summary.root,
            "entryCount": 3,
            "domainCount": 2,
        }

    def test_entry_summary(self, store):
        entry = store.append("a.example", cert("a"))
        summary = entry.summary()
        assert summary["fingerprint"] == "SHA256:" + fp("a")
        assert summary["timestamp"] == entry.issued_at
        assert summary["sct"] == entry.sct.encode()
        assert summary["issuedAt"].endswith("Z")


# ===========================================================================
# 3. Restore, reset and integrity
# ===========================================================================


class TestRestore:
    def test_restore_reproduces_root_and_scts(self):
        issuer = SCTIssuer(b"shared-secret")
        original = CTLogStore(log_name="test-log", sct_issuer=issuer)
        for i in range(7):
            original.append(f"d{i % 3}.example", cert(str(i)))

        data = [e.to_dict() for e in original.entries()]
        restored = CTLogStore(log_name="test-log", sct_issuer=issuer)
        restored.restore(LogEntry.from_dict(d) for d in data)

        assert restored.snapshot() == original.snapshot()
        assert restored.entries() == original.entries()
        entry = restored.lookup_latest("d1.example", fp("4"))
        assert entry.index == 4
        assert restored.verify_sct(entry, "d1.example", fp("4"))
        restored.check_integrity()

    def test_restore_rejects_out_of_order_entries(self, store):
        for name in ("a", "b", "c"):
            store.append(f"{name}.example", cert(name))
        before = store.snapshot()
        entries = store.entries()
        skipped = [entries[0], dataclasses.replace(entries[2], index=5)]

        with pytest.raises(VerificationError):
            store.restore(skipped)

        assert store.snapshot() == before
        assert store.entries() == entries
        assert store.lookup_latest("c.example", fp("c")).index == 2
        store.check_integrity()

    def test_restore_rejects_malformed_fingerprint(self, store):
        store.append("a.example", cert("a"))
        before = store.snapshot()
        entry = store.entries()[0]

        with pytest.raises(VerificationError):
            store.restore([dataclasses.replace(entry, fingerprint="not-hex")])

        assert store.snapshot() == before

    def test_reset(self, store):
        store.append("a.example", cert("a"))
        store.reset()
        assert len(store) == 0
        assert store.lookup_latest("a.example", fp("a")) is None
        assert store.current_root().entry_count == 0

    def test_integrity_passes_on_healthy_log(self, store):
        for i in range(9):
            store.append("a.example", cert(str(i)))
        store.check_integrity()

    def test_integrity_detects_rewritten_entry(self, store):
        store.append("a.example", cert("a"))
        store.append("a.example", cert("b"))
        store._entries[1] = dataclasses.replace(store._entries[1], fingerprint=fp("evil"))

        with pytest.raises(VerificationError):
            store.check_integrity()

    def test_integrity_detects_index_drift(self, store):
        store.append("a.example", cert("a"))
        store._by_domain["a.example"].append(0)

        with pytest.raises(VerificationError):
            store.check_integrity()


# ===========================================================================
# 4. Checkpoints
# ===========================================================================


class TestCheckpoint:
    def test_checkpoint_signs_current_snapshot(self):
        signer = TreeHeadSigner.generate()
        store = CTLogStore(log_name="test-log", tree_head_signer=signer)
        store.append("a.example", cert("a"))
        store.append("b.example", cert("b"))

        head = store.checkpoint()
        assert head.snapshot == store.snapshot()
        assert head.log_id == store.log_id
        assert signer.verifier().verify(head, store.log_id)

    def test_checkpoint_of_empty_log(self, store):
        head = store.checkpoint()
        assert head.tree_size == 0
        assert store.tree_head_signer.verifier().verify(head)
