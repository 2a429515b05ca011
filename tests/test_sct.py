"""
Tests for Signed Certificate Timestamps and signed tree heads.

Test coverage:
1. SCT issue and verify
2. SCT forgery and tampering
3. Malformed SCT input fails closed
4. Signed tree heads (Ed25519)
"""

import base64
import hashlib
import hmac
import json

import pytest

from ctguard.transparency import (
    SCT,
    LogSnapshot,
    SCTIssuer,
    SCTVerifier,
    SignedTreeHead,
    TreeHeadSigner,
    TreeHeadVerifier,
    derive_log_id,
)
from ctguard.transparency.sct import SCT_VERSION, compute_signing_data

DOMAIN = "a.example"
FINGERPRINT = hashlib.sha256(b"certificate-a").hexdigest()
LOG_ID = derive_log_id("test-log")


@pytest.fixture
def issuer():
    return SCTIssuer(b"k" * 32, clock=lambda: 1_700_000_000_000)


@pytest.fixture
def verifier(issuer):
    return issuer.verifier()


def b64json(obj) -> str:
    return base64.b64encode(json.dumps(obj).encode()).decode()


# ===========================================================================
# 1. Issue and verify
# ===========================================================================


class TestSCTIssue:
    def test_issued_sct_verifies(self, issuer, verifier):
        sct = issuer.issue(DOMAIN, FINGERPRINT, LOG_ID)
        assert sct.version == SCT_VERSION
        assert sct.log_id == LOG_ID
        assert sct.timestamp == 1_700_000_000_000
        assert verifier.verify(sct, DOMAIN, FINGERPRINT, LOG_ID)

    def test_token_and_dict_forms_verify(self, issuer, verifier):
        sct = issuer.issue(DOMAIN, FINGERPRINT, LOG_ID)
        assert SCT.decode(sct.encode()) == sct
        assert verifier.verify(sct.encode(), DOMAIN, FINGERPRINT, LOG_ID)
        assert verifier.verify(sct.to_dict(), DOMAIN, FINGERPRINT, LOG_ID)

    def test_separate_verifier_with_same_key(self, issuer):
        sct = issuer.issue(DOMAIN, FINGERPRINT, LOG_ID)
        assert SCTVerifier(b"k" * 32).verify(sct, DOMAIN, FINGERPRINT, LOG_ID)

    def test_derive_log_id_is_stable(self):
        assert derive_log_id("test-log") == LOG_ID
        assert len(LOG_ID) == 32
        assert derive_log_id("other-log") != LOG_ID

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            SCTIssuer(b"")


# ===========================================================================
# 2. Forgery and tampering
# ===========================================================================


class TestSCTForgery:
    @pytest.mark.parametrize(
        "domain, fingerprint, log_id",
        [
            ("b.example", FINGERPRINT, LOG_ID),
            (DOMAIN, hashlib.sha256(b"certificate-b").hexdigest(), LOG_ID),
            (DOMAIN, FINGERPRINT, derive_log_id("other-log")),
        ],
    )
    def test_binding_mismatch(self, issuer, verifier, domain, fingerprint, log_id):
        sct = issuer.issue(DOMAIN, FINGERPRINT, LOG_ID)
        assert not verifier.verify(sct, domain, fingerprint, log_id)

    def test_other_key_cannot_verify(self, issuer):
        sct = issuer.issue(DOMAIN, FINGERPRINT, LOG_ID)
        assert not SCTIssuer.generate().verifier().verify(sct, DOMAIN, FINGERPRINT, LOG_ID)

    def test_bare_hash_tag_is_rejected(self, verifier):
        data = compute_signing_data(SCT_VERSION, LOG_ID, 1, DOMAIN, FINGERPRINT)
        forged = SCT(SCT_VERSION, LOG_ID, 1, hashlib.sha256(data).hexdigest())
        assert not verifier.verify(forged, DOMAIN, FINGERPRINT, LOG_ID)

    def test_tag_under_guessed_key_is_rejected(self, verifier):
        data = compute_signing_data(SCT_VERSION, LOG_ID, 1, DOMAIN, FINGERPRINT)
        tag = hmac.new(b"guess", data, hashlib.sha256).hexdigest()
        assert not verifier.verify(SCT(SCT_VERSION, LOG_ID, 1, tag), DOMAIN, FINGERPRINT, LOG_ID)

    def test_moved_timestamp_is_rejected(self, issuer, verifier):
        sct = issuer.issue(DOMAIN, FINGERPRINT, LOG_ID)
        moved = SCT(sct.version, sct.log_id, sct.timestamp + 1, sct.signature_tag)
        assert not verifier.verify(moved, DOMAIN, FINGERPRINT, LOG_ID)

    def test_unknown_version_is_rejected(self, issuer, verifier):
        sct = issuer.issue(DOMAIN, FINGERPRINT, LOG_ID)
        bumped = SCT(sct.version + 1, sct.log_id, sct.timestamp, sct.signature_tag)
        assert not verifier.verify(bumped, DOMAIN, FINGERPRINT, LOG_ID)


# ===========================================================================
# 3. Malformed input
# ===========================================================================


class TestSCTMalformed:
    @pytest.mark.parametrize(
        "token",
        [
            pytest.param("", id="empty"),
            pytest.param("%%%not-base64%%%", id="not-base64"),
            pytest.param(base64.b64encode(b"\xff\xfe").decode(), id="not-utf8"),
            pytest.param(base64.b64encode(b"{not json").decode(), id="not-json"),
            pytest.param(b64json([1, 2, 3]), id="json-array"),
            pytest.param(b64json({"version": 0, "logId": LOG_ID}), id="missing-fields"),
            pytest.param(
                b64json({"version": "0", "logId": LOG_ID, "timestamp": 1, "signatureTag": "00"}),
                id="wrong-types",
            ),
        ],
    )
    def test_malformed_token_fails_closed(self, verifier, token):
        assert verifier.verify(token, DOMAIN, FINGERPRINT, LOG_ID) is False

    def test_decode_raises_value_error(self):
        with pytest.raises(ValueError):
            SCT.decode("%%%")

    def test_non_mapping_fails_closed(self, verifier):
        assert verifier.verify(12, DOMAIN, FINGERPRINT, LOG_ID) is False


# ===========================================================================
# 4. Signed tree heads
# ===========================================================================


class TestSignedTreeHead:
    @pytest.fixture
    def signer(self):
        return TreeHeadSigner.generate()

    @pytest.fixture
    def head(self, signer):
        return signer.sign(LOG_ID, LogSnapshot(root="ab" * 32, size=7))

    def test_sign_and_verify(self, signer, head):
        assert head.key_id == signer.key_id
        assert head.snapshot == LogSnapshot(root="ab" * 32, size=7)
        assert signer.verifier().verify(head, LOG_ID)

    def test_verify_from_public_bytes_and_dict(self, signer, head):
        verifier = TreeHeadVerifier(signer.public_key_bytes)
        assert verifier.verify(SignedTreeHead.from_dict(head.to_dict()))

    def test_seeded_signer_is_deterministic_in_key(self):
        seed = bytes(range(32))
        assert TreeHeadSigner.from_private_bytes(seed).key_id == TreeHeadSigner.from_private_bytes(seed).key_id

    def test_tampered_root_rejected(self, signer, head):
        head.root_hash = "cd" * 32
        assert not signer.verifier().verify(head)

    def test_tampered_size_rejected(self, signer, head):
        head.tree_size = 8
        assert not signer.verifier().verify(head)

    def test_other_key_rejected(self, head):
        assert not TreeHeadSigner.generate().verifier().verify(head)

    def test_log_id_mismatch_rejected(self, signer, head):
        assert not signer.verifier().verify(head, derive_log_id("other-log"))

    def test_unsigned_rejected(self, signer):
        unsigned = SignedTreeHead(log_id=LOG_ID, tree_size=1, root_hash="00" * 32)
        assert not signer.verifier().verify(unsigned)

    def test_garbled_signature_rejected(self, signer, head):
        head.signature = "!!!"
        assert not signer.verifier().verify(head)
