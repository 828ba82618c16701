"""Unit tests for webhook signature verification."""

import hashlib
import hmac

import pytest

from dailyrec.core.signature import compute_signature, verify_signature

BODY = (
    b'{"type":"recording.started","payload":{"room_name":"demo",'
    b'"recording_id":"r1","started_by":"alice","start_ts":1700000000}}'
)
SECRET = "whsec-test-secret"


class TestComputeSignature:
    """Tests for compute_signature."""

    def test_matches_hmac_sha256(self):
        expected = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
        assert compute_signature(BODY, SECRET) == expected

    def test_str_and_bytes_secret_agree(self):
        assert compute_signature(BODY, SECRET) == compute_signature(
            BODY, SECRET.encode()
        )


class TestVerifySignature:
    """Tests for verify_signature."""

    def test_valid_signature_with_prefix(self):
        signature = "sha256=" + compute_signature(BODY, SECRET)
        assert verify_signature(BODY, signature, SECRET) is True

    def test_valid_signature_bare_hex(self):
        assert verify_signature(BODY, compute_signature(BODY, SECRET), SECRET) is True

    def test_prefix_and_bare_verify_identically(self):
        digest = compute_signature(BODY, SECRET)
        assert verify_signature(BODY, digest, SECRET) == verify_signature(
            BODY, f"sha256={digest}", SECRET
        )

    def test_uppercase_hex_is_accepted(self):
        digest = compute_signature(BODY, SECRET).upper()
        assert verify_signature(BODY, digest, SECRET) is True

    def test_bytes_secret(self):
        digest = compute_signature(BODY, SECRET)
        assert verify_signature(BODY, digest, SECRET.encode()) is True

    @pytest.mark.parametrize("other_secret", ["wrong", "whsec-test-secreT", SECRET + "x"])
    def test_signature_from_other_secret_is_rejected(self, other_secret):
        digest = compute_signature(BODY, other_secret)
        assert verify_signature(BODY, digest, SECRET) is False

    def test_tampered_body_is_rejected(self):
        digest = compute_signature(BODY, SECRET)
        tampered = BODY.replace(b'"demo"', b'"demo2"')
        assert verify_signature(tampered, digest, SECRET) is False

    def test_reserialized_body_is_rejected(self):
        """Whitespace changes after re-serialization invalidate the digest."""
        digest = compute_signature(BODY, SECRET)
        reserialized = BODY.replace(b'","', b'", "')
        assert verify_signature(reserialized, digest, SECRET) is False

    @pytest.mark.parametrize(
        "body,header,secret",
        [
            (b"", "sha256=" + "00" * 32, SECRET),
            (BODY, "", SECRET),
            (BODY, None, SECRET),
            (BODY, "sha256=", SECRET),
            (BODY, "not-hex-at-all", SECRET),
            (BODY, "sha256=zz" + "00" * 31, SECRET),
            (BODY, "abc", SECRET),
            (BODY, "00" * 16, SECRET),
            (BODY, "00" * 64, SECRET),
            (BODY, "sha256=" + "00" * 32, None),
            (BODY, "sha256=" + "00" * 32, ""),
            (BODY, "sha256=" + "00" * 32, b""),
        ],
    )
    def test_malformed_input_returns_false(self, body, header, secret):
        assert verify_signature(body, header, secret) is False

    def test_surrounding_whitespace_in_header_is_ignored(self):
        header = "  sha256=" + compute_signature(BODY, SECRET) + " "
        assert verify_signature(BODY, header, SECRET) is True
