from __future__ import annotations

import base64
import json
from dataclasses import replace

import pytest

from src.gym_access.gym_access.core.enums import VerificationStatus
from src.gym_access.gym_access.credentials.signer import (
    CredentialSigner,
    decode_credential,
    encode_credential,
    issue,
    verify,
)

SECRET = "signer-secret"
NOW = 1_770_000_000


def test_issue_then_verify_same_second_is_valid():
    raw = encode_credential(issue("member-42", SECRET, now=NOW))

    result = verify(raw, SECRET, now=NOW, tolerance_seconds=60)

    assert result.status == VerificationStatus.VALID
    assert result.member_id == "member-42"


def test_nonce_is_long_alphanumeric_and_unique():
    signer = CredentialSigner(SECRET)
    a = signer.issue("m1", now=NOW)
    b = signer.issue("m1", now=NOW)

    assert len(a.nonce) >= 16 and a.nonce.isalnum()
    assert a.nonce != b.nonce
    assert a.signature != b.signature


def test_encoded_form_is_url_safe_text():
    raw = CredentialSigner(SECRET).issue_encoded("member/with+odd=chars", now=NOW)

    assert all(ch.isalnum() or ch in "-_" for ch in raw)
    assert decode_credential(raw).member_id == "member/with+odd=chars"


@pytest.mark.parametrize(
    "change",
    [
        {"member_id": "member-43"},
        {"issued_at": NOW + 1},
        {"nonce": "AAAAAAAAAAAAAAAA"},
    ],
)
def test_tampering_any_field_is_invalid(change):
    original = issue("member-42", SECRET, now=NOW)
    tampered = encode_credential(replace(original, **change))

    result = verify(tampered, SECRET, now=NOW, tolerance_seconds=60)

    assert result.status == VerificationStatus.INVALID
    assert result.reason == "bad signature"


def test_wrong_secret_is_invalid():
    raw = encode_credential(issue("member-42", "other-secret", now=NOW))

    assert verify(raw, SECRET, now=NOW).reason == "bad signature"


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "not base64 at all !!",
        base64.urlsafe_b64encode(b"not json").decode(),
        base64.urlsafe_b64encode(b"[1, 2, 3]").decode(),
        base64.urlsafe_b64encode(json.dumps({"uid": "m", "ts": "123", "nonce": "n", "sig": "s"}).encode()).decode(),
        base64.urlsafe_b64encode(json.dumps({"uid": "m", "ts": True, "nonce": "n", "sig": "s"}).encode()).decode(),
        base64.urlsafe_b64encode(json.dumps({"uid": "m", "nonce": "n", "sig": "s"}).encode()).decode(),
    ],
)
def test_undecodable_codes_are_malformed(raw):
    result = verify(raw, SECRET, now=NOW)

    assert result.status == VerificationStatus.INVALID
    assert result.reason == "malformed"


def test_freshness_boundary_with_sixty_second_tolerance():
    stale = encode_credential(issue("m", SECRET, now=NOW - 61))
    fresh = encode_credential(issue("m", SECRET, now=NOW - 59))
    edge = encode_credential(issue("m", SECRET, now=NOW - 60))

    assert verify(stale, SECRET, now=NOW, tolerance_seconds=60).status == VerificationStatus.EXPIRED
    assert verify(stale, SECRET, now=NOW, tolerance_seconds=60).reason == "stale code"
    assert verify(fresh, SECRET, now=NOW, tolerance_seconds=60).status == VerificationStatus.VALID
    assert verify(edge, SECRET, now=NOW, tolerance_seconds=60).status == VerificationStatus.VALID


def test_codes_from_the_future_beyond_tolerance_are_expired():
    ahead = encode_credential(issue("m", SECRET, now=NOW + 120))

    assert verify(ahead, SECRET, now=NOW, tolerance_seconds=60).status == VerificationStatus.EXPIRED


def test_signer_uses_injected_clock():
    signer = CredentialSigner(SECRET, clock=lambda: NOW)

    credential = signer.issue("m")
    result = signer.verify(encode_credential(credential))

    assert credential.issued_at == NOW
    assert result.is_valid


def test_padding_is_optional_on_decode():
    raw = encode_credential(issue("abc", SECRET, now=NOW))
    padded = raw + "=" * (-len(raw) % 4)

    assert verify(padded, SECRET, now=NOW).is_valid
