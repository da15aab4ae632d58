"""HMAC-signed access codes.

Wire format: URL-safe base64 (no padding) of a compact JSON object
``{"uid": member_id, "ts": issued_at, "nonce": nonce, "sig": signature}``
where ``signature`` is standard base64 of HMAC-SHA256 over
``member_id|issued_at|nonce``.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import secrets
from typing import Callable, Optional

from ..common.datetime_utils import epoch_seconds
from ..common.validators import require_non_empty
from ..core.constants import NONCE_ALPHABET, NONCE_LENGTH, TOKEN_TOLERANCE_SECONDS
from .model import Credential, VerificationResult

logger = logging.getLogger(__name__)

MALFORMED = "malformed"
BAD_SIGNATURE = "bad signature"
STALE_CODE = "stale code"


class CredentialEncodingError(Exception):
    """A single credential could not be encoded; the next rotation retries."""


def generate_nonce(length: int = NONCE_LENGTH) -> str:
    return "".join(secrets.choice(NONCE_ALPHABET) for _ in range(length))


def compute_signature(secret: str, member_id: str, issued_at: int, nonce: str) -> str:
    message = f"{member_id}|{issued_at}|{nonce}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def encode_credential(credential: Credential) -> str:
    payload = {
        "uid": credential.member_id,
        "ts": credential.issued_at,
        "nonce": credential.nonce,
        "sig": credential.signature,
    }
    try:
        raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise CredentialEncodingError(str(e)) from e
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_credential(raw: str) -> Optional[Credential]:
    """Parse the text form; returns None when anything about it is malformed."""
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    text += "=" * (-len(text) % 4)
    try:
        data = json.loads(base64.urlsafe_b64decode(text.encode("ascii")).decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError):
        return None

    if not isinstance(data, dict):
        return None
    member_id = data.get("uid")
    issued_at = data.get("ts")
    nonce = data.get("nonce")
    signature = data.get("sig")
    if not isinstance(member_id, str) or not member_id:
        return None
    # bool is an int subclass; reject it explicitly.
    if not isinstance(issued_at, int) or isinstance(issued_at, bool):
        return None
    if not isinstance(nonce, str) or not nonce or not isinstance(signature, str) or not signature:
        return None
    return Credential(member_id=member_id, issued_at=issued_at, nonce=nonce, signature=signature)


class CredentialSigner:
    """Issues and verifies access codes with a shared secret.

    Stateless apart from its injected secret and clock, so one instance can be
    shared by every request.
    """

    def __init__(self, secret: str, *, clock: Callable[[], int] = epoch_seconds, nonce_length: int = NONCE_LENGTH):
        self._secret = require_non_empty(secret, "secret")
        self._clock = clock
        self._nonce_length = max(NONCE_LENGTH, int(nonce_length))

    def issue(self, member_id: str, *, now: int | None = None) -> Credential:
        member_id = require_non_empty(member_id, "member_id")
        issued_at = int(self._clock() if now is None else now)
        nonce = generate_nonce(self._nonce_length)
        return Credential(
            member_id=member_id,
            issued_at=issued_at,
            nonce=nonce,
            signature=compute_signature(self._secret, member_id, issued_at, nonce),
        )

    def issue_encoded(self, member_id: str, *, now: int | None = None) -> str:
        return encode_credential(self.issue(member_id, now=now))

    def verify(
        self,
        raw: str,
        *,
        now: int | None = None,
        tolerance_seconds: int = TOKEN_TOLERANCE_SECONDS,
    ) -> VerificationResult:
        now = int(self._clock() if now is None else now)
        return verify(raw, self._secret, now=now, tolerance_seconds=tolerance_seconds)


def issue(member_id: str, secret: str, *, now: int | None = None) -> Credential:
    return CredentialSigner(secret).issue(member_id, now=now)


def verify(raw: str, secret: str, *, now: int, tolerance_seconds: int = TOKEN_TOLERANCE_SECONDS) -> VerificationResult:
    credential = decode_credential(raw)
    if credential is None:
        logger.info("credential rejected: malformed")
        return VerificationResult.invalid(MALFORMED)

    expected = compute_signature(secret, credential.member_id, credential.issued_at, credential.nonce)
    if not hmac.compare_digest(expected.encode("ascii"), credential.signature.encode("utf-8")):
        logger.warning(
            "credential rejected: signature mismatch (claimed member=%s, ts=%s)",
            credential.member_id,
            credential.issued_at,
        )
        return VerificationResult.invalid(BAD_SIGNATURE)

    if abs(int(now) - credential.issued_at) > int(tolerance_seconds):
        logger.info("credential rejected: stale (member=%s, age=%ss)", credential.member_id, int(now) - credential.issued_at)
        return VerificationResult.expired(STALE_CODE)

    return VerificationResult.valid(credential.member_id, nonce=credential.nonce, issued_at=credential.issued_at)
