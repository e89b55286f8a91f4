"""Bind credential checks: primary group, one-time code and password digest."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import struct
import time

from confdir.config.schema import GroupRecord, UserRecord
from confdir.directory.errors import CredentialInvalid, MembershipMismatch


OTP_DIGITS = 6
OTP_PERIOD_SECONDS = 30
OTP_SKEW_STEPS = 1


def password_digest(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def _decode_secret(secret: str) -> bytes:
    normalized = secret.strip().upper()
    if len(normalized) % 8:
        normalized += "=" * (8 - len(normalized) % 8)
    return base64.b32decode(normalized)


def totp_code(secret: str, *, for_time: float | None = None, period: int = OTP_PERIOD_SECONDS) -> str:
    """RFC 6238 code (HMAC-SHA1, 6 digits) for ``secret`` at ``for_time``."""
    moment = time.time() if for_time is None else for_time
    counter = int(moment // period)
    digest = hmac.new(_decode_secret(secret), struct.pack(">Q", counter), hashlib.sha1).digest()
    offset = digest[-1] & 0x0F
    value = struct.unpack(">I", digest[offset : offset + 4])[0] & 0x7FFFFFFF
    return str(value % 10**OTP_DIGITS).zfill(OTP_DIGITS)


def validate_totp(code: str, secret: str, *, now: float | None = None, skew: int = OTP_SKEW_STEPS) -> bool:
    if len(code) != OTP_DIGITS or not (code.isascii() and code.isdigit()):
        return False
    moment = time.time() if now is None else now
    try:
        candidates = [
            totp_code(secret, for_time=moment + step * OTP_PERIOD_SECONDS)
            for step in range(-skew, skew + 1)
        ]
    except (binascii.Error, ValueError):
        return False
    return any(hmac.compare_digest(code, candidate) for candidate in candidates)


def split_otp(password: str) -> tuple[str, str] | None:
    """Split ``<password><6 digit code>``; ``None`` when there is no room for a code."""
    if len(password) <= OTP_DIGITS:
        return None
    return password[:-OTP_DIGITS], password[-OTP_DIGITS:]


def validate_credentials(
    user: UserRecord,
    group: GroupRecord,
    password: str,
    *,
    now: float | None = None,
) -> None:
    if user.primary_group != group.unix_id:
        raise MembershipMismatch(f"user {user.name} primary group is not {group.name}")

    if user.otp_secret:
        parts = split_otp(password)
        if parts is None:
            raise CredentialInvalid(f"missing one-time code for {user.name}")
        password, code = parts
        if not validate_totp(code, user.otp_secret, now=now):
            raise CredentialInvalid(f"invalid one-time code for {user.name}")

    if not hmac.compare_digest(password_digest(password), user.pass_sha256):
        raise CredentialInvalid(f"invalid password for {user.name}")
