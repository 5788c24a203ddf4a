"""Identity helpers: the caller's pubkey from ``x-jwt`` and tribe uuid claims.

A tribe uuid is itself a signed token whose ``pubkey`` claim names the
owner. :func:`verify_tribe_uuid` is the default verifier handed to the tribe
handler; anything with the same signature can replace it.

Session tokens and tribe uuids share a signing key, so each carries a
``typ`` claim and each decoder only accepts its own kind. Tribe uuids are
public; a session token must also expire.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import jwt
from fastapi import HTTPException, Request, status

from tribes_api.config import JWT_ALGORITHM, JWT_SECRET, TRIBE_UUID_MAX_AGE_SECONDS

# (uuid, check_timestamp) -> owner pubkey
TribeVerifier = Callable[[str, bool], str]

SESSION_TOKEN = "session"
TRIBE_TOKEN = "tribe"


class TribeVerificationError(Exception):
    """The tribe uuid claim could not be verified."""


def encode_jwt(pubkey: str, *, expires_in: int = 60 * 60 * 24 * 7, secret: str = JWT_SECRET) -> str:
    now = int(time.time())
    claims = {"pubkey": pubkey, "typ": SESSION_TOKEN, "iat": now, "exp": now + expires_in}
    return jwt.encode(claims, secret, algorithm=JWT_ALGORITHM)


def decode_jwt(token: str, *, secret: str = JWT_SECRET) -> dict:
    claims = jwt.decode(
        token,
        secret,
        algorithms=[JWT_ALGORITHM],
        options={"require": ["exp", "pubkey", "typ"]},
    )
    if claims["typ"] != SESSION_TOKEN:
        raise jwt.InvalidTokenError("not a session token")
    return claims


def sign_tribe_uuid(pubkey: str, *, issued_at: Optional[int] = None, secret: str = JWT_SECRET) -> str:
    """Mint a tribe uuid owned by ``pubkey``."""
    iat = int(time.time()) if issued_at is None else issued_at
    return jwt.encode({"pubkey": pubkey, "typ": TRIBE_TOKEN, "iat": iat}, secret, algorithm=JWT_ALGORITHM)


def verify_tribe_uuid(uuid: str, check_timestamp: bool) -> str:
    try:
        claims = jwt.decode(uuid, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as exc:
        raise TribeVerificationError(f"invalid tribe uuid: {exc}") from exc

    if claims.get("typ") != TRIBE_TOKEN:
        raise TribeVerificationError("not a tribe uuid")
    pubkey = str(claims.get("pubkey") or "")
    if not pubkey:
        raise TribeVerificationError("tribe uuid carries no pubkey")
    if check_timestamp:
        iat = claims.get("iat")
        if not isinstance(iat, int) or time.time() - iat > TRIBE_UUID_MAX_AGE_SECONDS:
            raise TribeVerificationError("too late")
    return pubkey


def _token_from_request(request: Request) -> str:
    token = request.headers.get("x-jwt", "").strip()
    if not token:
        token = request.query_params.get("token", "").strip()
    return token


def pub_key_context(request: Request) -> str:
    """FastAPI dependency: the authenticated caller's pubkey, or 401."""
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    try:
        claims = decode_jwt(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc
    pubkey = str(claims.get("pubkey") or "")
    if not pubkey:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    request.state.pubkey = pubkey
    return pubkey
