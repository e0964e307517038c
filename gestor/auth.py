"""Bearer-token authentication for the HTTP API."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

import jwt
from flask import g, jsonify, request

log = logging.getLogger(__name__)

_HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]
_DECODE_OPTIONS = {"verify_aud": False, "verify_iat": False}


class AuthError(Exception):
    """A token was missing, malformed, expired or not signed with the shared secret."""


def _key(hmac_secret: Union[str, bytes]) -> bytes:
    return hmac_secret.encode("utf-8") if isinstance(hmac_secret, str) else bytes(hmac_secret)


def parse_jwt_token(token: str, hmac_secret: Union[str, bytes]) -> str:
    """Verify an HMAC-signed JWT and return its ``email`` claim ("" when absent)."""
    try:
        header = jwt.get_unverified_header(token)
    except jwt.PyJWTError as exc:
        raise AuthError(str(exc)) from exc
    algorithm = header.get("alg")
    if algorithm not in _HMAC_ALGORITHMS:
        raise AuthError(f"unexpected signing method: {algorithm}")
    try:
        claims = jwt.decode(
            token,
            _key(hmac_secret),
            algorithms=_HMAC_ALGORITHMS,
            options=_DECODE_OPTIONS,
        )
    except jwt.PyJWTError as exc:
        raise AuthError(str(exc)) from exc
    email = claims.get("email")
    if email is None:
        return ""
    if not isinstance(email, str):
        raise AuthError("invalid token")
    return email


def _unauthorized():
    return jsonify({"error": "Unauthorized"}), 401


def auth_middleware(hmac_secret: Union[str, bytes]) -> Callable[[], Optional[tuple]]:
    """Build a ``before_request`` hook that admits only valid Bearer tokens.

    The authenticated e-mail address is stored in ``flask.g.email``.
    """
    key = _key(hmac_secret)

    def authenticate():
        header = request.headers.get("Authorization", "")
        if not header:
            return _unauthorized()
        parts = header.split(" ")
        if len(parts) < 2 or parts[0] != "Bearer":
            return _unauthorized()
        try:
            email = parse_jwt_token(parts[1], key)
        except AuthError:
            return _unauthorized()
        log.info("Authenticated user: %s", email)
        g.email = email
        return None

    return authenticate