"""Access token verification (ES256).

Identity is established by an external authorizer; this service only
verifies the bearer JWT it issued and trusts the ``sub`` claim as the
user id.

Keys:
  prod: JWT_PUBLIC_KEY holds the authorizer's PEM public key.
  dev/test: an ephemeral EC key pair is generated on import so tests and
            local tooling can mint tokens with create_access_token().
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = SETTINGS.jwt_issuer
AUDIENCE = SETTINGS.jwt_audience
ACCESS_TOKEN_TTL_MIN = 15

if SETTINGS.jwt_public_key:
    _private_key = None
    _public_key = serialization.load_pem_public_key(SETTINGS.jwt_public_key.encode())
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(*, sub: str) -> str:
    """Sign a token with the ephemeral dev key (tests, local tooling)."""
    if _private_key is None:
        raise RuntimeError("JWT_PUBLIC_KEY is configured; tokens are issued externally")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256 so alg:none and alg-switching tokens are
    rejected.  Raises jwt.ExpiredSignatureError or jwt.InvalidTokenError.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat"]},
    )
