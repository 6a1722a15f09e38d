from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Sequence

import jwt
from jwt import InvalidTokenError

from ..models import UserRole

ACCESS_TOKEN_TTL = timedelta(days=7)


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    role: UserRole


def create_access_token(
    *,
    user_id: int,
    secret: str,
    role: UserRole = UserRole.CLIENT,
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "iat": now,
        "exp": now + (expires_delta or ACCESS_TOKEN_TTL),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, *, secret: str, algorithms: Sequence[str]) -> TokenClaims:
    """Validate signature and expiry; ValueError if the token cannot identify a user."""
    try:
        payload = jwt.decode(token, secret, algorithms=list(algorithms), options={"require": ["exp", "sub"]})
    except InvalidTokenError as exc:
        raise ValueError("invalid token") from exc

    try:
        user_id = int(payload["sub"])
        role = UserRole(payload.get("role", UserRole.CLIENT.value))
    except (TypeError, ValueError) as exc:
        raise ValueError("token claims are malformed") from exc
    return TokenClaims(user_id=user_id, role=role)
