from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Callable

from flask import g, request
from jose import ExpiredSignatureError, JWTError, jwt

from ..core.constants import DEFAULT_TOKEN_HOURS
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError
from .responses import send_error

ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    role: Role
    mobile_number: str
    country_code: str


class TokenService:
    """Issue and verify signed bearer tokens."""

    def __init__(self, secret: str, *, expires_hours: int = DEFAULT_TOKEN_HOURS):
        self._secret = secret
        self._expires = timedelta(hours=int(expires_hours))

    def issue(self, user, *, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user.user_id),
            "role": user.role.value,
            "mobile_number": user.mobile_number,
            "country_code": user.country_code,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._expires).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except JWTError:
            raise AuthenticationError("Invalid token")

        try:
            return TokenClaims(
                user_id=int(payload["sub"]),
                role=Role(payload["role"]),
                mobile_number=payload.get("mobile_number", ""),
                country_code=payload.get("country_code", ""),
            )
        except (KeyError, ValueError):
            raise AuthenticationError("Invalid token")


def bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    if not header:
        raise AuthenticationError("Authorization header is missing")
    token = header[7:] if header.startswith("Bearer ") else header
    if not token.strip():
        raise AuthenticationError("Token is missing")
    return token.strip()


def build_guards(resolve_user: Callable):
    """Return (login_required, roles_required) decorators bound to a token resolver.

    The authenticated user is exposed as ``flask.g.current_user``.
    """

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                g.current_user = resolve_user(bearer_token())
            except AuthenticationError as e:
                return send_error(str(e), 401)
            return view(*args, **kwargs)

        return wrapper

    def roles_required(*roles: Role):
        allowed = {r.value for r in roles}

        def decorator(view):
            @login_required
            @wraps(view)
            def wrapper(*args, **kwargs):
                if g.current_user.role.value not in allowed:
                    return send_error(str(AuthorizationError("You do not have permission for this action")), 403)
                return view(*args, **kwargs)

            return wrapper

        return decorator

    return login_required, roles_required
