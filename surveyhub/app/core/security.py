"""Bearer token signing/verification and the request principal.

Tokens are HMAC-SHA256 signed, with the lifetime (exp) inside the payload.
Issuing tokens belongs to the account service; `sign_token` is exposed for
that service and for tests.
"""
# app/core/security.py
import time, hmac, hashlib, base64, json
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from surveyhub.app.core.config import settings
from surveyhub.app.core.errors import AuthenticationError, ForbiddenError
from surveyhub.db.models import UserRole

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: UserRole

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.teacher

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.student


def _b64u_encode(b: bytes) -> str:
    return base64.urlsafe_b64encode(b).rstrip(b"=").decode()


def _b64u_decode(s: str) -> bytes:
    pad = "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode(s + pad)


def sign_token(payload: dict, ttl_sec: int = settings.TOKEN_TTL) -> str:
    """Sign a bearer token with TTL.

    Args:
        payload: Claims, at least `sub` (user id) and `role`.
        ttl_sec: Lifetime in seconds (recorded in the `exp` field).

    Returns:
        str: A token of the form `<b64(data)>.<b64(sig)>`.
    """
    data = payload | {"exp": int(time.time()) + int(ttl_sec)}
    raw = json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode()
    sig = hmac.new(settings.SECRET_KEY.encode(), raw, hashlib.sha256).digest()
    return f"{_b64u_encode(raw)}.{_b64u_encode(sig)}"


def verify_token(token: str) -> Optional[dict]:
    """Verify the signature of the token and its validity period.

    Returns:
        dict | None: Decoded claims on success, otherwise None.
    """
    try:
        raw_b64, sig_b64 = token.split(".", 1)
        raw = _b64u_decode(raw_b64)
        sig = _b64u_decode(sig_b64)
    except ValueError:
        return None

    expected = hmac.new(settings.SECRET_KEY.encode(), raw, hashlib.sha256).digest()
    if not hmac.compare_digest(sig, expected):
        return None

    try:
        data = json.loads(raw.decode())
    except ValueError:
        return None
    if not isinstance(data, dict) or data.get("exp", 0) < int(time.time()):
        return None
    return data


def authenticate(token: str) -> Optional[Principal]:
    claims = verify_token(token)
    if not claims or not claims.get("sub"):
        return None
    try:
        role = UserRole(claims.get("role"))
    except ValueError:
        return None
    return Principal(user_id=str(claims["sub"]), role=role)


def get_optional_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Optional[Principal]:
    if credentials is None:
        return None
    principal = authenticate(credentials.credentials)
    if principal is None:
        raise AuthenticationError("Invalid or expired token")
    return principal


def get_current_principal(principal: Optional[Principal] = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise AuthenticationError()
    return principal


def require_teacher(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_teacher:
        raise ForbiddenError("Only teachers may do this")
    return principal


def require_student(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_student:
        raise ForbiddenError("Only students may do this")
    return principal
