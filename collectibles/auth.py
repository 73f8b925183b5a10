"""Signed bearer tokens identifying the caller of the matcher API"""
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from typing import Optional
import base64
import hashlib
import hmac
import secrets
import time
from collectibles.config import get_settings
from collectibles.exceptions import AuthenticationError

security = HTTPBearer(auto_error=False)


def _sign(payload: str) -> str:
    secret = get_settings().auth_secret
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def create_access_token(user_id: str, ttl_seconds: Optional[int] = None) -> str:
    """Token format: base64url("user_id:exp:nonce:signature")"""
    if ttl_seconds is None:
        ttl_seconds = get_settings().auth_token_ttl_seconds
    exp = int(time.time()) + ttl_seconds
    nonce = secrets.token_hex(6)
    payload = f"{user_id}:{exp}:{nonce}"
    token_raw = f"{payload}:{_sign(payload)}".encode("utf-8")
    return base64.urlsafe_b64encode(token_raw).decode("utf-8").rstrip("=")


def decode_access_token(token: str) -> Optional[str]:
    """Return the user id for a valid, unexpired token, else None"""
    if not token:
        return None
    padding = "=" * (-len(token) % 4)
    try:
        decoded = base64.urlsafe_b64decode((token + padding).encode("utf-8")).decode("utf-8")
        user_id, exp_str, nonce, signature = decoded.rsplit(":", 3)
        exp = int(exp_str)
    except (ValueError, UnicodeDecodeError):
        return None

    payload = f"{user_id}:{exp_str}:{nonce}"
    if not hmac.compare_digest(_sign(payload), signature):
        return None
    if not user_id or exp < int(time.time()):
        return None
    return user_id


def get_current_user_id(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing authorization header")

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise AuthenticationError("Invalid authorization token")
    return user_id
