# src/utils.py
import hashlib
import logging
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from passlib.context import CryptContext
import jwt
from config.settings import SIGNING_SECRET, SIGNING_ALG

logger = logging.getLogger(__name__)

# Centralized password hashing policy (allows painless future upgrades)
PWD_CONTEXT = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
)

_FILENAME_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def utcnow() -> datetime:
    """Naive UTC timestamp; all DateTime columns store naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def current_month(now: Optional[datetime] = None) -> str:
    return (now or utcnow()).strftime("%Y-%m")


def month_start(now: Optional[datetime] = None) -> datetime:
    now = now or utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def unix_millis() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def gen_token_urlsafe(n_bytes: int = 32) -> str:
    """High-entropy, URL-safe token (session tokens, reset tokens)."""
    return secrets.token_urlsafe(n_bytes)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def clean_filename(name: Optional[str], default: str = "upload") -> str:
    name = (name or "").rsplit("/", 1)[-1].rsplit("\\", 1)[-1]
    cleaned = _FILENAME_UNSAFE.sub("-", name).strip("-.")
    return cleaned or default


def hash_password(pw: str) -> str:
    if not pw:
        raise ValueError("Password must not be empty")
    return PWD_CONTEXT.hash(pw)


def verify_password(pw: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return PWD_CONTEXT.verify(pw, hashed)
    except ValueError:
        logger.warning("Password verification failed due to malformed hash", exc_info=True)
        return False


def make_media_token(storage_key: str, expires_in: int) -> str:
    """Short-lived token authorizing a GET of one stored object."""
    issued_at = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "key": storage_key,
        "typ": "media",
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(seconds=expires_in)).timestamp()),
    }
    return jwt.encode(payload, SIGNING_SECRET, algorithm=SIGNING_ALG)


def decode_media_token(token: str) -> Dict[str, Any]:
    """Decode a media token. Raises jwt exceptions on failure."""
    options = {"require": ["exp", "key", "typ"], "verify_signature": True}
    claims = jwt.decode(token, SIGNING_SECRET, algorithms=[SIGNING_ALG], options=options)
    if claims.get("typ") != "media":
        raise jwt.InvalidTokenError("Unexpected token type")
    return claims
