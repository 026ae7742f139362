from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt


def create_access_token(subject: str, secret: str, algorithm: str = "HS256", expires_minutes: int = 60) -> str:
    """Mint a bearer token the way the auth provider does (dev tooling and tests)."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    return jwt.encode({"sub": subject, "exp": expire}, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> Dict[str, Any]:
    # raises jwt.PyJWTError on bad signature, expiry or malformed token
    return jwt.decode(token, secret, algorithms=[algorithm], options={"require": ["sub", "exp"]})
