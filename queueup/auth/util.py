import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from queueup.config import Config

DEFAULT_TOKEN_EXPIRY = timedelta(hours=12)


def create_actor_token(
    tenant_id: str,
    actor_id: str,
    name: Optional[str] = None,
    is_admin: bool = False,
    expiry: timedelta = DEFAULT_TOKEN_EXPIRY,
) -> str:
    """Mint a bearer token for one actor of a tenant. Used by the chat adapter."""
    payload = {
        "tenant_id": tenant_id,
        "actor_id": actor_id,
        "name": name or actor_id,
        "is_admin": is_admin,
        "exp": datetime.now(timezone.utc) + expiry,
        "jti": str(uuid.uuid4()),
    }
    return encode_token(payload)


def encode_token(payload: dict) -> str:
    return jwt.encode(
        payload=payload, key=Config.JWT_SECRET, algorithm=Config.JWT_ALGORITHM
    )


def decode_token(token: str) -> Optional[Any]:
    try:
        return jwt.decode(
            jwt=token, key=Config.JWT_SECRET, algorithms=[Config.JWT_ALGORITHM]
        )
    except jwt.PyJWTError as _:
        return None
