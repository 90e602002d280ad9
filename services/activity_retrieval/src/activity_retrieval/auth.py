"""Caller identity from bearer tokens.

A missing or invalid token is not rejected here: the caller is simply
anonymous and the query decides what anonymous callers may do.
"""
from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from activity_retrieval.config import get_settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

@dataclass(frozen=True)
class Caller:
    uid: str
    claims: Dict[str, Any] = field(default_factory=dict)

def verify_token(token: str) -> Optional[Caller]:
    settings = get_settings()
    options = {"verify_aud": settings.AUTH_AUDIENCE is not None}
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_SECRET,
            algorithms=[settings.AUTH_ALGORITHM],
            audience=settings.AUTH_AUDIENCE,
            options=options,
        )
    except JWTError as e:
        logger.warning(f"Rejected bearer token: {str(e)}")
        return None

    uid = payload.get("sub")
    if not uid:
        logger.warning("Bearer token has no subject")
        return None
    return Caller(uid=uid, claims=payload)

async def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Caller]:
    if credentials is None:
        return None
    return verify_token(credentials.credentials)
