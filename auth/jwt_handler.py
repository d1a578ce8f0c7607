from jose import jwt, JWTError
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

import config
from models.enums import UserRole

APPEAL_PURPOSE = "appeal"


def create_access_token(
    user_id: str,
    role: UserRole,
    organization_id: Optional[str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token scoped to one organization.
    """
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": user_id,
        "role": UserRole(role).value,
        "org": organization_id,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify a JWT token and return the payload if valid, else None.
    """
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        return None


def create_appeal_token(user_id: str, organization_id: Optional[str], email: str) -> str:
    """
    Create the short-lived token a banned user presents when filing an appeal.
    It cannot be used as an access token.
    """
    now = datetime.utcnow()
    to_encode = {
        "sub": user_id,
        "org": organization_id,
        "email": email,
        "purpose": APPEAL_PURPOSE,
        "exp": now + timedelta(days=config.APPEAL_TOKEN_EXPIRE_DAYS),
        "iat": now,
    }
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def verify_appeal_token(token: str) -> Optional[Dict[str, Any]]:
    payload = verify_token(token)
    if not payload or payload.get("purpose") != APPEAL_PURPOSE:
        return None
    return payload
