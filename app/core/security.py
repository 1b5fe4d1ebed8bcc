from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from jose import JWTError, jwt
from app.core.config import settings

def create_access_token(
    subject: Any,
    username: Optional[str] = None,
    roles: Optional[List[str]] = None,
    permissions: Optional[List[Dict[str, str]]] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Issue an access token carrying the claims the API reads"""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": str(subject),
        "type": "access",
        "exp": expire,
        "username": username,
        "roles": roles or [],
        "permissions": permissions or [],
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def verify_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
