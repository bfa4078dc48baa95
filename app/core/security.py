import logging
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import get_settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode a bearer token issued by the identity service.

    Returns the claims, or None when the signature, expiry or audience check
    fails.
    """
    settings = get_settings()
    options = {"verify_aud": settings.identity_jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.identity_jwt_secret,
            algorithms=[settings.identity_jwt_algorithm],
            audience=settings.identity_jwt_audience,
            options=options,
        )
    except JWTError as e:
        logger.debug("Token decode failed: %s", e)
        return None
