from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from app.core.config import settings

# CryptContext handles password hashing using bcrypt
# bcrypt salts every hash, so the same password produces different hashes
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    return pwd_context.hash(password)


def decode_access_token(token: str) -> Optional[dict]:
    """
    Decode and verify a bearer token.

    Tokens are minted by the identity provider that shares SECRET_KEY;
    this service only consumes them.
    """
    try:
        # Verify signature and expiration automatically
        payload = jwt.decode(token, settings.SECRET_KEY,
                             algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        # Token is invalid - could be expired, tampered, or wrong secret key
        return None
