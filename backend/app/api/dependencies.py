from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.security import decode_access_token
from app.core.config import settings
from app.models.account import Account
from app.repositories.account_repository import SqlAccountRepository
from app.services.account_service import AccountService
from app.storage.local_storage import PhotoStorage, storage

# OAuth2 password bearer scheme - extracts token from Authorization header
# Tokens are issued by the identity provider, not by this service
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)


def get_photo_storage() -> PhotoStorage:
    return storage


def get_account_service(
    db: Session = Depends(get_db),
    photo_storage: PhotoStorage = Depends(get_photo_storage),
) -> AccountService:
    """Account service bound to this request's database session"""
    return AccountService(SqlAccountRepository(db), photo_storage)


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[Account]:
    """
    Get current authenticated account from JWT token.

    Used as a route dependency to require authentication. The token's 'sub'
    claim holds the account id. Raises 401 if the token is missing, invalid,
    or names an account that no longer exists.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if settings.DISABLE_AUTH:
        # Dev bypass - requests run without an authenticated account
        return None

    if token is None:
        raise credentials_exception

    # Returns None if token is invalid, expired, or tampered with
    payload = decode_access_token(token)
    if payload is None:
        raise credentials_exception

    account_id_str = payload.get("sub")
    if account_id_str is None:
        raise credentials_exception

    # Token stores ID as string, but database uses integer
    try:
        account_id: int = int(account_id_str)
    except (ValueError, TypeError):
        raise credentials_exception

    # If the account was deleted after the token was issued, this will be None
    account = db.query(Account).filter(Account.id == account_id).first()
    if account is None:
        raise credentials_exception

    return account
