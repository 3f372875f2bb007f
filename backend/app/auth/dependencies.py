"""
FastAPI dependencies for authentication.
Verifies Firebase ID tokens; admins are uids listed in the `admins` collection.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.auth.firebase import verify_firebase_token
from app.database import get_store
from app.db import collections
from app.db.base import DocumentStore
from app.services.settings_service import SettingsService
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)

# HTTPBearer scheme for extracting Authorization header
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    uid: str
    email: Optional[str] = None


def _decode(token: str) -> CurrentUser:
    try:
        decoded_token = verify_firebase_token(token)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    uid = decoded_token.get("uid")
    if not uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing uid"
        )
    return CurrentUser(uid=uid, email=decoded_token.get("email"))


async def _with_account(store: DocumentStore, user: CurrentUser) -> CurrentUser:
    # First sign-in gets the configured starting balance
    token_settings = await SettingsService.get_token_settings(store)
    await TokenService.ensure_account(store, user.uid, token_settings.initial_tokens)
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: DocumentStore = Depends(get_store)
) -> CurrentUser:
    """
    Verify the bearer token and make sure the user has a token account.

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
    """
    if not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await _with_account(store, _decode(credentials.credentials))


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    store: DocumentStore = Depends(get_store)
) -> Optional[CurrentUser]:
    """Like get_current_user, but anonymous requests yield None."""
    if credentials is None or not credentials.credentials:
        return None
    return await _with_account(store, _decode(credentials.credentials))


async def require_admin(
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
) -> CurrentUser:
    """
    Raises:
        HTTPException 403: Caller is not in the admins collection
    """
    if await store.get(collections.ADMINS, user.uid) is None:
        logger.warning(f"Admin access denied for user {user.uid}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user
