"""
Firebase Admin SDK initialization.
One app per process; it backs both ID-token verification and Firestore.
"""
import json
import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin import exceptions as firebase_exceptions

from app.config import settings

logger = logging.getLogger(__name__)

_firebase_app: Optional[firebase_admin.App] = None


def _load_credentials() -> credentials.Base:
    """
    Resolve service-account credentials.

    FIREBASE_CREDENTIALS_JSON may be a file path (absolute, or relative to
    backend/) or the JSON document itself. Without it, application default
    credentials are used (gcloud login or the runtime service account).
    """
    value = settings.firebase_credentials_json
    if not value:
        return credentials.ApplicationDefault()

    candidates = [value]
    if not os.path.isabs(value):
        backend_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
        candidates.insert(0, os.path.join(backend_dir, value))

    for path in candidates:
        if os.path.exists(path):
            logger.info(f"Loaded Firebase credentials from file: {path}")
            return credentials.Certificate(path)

    try:
        cred = credentials.Certificate(json.loads(value))
    except json.JSONDecodeError as e:
        raise ValueError(
            "FIREBASE_CREDENTIALS_JSON must be a valid file path or JSON string"
        ) from e
    logger.info("Loaded Firebase credentials from JSON string")
    return cred


def initialize_firebase() -> firebase_admin.App:
    """
    Initialize the Firebase Admin SDK (idempotent).

    Raises:
        ValueError: FIREBASE_PROJECT_ID missing or credentials unreadable
    """
    global _firebase_app

    if _firebase_app is not None:
        return _firebase_app

    if not settings.firebase_project_id:
        raise ValueError("FIREBASE_PROJECT_ID must be set")

    _firebase_app = firebase_admin.initialize_app(
        _load_credentials(),
        {"projectId": settings.firebase_project_id}
    )
    logger.info(f"Firebase initialized for project {settings.firebase_project_id}")
    return _firebase_app


def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token.

    Args:
        token: Firebase JWT ID token string

    Returns:
        Decoded claims (uid, email, ...)

    Raises:
        RuntimeError: SDK not initialized
        ValueError: Token invalid, expired or revoked
    """
    if _firebase_app is None:
        raise RuntimeError("Firebase Admin SDK not initialized. Call initialize_firebase() first.")

    try:
        return auth.verify_id_token(token, app=_firebase_app)
    except ValueError:
        raise
    except firebase_exceptions.FirebaseError as e:
        raise ValueError(f"Token verification failed: {e}") from e


def get_firebase_app() -> Optional[firebase_admin.App]:
    return _firebase_app
