"""
Security utilities for session identity and shared-secret checks.

This module provides:
- Verification of session tokens (JWTs) issued by the external auth provider
- Extraction of the current identity from a request (bearer header or cookie)
- The shared-secret check guarding the recurring task cron endpoint
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Optional, Dict, Any

from jose import JWTError, jwt
from starlette.requests import HTTPConnection

from config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """An authenticated user as reported by the auth provider."""

    user_id: str
    email: Optional[str] = None


def verify_token(token: str, settings: Settings) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a session token.

    Args:
        token: JWT token string to verify
        settings: Application settings holding the secret, algorithm and audience

    Returns:
        Decoded token payload if valid, None otherwise

    Example:
        >>> payload = verify_token(token, settings)
        >>> if payload:
        ...     user_id = payload.get("sub")
    """
    logger.debug("Verifying session token")
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
        logger.debug(f"Token verified successfully for user: {payload.get('sub')}")
        return payload
    except JWTError as e:
        logger.info(f"Session token verification failed: {str(e)}")
        return None


def extract_token(connection: HTTPConnection, settings: Settings) -> Optional[str]:
    """Return the raw session token from the Authorization header or the session cookie."""
    authorization = connection.headers.get("authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()
    return connection.cookies.get(settings.auth_cookie_name)


def resolve_identity(connection: HTTPConnection, settings: Settings) -> Optional[Identity]:
    """
    Work out who is making the request.

    Anonymous requests, invalid tokens and tokens without a subject all
    resolve to None; the caller decides what an absent identity means.

    Args:
        connection: Incoming request (or websocket) connection
        settings: Application settings

    Returns:
        Identity if a valid session token was presented, None otherwise
    """
    token = extract_token(connection, settings)
    if not token:
        logger.debug("No session token on request")
        return None

    payload = verify_token(token, settings)
    if payload is None:
        return None

    user_id = payload.get("sub")
    if not user_id:
        logger.info("Token payload missing 'sub' claim")
        return None

    return Identity(user_id=str(user_id), email=payload.get("email"))


def cron_request_authorized(
    authorization: Optional[str],
    scheduler_signature: Optional[str],
    settings: Settings,
) -> bool:
    """
    Check the shared secret guarding the recurring task cron endpoint.

    Without a configured CRON_SECRET every request is accepted. With one,
    requests carrying the scheduler signature header are accepted as-is and
    all others must present ``Bearer <secret>``.

    Args:
        authorization: Value of the Authorization header, if any
        scheduler_signature: Value of the scheduler signature header, if any
        settings: Application settings

    Returns:
        True if the request may trigger generation, False otherwise
    """
    if not settings.cron_secret:
        logger.debug("CRON_SECRET not configured, skipping cron authorization")
        return True

    if scheduler_signature:
        logger.debug("Scheduler signature present, accepting cron request")
        return True

    expected = f"Bearer {settings.cron_secret}"
    return secrets.compare_digest((authorization or "").encode(), expected.encode())
