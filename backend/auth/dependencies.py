"""
FastAPI dependencies for authentication and authorization.

This module provides dependency functions that can be used in route handlers to:
- Read the identity the access gate already resolved for the request
- Classify the current user's role
- Guard manager features in API routes (403) and pages (redirect)
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from auth.roles import (
    RoleLookupError,
    TEAM_MEMBER_DASHBOARD_PATH,
    UserRole,
    classify_role,
)
from auth.route_policy import LOGIN_PATH
from auth.security import Identity, resolve_identity
from config import Settings
from database import get_db

logger = logging.getLogger(__name__)


class PageRedirect(Exception):
    """Raised by page guards; converted to a redirect response by the app."""

    def __init__(self, location: str):
        super().__init__(location)
        self.location = location


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_optional_identity(
    request: Request, settings: Settings = Depends(get_settings)
) -> Optional[Identity]:
    """
    Get the current identity if authenticated, or None if not.

    Reuses the identity resolved by the access gate when present.
    """
    if hasattr(request.state, "identity"):
        return request.state.identity
    return resolve_identity(request, settings)


async def get_current_identity(
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> Identity:
    """
    Require an authenticated identity.

    Raises:
        HTTPException: 401 if no valid session token was presented

    Example:
        @app.get("/api/protected")
        async def protected_route(identity: Identity = Depends(get_current_identity)):
            return {"user_id": identity.user_id}
    """
    if identity is None:
        logger.info("No authentication credentials provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def get_current_role(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> UserRole:
    """
    Classify the current user's role.

    Raises:
        HTTPException: 503 if the role lookup failed
    """
    try:
        return classify_role(db, identity.user_id)
    except RoleLookupError as e:
        logger.error(f"Role lookup failed for user {identity.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Role lookup unavailable",
        )


def require_manager(
    identity: Identity = Depends(get_current_identity),
    role: UserRole = Depends(get_current_role),
) -> Identity:
    """
    Dependency for API routes restricted to manager-capable users.

    Raises:
        HTTPException: 403 if the user is only a team member or has no role
    """
    if role not in (UserRole.manager, UserRole.both):
        logger.info(f"Access denied: user {identity.user_id} has role '{role.value}', manager required")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Manager role required",
        )
    logger.debug(f"Manager check passed for user: {identity.user_id}")
    return identity


def require_manager_page(
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db),
) -> Identity:
    """
    Page guard for manager pages.

    Team members are sent to their own dashboard; signed-out users and users
    with neither record are sent to the login page.

    Raises:
        PageRedirect: when the user may not see the page
        HTTPException: 503 if the role lookup failed
    """
    if identity is None:
        raise PageRedirect(LOGIN_PATH)

    try:
        role = classify_role(db, identity.user_id)
    except RoleLookupError as e:
        logger.error(f"Role lookup failed for user {identity.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Role lookup unavailable",
        )

    if role == UserRole.team_member:
        raise PageRedirect(TEAM_MEMBER_DASHBOARD_PATH)
    if role == UserRole.none:
        raise PageRedirect(LOGIN_PATH)
    return identity
