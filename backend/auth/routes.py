"""
Authentication API endpoints.

Sign-in itself happens at the external auth provider. These endpoints tell
the frontend who the session belongs to and where it should land after
signing in.
"""

import logging

from fastapi import APIRouter, Depends

from auth.dependencies import get_current_identity, get_current_role
from auth.roles import UserRole, landing_path_for_role
from auth.security import Identity
import schemas

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/me", response_model=schemas.CurrentUserResponse)
def get_current_user_info(
    identity: Identity = Depends(get_current_identity),
    role: UserRole = Depends(get_current_role),
):
    """
    Get the current user's identity, role and landing page.

    Args:
        identity: Authenticated identity from dependency
        role: Role classification for the identity

    Returns:
        Identity details with the dashboard path to redirect to after login
    """
    logger.debug(f"Fetching user info for: {identity.user_id}")
    return schemas.CurrentUserResponse(
        user_id=identity.user_id,
        email=identity.email,
        role=role,
        landing_path=landing_path_for_role(role),
    )
