"""
Role classification and dashboard routing.

A user's role is derived from two independent records:
- a row in ``users`` keyed by the user's id (manager account)
- a row in ``team_members`` whose ``user_id`` is the user's id (membership)

The role is never stored or cached. Every access decision classifies again,
since a manager may be removed or an invite accepted between two requests.
"""

import enum
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import User, TeamMember

logger = logging.getLogger(__name__)

MAIN_DASHBOARD_PATH = "/dashboard"
TEAM_MEMBER_DASHBOARD_PATH = "/dashboard/team-member"


class UserRole(str, enum.Enum):
    manager = "manager"
    team_member = "team_member"
    both = "both"
    none = "none"


class RoleLookupError(Exception):
    """Raised when a role lookup could not be answered by the database."""

    def __init__(self, user_id: str, record: str):
        super().__init__(f"Failed to look up {record} record for user {user_id}")
        self.user_id = user_id
        self.record = record


def has_manager_record(db: Session, user_id: str) -> bool:
    """
    Check whether the user owns a manager account.

    Raises:
        RoleLookupError: if the query itself failed
    """
    try:
        row = db.query(User.id).filter(User.id == user_id).first()
    except SQLAlchemyError as e:
        logger.error(f"Manager lookup failed for user {user_id}: {e}")
        raise RoleLookupError(user_id, "manager") from e
    return row is not None


def has_team_membership(db: Session, user_id: str) -> bool:
    """
    Check whether the user is linked to any team membership.

    Matches on TeamMember.user_id. A user linked to several managers still
    counts as a single membership for classification purposes.

    Raises:
        RoleLookupError: if the query itself failed
    """
    try:
        row = db.query(TeamMember.id).filter(TeamMember.user_id == user_id).first()
    except SQLAlchemyError as e:
        logger.error(f"Team membership lookup failed for user {user_id}: {e}")
        raise RoleLookupError(user_id, "team membership") from e
    return row is not None


def role_from_records(is_manager: bool, is_team_member: bool) -> UserRole:
    if is_manager and is_team_member:
        return UserRole.both
    if is_manager:
        return UserRole.manager
    if is_team_member:
        return UserRole.team_member
    return UserRole.none


def classify_role(db: Session, user_id: str) -> UserRole:
    """
    Determine the role of a user.

    Args:
        db: Database session
        user_id: Authenticated user's id

    Returns:
        UserRole.manager, UserRole.team_member, UserRole.both or UserRole.none

    Raises:
        RoleLookupError: if either lookup failed; a failed lookup is never
            reported as a missing record

    Example:
        >>> classify_role(db, "6a1f...")
        <UserRole.manager: 'manager'>
    """
    is_manager = has_manager_record(db, user_id)
    is_team_member = has_team_membership(db, user_id)
    role = role_from_records(is_manager, is_team_member)
    logger.debug(
        f"Classified user {user_id} as {role.value} "
        f"(manager={is_manager}, team_member={is_team_member})"
    )
    return role


def landing_path_for_role(role: UserRole) -> str:
    """
    Map a role to its landing page.

    Only an exact team member goes to the team member dashboard. Managers,
    dual-role users and users with no records yet all land on the main
    dashboard.
    """
    if role == UserRole.team_member:
        return TEAM_MEMBER_DASHBOARD_PATH
    return MAIN_DASHBOARD_PATH


def landing_path_for(db: Session, user_id: str) -> str:
    """
    Get the dashboard URL a user should land on.

    Args:
        db: Database session
        user_id: Authenticated user's id

    Returns:
        "/dashboard/team-member" for team members, "/dashboard" otherwise

    Raises:
        RoleLookupError: if the role could not be determined
    """
    return landing_path_for_role(classify_role(db, user_id))
