"""
Server-side page handlers.

Each page returns a JSON descriptor the frontend renders. Access control is
mostly done by the access gate before these handlers run; the handlers only
add the page-specific guards (manager-only pages, team member dashboard).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from auth.dependencies import (
    PageRedirect,
    get_current_identity,
    get_optional_identity,
    require_manager_page,
)
from auth.roles import MAIN_DASHBOARD_PATH
from auth.security import Identity
from database import get_db
from time_utils import utc_today
import models
import schemas

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])

SECTION_TITLES = {
    "vision": "Vision Layer",
    "strategy": "Strategy Layer",
    "execution": "Execution Layer",
    "reviews": "Reviews",
    "team": "Team",
    "calendar": "Calendar",
    "analytics": "Analytics",
    "recurring-tasks": "Recurring Tasks",
    "templates": "Task Templates",
    "settings": "Settings",
}


@router.get("/", response_model=schemas.HomePage)
def home(identity: Optional[Identity] = Depends(get_optional_identity)):
    """Landing page for visitors; signed-in users go straight to the dashboard."""
    if identity is not None:
        raise PageRedirect(MAIN_DASHBOARD_PATH)
    return schemas.HomePage(
        page="home",
        title="Personal Management Operating System",
        sections=["Vision Layer", "Strategy Layer", "Execution Layer", "Daily Control"],
    )


# ============== Auth Pages ==============


@router.get("/auth/login", response_model=schemas.PageResponse)
def login_page(redirect: Optional[str] = Query(None)):
    logger.debug(f"Rendering login page (redirect={redirect})")
    return schemas.PageResponse(page="login", title="Sign In")


@router.get("/auth/sign-up", response_model=schemas.PageResponse)
def sign_up_page():
    return schemas.PageResponse(page="sign-up", title="Create Account")


@router.get("/auth/accept-invite", response_model=schemas.InvitePage)
def accept_invite_page(token: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """
    Show the pending invite behind a token.

    Only invites nobody has claimed yet (user_id still NULL) are valid.
    """
    if not token:
        return schemas.InvitePage(page="accept-invite", title="Invalid invite link")

    invite = (
        db.query(models.TeamMember)
        .filter(
            models.TeamMember.invite_token == token,
            models.TeamMember.user_id.is_(None),
        )
        .first()
    )
    if invite is None:
        logger.info("Accept-invite page opened with an unknown or already used token")
        return schemas.InvitePage(page="accept-invite", title="Invalid or expired invite token")

    return schemas.InvitePage(
        page="accept-invite",
        title="Accept Team Invite",
        email=invite.email,
        full_name=invite.full_name,
    )


# ============== Dashboard Pages ==============


@router.get("/dashboard", response_model=schemas.DailyDashboardPage)
def daily_dashboard(identity: Identity = Depends(get_current_identity)):
    return schemas.DailyDashboardPage(
        page="dashboard",
        title="Daily Dashboard",
        user_id=identity.user_id,
        today=utc_today(),
    )


@router.get("/dashboard/team-member", response_model=schemas.TeamMemberDashboardPage)
def team_member_dashboard(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Dashboard for delegated team members.

    Users without any membership record are sent to the main dashboard.
    """
    try:
        memberships = (
            db.query(models.TeamMember)
            .options(joinedload(models.TeamMember.manager))
            .filter(models.TeamMember.user_id == identity.user_id)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Membership lookup failed for user {identity.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Role lookup unavailable",
        )
    if not memberships:
        logger.info(f"User {identity.user_id} has no team membership, redirecting to {MAIN_DASHBOARD_PATH}")
        raise PageRedirect(MAIN_DASHBOARD_PATH)

    return schemas.TeamMemberDashboardPage(
        page="team-member",
        title="My Tasks",
        user_id=identity.user_id,
        memberships=[schemas.TeamMembership.model_validate(m) for m in memberships],
    )


@router.get("/dashboard/notifications", response_model=schemas.PageResponse)
def notifications_page(identity: Identity = Depends(get_current_identity)):
    return schemas.PageResponse(page="notifications", title="Notifications", user_id=identity.user_id)


@router.get("/dashboard/recurring-tasks", response_model=schemas.PageResponse)
def recurring_tasks_page(identity: Identity = Depends(require_manager_page)):
    return schemas.PageResponse(page="recurring-tasks", title="Recurring Tasks", user_id=identity.user_id)


@router.get("/dashboard/strategy/new", response_model=schemas.PageResponse)
def new_strategy_page(identity: Identity = Depends(require_manager_page)):
    return schemas.PageResponse(page="strategy-new", title="New Strategy", user_id=identity.user_id)


@router.get("/dashboard/{section}", response_model=schemas.PageResponse)
def manager_section_page(section: str, identity: Identity = Depends(get_current_identity)):
    title = SECTION_TITLES.get(section)
    if title is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
    return schemas.PageResponse(page=section, title=title, user_id=identity.user_id)
