"""
Tests for page handlers and the current-user endpoint.

Tests cover:
- Home page redirecting signed-in users
- Accept-invite page resolving pending invite tokens
- Team member dashboard contents and its redirect for non-members
- Manager page guard (team member, no role, manager)
- GET /api/auth/me role and landing path
"""

import logging
from datetime import date
from typing import Dict

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.orm import Session

import models
from tests.conftest import auth_headers_for, create_auth_token

logger = logging.getLogger(__name__)


# ============== Public & Auth Pages (4 tests) ==============


def test_home_page_for_visitors(client: TestClient):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["page"] == "home"


def test_home_page_redirects_signed_in_user(client: TestClient, manager_headers: Dict[str, str]):
    response = client.get("/", headers=manager_headers)

    assert response.status_code == 307
    assert response.headers["location"] == "/dashboard"


def test_login_page_for_visitors(client: TestClient):
    response = client.get("/auth/login", params={"redirect": "/dashboard/team"})

    assert response.status_code == 200
    assert response.json()["page"] == "login"


def test_accept_invite_without_token(client: TestClient):
    response = client.get("/auth/accept-invite")

    assert response.status_code == 200
    assert response.json()["title"] == "Invalid invite link"


# ============== Accept Invite (3 tests) ==============


@pytest.fixture
def pending_invite(test_db: Session, manager_user: models.User) -> models.TeamMember:
    invite = models.TeamMember(
        manager_id=manager_user.id,
        email="invitee@example.com",
        full_name="Invitee Five",
        invite_token="tok-pending",
    )
    test_db.add(invite)
    test_db.commit()
    return invite


def test_accept_invite_shows_pending_invite(client: TestClient, pending_invite: models.TeamMember):
    response = client.get("/auth/accept-invite", params={"token": "tok-pending"})

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Accept Team Invite"
    assert data["email"] == "invitee@example.com"
    assert data["full_name"] == "Invitee Five"
    logger.info("✓ Accept-invite page shows invitee details")


def test_accept_invite_with_unknown_token(client: TestClient, pending_invite: models.TeamMember):
    response = client.get("/auth/accept-invite", params={"token": "does-not-exist"})

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Invalid or expired invite token"
    assert data["email"] is None
    assert data["full_name"] is None


def test_accept_invite_with_already_accepted_token(
    client: TestClient, test_db: Session, pending_invite: models.TeamMember
):
    pending_invite.user_id = "u5-invitee"
    test_db.commit()

    response = client.get("/auth/accept-invite", params={"token": "tok-pending"})

    assert response.status_code == 200
    assert response.json()["title"] == "Invalid or expired invite token"
    assert response.json()["email"] is None


# ============== Dashboards (6 tests) ==============


def test_daily_dashboard_carries_today(client: TestClient, manager_headers: Dict[str, str], manager_user: models.User):
    response = client.get("/dashboard", headers=manager_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == manager_user.id
    assert date.fromisoformat(data["today"])


def test_team_member_dashboard_lists_memberships(
    client: TestClient,
    team_member_headers: Dict[str, str],
    manager_user: models.User,
):
    response = client.get("/dashboard/team-member", headers=team_member_headers)

    assert response.status_code == 200
    memberships = response.json()["memberships"]
    assert len(memberships) == 1
    assert memberships[0]["email"] == "member@example.com"
    assert memberships[0]["manager"]["email"] == manager_user.email
    logger.info("✓ Team member dashboard shows manager details")


def test_team_member_dashboard_redirects_non_members(client: TestClient, manager_headers: Dict[str, str]):
    response = client.get("/dashboard/team-member", headers=manager_headers)

    assert response.status_code == 307
    assert response.headers["location"] == "/dashboard"


def test_team_member_dashboard_reports_lookup_failure(
    client: TestClient, test_db: Session, team_member_headers: Dict[str, str]
):
    test_db.execute(text("DROP TABLE team_members"))
    test_db.commit()

    response = client.get("/dashboard/team-member", headers=team_member_headers)

    assert response.status_code == 503
    assert response.json()["detail"] == "Role lookup unavailable"


def test_notifications_open_to_team_members(client: TestClient, team_member_headers: Dict[str, str]):
    response = client.get("/dashboard/notifications", headers=team_member_headers)

    assert response.status_code == 200
    assert response.json()["page"] == "notifications"


def test_unknown_dashboard_section_is_404(client: TestClient, manager_headers: Dict[str, str]):
    response = client.get("/dashboard/unknown", headers=manager_headers)

    assert response.status_code == 404


# ============== Manager Page Guard (4 tests) ==============


@pytest.mark.parametrize("path", ["/dashboard/recurring-tasks", "/dashboard/strategy/new"])
def test_manager_pages_open_for_managers(client: TestClient, manager_headers: Dict[str, str], path: str):
    response = client.get(path, headers=manager_headers)

    assert response.status_code == 200


@pytest.mark.parametrize("path", ["/dashboard/recurring-tasks", "/dashboard/strategy/new"])
def test_manager_pages_send_no_role_user_to_login(client: TestClient, no_role_headers: Dict[str, str], path: str):
    """The gate lets a no-role user through; the page guard does not."""
    response = client.get(path, headers=no_role_headers)

    assert response.status_code == 307
    assert response.headers["location"] == "/auth/login"


def test_manager_pages_open_for_dual_role_users(client: TestClient, dual_role_user: models.User):
    response = client.get("/dashboard/recurring-tasks", headers=auth_headers_for(dual_role_user.id))

    assert response.status_code == 200


def test_team_member_never_reaches_manager_page(client: TestClient, team_member_headers: Dict[str, str]):
    response = client.get("/dashboard/strategy/new", headers=team_member_headers)

    assert response.status_code == 307
    assert response.headers["location"] == "/dashboard/team-member"


# ============== Current User (4 tests) ==============


def test_me_for_manager(client: TestClient, manager_user: models.User):
    token = create_auth_token(manager_user.id, email=manager_user.email)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json() == {
        "user_id": manager_user.id,
        "email": manager_user.email,
        "role": "manager",
        "landing_path": "/dashboard",
    }


def test_me_for_team_member(client: TestClient, team_member_headers: Dict[str, str]):
    response = client.get("/api/auth/me", headers=team_member_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "team_member"
    assert data["landing_path"] == "/dashboard/team-member"


def test_me_for_dual_role_user(client: TestClient, dual_role_user: models.User):
    response = client.get("/api/auth/me", headers=auth_headers_for(dual_role_user.id))

    assert response.json()["role"] == "both"
    assert response.json()["landing_path"] == "/dashboard"


def test_me_reports_lookup_failure(client: TestClient, test_db: Session, manager_headers: Dict[str, str]):
    test_db.execute(text("DROP TABLE users"))
    test_db.commit()

    response = client.get("/api/auth/me", headers=manager_headers)

    assert response.status_code == 503
    assert response.json()["detail"] == "Role lookup unavailable"
