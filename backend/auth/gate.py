"""
Per-request access gate.

evaluate_access() turns (path, identity, role) into a single decision:
allow, redirect or reject. AccessGateMiddleware applies that decision before
any page or API handler runs.

Rules, first match wins:
1. The cron endpoint is let through; it checks its own shared secret.
2. Protected API routes without an identity are rejected with 401.
3. Protected pages without an identity redirect to the login page, carrying
   the original path in the ``redirect`` query parameter.
4. Manager-only pages and the main dashboard redirect users whose role is
   exactly team_member to the team member dashboard. Dual-role users pass.
5. Auth pages redirect signed-in users to their landing page.
6. Everything else is allowed.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, Any
from urllib.parse import parse_qsl, urlencode

from fastapi import status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from auth.roles import (
    RoleLookupError,
    TEAM_MEMBER_DASHBOARD_PATH,
    UserRole,
    classify_role,
    landing_path_for_role,
)
from auth.route_policy import (
    LOGIN_PATH,
    RouteCategory,
    classify_route,
    is_api_path,
    requires_authentication,
)
from auth.security import Identity, resolve_identity
from config import Settings

logger = logging.getLogger(__name__)

RoleResolver = Callable[[str], UserRole]

ALLOW = "allow"
REDIRECT = "redirect"
REJECT = "reject"


@dataclass(frozen=True)
class AccessDecision:
    action: str
    location: Optional[str] = None
    status_code: int = status.HTTP_200_OK
    body: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(action=ALLOW)

    @classmethod
    def redirect(cls, location: str) -> "AccessDecision":
        return cls(action=REDIRECT, location=location, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    @classmethod
    def reject(cls, status_code: int, error: str) -> "AccessDecision":
        return cls(action=REJECT, status_code=status_code, body={"error": error})

    @property
    def allowed(self) -> bool:
        return self.action == ALLOW


def _with_path(path: str, query: str) -> str:
    return f"{path}?{query}" if query else path


def login_redirect_location(original_path: str, query: str = "") -> str:
    """Build the login URL preserving the requested path under ``redirect``."""
    params = [(key, value) for key, value in parse_qsl(query, keep_blank_values=True) if key != "redirect"]
    params.append(("redirect", original_path))
    return _with_path(LOGIN_PATH, urlencode(params))


def evaluate_access(
    path: str,
    identity: Optional[Identity],
    resolve_role: RoleResolver,
    query: str = "",
) -> AccessDecision:
    """
    Decide what to do with a request.

    Args:
        path: Request path
        identity: Current identity, or None for anonymous requests
        resolve_role: Callable classifying a user id; only called when a rule
            needs the role
        query: Raw query string of the request, kept on redirects

    Returns:
        AccessDecision describing allow, redirect or reject

    Example:
        >>> evaluate_access("/dashboard/team", Identity("u2"), lambda _: UserRole.team_member)
        AccessDecision(action='redirect', location='/dashboard/team-member', ...)
    """
    category = classify_route(path)
    logger.debug(f"Access check: path={path}, category={category.value}, user={identity.user_id if identity else 'none'}")

    # Rule 1: cron endpoint authenticates itself
    if category == RouteCategory.self_authenticating:
        return AccessDecision.allow()

    if identity is None:
        if requires_authentication(category):
            # Rule 2: API contract is a JSON 401, never a redirect
            if is_api_path(path):
                logger.info(f"Unauthorized API access: {path}")
                return AccessDecision.reject(status.HTTP_401_UNAUTHORIZED, "Unauthorized")
            # Rule 3
            logger.info(f"Redirecting to login - no user found for {path}")
            return AccessDecision.redirect(login_redirect_location(path, query))
        return AccessDecision.allow()

    if category in (RouteCategory.manager_only, RouteCategory.main_landing, RouteCategory.auth_page):
        try:
            role = resolve_role(identity.user_id)
        except RoleLookupError as e:
            logger.error(f"Failing closed on {path}: {e}")
            return AccessDecision.reject(status.HTTP_503_SERVICE_UNAVAILABLE, "Role lookup unavailable")

        # Rule 4: only an exact team member is turned away
        if category in (RouteCategory.manager_only, RouteCategory.main_landing):
            if role == UserRole.team_member:
                logger.info(f"Redirecting team member from manager route: {path}")
                return AccessDecision.redirect(_with_path(TEAM_MEMBER_DASHBOARD_PATH, query))
            return AccessDecision.allow()

        # Rule 5
        landing = landing_path_for_role(role)
        logger.info(f"Signed-in user {identity.user_id} on auth page {path}, redirecting to {landing}")
        return AccessDecision.redirect(_with_path(landing, query))

    return AccessDecision.allow()


class AccessGateMiddleware(BaseHTTPMiddleware):
    """
    Applies evaluate_access() to every HTTP request.

    The resolved identity is stored on ``request.state.identity`` for the
    handlers downstream.
    """

    def __init__(self, app, settings: Settings, session_factory: sessionmaker):
        super().__init__(app)
        self.settings = settings
        self.session_factory = session_factory

    def _resolve_role(self, user_id: str) -> UserRole:
        db = self.session_factory()
        try:
            return classify_role(db, user_id)
        finally:
            db.close()

    async def dispatch(self, request: Request, call_next):
        identity = resolve_identity(request, self.settings)
        request.state.identity = identity

        decision = await run_in_threadpool(
            evaluate_access,
            request.url.path,
            identity,
            self._resolve_role,
            request.url.query,
        )

        if decision.action == REDIRECT:
            return RedirectResponse(url=decision.location, status_code=decision.status_code)
        if decision.action == REJECT:
            return JSONResponse(decision.body, status_code=decision.status_code)
        return await call_next(request)
