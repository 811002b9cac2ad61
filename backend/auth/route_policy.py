"""
Route classification for the access gate.

Every request path falls into exactly one RouteCategory. Checks run from the
most specific category to the least specific, so a manager-only page is never
reported as merely auth-required.
"""

import enum
from typing import Iterable

CRON_GENERATE_TASKS_PATH = "/api/cron/generate-tasks"
DASHBOARD_ROOT = "/dashboard"
API_ROOT = "/api"
LOGIN_PATH = "/auth/login"

# Team members may still reach /dashboard/notifications and /dashboard/team-member
MANAGER_ONLY_ROUTES = (
    "/dashboard/vision",
    "/dashboard/strategy",
    "/dashboard/execution",
    "/dashboard/reviews",
    "/dashboard/team",
    "/dashboard/calendar",
    "/dashboard/analytics",
    "/dashboard/recurring-tasks",
    "/dashboard/templates",
    "/dashboard/settings",
)

AUTH_PAGES = (
    LOGIN_PATH,
    "/auth/sign-up",
    "/auth/accept-invite",
)


class RouteCategory(str, enum.Enum):
    public = "public"
    auth_required = "auth_required"
    manager_only = "manager_only"
    main_landing = "main_landing"
    self_authenticating = "self_authenticating"
    auth_page = "auth_page"


def path_has_prefix(path: str, prefix: str) -> bool:
    """
    Segment-aware prefix match.

    "/dashboard/team" matches "/dashboard/team" and "/dashboard/team/x" but
    not "/dashboard/team-member".
    """
    if path == prefix:
        return True
    return path.startswith(prefix.rstrip("/") + "/")


def _matches_any(path: str, prefixes: Iterable[str]) -> bool:
    return any(path_has_prefix(path, prefix) for prefix in prefixes)


def is_api_path(path: str) -> bool:
    return path_has_prefix(path, API_ROOT)


def classify_route(path: str) -> RouteCategory:
    """
    Classify a request path.

    Args:
        path: URL path of the request, without query string

    Returns:
        The RouteCategory for the path

    Example:
        >>> classify_route("/dashboard/team")
        <RouteCategory.manager_only: 'manager_only'>
        >>> classify_route("/dashboard/team-member")
        <RouteCategory.auth_required: 'auth_required'>
    """
    if path == CRON_GENERATE_TASKS_PATH:
        return RouteCategory.self_authenticating
    if path == DASHBOARD_ROOT:
        return RouteCategory.main_landing
    if _matches_any(path, MANAGER_ONLY_ROUTES):
        return RouteCategory.manager_only
    if path_has_prefix(path, DASHBOARD_ROOT) or is_api_path(path):
        return RouteCategory.auth_required
    if _matches_any(path, AUTH_PAGES):
        return RouteCategory.auth_page
    return RouteCategory.public


def requires_authentication(category: RouteCategory) -> bool:
    return category in (
        RouteCategory.auth_required,
        RouteCategory.manager_only,
        RouteCategory.main_landing,
    )
