from pydantic import BaseModel, EmailStr
from datetime import datetime, date
from typing import Any, Optional, List

from auth.roles import UserRole


class CurrentUserResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    role: UserRole
    landing_path: str


# Recurring task generation schemas
class GenerationResult(BaseModel):
    success: bool = True
    message: str
    data: Any = None


class ErrorResponse(BaseModel):
    error: str


# Page schemas
class PageResponse(BaseModel):
    """JSON descriptor for a server-rendered page."""

    page: str
    title: str
    user_id: Optional[str] = None


class DailyDashboardPage(PageResponse):
    today: date


class ManagerInfo(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None

    class Config:
        from_attributes = True


class TeamMembership(BaseModel):
    id: str
    email: EmailStr
    full_name: Optional[str] = None
    invite_accepted_at: Optional[datetime] = None
    manager: ManagerInfo

    class Config:
        from_attributes = True


class TeamMemberDashboardPage(PageResponse):
    memberships: List[TeamMembership]


class HomePage(PageResponse):
    sections: List[str]


class InvitePage(PageResponse):
    """Accept-invite page; email and full_name are set only for a pending invite."""

    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
