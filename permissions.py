"""Company roles, the permissions they grant, and the per-request caller identity."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

import models
from errors import ForbiddenError, InvalidRoleError
from models import CompanyRole, UserType


class Permission(str, enum.Enum):
    MANAGE_COMPANY_PROFILE = "manage_company_profile"
    INVITE_TEAM_MEMBERS = "invite_team_members"
    MANAGE_TEAM_MEMBERS = "manage_team_members"
    VIEW_ALL_JOB_POSTINGS = "view_all_job_postings"
    MANAGE_ALL_JOB_POSTINGS = "manage_all_job_postings"
    MANAGE_OWN_JOB_POSTINGS = "manage_own_job_postings"
    VIEW_COMPANY_STATISTICS = "view_company_statistics"
    SWIPE_CANDIDATES = "swipe_candidates"
    SHARE_JOBS = "share_jobs"
    SCHEDULE_INTERVIEWS = "schedule_interviews"


ROLE_PERMISSIONS: dict[CompanyRole, frozenset[Permission]] = {
    CompanyRole.ADMIN: frozenset(Permission),
    CompanyRole.RECRUITER: frozenset(
        {
            Permission.MANAGE_OWN_JOB_POSTINGS,
            Permission.SWIPE_CANDIDATES,
            Permission.SHARE_JOBS,
            Permission.SCHEDULE_INTERVIEWS,
        }
    ),
    CompanyRole.HIRING_MANAGER: frozenset(
        {
            Permission.MANAGE_OWN_JOB_POSTINGS,
            Permission.SWIPE_CANDIDATES,
            Permission.SCHEDULE_INTERVIEWS,
        }
    ),
}


@dataclass(frozen=True)
class AuthContext:
    """Who is calling. Built once per request and passed into every operation."""

    user_id: int
    user_type: UserType
    company_id: Optional[int] = None
    company_role: Optional[CompanyRole] = None

    @classmethod
    def from_user(cls, user: models.User) -> "AuthContext":
        return cls(
            user_id=user.id,
            user_type=UserType(user.user_type),
            company_id=user.company_id,
            company_role=CompanyRole(user.company_role) if user.company_role else None,
        )

    @property
    def is_employer(self) -> bool:
        return self.user_type == UserType.EMPLOYER

    @property
    def is_jobseeker(self) -> bool:
        return self.user_type == UserType.JOBSEEKER

    def has_permission(self, permission: Permission) -> bool:
        if not self.is_employer or self.company_id is None or self.company_role is None:
            return False
        return permission in ROLE_PERMISSIONS[self.company_role]

    def is_member_of(self, company_id: int) -> bool:
        return self.is_employer and self.company_id is not None and self.company_id == company_id


def require_user_type(ctx: AuthContext, user_type: UserType) -> None:
    if ctx.user_type != user_type:
        raise InvalidRoleError(expected=user_type.value, actual=ctx.user_type.value)


def require_company(ctx: AuthContext) -> int:
    """Return the caller's company id, or raise if they are not on a company team."""
    require_user_type(ctx, UserType.EMPLOYER)
    if ctx.company_id is None:
        raise ForbiddenError("Company membership required")
    return ctx.company_id


def require_permission(ctx: AuthContext, permission: Permission, company_id: Optional[int] = None) -> None:
    """Check the caller holds ``permission``, optionally on a specific company."""
    own_company = require_company(ctx)
    if company_id is not None and own_company != company_id:
        raise ForbiddenError("You are not a member of this company")
    if not ctx.has_permission(permission):
        raise ForbiddenError(
            "Insufficient permissions", details={"permission": permission.value}
        )
