from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from models import CompanyRole, JobStatus, UserType


class CamelModel(BaseModel):
    """Wire models use camelCase; Python code uses snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# --- Users ---
class UserCreate(CamelModel):
    email: str
    cognito_sub: Optional[str] = None
    user_type: UserType = UserType.JOBSEEKER
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None


class User(CamelModel):
    id: int
    email: str
    user_type: UserType
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None
    company_id: Optional[int] = None
    company_role: Optional[CompanyRole] = None


# --- Jobseeker profiles ---
class JobseekerProfileIn(CamelModel):
    school: Optional[str] = None
    degree_level: Optional[str] = None
    major: Optional[str] = None
    preferred_locations: List[str] = []
    work_arrangements: List[str] = []
    industries: List[str] = []
    summary: Optional[str] = None
    slider_values: Dict[str, int] = {}

    @field_validator("slider_values")
    @classmethod
    def _sliders_in_range(cls, value: Dict[str, int]) -> Dict[str, int]:
        for slider_id, position in value.items():
            if not 0 <= position <= 100:
                raise ValueError(f"slider {slider_id!r} must be between 0 and 100")
        return value


class JobseekerProfile(JobseekerProfileIn):
    id: int
    user_id: int
    updated_at: Optional[datetime] = None


# --- Companies ---
class CompanyFields(CamelModel):
    name: Optional[str] = None
    headquarters: Optional[str] = None
    size: Optional[str] = None
    year_founded: Optional[int] = None
    website: Optional[str] = None
    careers_url: Optional[str] = None
    about: Optional[str] = None
    mission: Optional[str] = None
    vision: Optional[str] = None
    values: Optional[List[str]] = None
    industries: Optional[List[str]] = None
    functional_areas: Optional[List[str]] = None
    work_arrangements: Optional[List[str]] = None
    benefits: Optional[List[str]] = None
    additional_offices: Optional[List[str]] = None
    has_development_programs: Optional[bool] = None
    development_program_duration: Optional[str] = None
    development_program_description: Optional[str] = None


class CompanyUpdate(CompanyFields):
    name: Optional[str] = Field(default=None, min_length=1)
    year_founded: Optional[int] = Field(default=None, ge=1800, le=2100)

    @field_validator("website", "careers_url")
    @classmethod
    def _http_url(cls, value: Optional[str]) -> Optional[str]:
        if value and not value.startswith("http"):
            raise ValueError("must be an http(s) URL")
        return value


class CompanyCreate(CompanyUpdate):
    name: str = Field(min_length=1)


class SliderPreferences(CamelModel):
    preferred_sliders: List[str] = Field(default_factory=list, max_length=3)
    preferred_sides: Dict[str, Literal["left", "right"]] = {}

    @model_validator(mode="after")
    def _every_slider_has_a_side(self) -> "SliderPreferences":
        if len(set(self.preferred_sliders)) != len(self.preferred_sliders):
            raise ValueError("preferred sliders must be unique")
        missing = [s for s in self.preferred_sliders if s not in self.preferred_sides]
        if missing:
            raise ValueError(f"select a preferred side for: {', '.join(missing)}")
        extra = [s for s in self.preferred_sides if s not in self.preferred_sliders]
        if extra:
            raise ValueError(f"sides given for unselected sliders: {', '.join(extra)}")
        return self


class Company(CompanyFields):
    id: int
    name: str
    slider_preferences: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# --- Drafts ---
class DraftIn(CamelModel):
    draft_data: Dict[str, Any]
    step: Optional[int] = Field(default=None, ge=1)


class Draft(CamelModel):
    id: int
    user_id: int
    company_id: Optional[int] = None
    draft_data: Dict[str, Any]
    step: int
    draft_type: str
    last_active: Optional[datetime] = None


# --- Swipes & matches ---
class JobseekerSwipeIn(CamelModel):
    employer_id: int  # company id
    interested: bool


class EmployerSwipeIn(CamelModel):
    jobseeker_id: int
    interested: bool
    hide_until_hours: Optional[int] = Field(default=None, ge=0)


class Swipe(CamelModel):
    id: int
    jobseeker_id: int
    company_id: int
    swiped_by: UserType
    interested: bool
    hide_until: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Match(CamelModel):
    id: int
    jobseeker_id: int
    company_id: int
    status: str
    messaging_enabled: bool
    jobs_shared: List[int] = []
    scheduling_enabled: bool
    job_posting_id: Optional[int] = None
    interview_scheduled_at: Optional[datetime] = None
    interview_status: Optional[str] = None
    interview_type: Optional[str] = None
    matched_at: Optional[datetime] = None


class SwipeResult(CamelModel):
    swipe: Swipe
    match: Optional[Match] = None
    is_match: bool = False


class ShareJobsIn(CamelModel):
    job_posting_ids: List[int]


class ScheduleInterviewIn(CamelModel):
    scheduled_at: str  # ISO-8601, parsed by the lifecycle manager
    interview_status: Optional[str] = "scheduled"
    interview_type: Optional[str] = "video"


class JobInterestIn(CamelModel):
    interested: bool
    match_id: Optional[int] = None


class JobInterestResult(CamelModel):
    interested: bool
    scheduling_enabled: bool
    match: Match


class FeedJobseeker(CamelModel):
    id: int
    school: Optional[str] = None
    degree_level: Optional[str] = None
    major: Optional[str] = None
    preferred_locations: List[str] = []
    work_arrangements: List[str] = []
    slider_values: Dict[str, int] = {}
    interested_in_you: bool = False


class FeedCompany(CamelModel):
    id: int
    name: str
    headquarters: Optional[str] = None
    about: Optional[str] = None
    positions: List[str] = []


# --- Team & invites ---
class InviteCreate(CamelModel):
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    role: CompanyRole = CompanyRole.RECRUITER
    company_id: int


class Invite(CamelModel):
    id: int
    company_id: int
    email: str
    role: CompanyRole
    status: str
    expires_at: datetime
    created_at: Optional[datetime] = None


class TeamMember(CamelModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_role: Optional[CompanyRole] = None
    created_at: Optional[datetime] = None


class RoleUpdate(CamelModel):
    role: CompanyRole


# --- Job postings ---
class JobPostingCreate(CamelModel):
    title: str = Field(min_length=3)
    description: str = Field(min_length=1)
    location: Optional[str] = None
    employment_type: Optional[str] = None
    work_type: Optional[str] = None
    department: Optional[str] = None
    requirements: List[str] = []
    responsibilities: List[str] = []
    status: JobStatus = JobStatus.ACTIVE
    assigned_employer_id: Optional[int] = None


class JobPostingUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=3)
    description: Optional[str] = None
    location: Optional[str] = None
    employment_type: Optional[str] = None
    work_type: Optional[str] = None
    department: Optional[str] = None
    requirements: Optional[List[str]] = None
    responsibilities: Optional[List[str]] = None


class JobStatusUpdate(CamelModel):
    status: JobStatus


class JobPosting(CamelModel):
    id: int
    company_id: int
    employer_id: int
    title: str
    description: str
    location: Optional[str] = None
    employment_type: Optional[str] = None
    work_type: Optional[str] = None
    department: Optional[str] = None
    requirements: List[str] = []
    responsibilities: List[str] = []
    status: JobStatus
    created_at: Optional[datetime] = None
