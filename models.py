import enum
from datetime import datetime, timezone

from sqlalchemy.orm import relationship
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    text,
)
from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserType(str, enum.Enum):
    JOBSEEKER = "jobseeker"
    EMPLOYER = "employer"


class CompanyRole(str, enum.Enum):
    ADMIN = "admin"
    RECRUITER = "recruiter"
    HIRING_MANAGER = "hiring_manager"


class MatchStatus(str, enum.Enum):
    NEW = "new"
    JOBS_SHARED = "jobs_shared"
    JOB_INTERESTED = "job_interested"
    INTERVIEW_SCHEDULED = "interview_scheduled"


# Later milestones are never downgraded by earlier ones
MATCH_STATUS_ORDER = [
    MatchStatus.NEW,
    MatchStatus.JOBS_SHARED,
    MatchStatus.JOB_INTERESTED,
    MatchStatus.INTERVIEW_SCHEDULED,
]


class InviteStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class JobStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"


class DraftType(str, enum.Enum):
    CREATE = "create"
    EDIT = "edit"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String, unique=True, index=True, nullable=False)
    cognito_sub = Column(String, unique=True, index=True, nullable=False)
    user_type = Column(String, nullable=False, default=UserType.JOBSEEKER.value)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    company_name = Column(String, nullable=True)  # free text given at signup
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True, index=True)
    company_role = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    company = relationship("Company", back_populates="members", foreign_keys=[company_id])
    jobseeker_profile = relationship("JobseekerProfile", back_populates="user", uselist=False)


class JobseekerProfile(Base):
    __tablename__ = "jobseeker_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    school = Column(String, nullable=True)
    degree_level = Column(String, nullable=True)
    major = Column(String, nullable=True)
    preferred_locations = Column(JSON, nullable=False, default=list)
    work_arrangements = Column(JSON, nullable=False, default=list)
    industries = Column(JSON, nullable=False, default=list)
    summary = Column(Text, nullable=True)
    slider_values = Column(JSON, nullable=False, default=dict)  # slider id -> 0..100
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="jobseeker_profile")


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    headquarters = Column(String, nullable=True)
    size = Column(String, nullable=True)
    year_founded = Column(Integer, nullable=True)
    website = Column(String, nullable=True)
    careers_url = Column(String, nullable=True)
    about = Column(Text, nullable=True)
    mission = Column(Text, nullable=True)
    vision = Column(Text, nullable=True)
    values = Column(JSON, nullable=True)
    industries = Column(JSON, nullable=True)
    functional_areas = Column(JSON, nullable=True)
    work_arrangements = Column(JSON, nullable=True)
    benefits = Column(JSON, nullable=True)
    additional_offices = Column(JSON, nullable=True)
    has_development_programs = Column(Boolean, nullable=False, default=False)
    development_program_duration = Column(String, nullable=True)
    development_program_description = Column(Text, nullable=True)
    # {"preferredSliders": [...], "preferredSides": {slider: "left" | "right"}}
    slider_preferences = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    members = relationship("User", back_populates="company", foreign_keys="User.company_id")
    job_postings = relationship("JobPosting", back_populates="company")


class CompanyProfileDraft(Base):
    __tablename__ = "company_profile_drafts"
    __table_args__ = (
        UniqueConstraint("user_id", "company_id", name="uq_company_profile_drafts_user_company"),
        # NULL company_ids never collide in the constraint above
        Index(
            "uq_company_profile_drafts_user_create",
            "user_id",
            unique=True,
            sqlite_where=text("company_id IS NULL"),
            postgresql_where=text("company_id IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)
    draft_data = Column(JSON, nullable=False, default=dict)
    step = Column(Integer, nullable=False, default=1)
    draft_type = Column(String, nullable=False, default=DraftType.CREATE.value)
    last_active = Column(DateTime(timezone=True), default=utcnow)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class CompanyInvite(Base):
    __tablename__ = "company_invites"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    inviter_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    email = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False, default=CompanyRole.RECRUITER.value)
    status = Column(String, nullable=False, default=InviteStatus.PENDING.value)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class JobPosting(Base):
    __tablename__ = "job_postings"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    employer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String, nullable=True)
    employment_type = Column(String, nullable=True)
    work_type = Column(String, nullable=True)
    department = Column(String, nullable=True)
    requirements = Column(JSON, nullable=False, default=list)
    responsibilities = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default=JobStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    company = relationship("Company", back_populates="job_postings")


class Swipe(Base):
    __tablename__ = "swipes"
    __table_args__ = (
        UniqueConstraint("jobseeker_id", "company_id", "swiped_by", name="uq_swipes_pair_actor"),
    )

    id = Column(Integer, primary_key=True, index=True)
    jobseeker_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    swiped_by = Column(String, nullable=False)  # UserType of the actor
    actor_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    interested = Column(Boolean, nullable=False)
    hide_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("jobseeker_id", "company_id", name="uq_matches_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    jobseeker_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default=MatchStatus.NEW.value)
    messaging_enabled = Column(Boolean, nullable=False, default=False)
    jobs_shared = Column(JSON, nullable=False, default=list)
    scheduling_enabled = Column(Boolean, nullable=False, default=False)
    job_posting_id = Column(Integer, ForeignKey("job_postings.id"), nullable=True)
    interview_scheduled_at = Column(DateTime(timezone=True), nullable=True)
    interview_status = Column(String, nullable=True)
    interview_type = Column(String, nullable=True)
    matched_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    company = relationship("Company")
    jobseeker = relationship("User", foreign_keys=[jobseeker_id])


class JobInterest(Base):
    __tablename__ = "job_interests"
    __table_args__ = (
        UniqueConstraint("match_id", "job_posting_id", name="uq_job_interests_match_job"),
    )

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(Integer, ForeignKey("matches.id"), nullable=False, index=True)
    job_posting_id = Column(Integer, ForeignKey("job_postings.id"), nullable=False)
    interested = Column(Boolean, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class EmployerProfile(Base):
    """Per-user company data that predates the companies table."""

    __tablename__ = "employer_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    company_name = Column(String, nullable=True)
    company_website = Column(String, nullable=True)
    headquarters = Column(String, nullable=True)
    year_founded = Column(Integer, nullable=True)
    company_size = Column(String, nullable=True)
    company_industry = Column(String, nullable=True)
    about_company = Column(Text, nullable=True)
    additional_offices = Column(JSON, nullable=True)
    company_mission = Column(Text, nullable=True)
    company_values = Column(JSON, nullable=True)
    benefits = Column(JSON, nullable=True)
    draft_data = Column(JSON, nullable=True)  # unfinished legacy form state
    created_at = Column(DateTime(timezone=True), default=utcnow)
