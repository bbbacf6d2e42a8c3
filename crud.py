import uuid
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

import models
import schemas


# --- User CRUD ---
def get_user_by_id(db: Session, user_id: int):
    """Get a user by their primary key ID."""
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email).first()


def create_user(db: Session, user: schemas.UserCreate):
    db_user = models.User(
        email=user.email,
        cognito_sub=user.cognito_sub or f"local-{uuid.uuid4()}",
        user_type=user.user_type.value,
        first_name=user.first_name,
        last_name=user.last_name,
        company_name=user.company_name,
    )
    db.add(db_user)
    db.flush()  # Assign ID without committing
    db.refresh(db_user)
    return db_user


def get_company_members(db: Session, company_id: int):
    return (
        db.query(models.User)
        .filter(models.User.company_id == company_id)
        .order_by(models.User.id.asc())
        .all()
    )


def link_user_to_company(db: Session, user: models.User, company_id: Optional[int], role: Optional[str]):
    """Set (or clear, with ``None``) a user's company membership. Caller commits."""
    user.company_id = company_id
    user.company_role = role
    db.add(user)
    db.flush()
    return user


# --- Jobseeker profile CRUD ---
def get_jobseeker_profile(db: Session, user_id: int):
    return (
        db.query(models.JobseekerProfile)
        .filter(models.JobseekerProfile.user_id == user_id)
        .first()
    )


def create_or_update_jobseeker_profile(
    db: Session, user_id: int, profile: schemas.JobseekerProfileIn
):
    db_profile = get_jobseeker_profile(db, user_id)
    if db_profile is None:
        db_profile = models.JobseekerProfile(user_id=user_id)
    for field, value in profile.model_dump().items():
        setattr(db_profile, field, value)
    db.add(db_profile)
    db.commit()
    db.refresh(db_profile)
    return db_profile


# --- Company CRUD ---
def get_company(db: Session, company_id: int):
    return db.query(models.Company).filter(models.Company.id == company_id).first()


def insert_company(db: Session, values: dict):
    db_company = models.Company(**values)
    db.add(db_company)
    db.flush()
    return db_company


def update_company(db: Session, company: models.Company, values: dict):
    for field, value in values.items():
        setattr(company, field, value)
    company.updated_at = models.utcnow()
    db.add(company)
    db.flush()
    return company


# --- Draft CRUD ---
def get_company_profile_draft(
    db: Session, user_id: int, company_id: Optional[int], for_update: bool = False
):
    """The single draft for (user, company); a null company_id matches the create draft."""
    query = db.query(models.CompanyProfileDraft).filter(
        models.CompanyProfileDraft.user_id == user_id
    )
    if company_id is None:
        query = query.filter(models.CompanyProfileDraft.company_id.is_(None))
    else:
        query = query.filter(models.CompanyProfileDraft.company_id == company_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def delete_company_profile_draft(db: Session, draft: models.CompanyProfileDraft):
    db.delete(draft)
    db.flush()


# --- Swipe CRUD ---
def get_swipe(db: Session, jobseeker_id: int, company_id: int, swiped_by: models.UserType):
    return (
        db.query(models.Swipe)
        .filter(
            models.Swipe.jobseeker_id == jobseeker_id,
            models.Swipe.company_id == company_id,
            models.Swipe.swiped_by == swiped_by.value,
        )
        .first()
    )


# --- Match CRUD ---
def get_match(db: Session, match_id: int):
    return db.query(models.Match).filter(models.Match.id == match_id).first()


def get_match_for_pair(db: Session, jobseeker_id: int, company_id: int):
    return (
        db.query(models.Match)
        .filter(
            models.Match.jobseeker_id == jobseeker_id,
            models.Match.company_id == company_id,
        )
        .first()
    )


def get_matches_for_jobseeker(db: Session, jobseeker_id: int):
    return (
        db.query(models.Match)
        .filter(models.Match.jobseeker_id == jobseeker_id)
        .order_by(models.Match.matched_at.desc(), models.Match.id.desc())
        .all()
    )


def get_matches_for_company(db: Session, company_id: int):
    return (
        db.query(models.Match)
        .filter(models.Match.company_id == company_id)
        .order_by(models.Match.matched_at.desc(), models.Match.id.desc())
        .all()
    )


def get_job_interest(db: Session, match_id: int, job_posting_id: int):
    return (
        db.query(models.JobInterest)
        .filter(
            models.JobInterest.match_id == match_id,
            models.JobInterest.job_posting_id == job_posting_id,
        )
        .first()
    )


# --- Job posting CRUD ---
def get_job_posting(db: Session, job_id: int):
    return db.query(models.JobPosting).filter(models.JobPosting.id == job_id).first()


def get_job_postings_by_ids(db: Session, job_ids: list[int]):
    if not job_ids:
        return []
    return db.query(models.JobPosting).filter(models.JobPosting.id.in_(job_ids)).all()


def get_job_postings_for_company(
    db: Session, company_id: int, employer_id: Optional[int] = None, status: Optional[str] = None
):
    query = db.query(models.JobPosting).filter(models.JobPosting.company_id == company_id)
    if employer_id is not None:
        query = query.filter(models.JobPosting.employer_id == employer_id)
    if status is not None:
        query = query.filter(models.JobPosting.status == status)
    return query.order_by(models.JobPosting.created_at.desc(), models.JobPosting.id.desc()).all()


# --- Invite CRUD ---
def get_invite(db: Session, invite_id: int):
    return db.query(models.CompanyInvite).filter(models.CompanyInvite.id == invite_id).first()


def get_invites_for_company(db: Session, company_id: int):
    return (
        db.query(models.CompanyInvite)
        .filter(models.CompanyInvite.company_id == company_id)
        .order_by(models.CompanyInvite.created_at.desc(), models.CompanyInvite.id.desc())
        .all()
    )


def get_pending_invite(db: Session, company_id: int, email: str):
    return (
        db.query(models.CompanyInvite)
        .filter(
            models.CompanyInvite.company_id == company_id,
            models.CompanyInvite.email == email,
            models.CompanyInvite.status == models.InviteStatus.PENDING.value,
        )
        .first()
    )


# --- Feeds ---
def get_feed_jobseekers(db: Session, company_id: int, now, limit: int):
    """Jobseekers with a profile the company may still swipe on."""
    rejected_by_jobseeker = db.query(models.Swipe.jobseeker_id).filter(
        models.Swipe.company_id == company_id,
        models.Swipe.swiped_by == models.UserType.JOBSEEKER.value,
        models.Swipe.interested.is_(False),
    )
    handled_by_company = db.query(models.Swipe.jobseeker_id).filter(
        models.Swipe.company_id == company_id,
        models.Swipe.swiped_by == models.UserType.EMPLOYER.value,
        or_(
            models.Swipe.interested.is_(True),
            models.Swipe.hide_until.is_(None),
            models.Swipe.hide_until > now,
        ),
    )
    matched = db.query(models.Match.jobseeker_id).filter(models.Match.company_id == company_id)
    return (
        db.query(models.JobseekerProfile)
        .join(models.User, models.User.id == models.JobseekerProfile.user_id)
        .filter(
            models.User.user_type == models.UserType.JOBSEEKER.value,
            models.JobseekerProfile.user_id.not_in(rejected_by_jobseeker),
            models.JobseekerProfile.user_id.not_in(handled_by_company),
            models.JobseekerProfile.user_id.not_in(matched),
        )
        .order_by(models.JobseekerProfile.id.asc())
        .limit(limit)
        .all()
    )


def get_interested_jobseeker_ids(db: Session, company_id: int) -> set[int]:
    rows = (
        db.query(models.Swipe.jobseeker_id)
        .filter(
            models.Swipe.company_id == company_id,
            models.Swipe.swiped_by == models.UserType.JOBSEEKER.value,
            models.Swipe.interested.is_(True),
        )
        .all()
    )
    return {row[0] for row in rows}


def get_feed_companies(db: Session, jobseeker_id: int, limit: int):
    """Companies the jobseeker has not swiped on yet."""
    swiped = db.query(models.Swipe.company_id).filter(
        models.Swipe.jobseeker_id == jobseeker_id,
        models.Swipe.swiped_by == models.UserType.JOBSEEKER.value,
    )
    return (
        db.query(models.Company)
        .filter(models.Company.id.not_in(swiped))
        .order_by(models.Company.id.asc())
        .limit(limit)
        .all()
    )


# --- Legacy employer profiles ---
def get_legacy_employer_profiles(db: Session):
    return db.query(models.EmployerProfile).order_by(models.EmployerProfile.id.asc()).all()
