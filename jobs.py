"""Job postings owned by a company and assigned to one of its employers."""
from typing import Optional

import structlog
from sqlalchemy.orm import Session

import crud
import models
import schemas
from errors import ForbiddenError, NotFoundError, ValidationError
from models import JobStatus
from permissions import AuthContext, Permission, require_company, require_permission

logger = structlog.get_logger(__name__)


def _can_manage(ctx: AuthContext, job: models.JobPosting) -> bool:
    if not ctx.is_member_of(job.company_id):
        return False
    if ctx.has_permission(Permission.MANAGE_ALL_JOB_POSTINGS):
        return True
    return job.employer_id == ctx.user_id and ctx.has_permission(Permission.MANAGE_OWN_JOB_POSTINGS)


def _load_managed(db: Session, ctx: AuthContext, job_id: int) -> models.JobPosting:
    job = crud.get_job_posting(db, job_id)
    if job is None:
        raise NotFoundError("Job posting", job_id)
    if not _can_manage(ctx, job):
        raise ForbiddenError("You cannot manage this job posting")
    return job


def create_job_posting(db: Session, ctx: AuthContext, data: schemas.JobPostingCreate) -> models.JobPosting:
    require_permission(ctx, Permission.MANAGE_OWN_JOB_POSTINGS)
    employer_id = ctx.user_id
    if data.assigned_employer_id is not None and data.assigned_employer_id != ctx.user_id:
        if not ctx.has_permission(Permission.MANAGE_ALL_JOB_POSTINGS):
            raise ForbiddenError("Only admins can assign postings to other team members")
        assignee = crud.get_user_by_id(db, data.assigned_employer_id)
        if assignee is None or assignee.company_id != ctx.company_id:
            raise ValidationError(
                "Assigned employer must belong to your company",
                details={"assignedEmployerId": data.assigned_employer_id},
            )
        employer_id = assignee.id

    job = models.JobPosting(
        company_id=ctx.company_id,
        employer_id=employer_id,
        **data.model_dump(exclude={"assigned_employer_id", "status"}),
        status=data.status.value,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info("Job posting created", job_id=job.id, company_id=job.company_id, employer_id=employer_id)
    return job


def list_job_postings(
    db: Session, ctx: AuthContext, status: Optional[JobStatus] = None
) -> list[models.JobPosting]:
    """All company postings for admins, otherwise the caller's own."""
    company_id = require_company(ctx)
    employer_id = None if ctx.has_permission(Permission.VIEW_ALL_JOB_POSTINGS) else ctx.user_id
    return crud.get_job_postings_for_company(
        db, company_id, employer_id=employer_id, status=status.value if status else None
    )


def get_job_posting(db: Session, ctx: AuthContext, job_id: int) -> models.JobPosting:
    job = crud.get_job_posting(db, job_id)
    if job is None:
        raise NotFoundError("Job posting", job_id)
    if not ctx.is_member_of(job.company_id):
        raise ForbiddenError("You are not a member of this company")
    return job


def update_job_posting(
    db: Session, ctx: AuthContext, job_id: int, data: schemas.JobPostingUpdate
) -> models.JobPosting:
    job = _load_managed(db, ctx, job_id)
    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field in ("title", "description", "requirements", "responsibilities"):
            continue
        setattr(job, field, value)
    db.commit()
    db.refresh(job)
    logger.info("Job posting updated", job_id=job.id, fields=sorted(changes))
    return job


def set_job_status(db: Session, ctx: AuthContext, job_id: int, status: JobStatus) -> models.JobPosting:
    """Change a posting's status. Matches that already reference it are untouched."""
    job = _load_managed(db, ctx, job_id)
    job.status = status.value
    db.commit()
    db.refresh(job)
    logger.info("Job posting status changed", job_id=job.id, status=status.value)
    return job
