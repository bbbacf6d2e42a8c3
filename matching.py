"""
Swipe-to-match workflow.

* A jobseeker swipes on a company; a company team member swipes on a
  jobseeker. Each side has exactly one swipe row per pair and re-swiping
  overwrites it.
* After every swipe the pair is resolved: when both sides are interested a
  single Match row is created. The unique constraint on
  (jobseeker_id, company_id) is what keeps concurrent resolutions from
  creating two rows; the loser reads the winner's row back.
* A match then moves through independent milestones: jobs shared, interest
  in a shared job (which enables scheduling) and a scheduled interview.
* Swiping not-interested after a match does not remove the match.

Every function takes the caller as an explicit ``AuthContext``; notifications
and metrics are left to the HTTP layer so they happen after the commit.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import crud
import models
import schemas
from errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models import MatchStatus, UserType
from permissions import AuthContext, Permission, require_permission, require_user_type
from settings import get_settings

logger = structlog.get_logger(__name__)


@dataclass
class SwipeOutcome:
    swipe: models.Swipe
    match: Optional[models.Match] = None
    is_new_match: bool = False


@dataclass
class ShareOutcome:
    match: models.Match
    added: list[int]


@dataclass
class InterestOutcome:
    interest: models.JobInterest
    match: models.Match
    became_interested: bool


# --- Swipe recorder ---
def _require_jobseeker_profile(db: Session, jobseeker_id: int) -> models.JobseekerProfile:
    profile = crud.get_jobseeker_profile(db, jobseeker_id)
    if profile is None:
        raise NotFoundError("Jobseeker profile", jobseeker_id)
    return profile


def _require_company_record(db: Session, company_id: int) -> models.Company:
    company = crud.get_company(db, company_id)
    if company is None:
        raise NotFoundError("Company", company_id)
    return company


def _save_swipe(
    db: Session, swipe: models.Swipe, actor_user_id: int, interested: bool, hide_until: Optional[datetime]
) -> models.Swipe:
    swipe.actor_user_id = actor_user_id
    swipe.interested = interested
    swipe.hide_until = hide_until
    db.add(swipe)
    db.commit()
    db.refresh(swipe)
    return swipe


def _unchanged(swipe: Optional[models.Swipe], interested: bool) -> bool:
    """Same decision as stored, and any rejection hide period is still running."""
    if swipe is None or swipe.interested != interested:
        return False
    return swipe.hide_until is None or models.as_utc(swipe.hide_until) > models.utcnow()


def record_swipe(
    db: Session,
    ctx: AuthContext,
    actor_role: UserType,
    target_id: int,
    interested: bool,
    hide_until_hours: Optional[int] = None,
) -> SwipeOutcome:
    """Record one side's decision on the other and resolve the pair.

    ``target_id`` is a company id for jobseekers and a jobseeker user id for
    employers. Repeating an identical swipe writes nothing unless it renews
    a rejection whose hide period has lapsed.
    """
    require_user_type(ctx, actor_role)
    if actor_role == UserType.EMPLOYER:
        require_permission(ctx, Permission.SWIPE_CANDIDATES)
        jobseeker_id, company_id = target_id, ctx.company_id
    else:
        jobseeker_id, company_id = ctx.user_id, target_id

    _require_jobseeker_profile(db, jobseeker_id)
    _require_company_record(db, company_id)

    swipe = crud.get_swipe(db, jobseeker_id, company_id, actor_role)
    if _unchanged(swipe, interested):
        logger.info(
            "Swipe unchanged",
            jobseeker_id=jobseeker_id,
            company_id=company_id,
            swiped_by=actor_role.value,
            interested=interested,
        )
    else:
        if swipe is None:
            swipe = models.Swipe(
                jobseeker_id=jobseeker_id,
                company_id=company_id,
                swiped_by=actor_role.value,
            )
        hide_until = None
        if actor_role == UserType.EMPLOYER and not interested:
            hours = hide_until_hours
            if hours is None:
                hours = get_settings().employer_reject_hide_hours
            hide_until = models.utcnow() + timedelta(hours=hours)
        try:
            swipe = _save_swipe(db, swipe, ctx.user_id, interested, hide_until)
        except IntegrityError as exc:
            # Another request inserted this side's first swipe for the pair
            db.rollback()
            swipe = crud.get_swipe(db, jobseeker_id, company_id, actor_role)
            if swipe is None:
                raise ConflictError("Swipe could not be recorded") from exc
            swipe = _save_swipe(db, swipe, ctx.user_id, interested, hide_until)
        logger.info(
            "Swipe recorded",
            jobseeker_id=jobseeker_id,
            company_id=company_id,
            swiped_by=actor_role.value,
            interested=interested,
        )

    match, created = _resolve(db, jobseeker_id, company_id)
    return SwipeOutcome(swipe=swipe, match=match, is_new_match=created)


# --- Match resolver ---
def _resolve(db: Session, jobseeker_id: int, company_id: int) -> tuple[Optional[models.Match], bool]:
    jobseeker_swipe = crud.get_swipe(db, jobseeker_id, company_id, UserType.JOBSEEKER)
    employer_swipe = crud.get_swipe(db, jobseeker_id, company_id, UserType.EMPLOYER)
    if not (
        jobseeker_swipe is not None
        and jobseeker_swipe.interested
        and employer_swipe is not None
        and employer_swipe.interested
    ):
        return None, False

    existing = crud.get_match_for_pair(db, jobseeker_id, company_id)
    if existing is not None:
        return existing, False

    match = models.Match(
        jobseeker_id=jobseeker_id,
        company_id=company_id,
        status=MatchStatus.NEW.value,
        messaging_enabled=True,
        jobs_shared=[],
    )
    db.add(match)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        existing = crud.get_match_for_pair(db, jobseeker_id, company_id)
        if existing is None:
            raise ConflictError("Match could not be created") from exc
        logger.info("Match created concurrently, using existing", match_id=existing.id)
        return existing, False

    db.refresh(match)
    logger.info("Match created", match_id=match.id, jobseeker_id=jobseeker_id, company_id=company_id)
    return match, True


def resolve_match(db: Session, jobseeker_id: int, company_id: int) -> Optional[models.Match]:
    """Return the pair's match, creating it if both sides are interested."""
    match, _ = _resolve(db, jobseeker_id, company_id)
    return match


# --- Match access ---
def _load_match(db: Session, match_id: int) -> models.Match:
    match = crud.get_match(db, match_id)
    if match is None:
        raise NotFoundError("Match", match_id)
    return match


def _require_party(ctx: AuthContext, match: models.Match, permission: Optional[Permission] = None) -> None:
    if ctx.is_jobseeker:
        if match.jobseeker_id != ctx.user_id:
            raise ForbiddenError("You are not a party to this match")
        return
    if not ctx.is_member_of(match.company_id):
        raise ForbiddenError("You are not a party to this match")
    if permission is not None and not ctx.has_permission(permission):
        raise ForbiddenError("Insufficient permissions", details={"permission": permission.value})


def _advance_status(match: models.Match, status: MatchStatus) -> None:
    current = MatchStatus(match.status)
    if models.MATCH_STATUS_ORDER.index(status) > models.MATCH_STATUS_ORDER.index(current):
        match.status = status.value


def get_match(db: Session, ctx: AuthContext, match_id: int) -> models.Match:
    match = _load_match(db, match_id)
    _require_party(ctx, match)
    return match


def list_matches(db: Session, ctx: AuthContext) -> list[models.Match]:
    if ctx.is_jobseeker:
        return crud.get_matches_for_jobseeker(db, ctx.user_id)
    if ctx.company_id is None:
        raise ForbiddenError("Company membership required")
    return crud.get_matches_for_company(db, ctx.company_id)


def find_match_for_job(db: Session, ctx: AuthContext, job_posting_id: int) -> models.Match:
    """The caller's match with the company that owns ``job_posting_id``."""
    require_user_type(ctx, UserType.JOBSEEKER)
    job = crud.get_job_posting(db, job_posting_id)
    if job is None:
        raise NotFoundError("Job posting", job_posting_id)
    match = crud.get_match_for_pair(db, ctx.user_id, job.company_id)
    if match is None:
        raise NotFoundError("Match for job posting", job_posting_id)
    return match


def participants(db: Session, match: models.Match) -> tuple[list[int], list[int]]:
    """(jobseeker user ids, company member user ids) for notifications."""
    members = [user.id for user in crud.get_company_members(db, match.company_id)]
    return [match.jobseeker_id], members


# --- Lifecycle ---
def share_jobs(db: Session, ctx: AuthContext, match_id: int, job_posting_ids: list[int]) -> ShareOutcome:
    """Attach job postings to a match. Sharing is a union: ids already shared are skipped."""
    match = _load_match(db, match_id)
    require_user_type(ctx, UserType.EMPLOYER)
    _require_party(ctx, match, Permission.SHARE_JOBS)
    if not job_posting_ids:
        raise ValidationError("At least one job posting is required")

    requested = list(dict.fromkeys(job_posting_ids))
    owned = {
        job.id
        for job in crud.get_job_postings_by_ids(db, requested)
        if job.company_id == match.company_id
    }
    unknown = [job_id for job_id in requested if job_id not in owned]
    if unknown:
        raise ValidationError(
            "Job postings do not belong to this company",
            details={"jobPostingIds": unknown},
        )

    shared = list(match.jobs_shared or [])
    added = [job_id for job_id in requested if job_id not in shared]
    if added:
        match.jobs_shared = shared + added
        _advance_status(match, MatchStatus.JOBS_SHARED)
        db.commit()
        db.refresh(match)
    logger.info("Jobs shared", match_id=match.id, added=added, total=len(match.jobs_shared))
    return ShareOutcome(match=match, added=added)


def express_job_interest(
    db: Session, ctx: AuthContext, match_id: int, job_posting_id: int, interested: bool
) -> InterestOutcome:
    """Record the jobseeker's interest in a job shared on the match.

    Turning interest on (from off or unset) enables scheduling on the match;
    that signal is advisory and nothing later depends on it.
    """
    match = _load_match(db, match_id)
    require_user_type(ctx, UserType.JOBSEEKER)
    _require_party(ctx, match)

    job = crud.get_job_posting(db, job_posting_id)
    if job is None or job.company_id != match.company_id:
        raise NotFoundError("Job posting", job_posting_id)
    if job_posting_id not in (match.jobs_shared or []):
        raise ValidationError("Job posting has not been shared with this match")

    interest = crud.get_job_interest(db, match.id, job_posting_id)
    was_interested = interest is not None and interest.interested
    if interest is None:
        interest = models.JobInterest(match_id=match.id, job_posting_id=job_posting_id)
    interest.interested = interested
    db.add(interest)

    became_interested = interested and not was_interested
    if became_interested:
        match.scheduling_enabled = True
        match.job_posting_id = job_posting_id
        _advance_status(match, MatchStatus.JOB_INTERESTED)
    db.commit()
    db.refresh(interest)
    db.refresh(match)
    logger.info(
        "Job interest recorded",
        match_id=match.id,
        job_posting_id=job_posting_id,
        interested=interested,
        scheduling_enabled=match.scheduling_enabled,
    )
    return InterestOutcome(interest=interest, match=match, became_interested=became_interested)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except (AttributeError, ValueError) as exc:
            raise ValidationError(
                "scheduledAt must be an ISO-8601 timestamp", details={"scheduledAt": value}
            ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def schedule_interview(
    db: Session,
    ctx: AuthContext,
    match_id: int,
    scheduled_at: Union[str, datetime],
    interview_type: Optional[str] = None,
    interview_status: Optional[str] = "scheduled",
) -> models.Match:
    """Set the match's interview time, replacing any earlier one. Past times are accepted."""
    match = _load_match(db, match_id)
    _require_party(ctx, match, Permission.SCHEDULE_INTERVIEWS)
    when = parse_timestamp(scheduled_at)

    match.interview_scheduled_at = when
    match.interview_status = interview_status or "scheduled"
    match.interview_type = interview_type
    _advance_status(match, MatchStatus.INTERVIEW_SCHEDULED)
    db.commit()
    db.refresh(match)
    logger.info("Interview scheduled", match_id=match.id, scheduled_at=when.isoformat())
    return match


# --- Feeds ---
def employer_feed(db: Session, ctx: AuthContext, limit: Optional[int] = None) -> list[schemas.FeedJobseeker]:
    """Jobseekers the caller's company can still swipe on.

    Hidden: jobseekers who passed on the company, jobseekers the company
    liked or already matched, and rejections whose hide period is running.
    """
    require_permission(ctx, Permission.SWIPE_CANDIDATES)
    limit = limit or get_settings().feed_page_size
    profiles = crud.get_feed_jobseekers(db, ctx.company_id, models.utcnow(), limit)
    interested = crud.get_interested_jobseeker_ids(db, ctx.company_id)
    return [
        schemas.FeedJobseeker(
            id=profile.user_id,
            school=profile.school,
            degree_level=profile.degree_level,
            major=profile.major,
            preferred_locations=profile.preferred_locations or [],
            work_arrangements=profile.work_arrangements or [],
            slider_values=profile.slider_values or {},
            interested_in_you=profile.user_id in interested,
        )
        for profile in profiles
    ]


def jobseeker_feed(db: Session, ctx: AuthContext, limit: Optional[int] = None) -> list[schemas.FeedCompany]:
    require_user_type(ctx, UserType.JOBSEEKER)
    limit = limit or get_settings().feed_page_size
    feed = []
    for company in crud.get_feed_companies(db, ctx.user_id, limit):
        active = crud.get_job_postings_for_company(db, company.id, status=models.JobStatus.ACTIVE.value)
        feed.append(
            schemas.FeedCompany(
                id=company.id,
                name=company.name,
                headquarters=company.headquarters,
                about=company.about,
                positions=[job.title for job in active[:5]],
            )
        )
    return feed
