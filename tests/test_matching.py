from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.orm import Session

import crud
import matching
import models
from conftest import add_member, ctx_for, make_company, make_job, make_jobseeker
from errors import ConflictError, ForbiddenError, InvalidRoleError, NotFoundError, ValidationError
from models import CompanyRole, MatchStatus, UserType


def create_match(db: Session, company_name: str = "Acme"):
    """A jobseeker and a company that have both swiped interested."""
    jobseeker = make_jobseeker(db)
    company, admin = make_company(db, company_name)
    matching.record_swipe(db, ctx_for(jobseeker), UserType.JOBSEEKER, company.id, True)
    outcome = matching.record_swipe(db, ctx_for(admin), UserType.EMPLOYER, jobseeker.id, True)
    return outcome.match, jobseeker, company, admin


# --- Swipes and resolution ---
def test_match_created_when_jobseeker_swipes_first(db_session: Session):
    jobseeker = make_jobseeker(db_session)
    company, admin = make_company(db_session)

    first = matching.record_swipe(db_session, ctx_for(jobseeker), UserType.JOBSEEKER, company.id, True)
    assert first.match is None
    assert first.is_new_match is False

    second = matching.record_swipe(db_session, ctx_for(admin), UserType.EMPLOYER, jobseeker.id, True)
    assert second.is_new_match is True
    assert second.match.jobseeker_id == jobseeker.id
    assert second.match.company_id == company.id
    assert second.match.status == MatchStatus.NEW.value
    assert second.match.messaging_enabled is True
    assert second.match.jobs_shared == []


def test_match_created_when_employer_swipes_first(db_session: Session):
    jobseeker = make_jobseeker(db_session)
    company, admin = make_company(db_session)

    first = matching.record_swipe(db_session, ctx_for(admin), UserType.EMPLOYER, jobseeker.id, True)
    assert first.match is None

    second = matching.record_swipe(db_session, ctx_for(jobseeker), UserType.JOBSEEKER, company.id, True)
    assert second.is_new_match is True
    assert crud.get_match_for_pair(db_session, jobseeker.id, company.id).id == second.match.id


def test_no_match_unless_both_sides_interested(db_session: Session):
    jobseeker = make_jobseeker(db_session)
    company, admin = make_company(db_session)

    matching.record_swipe(db_session, ctx_for(jobseeker), UserType.JOBSEEKER, company.id, True)
    outcome = matching.record_swipe(db_session, ctx_for(admin), UserType.EMPLOYER, jobseeker.id, False)

    assert outcome.match is None
    assert crud.get_match_for_pair(db_session, jobseeker.id, company.id) is None
    assert matching.resolve_match(db_session, jobseeker.id, company.id) is None


def test_repeat_swipe_changes_nothing(db_session: Session):
    match, jobseeker, company, admin = create_match(db_session)
    swipe = crud.get_swipe(db_session, jobseeker.id, company.id, UserType.EMPLOYER)
    updated_at = swipe.updated_at

    again = matching.record_swipe(db_session, ctx_for(admin), UserType.EMPLOYER, jobseeker.id, True)

    assert again.swipe.id == swipe.id
    assert again.swipe.updated_at == updated_at
    assert again.is_new_match is False
    assert again.match.id == match.id
    assert len(crud.get_matches_for_company(db_session, company.id)) == 1


def test_any_team_member_swipes_for_the_company(db_session: Session):
    jobseeker = make_jobseeker(db_session)
    company, admin = make_company(db_session)
    recruiter = add_member(db_session, company, CompanyRole.RECRUITER)

    matching.record_swipe(db_session, ctx_for(admin), UserType.EMPLOYER, jobseeker.id, False)
    outcome = matching.record_swipe(db_session, ctx_for(recruiter), UserType.EMPLOYER, jobseeker.id, True)
    # one row per side: the recruiter's decision replaced the admin's
    assert outcome.swipe.actor_user_id == recruiter.id
    assert outcome.swipe.interested is True
    assert outcome.swipe.hide_until is None

    outcome = matching.record_swipe(db_session, ctx_for(jobseeker), UserType.JOBSEEKER, company.id, True)
    assert outcome.is_new_match is True


def test_not_interested_after_match_keeps_match(db_session: Session):
    match, jobseeker, company, admin = create_match(db_session)

    outcome = matching.record_swipe(db_session, ctx_for(jobseeker), UserType.JOBSEEKER, company.id, False)

    assert outcome.swipe.interested is False
    assert outcome.match is None
    kept = crud.get_match_for_pair(db_session, jobseeker.id, company.id)
    assert kept is not None
    assert kept.id == match.id


def test_concurrent_resolution_reuses_existing_match(db_session: Session):
    """A resolver that missed a just-committed match falls back to reading it."""
    match, jobseeker, company, admin = create_match(db_session)
    real_lookup = crud.get_match_for_pair
    calls = []

    def stale_first(db, jobseeker_id, company_id):
        calls.append((jobseeker_id, company_id))
        if len(calls) == 1:
            return None
        return real_lookup(db, jobseeker_id, company_id)

    with patch("matching.crud.get_match_for_pair", side_effect=stale_first):
        resolved = matching.resolve_match(db_session, jobseeker.id, company.id)

    assert len(calls) == 2
    assert resolved.id == match.id
    assert len(crud.get_matches_for_jobseeker(db_session, jobseeker.id)) == 1


def _jobseeker_swipes(db: Session, jobseeker_id: int, company_id: int):
    return (
        db.query(models.Swipe)
        .filter(
            models.Swipe.jobseeker_id == jobseeker_id,
            models.Swipe.company_id == company_id,
            models.Swipe.swiped_by == UserType.JOBSEEKER.value,
        )
        .all()
    )


def test_concurrent_first_swipe_overwrites_existing_row(db_session: Session):
    """A swipe that missed a just-committed row for the same side updates that row."""
    jobseeker = make_jobseeker(db_session)
    company, admin = make_company(db_session)
    matching.record_swipe(db_session, ctx_for(jobseeker), UserType.JOBSEEKER, company.id, False)
    real_lookup = crud.get_swipe
    calls = []

    def stale_first(db, jobseeker_id, company_id, swiped_by):
        calls.append(swiped_by)
        if len(calls) == 1:
            return None
        return real_lookup(db, jobseeker_id, company_id, swiped_by)

    with patch("matching.crud.get_swipe", side_effect=stale_first):
        outcome = matching.record_swipe(db_session, ctx_for(jobseeker), UserType.JOBSEEKER, company.id, True)

    assert outcome.swipe.interested is True
    assert outcome.match is None
    rows = _jobseeker_swipes(db_session, jobseeker.id, company.id)
    assert [row.interested for row in rows] == [True]


def test_swipe_conflict_without_a_row_to_update(db_session: Session):
    jobseeker = make_jobseeker(db_session)
    company, admin = make_company(db_session)
    matching.record_swipe(db_session, ctx_for(jobseeker), UserType.JOBSEEKER, company.id, False)

    with patch("matching.crud.get_swipe", return_value=None):
        with pytest.raises(ConflictError):
            matching.record_swipe(db_session, ctx_for(jobseeker), UserType.JOBSEEKER, company.id, True)

    rows = _jobseeker_swipes(db_session, jobseeker.id, company.id)
    assert [row.interested for row in rows] == [False]


def test_swipe_requires_matching_account_type(db_session: Session):
    jobseeker = make_jobseeker(db_session)
    company, admin = make_company(db_session)

    with pytest.raises(InvalidRoleError):
        matching.record_swipe(db_session, ctx_for(jobseeker), UserType.EMPLOYER, jobseeker.id, True)
    with pytest.raises(InvalidRoleError):
        matching.record_swipe(db_session, ctx_for(admin), UserType.JOBSEEKER, company.id, True)


def test_swipe_on_unknown_target(db_session: Session):
    jobseeker = make_jobseeker(db_session)
    company, admin = make_company(db_session)

    with pytest.raises(NotFoundError):
        matching.record_swipe(db_session, ctx_for(jobseeker), UserType.JOBSEEKER, 987654, True)
    with pytest.raises(NotFoundError):
        matching.record_swipe(db_session, ctx_for(admin), UserType.EMPLOYER, 987654, True)


# --- Feeds ---
def test_employer_rejection_hides_jobseeker_until_expiry(db_session: Session):
    jobseeker = make_jobseeker(db_session)
    company, admin = make_company(db_session)
    ctx = ctx_for(admin)

    feed_ids = [entry.id for entry in matching.employer_feed(db_session, ctx, limit=1000)]
    assert jobseeker.id in feed_ids

    matching.record_swipe(db_session, ctx, UserType.EMPLOYER, jobseeker.id, False, hide_until_hours=24)
    feed_ids = [entry.id for entry in matching.employer_feed(db_session, ctx, limit=1000)]
    assert jobseeker.id not in feed_ids

    swipe = crud.get_swipe(db_session, jobseeker.id, company.id, UserType.EMPLOYER)
    swipe.hide_until = models.utcnow() - timedelta(minutes=1)
    db_session.commit()
    feed_ids = [entry.id for entry in matching.employer_feed(db_session, ctx, limit=1000)]
    assert jobseeker.id in feed_ids


def test_employer_feed_flags_interested_jobseekers(db_session: Session):
    jobseeker = make_jobseeker(db_session)
    company, admin = make_company(db_session)
    matching.record_swipe(db_session, ctx_for(jobseeker), UserType.JOBSEEKER, company.id, True)

    feed = {entry.id: entry for entry in matching.employer_feed(db_session, ctx_for(admin), limit=1000)}
    assert feed[jobseeker.id].interested_in_you is True


def test_jobseeker_feed_skips_swiped_companies(db_session: Session):
    jobseeker = make_jobseeker(db_session)
    company, admin = make_company(db_session, "Swiped Co")
    other, other_admin = make_company(db_session, "Fresh Co")
    make_job(db_session, other, other_admin, title="Data Analyst")
    ctx = ctx_for(jobseeker)

    matching.record_swipe(db_session, ctx, UserType.JOBSEEKER, company.id, False)
    feed = {entry.id: entry for entry in matching.jobseeker_feed(db_session, ctx, limit=1000)}

    assert company.id not in feed
    assert feed[other.id].positions == ["Data Analyst"]


# --- Lifecycle ---
def test_share_jobs_is_a_union(db_session: Session):
    match, jobseeker, company, admin = create_match(db_session)
    first = make_job(db_session, company, admin, title="Platform Engineer")
    second = make_job(db_session, company, admin, title="Site Reliability Engineer")
    ctx = ctx_for(admin)

    outcome = matching.share_jobs(db_session, ctx, match.id, [first.id])
    assert outcome.added == [first.id]
    assert outcome.match.status == MatchStatus.JOBS_SHARED.value

    outcome = matching.share_jobs(db_session, ctx, match.id, [first.id, second.id])
    assert outcome.added == [second.id]
    assert outcome.match.jobs_shared == [first.id, second.id]

    outcome = matching.share_jobs(db_session, ctx, match.id, [second.id])
    assert outcome.added == []
    assert outcome.match.jobs_shared == [first.id, second.id]


def test_share_jobs_rejects_other_companies_postings(db_session: Session):
    match, jobseeker, company, admin = create_match(db_session)
    other, other_admin = make_company(db_session, "Other Co")
    foreign = make_job(db_session, other, other_admin)

    with pytest.raises(ValidationError) as excinfo:
        matching.share_jobs(db_session, ctx_for(admin), match.id, [foreign.id])
    assert excinfo.value.details == {"jobPostingIds": [foreign.id]}

    with pytest.raises(ValidationError):
        matching.share_jobs(db_session, ctx_for(admin), match.id, [])


def test_share_jobs_permissions(db_session: Session):
    match, jobseeker, company, admin = create_match(db_session)
    job = make_job(db_session, company, admin)
    hiring_manager = add_member(db_session, company, CompanyRole.HIRING_MANAGER)
    outsider_company, outsider = make_company(db_session, "Outsider")

    with pytest.raises(InvalidRoleError):
        matching.share_jobs(db_session, ctx_for(jobseeker), match.id, [job.id])
    with pytest.raises(ForbiddenError):
        matching.share_jobs(db_session, ctx_for(hiring_manager), match.id, [job.id])
    with pytest.raises(ForbiddenError):
        matching.share_jobs(db_session, ctx_for(outsider), match.id, [job.id])
    with pytest.raises(NotFoundError):
        matching.share_jobs(db_session, ctx_for(admin), 987654, [job.id])


def test_job_interest_enables_scheduling(db_session: Session):
    match, jobseeker, company, admin = create_match(db_session)
    job = make_job(db_session, company, admin)
    ctx = ctx_for(jobseeker)

    with pytest.raises(ValidationError):
        matching.express_job_interest(db_session, ctx, match.id, job.id, True)

    matching.share_jobs(db_session, ctx_for(admin), match.id, [job.id])
    outcome = matching.express_job_interest(db_session, ctx, match.id, job.id, True)

    assert outcome.became_interested is True
    assert outcome.match.scheduling_enabled is True
    assert outcome.match.job_posting_id == job.id
    assert outcome.match.status == MatchStatus.JOB_INTERESTED.value

    again = matching.express_job_interest(db_session, ctx, match.id, job.id, True)
    assert again.became_interested is False
    assert again.interest.id == outcome.interest.id


def test_job_interest_only_by_the_matched_jobseeker(db_session: Session):
    match, jobseeker, company, admin = create_match(db_session)
    job = make_job(db_session, company, admin)
    matching.share_jobs(db_session, ctx_for(admin), match.id, [job.id])
    stranger = make_jobseeker(db_session)

    with pytest.raises(ForbiddenError):
        matching.express_job_interest(db_session, ctx_for(stranger), match.id, job.id, True)
    with pytest.raises(InvalidRoleError):
        matching.express_job_interest(db_session, ctx_for(admin), match.id, job.id, True)


def test_schedule_interview(db_session: Session):
    match, jobseeker, company, admin = create_match(db_session)

    scheduled = matching.schedule_interview(
        db_session, ctx_for(admin), match.id, "2026-11-02T15:30:00Z", interview_type="video"
    )

    assert scheduled.status == MatchStatus.INTERVIEW_SCHEDULED.value
    assert scheduled.interview_status == "scheduled"
    assert scheduled.interview_type == "video"
    assert models.as_utc(scheduled.interview_scheduled_at) == datetime(2026, 11, 2, 15, 30, tzinfo=timezone.utc)


def test_schedule_interview_rejects_bad_timestamp(db_session: Session):
    match, jobseeker, company, admin = create_match(db_session)

    with pytest.raises(ValidationError):
        matching.schedule_interview(db_session, ctx_for(admin), match.id, "next tuesday")

    db_session.refresh(match)
    assert match.interview_scheduled_at is None


def test_status_is_not_downgraded(db_session: Session):
    match, jobseeker, company, admin = create_match(db_session)
    job = make_job(db_session, company, admin)

    matching.schedule_interview(db_session, ctx_for(jobseeker), match.id, "2026-12-01T09:00:00+00:00")
    outcome = matching.share_jobs(db_session, ctx_for(admin), match.id, [job.id])

    assert outcome.match.status == MatchStatus.INTERVIEW_SCHEDULED.value


def test_list_matches_for_each_side(db_session: Session):
    match, jobseeker, company, admin = create_match(db_session)
    recruiter = add_member(db_session, company, CompanyRole.RECRUITER)

    assert [m.id for m in matching.list_matches(db_session, ctx_for(jobseeker))] == [match.id]
    assert [m.id for m in matching.list_matches(db_session, ctx_for(recruiter))] == [match.id]
    assert matching.get_match(db_session, ctx_for(recruiter), match.id).id == match.id

    _, stranger = make_company(db_session, "Stranger Co")
    with pytest.raises(ForbiddenError):
        matching.get_match(db_session, ctx_for(stranger), match.id)
