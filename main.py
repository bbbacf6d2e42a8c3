import asyncio
from typing import List, Optional, Union

from fastapi import FastAPI, Depends, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sse_starlette.sse import EventSourceResponse
import structlog

import companies
import company_drafts
import crud
import jobs
import matching
import models
import notifications
import profiles
import schemas
import team
from auth import get_auth_context, get_current_user, verify_token
from database import SessionLocal, create_db_and_tables, get_db
from errors import MatchboardError, NotFoundError
from notifications import manager
from observability import init_observability, track_event
from permissions import AuthContext
from request_id_middleware import RequestIdMiddleware
from settings import get_settings


# Initialise observability before creating app
init_observability()
logger = structlog.get_logger(__name__)

# Create DB tables on startup
create_db_and_tables()

app = FastAPI(
    title="Matchboard",
    description="Two-sided hiring marketplace: swipes, matches and company teams",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestIdMiddleware)


@app.exception_handler(MatchboardError)
async def matchboard_error_handler(request: Request, exc: MatchboardError):
    if exc.status_code >= 500:
        logger.error("Request failed", status_code=exc.status_code, error=exc.message)
    else:
        logger.info("Request rejected", status_code=exc.status_code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, **exc.details})


# --- Notification helpers ---
async def _notify(
    db: Session,
    match: models.Match,
    event_type: str,
    jobseeker: bool = True,
    company: bool = True,
    **extra,
) -> None:
    """Publish a match event to one or both sides. Called after the commit."""
    jobseeker_ids, member_ids = matching.participants(db, match)
    recipients = (jobseeker_ids if jobseeker else []) + (member_ids if company else [])
    payload = {"matchId": match.id, "jobseekerId": match.jobseeker_id, "companyId": match.company_id, **extra}
    try:
        await manager.publish(recipients, event_type, payload)
    except Exception:
        logger.exception("Failed to publish notification", sse_event=event_type, match_id=match.id)


async def _after_swipe(db: Session, outcome: matching.SwipeOutcome, actor: models.UserType) -> schemas.SwipeResult:
    await track_event("swipe", actor=actor.value, interested=outcome.swipe.interested)
    if outcome.is_new_match:
        await track_event("match_created", match_id=outcome.match.id)
        await _notify(db, outcome.match, notifications.NEW_MATCH)
    return schemas.SwipeResult(
        swipe=schemas.Swipe.model_validate(outcome.swipe),
        match=schemas.Match.model_validate(outcome.match) if outcome.match else None,
        is_match=outcome.match is not None,
    )


# --- Authenticated current user endpoint ---
@app.get("/users/me", response_model=schemas.User, tags=["Auth"])
def get_me(current_user: models.User = Depends(get_current_user)):
    """Returns the authenticated user's database record."""
    return current_user


# --- Jobseeker profile ---
@app.post("/api/jobseeker/profile", response_model=schemas.JobseekerProfile, tags=["Profiles"])
def upsert_jobseeker_profile_endpoint(
    profile: schemas.JobseekerProfileIn,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return profiles.upsert_jobseeker_profile(db, ctx, profile)


@app.get("/api/jobseeker/profile", response_model=schemas.JobseekerProfile, tags=["Profiles"])
def get_jobseeker_profile_endpoint(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return profiles.get_jobseeker_profile(db, ctx.user_id)


# --- Swipes ---
@app.post(
    "/api/employer/swipe",
    response_model=schemas.SwipeResult,
    status_code=status.HTTP_201_CREATED,
    tags=["Swipes"],
)
async def employer_swipe_endpoint(
    body: schemas.EmployerSwipeIn,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    outcome = matching.record_swipe(
        db,
        ctx,
        models.UserType.EMPLOYER,
        body.jobseeker_id,
        body.interested,
        hide_until_hours=body.hide_until_hours,
    )
    return await _after_swipe(db, outcome, models.UserType.EMPLOYER)


@app.post(
    "/api/jobseeker/swipe",
    response_model=schemas.SwipeResult,
    status_code=status.HTTP_201_CREATED,
    tags=["Swipes"],
)
async def jobseeker_swipe_endpoint(
    body: schemas.JobseekerSwipeIn,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    outcome = matching.record_swipe(db, ctx, models.UserType.JOBSEEKER, body.employer_id, body.interested)
    return await _after_swipe(db, outcome, models.UserType.JOBSEEKER)


# --- Feeds ---
@app.get("/api/employer/matches/potential", response_model=List[schemas.FeedJobseeker], tags=["Feeds"])
def employer_feed_endpoint(
    limit: Optional[int] = None,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return matching.employer_feed(db, ctx, limit)


@app.get("/api/jobseeker/matches/potential", response_model=List[schemas.FeedCompany], tags=["Feeds"])
def jobseeker_feed_endpoint(
    limit: Optional[int] = None,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return matching.jobseeker_feed(db, ctx, limit)


# --- Matches ---
@app.get("/api/matches", response_model=List[schemas.Match], tags=["Matches"])
def list_matches_endpoint(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return matching.list_matches(db, ctx)


@app.get("/api/matches/{match_id}", response_model=schemas.Match, tags=["Matches"])
def get_match_endpoint(
    match_id: int,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return matching.get_match(db, ctx, match_id)


@app.post("/api/matches/{match_id}/share-jobs", response_model=schemas.Match, tags=["Matches"])
async def share_jobs_endpoint(
    match_id: int,
    body: schemas.ShareJobsIn,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    outcome = matching.share_jobs(db, ctx, match_id, body.job_posting_ids)
    if outcome.added:
        await track_event("jobs_shared", match_id=match_id, count=len(outcome.added))
        await _notify(
            db,
            outcome.match,
            notifications.JOB_SHARED,
            company=False,
            jobPostingIds=outcome.added,
        )
    return outcome.match


@app.post("/api/jobs/{job_posting_id}/interest", response_model=schemas.JobInterestResult, tags=["Matches"])
async def job_interest_endpoint(
    job_posting_id: int,
    body: schemas.JobInterestIn,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    match_id = body.match_id
    if match_id is None:
        match_id = matching.find_match_for_job(db, ctx, job_posting_id).id
    outcome = matching.express_job_interest(db, ctx, match_id, job_posting_id, body.interested)
    if outcome.became_interested:
        await track_event("job_interest", match_id=match_id, job_posting_id=job_posting_id)
        await _notify(
            db,
            outcome.match,
            notifications.JOB_INTEREST,
            jobseeker=False,
            jobPostingId=job_posting_id,
        )
    return schemas.JobInterestResult(
        interested=outcome.interest.interested,
        scheduling_enabled=outcome.match.scheduling_enabled,
        match=schemas.Match.model_validate(outcome.match),
    )


@app.post("/api/matches/{match_id}/schedule", response_model=schemas.Match, tags=["Matches"])
async def schedule_interview_endpoint(
    match_id: int,
    body: schemas.ScheduleInterviewIn,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    match = matching.schedule_interview(
        db,
        ctx,
        match_id,
        body.scheduled_at,
        interview_type=body.interview_type,
        interview_status=body.interview_status,
    )
    await track_event("interview_scheduled", match_id=match.id)
    # Only the other side needs to hear about it
    await _notify(
        db,
        match,
        notifications.INTERVIEW_SCHEDULED,
        jobseeker=not ctx.is_jobseeker,
        company=ctx.is_jobseeker,
        scheduledAt=match.interview_scheduled_at.isoformat(),
        interviewType=match.interview_type,
    )
    return match


# --- Company ---
@app.post(
    "/api/employer/company",
    response_model=schemas.Company,
    status_code=status.HTTP_201_CREATED,
    tags=["Company"],
)
def create_company_endpoint(
    body: schemas.CompanyCreate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return companies.create_company(db, ctx, body)


@app.put("/api/employer/company", response_model=schemas.Company, tags=["Company"])
def update_company_endpoint(
    body: schemas.CompanyUpdate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return companies.update_company(db, ctx, body)


@app.get("/api/employer/company", response_model=schemas.Company, tags=["Company"])
def get_company_endpoint(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    if ctx.company_id is None:
        raise NotFoundError("Company")
    return companies.get_company(db, ctx.company_id)


@app.post("/api/employer/company/slider-preferences", response_model=schemas.Company, tags=["Company"])
def slider_preferences_endpoint(
    body: schemas.SliderPreferences,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return companies.set_slider_preferences(db, ctx, body)


# --- Company profile drafts ---
@app.post("/api/employer/company/profile/draft", response_model=schemas.Draft, tags=["Company"])
def save_draft_endpoint(
    body: schemas.DraftIn,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return company_drafts.save_draft(db, ctx.user_id, body.draft_data, step=body.step)


@app.get("/api/employer/company/profile/draft", response_model=schemas.Draft, tags=["Company"])
def get_draft_endpoint(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return company_drafts.get_draft(db, ctx.user_id)


@app.post("/api/employer/company/profile/submit", response_model=schemas.Company, tags=["Company"])
async def submit_draft_endpoint(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    company = company_drafts.apply_draft(db, ctx.user_id)
    if company is None:
        raise NotFoundError("Company profile draft")
    await track_event("company_profile_submitted", company_id=company.id)
    return company


# --- Team & invites ---
@app.post(
    "/api/employer/company/invite",
    response_model=schemas.Invite,
    status_code=status.HTTP_201_CREATED,
    tags=["Team"],
)
async def create_invite_endpoint(
    body: schemas.InviteCreate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    invite = team.create_invite(db, ctx, body.company_id, body.email, body.role)
    await track_event("invite_sent", company_id=invite.company_id)
    return invite


@app.get("/api/employer/company/{company_id}/invites", response_model=List[schemas.Invite], tags=["Team"])
def list_invites_endpoint(
    company_id: int,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return team.list_invites(db, ctx, company_id)


@app.post("/api/employer/company/invite/{invite_id}/resend", response_model=schemas.Invite, tags=["Team"])
def resend_invite_endpoint(
    invite_id: int,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return team.resend_invite(db, ctx, invite_id)


@app.delete(
    "/api/employer/company/invite/{invite_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Team"],
)
def cancel_invite_endpoint(
    invite_id: int,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    team.cancel_invite(db, ctx, invite_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/api/employer/company/invite/{invite_id}/accept", response_model=schemas.User, tags=["Team"])
async def accept_invite_endpoint(
    invite_id: int,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    user = team.accept_invite(db, ctx, invite_id)
    await track_event("invite_accepted", company_id=user.company_id)
    return user


@app.get("/api/employer/company/{company_id}/team", response_model=List[schemas.TeamMember], tags=["Team"])
def list_team_endpoint(
    company_id: int,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return team.list_team_members(db, ctx, company_id)


@app.put(
    "/api/employer/company/{company_id}/team/{member_id}/role",
    response_model=schemas.TeamMember,
    tags=["Team"],
)
def update_member_role_endpoint(
    company_id: int,
    member_id: int,
    body: schemas.RoleUpdate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return team.update_member_role(db, ctx, company_id, member_id, body.role)


@app.delete(
    "/api/employer/company/{company_id}/team/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Team"],
)
def remove_member_endpoint(
    company_id: int,
    member_id: int,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    team.remove_member(db, ctx, company_id, member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Job postings ---
@app.post(
    "/api/employer/jobs",
    response_model=schemas.JobPosting,
    status_code=status.HTTP_201_CREATED,
    tags=["Jobs"],
)
def create_job_endpoint(
    body: schemas.JobPostingCreate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return jobs.create_job_posting(db, ctx, body)


@app.get("/api/employer/jobs", response_model=List[schemas.JobPosting], tags=["Jobs"])
def list_jobs_endpoint(
    status: Optional[models.JobStatus] = None,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return jobs.list_job_postings(db, ctx, status)


@app.get("/api/employer/jobs/{job_id}", response_model=schemas.JobPosting, tags=["Jobs"])
def get_job_endpoint(
    job_id: int,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return jobs.get_job_posting(db, ctx, job_id)


@app.put("/api/employer/jobs/{job_id}", response_model=schemas.JobPosting, tags=["Jobs"])
def update_job_endpoint(
    job_id: int,
    body: schemas.JobPostingUpdate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return jobs.update_job_posting(db, ctx, job_id, body)


@app.patch("/api/employer/jobs/{job_id}/status", response_model=schemas.JobPosting, tags=["Jobs"])
def set_job_status_endpoint(
    job_id: int,
    body: schemas.JobStatusUpdate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return jobs.set_job_status(db, ctx, job_id, body.status)


# --- SSE Endpoint --- #
@app.get("/api/notifications/stream", tags=["Notifications"])
async def stream_notifications(
    request: Request,
    token: Union[str, None] = None,
    user_id: Union[int, None] = None,
):
    """Server-Sent Events for match notifications (new_match, job_shared, ...)."""
    settings = get_settings()
    if token:
        payload = verify_token(token)
        with SessionLocal() as db:
            user = crud.get_user_by_email(db, payload.email or payload.sub)
            if not user:
                logger.warning("SSE 401: Unknown user in token")
                raise HTTPException(401, "Unknown user in token")
            user_id = user.id
    else:
        if settings.auth_enabled:
            logger.warning("SSE 401: No token provided while auth is enabled")
            raise HTTPException(401, "No token provided")
        # Local dev: trust the user_id query param
        if user_id is None:
            logger.warning("SSE 401: Missing user_id in local mode")
            raise HTTPException(401, "user_id query parameter required in local mode")
    queue = await manager.connect(user_id)

    async def event_generator():
        try:
            while True:
                message = await queue.get()
                if await request.is_disconnected():
                    logger.info("SSE client disconnected before send", user_id=user_id)
                    break
                yield message
        except asyncio.CancelledError:
            logger.info("SSE connection cancelled", user_id=user_id)
        finally:
            manager.disconnect(user_id, queue)

    return EventSourceResponse(event_generator())


# --- Main execution --- (for running with uvicorn)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
