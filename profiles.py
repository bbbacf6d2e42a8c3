"""Jobseeker profile store. Company profiles live in ``companies`` and ``company_drafts``."""
import structlog
from sqlalchemy.orm import Session

import crud
import models
import schemas
from errors import NotFoundError
from permissions import AuthContext, require_user_type

logger = structlog.get_logger(__name__)


def upsert_jobseeker_profile(
    db: Session, ctx: AuthContext, data: schemas.JobseekerProfileIn
) -> models.JobseekerProfile:
    require_user_type(ctx, models.UserType.JOBSEEKER)
    profile = crud.create_or_update_jobseeker_profile(db, ctx.user_id, data)
    logger.info("Saved jobseeker profile", user_id=ctx.user_id, sliders=len(profile.slider_values or {}))
    return profile


def get_jobseeker_profile(db: Session, user_id: int) -> models.JobseekerProfile:
    profile = crud.get_jobseeker_profile(db, user_id)
    if profile is None:
        raise NotFoundError("Jobseeker profile", user_id)
    return profile
