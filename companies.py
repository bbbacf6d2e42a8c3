"""Company records: create, edit, slider preferences and the legacy profile merge."""
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import crud
import models
import schemas
from errors import ConflictError, NotFoundError
from models import CompanyRole, DraftType, UserType
from permissions import AuthContext, Permission, require_permission, require_user_type

logger = structlog.get_logger(__name__)

UNNAMED_COMPANY = "Unnamed Company"
_NOT_NULL_COLUMNS = {"name", "has_development_programs"}


def column_values(data: schemas.CompanyUpdate) -> dict[str, Any]:
    """Fields the client actually sent, minus nulls for non-nullable columns."""
    values = data.model_dump(exclude_unset=True)
    return {
        key: value
        for key, value in values.items()
        if value is not None or key not in _NOT_NULL_COLUMNS
    }


def get_company(db: Session, company_id: int) -> models.Company:
    company = crud.get_company(db, company_id)
    if company is None:
        raise NotFoundError("Company", company_id)
    return company


def create_company(db: Session, ctx: AuthContext, data: schemas.CompanyCreate) -> models.Company:
    """Create a company and make the caller its admin."""
    require_user_type(ctx, UserType.EMPLOYER)
    if ctx.company_id is not None:
        raise ConflictError("You already belong to a company", details={"companyId": ctx.company_id})

    user = crud.get_user_by_id(db, ctx.user_id)
    company = crud.insert_company(db, column_values(data))
    crud.link_user_to_company(db, user, company.id, CompanyRole.ADMIN.value)
    db.commit()
    db.refresh(company)
    logger.info("Company created", company_id=company.id, user_id=ctx.user_id)
    return company


def update_company(db: Session, ctx: AuthContext, data: schemas.CompanyUpdate) -> models.Company:
    require_permission(ctx, Permission.MANAGE_COMPANY_PROFILE)
    company = get_company(db, ctx.company_id)
    values = column_values(data)
    crud.update_company(db, company, values)
    db.commit()
    db.refresh(company)
    logger.info("Company updated", company_id=company.id, fields=sorted(values))
    return company


def set_slider_preferences(
    db: Session, ctx: AuthContext, preferences: schemas.SliderPreferences
) -> models.Company:
    require_permission(ctx, Permission.MANAGE_COMPANY_PROFILE)
    company = get_company(db, ctx.company_id)
    crud.update_company(db, company, {"slider_preferences": preferences.model_dump(by_alias=True)})
    db.commit()
    db.refresh(company)
    logger.info(
        "Slider preferences saved",
        company_id=company.id,
        sliders=preferences.preferred_sliders,
    )
    return company


# --- Legacy employer profiles ---
@dataclass
class MergeReport:
    migrated: int = 0
    skipped: int = 0
    failed: int = 0


def _legacy_values(profile: models.EmployerProfile) -> dict[str, Any]:
    values = {
        "name": profile.company_name,
        "website": profile.company_website,
        "headquarters": profile.headquarters,
        "year_founded": profile.year_founded,
        "size": profile.company_size,
        "industries": [profile.company_industry] if profile.company_industry else None,
        "about": profile.about_company,
        "additional_offices": profile.additional_offices,
        "mission": profile.company_mission,
        "values": profile.company_values,
        "benefits": profile.benefits,
    }
    return {key: value for key, value in values.items() if value not in (None, "", [])}


def _merge_profile(db: Session, profile: models.EmployerProfile) -> bool:
    """Fold one legacy profile into its user's company. False when there is no user."""
    user = crud.get_user_by_id(db, profile.user_id)
    if user is None:
        return False

    legacy = _legacy_values(profile)
    company = crud.get_company(db, user.company_id) if user.company_id else None
    if company is not None:
        crud.update_company(db, company, legacy)
    else:
        legacy["name"] = legacy.get("name") or user.company_name or UNNAMED_COMPANY
        company = crud.insert_company(db, legacy)
        crud.link_user_to_company(db, user, company.id, CompanyRole.ADMIN.value)

    if profile.draft_data and crud.get_company_profile_draft(db, user.id, company.id) is None:
        db.add(
            models.CompanyProfileDraft(
                user_id=user.id,
                company_id=company.id,
                draft_data=dict(profile.draft_data),
                draft_type=DraftType.EDIT.value,
                last_active=models.utcnow(),
            )
        )
    db.commit()
    logger.info("Merged employer profile", profile_id=profile.id, user_id=user.id, company_id=company.id)
    return True


def merge_legacy_employer_profiles(db: Session) -> MergeReport:
    """Move every legacy employer profile onto a company, one transaction per profile.

    Legacy values overwrite company fields only where the legacy profile has a
    value. Profiles whose user no longer exists are skipped.
    """
    report = MergeReport()
    profile_ids = [profile.id for profile in crud.get_legacy_employer_profiles(db)]
    logger.info("Merging legacy employer profiles", count=len(profile_ids))

    for profile_id in profile_ids:
        profile = db.get(models.EmployerProfile, profile_id)
        try:
            if _merge_profile(db, profile):
                report.migrated += 1
            else:
                logger.warning("Skipping employer profile without user", profile_id=profile_id)
                report.skipped += 1
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to merge employer profile", profile_id=profile_id)
            report.failed += 1
    return report
