"""
Company profile drafts.

An employer fills the company form over several steps; each save stores the
whole form as one draft per (user, company). Submitting applies the draft to
the company record in a single transaction: either the company is written
and the draft deleted, or nothing changes and the draft can be submitted
again.
"""
from typing import Any, Optional

import pydantic
import structlog
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import companies
import crud
import models
import schemas
from errors import ConflictError, DraftApplyError, ForbiddenError, InvalidRoleError, NotFoundError, ValidationError
from models import CompanyRole, DraftType, UserType
from permissions import AuthContext, Permission

logger = structlog.get_logger(__name__)

# Client field name -> Company column
_FIELD_NAMES: dict[str, str] = {
    **{to_camel(name): name for name in schemas.CompanyUpdate.model_fields},
    **{name: name for name in schemas.CompanyUpdate.model_fields},
    "companyName": "name",
    "company_name": "name",
    "industry": "industries",
}
_LIST_COLUMNS = {"values", "industries", "functional_areas", "work_arrangements", "benefits", "additional_offices"}


def normalise_company_fields(draft_data: dict[str, Any]) -> dict[str, Any]:
    """Map draft keys onto Company columns, dropping keys that are not columns."""
    values = {}
    for key, value in draft_data.items():
        column = _FIELD_NAMES.get(key)
        if column is None:
            continue
        if value == "":
            value = None
        elif column in _LIST_COLUMNS and isinstance(value, str):
            value = [value]
        values[column] = value
    return values


def _validated_company_values(draft_data: dict[str, Any]) -> dict[str, Any]:
    try:
        update = schemas.CompanyUpdate.model_validate(normalise_company_fields(draft_data))
    except pydantic.ValidationError as exc:
        raise ValidationError(
            "Draft contains invalid company fields",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc
    return companies.column_values(update)


def _load_employer(db: Session, user_id: int) -> models.User:
    user = crud.get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    if user.user_type != UserType.EMPLOYER.value:
        raise InvalidRoleError(expected=UserType.EMPLOYER.value, actual=user.user_type)
    return user


def _write_draft(
    db: Session,
    draft: models.CompanyProfileDraft,
    draft_data: dict[str, Any],
    step: Optional[int],
    draft_type: DraftType,
) -> models.CompanyProfileDraft:
    if step is not None:
        draft.step = step
    draft.draft_data = dict(draft_data)
    draft.draft_type = draft_type.value
    draft.last_active = models.utcnow()
    db.add(draft)
    db.commit()
    db.refresh(draft)
    return draft


def save_draft(
    db: Session,
    user_id: int,
    draft_data: dict[str, Any],
    company_id: Optional[int] = None,
    step: Optional[int] = None,
) -> models.CompanyProfileDraft:
    """Replace the user's draft for their company (or their new-company draft)."""
    user = _load_employer(db, user_id)
    if company_id is None:
        company_id = user.company_id
    elif company_id != user.company_id:
        raise ForbiddenError("You are not a member of this company")
    draft_type = DraftType.EDIT if company_id is not None else DraftType.CREATE

    draft = crud.get_company_profile_draft(db, user_id, company_id)
    if draft is None:
        draft = models.CompanyProfileDraft(user_id=user_id, company_id=company_id, step=step or 1)
    try:
        draft = _write_draft(db, draft, draft_data, step, draft_type)
    except IntegrityError as exc:
        # Another save created this draft first; overwrite it
        db.rollback()
        draft = crud.get_company_profile_draft(db, user_id, company_id)
        if draft is None:
            raise ConflictError("Company profile draft could not be saved") from exc
        draft = _write_draft(db, draft, draft_data, step, draft_type)
    logger.info(
        "Saved company profile draft",
        user_id=user_id,
        company_id=company_id,
        draft_type=draft_type.value,
        step=draft.step,
    )
    return draft


def get_draft(db: Session, user_id: int) -> models.CompanyProfileDraft:
    user = crud.get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    draft = crud.get_company_profile_draft(db, user_id, user.company_id)
    if draft is None:
        raise NotFoundError("Company profile draft")
    return draft


def apply_draft(db: Session, user_id: int) -> Optional[models.Company]:
    """Write the user's draft to their company, creating the company if needed.

    Without a draft the user's current company (or None) is returned. Invalid
    draft fields raise ``ValidationError`` before anything is written; storage
    failures roll back the whole apply and raise ``DraftApplyError`` with the
    draft left in place.
    """
    user = crud.get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User", user_id)

    draft = crud.get_company_profile_draft(db, user_id, user.company_id, for_update=True)
    if draft is None:
        db.rollback()
        return crud.get_company(db, user.company_id) if user.company_id else None

    creating = draft.draft_type == DraftType.CREATE.value or user.company_id is None
    if not creating and not AuthContext.from_user(user).has_permission(Permission.MANAGE_COMPANY_PROFILE):
        db.rollback()
        raise ForbiddenError(
            "Insufficient permissions",
            details={"permission": Permission.MANAGE_COMPANY_PROFILE.value},
        )
    try:
        values = _validated_company_values(draft.draft_data or {})
    except ValidationError:
        db.rollback()
        raise

    draft_id = draft.id
    try:
        if creating:
            values["name"] = values.get("name") or user.company_name or companies.UNNAMED_COMPANY
            company = crud.insert_company(db, values)
            crud.link_user_to_company(db, user, company.id, CompanyRole.ADMIN.value)
        else:
            company = crud.get_company(db, user.company_id)
            if company is None:
                db.rollback()
                raise NotFoundError("Company", user.company_id)
            crud.update_company(db, company, values)
        crud.delete_company_profile_draft(db, draft)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to apply company profile draft", user_id=user_id, draft_id=draft_id)
        raise DraftApplyError() from exc

    db.refresh(company)
    logger.info(
        "Applied company profile draft",
        user_id=user_id,
        company_id=company.id,
        created=creating,
        fields=sorted(values),
    )
    return company
