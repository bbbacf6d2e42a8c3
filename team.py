"""
Company team membership and email invites.

Invites are addressed to an email and carry the role the invitee gets on
acceptance. A pending invite past ``expires_at`` is marked expired the next
time it is read or accepted; resending puts it back to pending with a fresh
expiry.
"""
from datetime import timedelta

import structlog
from sqlalchemy.orm import Session

import crud
import models
from email_service import send_invite_email
from errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models import CompanyRole, InviteStatus, UserType
from permissions import AuthContext, Permission, require_company, require_permission, require_user_type
from settings import get_settings

logger = structlog.get_logger(__name__)


def _expiry():
    return models.utcnow() + timedelta(days=get_settings().invite_expiry_days)


def _is_expired(invite: models.CompanyInvite) -> bool:
    return models.as_utc(invite.expires_at) <= models.utcnow()


def _load_invite(db: Session, invite_id: int) -> models.CompanyInvite:
    invite = crud.get_invite(db, invite_id)
    if invite is None:
        raise NotFoundError("Invite", invite_id)
    return invite


def _load_member(db: Session, company_id: int, member_id: int) -> models.User:
    member = crud.get_user_by_id(db, member_id)
    if member is None or member.company_id != company_id:
        raise NotFoundError("Team member", member_id)
    return member


def _send(db: Session, invite: models.CompanyInvite) -> bool:
    company = crud.get_company(db, invite.company_id)
    sent = send_invite_email(invite.email, company.name, invite.role, invite.id)
    if not sent:
        logger.warning("Invite email not delivered", invite_id=invite.id, email=invite.email)
    return sent


# --- Team ---
def list_team_members(db: Session, ctx: AuthContext, company_id: int) -> list[models.User]:
    if require_company(ctx) != company_id:
        raise ForbiddenError("You are not a member of this company")
    return crud.get_company_members(db, company_id)


def update_member_role(
    db: Session, ctx: AuthContext, company_id: int, member_id: int, role: CompanyRole
) -> models.User:
    require_permission(ctx, Permission.MANAGE_TEAM_MEMBERS, company_id)
    if member_id == ctx.user_id:
        raise ValidationError("You cannot change your own role")
    member = _load_member(db, company_id, member_id)
    crud.link_user_to_company(db, member, company_id, role.value)
    db.commit()
    db.refresh(member)
    logger.info("Team member role changed", company_id=company_id, member_id=member_id, role=role.value)
    return member


def remove_member(db: Session, ctx: AuthContext, company_id: int, member_id: int) -> None:
    require_permission(ctx, Permission.MANAGE_TEAM_MEMBERS, company_id)
    if member_id == ctx.user_id:
        raise ValidationError("You cannot remove yourself from the company")
    member = _load_member(db, company_id, member_id)
    crud.link_user_to_company(db, member, None, None)
    db.commit()
    logger.info("Team member removed", company_id=company_id, member_id=member_id)


# --- Invites ---
def create_invite(
    db: Session, ctx: AuthContext, company_id: int, email: str, role: CompanyRole
) -> models.CompanyInvite:
    """Invite ``email`` to the company. The email is sent after the invite is stored."""
    require_permission(ctx, Permission.INVITE_TEAM_MEMBERS, company_id)
    if crud.get_company(db, company_id) is None:
        raise NotFoundError("Company", company_id)
    email = email.strip().lower()

    existing = crud.get_user_by_email(db, email)
    if existing is not None and existing.company_id == company_id:
        raise ConflictError("User is already a member of this company", details={"email": email})

    pending = crud.get_pending_invite(db, company_id, email)
    if pending is not None:
        if not _is_expired(pending):
            raise ConflictError("An invite is already pending for this email", details={"inviteId": pending.id})
        pending.status = InviteStatus.EXPIRED.value

    invite = models.CompanyInvite(
        company_id=company_id,
        inviter_id=ctx.user_id,
        email=email,
        role=role.value,
        status=InviteStatus.PENDING.value,
        expires_at=_expiry(),
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)
    logger.info("Invite created", invite_id=invite.id, company_id=company_id, role=role.value)
    _send(db, invite)
    return invite


def list_invites(db: Session, ctx: AuthContext, company_id: int) -> list[models.CompanyInvite]:
    require_permission(ctx, Permission.INVITE_TEAM_MEMBERS, company_id)
    invites = crud.get_invites_for_company(db, company_id)
    lapsed = [i for i in invites if i.status == InviteStatus.PENDING.value and _is_expired(i)]
    if lapsed:
        for invite in lapsed:
            invite.status = InviteStatus.EXPIRED.value
        db.commit()
        logger.info("Marked invites expired", company_id=company_id, count=len(lapsed))
    return invites


def resend_invite(db: Session, ctx: AuthContext, invite_id: int) -> models.CompanyInvite:
    invite = _load_invite(db, invite_id)
    require_permission(ctx, Permission.INVITE_TEAM_MEMBERS, invite.company_id)
    if invite.status == InviteStatus.ACCEPTED.value:
        raise ValidationError("Only pending or expired invites can be resent")

    invite.status = InviteStatus.PENDING.value
    invite.expires_at = _expiry()
    db.commit()
    db.refresh(invite)
    logger.info("Invite resent", invite_id=invite.id)
    _send(db, invite)
    return invite


def cancel_invite(db: Session, ctx: AuthContext, invite_id: int) -> None:
    invite = _load_invite(db, invite_id)
    require_permission(ctx, Permission.INVITE_TEAM_MEMBERS, invite.company_id)
    db.delete(invite)
    db.commit()
    logger.info("Invite cancelled", invite_id=invite_id)


def accept_invite(db: Session, ctx: AuthContext, invite_id: int) -> models.User:
    """Join the invite's company with the invite's role."""
    invite = _load_invite(db, invite_id)
    require_user_type(ctx, UserType.EMPLOYER)
    user = crud.get_user_by_id(db, ctx.user_id)
    if invite.email.lower() != user.email.lower():
        raise ForbiddenError("This invite was sent to a different email address")
    if invite.status != InviteStatus.PENDING.value:
        raise ValidationError("Invite is no longer pending", details={"status": invite.status})
    if _is_expired(invite):
        invite.status = InviteStatus.EXPIRED.value
        db.commit()
        raise ValidationError("Invite has expired")
    if user.company_id is not None:
        raise ConflictError("You already belong to a company", details={"companyId": user.company_id})

    create_draft = crud.get_company_profile_draft(db, user.id, None)
    if create_draft is not None:
        # The user joins an existing company instead of creating one
        logger.info("Discarded new-company draft", user_id=user.id, draft_id=create_draft.id)
        crud.delete_company_profile_draft(db, create_draft)
    crud.link_user_to_company(db, user, invite.company_id, invite.role)
    invite.status = InviteStatus.ACCEPTED.value
    db.commit()
    db.refresh(user)
    logger.info("Invite accepted", invite_id=invite.id, user_id=user.id, company_id=invite.company_id)
    return user
