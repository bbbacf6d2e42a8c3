from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.orm import Session

import company_drafts
import crud
import models
import team
from conftest import add_member, ctx_for, make_company, make_user
from errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models import CompanyRole, InviteStatus, UserType


@pytest.fixture
def sent_emails():
    with patch("team.send_invite_email", return_value=True) as mock_send:
        yield mock_send


def test_create_invite_sends_email(db_session: Session, sent_emails):
    company, admin = make_company(db_session, "Invite Co")

    invite = team.create_invite(db_session, ctx_for(admin), company.id, "New.Hire@Example.com ", CompanyRole.RECRUITER)

    assert invite.email == "new.hire@example.com"
    assert invite.status == InviteStatus.PENDING.value
    assert invite.inviter_id == admin.id
    assert models.as_utc(invite.expires_at) > models.utcnow() + timedelta(days=6)
    sent_emails.assert_called_once_with("new.hire@example.com", "Invite Co", "recruiter", invite.id)


def test_invite_survives_email_failure(db_session: Session):
    company, admin = make_company(db_session)

    with patch("team.send_invite_email", return_value=False):
        invite = team.create_invite(db_session, ctx_for(admin), company.id, "bounce@example.com", CompanyRole.RECRUITER)

    assert crud.get_invite(db_session, invite.id) is not None


def test_duplicate_pending_invite_conflicts(db_session: Session, sent_emails):
    company, admin = make_company(db_session)
    team.create_invite(db_session, ctx_for(admin), company.id, "twice@example.com", CompanyRole.RECRUITER)

    with pytest.raises(ConflictError):
        team.create_invite(db_session, ctx_for(admin), company.id, "twice@example.com", CompanyRole.ADMIN)


def test_expired_invite_can_be_replaced(db_session: Session, sent_emails):
    company, admin = make_company(db_session)
    old = team.create_invite(db_session, ctx_for(admin), company.id, "late@example.com", CompanyRole.RECRUITER)
    old.expires_at = models.utcnow() - timedelta(hours=1)
    db_session.commit()

    new = team.create_invite(db_session, ctx_for(admin), company.id, "late@example.com", CompanyRole.RECRUITER)

    db_session.refresh(old)
    assert old.status == InviteStatus.EXPIRED.value
    assert new.id != old.id


def test_invite_existing_member_conflicts(db_session: Session, sent_emails):
    company, admin = make_company(db_session)
    member = add_member(db_session, company, CompanyRole.RECRUITER)

    with pytest.raises(ConflictError):
        team.create_invite(db_session, ctx_for(admin), company.id, member.email, CompanyRole.ADMIN)


def test_only_admins_invite(db_session: Session, sent_emails):
    company, admin = make_company(db_session)
    recruiter = add_member(db_session, company, CompanyRole.RECRUITER)
    other, other_admin = make_company(db_session, "Other")

    with pytest.raises(ForbiddenError):
        team.create_invite(db_session, ctx_for(recruiter), company.id, "x@example.com", CompanyRole.RECRUITER)
    with pytest.raises(ForbiddenError):
        team.create_invite(db_session, ctx_for(other_admin), company.id, "x@example.com", CompanyRole.RECRUITER)
    sent_emails.assert_not_called()


def test_accept_invite_joins_company(db_session: Session, sent_emails):
    company, admin = make_company(db_session)
    invitee = make_user(db_session, UserType.EMPLOYER)
    invite = team.create_invite(db_session, ctx_for(admin), company.id, invitee.email, CompanyRole.HIRING_MANAGER)

    user = team.accept_invite(db_session, ctx_for(invitee), invite.id)

    assert user.company_id == company.id
    assert user.company_role == CompanyRole.HIRING_MANAGER.value
    db_session.refresh(invite)
    assert invite.status == InviteStatus.ACCEPTED.value

    with pytest.raises(ValidationError):
        team.accept_invite(db_session, ctx_for(user), invite.id)


def test_accept_invite_discards_new_company_draft(db_session: Session, sent_emails):
    company, admin = make_company(db_session)
    invitee = make_user(db_session, UserType.EMPLOYER)
    company_drafts.save_draft(db_session, invitee.id, {"companyName": "Never Founded"})
    invite = team.create_invite(db_session, ctx_for(admin), company.id, invitee.email, CompanyRole.RECRUITER)

    team.accept_invite(db_session, ctx_for(invitee), invite.id)

    drafts = (
        db_session.query(models.CompanyProfileDraft)
        .filter(models.CompanyProfileDraft.user_id == invitee.id)
        .all()
    )
    assert drafts == []
    # the member now drafts edits to the company they joined
    draft = company_drafts.save_draft(db_session, invitee.id, {"about": "Hiring"})
    assert draft.company_id == company.id


def test_accept_invite_checks(db_session: Session, sent_emails):
    company, admin = make_company(db_session)
    invitee = make_user(db_session, UserType.EMPLOYER)
    stranger = make_user(db_session, UserType.EMPLOYER)
    invite = team.create_invite(db_session, ctx_for(admin), company.id, invitee.email, CompanyRole.RECRUITER)

    with pytest.raises(ForbiddenError):
        team.accept_invite(db_session, ctx_for(stranger), invite.id)
    with pytest.raises(NotFoundError):
        team.accept_invite(db_session, ctx_for(invitee), 987654)

    invite.expires_at = models.utcnow() - timedelta(minutes=5)
    db_session.commit()
    with pytest.raises(ValidationError):
        team.accept_invite(db_session, ctx_for(invitee), invite.id)
    db_session.refresh(invite)
    assert invite.status == InviteStatus.EXPIRED.value


def test_accept_invite_when_already_in_a_company(db_session: Session, sent_emails):
    company, admin = make_company(db_session)
    _, busy = make_company(db_session, "Busy Co")
    invite = team.create_invite(db_session, ctx_for(admin), company.id, busy.email, CompanyRole.RECRUITER)

    with pytest.raises(ConflictError):
        team.accept_invite(db_session, ctx_for(busy), invite.id)


def test_resend_and_cancel_invite(db_session: Session, sent_emails):
    company, admin = make_company(db_session)
    invite = team.create_invite(db_session, ctx_for(admin), company.id, "resend@example.com", CompanyRole.RECRUITER)
    invite.status = InviteStatus.EXPIRED.value
    invite.expires_at = models.utcnow() - timedelta(days=1)
    db_session.commit()

    resent = team.resend_invite(db_session, ctx_for(admin), invite.id)
    assert resent.id == invite.id
    assert resent.status == InviteStatus.PENDING.value
    assert models.as_utc(resent.expires_at) > models.utcnow()
    assert sent_emails.call_count == 2

    team.cancel_invite(db_session, ctx_for(admin), invite.id)
    assert crud.get_invite(db_session, invite.id) is None


def test_list_invites_marks_lapsed(db_session: Session, sent_emails):
    company, admin = make_company(db_session)
    invite = team.create_invite(db_session, ctx_for(admin), company.id, "lapsed@example.com", CompanyRole.RECRUITER)
    invite.expires_at = models.utcnow() - timedelta(seconds=1)
    db_session.commit()

    invites = team.list_invites(db_session, ctx_for(admin), company.id)

    assert [i.id for i in invites] == [invite.id]
    assert invites[0].status == InviteStatus.EXPIRED.value


def test_team_management(db_session: Session):
    company, admin = make_company(db_session)
    recruiter = add_member(db_session, company, CompanyRole.RECRUITER)

    members = team.list_team_members(db_session, ctx_for(recruiter), company.id)
    assert {m.id for m in members} == {admin.id, recruiter.id}

    promoted = team.update_member_role(db_session, ctx_for(admin), company.id, recruiter.id, CompanyRole.ADMIN)
    assert promoted.company_role == CompanyRole.ADMIN.value

    with pytest.raises(ValidationError):
        team.update_member_role(db_session, ctx_for(admin), company.id, admin.id, CompanyRole.RECRUITER)
    with pytest.raises(ValidationError):
        team.remove_member(db_session, ctx_for(admin), company.id, admin.id)

    team.remove_member(db_session, ctx_for(admin), company.id, recruiter.id)
    db_session.refresh(recruiter)
    assert recruiter.company_id is None
    assert recruiter.company_role is None


def test_team_management_permissions(db_session: Session):
    company, admin = make_company(db_session)
    recruiter = add_member(db_session, company, CompanyRole.RECRUITER)
    other, other_admin = make_company(db_session, "Other")

    with pytest.raises(ForbiddenError):
        team.remove_member(db_session, ctx_for(recruiter), company.id, admin.id)
    with pytest.raises(ForbiddenError):
        team.list_team_members(db_session, ctx_for(other_admin), company.id)
    with pytest.raises(NotFoundError):
        team.remove_member(db_session, ctx_for(other_admin), other.id, recruiter.id)
