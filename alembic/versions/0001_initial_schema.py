"""initial schema: users, companies, swipes, matches, invites, job postings

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("headquarters", sa.String(), nullable=True),
        sa.Column("size", sa.String(), nullable=True),
        sa.Column("year_founded", sa.Integer(), nullable=True),
        sa.Column("website", sa.String(), nullable=True),
        sa.Column("careers_url", sa.String(), nullable=True),
        sa.Column("about", sa.Text(), nullable=True),
        sa.Column("mission", sa.Text(), nullable=True),
        sa.Column("vision", sa.Text(), nullable=True),
        sa.Column("values", sa.JSON(), nullable=True),
        sa.Column("industries", sa.JSON(), nullable=True),
        sa.Column("functional_areas", sa.JSON(), nullable=True),
        sa.Column("work_arrangements", sa.JSON(), nullable=True),
        sa.Column("benefits", sa.JSON(), nullable=True),
        sa.Column("additional_offices", sa.JSON(), nullable=True),
        sa.Column("has_development_programs", sa.Boolean(), nullable=False),
        sa.Column("development_program_duration", sa.String(), nullable=True),
        sa.Column("development_program_description", sa.Text(), nullable=True),
        sa.Column("slider_preferences", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_companies_id", "companies", ["id"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("cognito_sub", sa.String(), nullable=False),
        sa.Column("user_type", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("company_name", sa.String(), nullable=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=True),
        sa.Column("company_role", sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_cognito_sub", "users", ["cognito_sub"], unique=True)
    op.create_index("ix_users_company_id", "users", ["company_id"])

    op.create_table(
        "jobseeker_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("school", sa.String(), nullable=True),
        sa.Column("degree_level", sa.String(), nullable=True),
        sa.Column("major", sa.String(), nullable=True),
        sa.Column("preferred_locations", sa.JSON(), nullable=False),
        sa.Column("work_arrangements", sa.JSON(), nullable=False),
        sa.Column("industries", sa.JSON(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("slider_values", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_jobseeker_profiles_id", "jobseeker_profiles", ["id"])

    op.create_table(
        "company_profile_drafts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=True),
        sa.Column("draft_data", sa.JSON(), nullable=False),
        sa.Column("step", sa.Integer(), nullable=False),
        sa.Column("draft_type", sa.String(), nullable=False),
        sa.Column("last_active", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "company_id", name="uq_company_profile_drafts_user_company"),
    )
    op.create_index("ix_company_profile_drafts_id", "company_profile_drafts", ["id"])
    op.create_index("ix_company_profile_drafts_user_id", "company_profile_drafts", ["user_id"])
    op.create_index(
        "uq_company_profile_drafts_user_create",
        "company_profile_drafts",
        ["user_id"],
        unique=True,
        sqlite_where=sa.text("company_id IS NULL"),
        postgresql_where=sa.text("company_id IS NULL"),
    )

    op.create_table(
        "company_invites",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("inviter_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_company_invites_id", "company_invites", ["id"])
    op.create_index("ix_company_invites_company_id", "company_invites", ["company_id"])
    op.create_index("ix_company_invites_email", "company_invites", ["email"])

    op.create_table(
        "job_postings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("employer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("employment_type", sa.String(), nullable=True),
        sa.Column("work_type", sa.String(), nullable=True),
        sa.Column("department", sa.String(), nullable=True),
        sa.Column("requirements", sa.JSON(), nullable=False),
        sa.Column("responsibilities", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_job_postings_id", "job_postings", ["id"])
    op.create_index("ix_job_postings_company_id", "job_postings", ["company_id"])

    op.create_table(
        "swipes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("jobseeker_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("swiped_by", sa.String(), nullable=False),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("interested", sa.Boolean(), nullable=False),
        sa.Column("hide_until", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("jobseeker_id", "company_id", "swiped_by", name="uq_swipes_pair_actor"),
    )
    op.create_index("ix_swipes_id", "swipes", ["id"])
    op.create_index("ix_swipes_jobseeker_id", "swipes", ["jobseeker_id"])
    op.create_index("ix_swipes_company_id", "swipes", ["company_id"])

    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("jobseeker_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("messaging_enabled", sa.Boolean(), nullable=False),
        sa.Column("jobs_shared", sa.JSON(), nullable=False),
        sa.Column("scheduling_enabled", sa.Boolean(), nullable=False),
        sa.Column("job_posting_id", sa.Integer(), sa.ForeignKey("job_postings.id"), nullable=True),
        sa.Column("interview_scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("interview_status", sa.String(), nullable=True),
        sa.Column("interview_type", sa.String(), nullable=True),
        sa.Column("matched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("jobseeker_id", "company_id", name="uq_matches_pair"),
    )
    op.create_index("ix_matches_id", "matches", ["id"])
    op.create_index("ix_matches_jobseeker_id", "matches", ["jobseeker_id"])
    op.create_index("ix_matches_company_id", "matches", ["company_id"])

    op.create_table(
        "job_interests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("match_id", sa.Integer(), sa.ForeignKey("matches.id"), nullable=False),
        sa.Column("job_posting_id", sa.Integer(), sa.ForeignKey("job_postings.id"), nullable=False),
        sa.Column("interested", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("match_id", "job_posting_id", name="uq_job_interests_match_job"),
    )
    op.create_index("ix_job_interests_id", "job_interests", ["id"])
    op.create_index("ix_job_interests_match_id", "job_interests", ["match_id"])

    op.create_table(
        "employer_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("company_name", sa.String(), nullable=True),
        sa.Column("company_website", sa.String(), nullable=True),
        sa.Column("headquarters", sa.String(), nullable=True),
        sa.Column("year_founded", sa.Integer(), nullable=True),
        sa.Column("company_size", sa.String(), nullable=True),
        sa.Column("company_industry", sa.String(), nullable=True),
        sa.Column("about_company", sa.Text(), nullable=True),
        sa.Column("additional_offices", sa.JSON(), nullable=True),
        sa.Column("company_mission", sa.Text(), nullable=True),
        sa.Column("company_values", sa.JSON(), nullable=True),
        sa.Column("benefits", sa.JSON(), nullable=True),
        sa.Column("draft_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_employer_profiles_id", "employer_profiles", ["id"])


def downgrade() -> None:
    for table in (
        "employer_profiles",
        "job_interests",
        "matches",
        "swipes",
        "job_postings",
        "company_invites",
        "company_profile_drafts",
        "jobseeker_profiles",
        "users",
        "companies",
    ):
        op.drop_table(table)
