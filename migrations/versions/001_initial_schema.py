"""Initial CFP schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "speakers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(100), unique=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("first_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("job_title", sa.String(200)),
        sa.Column("company", sa.String(200)),
        sa.Column("bio", sa.Text()),
        sa.Column("linkedin_url", sa.String(500)),
        sa.Column("github_url", sa.String(500)),
        sa.Column("twitter_handle", sa.String(100)),
        sa.Column("bluesky_handle", sa.String(100)),
        sa.Column("mastodon_handle", sa.String(100)),
        sa.Column("profile_image_url", sa.String(500)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_speakers_email", "speakers", ["email"])

    op.create_table(
        "tags",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("name_normalized", sa.String(50), nullable=False, unique=True),
        sa.Column("is_suggested", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_tags_is_suggested", "tags", ["is_suggested"])

    op.create_table(
        "submissions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "speaker_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("speakers.id"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("abstract", sa.Text(), nullable=False),
        sa.Column("submission_type", sa.String(20), nullable=False),
        sa.Column("talk_level", sa.String(20), nullable=False),
        sa.Column("outline", sa.Text()),
        sa.Column("additional_notes", sa.Text()),
        sa.Column("slides_url", sa.String(500)),
        sa.Column("previous_recording_url", sa.String(500)),
        sa.Column("workshop_duration_hours", sa.Integer()),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("submitted_at", sa.DateTime()),
        sa.Column("withdrawn_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "workshop_duration_hours IS NULL OR workshop_duration_hours BETWEEN 2 AND 8",
            name="ck_submissions_workshop_duration",
        ),
    )
    op.create_index("ix_submissions_speaker_id", "submissions", ["speaker_id"])
    op.create_index("ix_submissions_status", "submissions", ["status"])
    op.create_index("ix_submissions_speaker_status", "submissions", ["speaker_id", "status"])

    op.create_table(
        "submission_tags",
        sa.Column(
            "submission_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("submissions.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("ix_submission_tags_tag_id", "submission_tags", ["tag_id"])

    op.create_table(
        "reviewers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(100), unique=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("name", sa.String(200)),
        sa.Column("role", sa.String(20), nullable=False, server_default="reviewer"),
        sa.Column(
            "can_see_speaker_identity", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("invited_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("reviewers.id")),
        sa.Column("invited_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("invite_sent_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "last_invited_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")
        ),
        sa.Column("accepted_at", sa.DateTime()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_reviewers_email", "reviewers", ["email"])
    op.create_index("ix_reviewers_is_active", "reviewers", ["is_active"])

    op.create_table(
        "reviews",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "submission_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("submissions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "reviewer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("reviewers.id"),
            nullable=False,
        ),
        sa.Column("score_overall", sa.Float()),
        sa.Column("score_relevance", sa.Float()),
        sa.Column("score_technical_depth", sa.Float()),
        sa.Column("score_clarity", sa.Float()),
        sa.Column("score_diversity", sa.Float()),
        sa.Column("private_notes", sa.Text()),
        sa.Column("feedback_to_speaker", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint(
            "submission_id", "reviewer_id", name="uq_reviews_submission_reviewer"
        ),
    )
    op.create_index("ix_reviews_submission_id", "reviews", ["submission_id"])
    op.create_index("ix_reviews_reviewer_id", "reviews", ["reviewer_id"])

    op.create_table(
        "decision_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "submission_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("submissions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("decision", sa.String(20), nullable=False),
        sa.Column("previous_status", sa.String(20), nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("decided_by", sa.String(200), nullable=False),
        sa.Column("decided_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.UniqueConstraint(
            "submission_id", "sequence", name="uq_decision_records_submission_sequence"
        ),
    )
    op.create_index(
        "ix_decision_records_submission_time", "decision_records", ["submission_id", "decided_at"]
    )

    op.create_table(
        "status_overrides",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "submission_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("submissions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("previous_status", sa.String(20), nullable=False),
        sa.Column("new_status", sa.String(20), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("changed_by", sa.String(200), nullable=False),
        sa.Column("changed_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index(
        "ix_status_overrides_submission_time", "status_overrides", ["submission_id", "changed_at"]
    )

    op.create_table(
        "scheduled_emails",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "submission_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("submissions.id", ondelete="CASCADE"),
        ),
        sa.Column("template", sa.String(100), nullable=False),
        sa.Column("recipient", sa.String(320), nullable=False),
        sa.Column("fire_at", sa.DateTime(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("personal_message", sa.Text()),
        sa.Column("scheduled_by", sa.String(200)),
        sa.Column("sent_at", sa.DateTime()),
        sa.Column("cancelled_at", sa.DateTime()),
        sa.Column("cancelled_by", sa.String(200)),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text()),
        sa.Column("last_attempt_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_scheduled_emails_submission_id", "scheduled_emails", ["submission_id"])
    op.create_index(
        "ix_scheduled_emails_pending", "scheduled_emails", ["sent_at", "cancelled_at", "fire_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_scheduled_emails_pending", "scheduled_emails")
    op.drop_index("ix_scheduled_emails_submission_id", "scheduled_emails")
    op.drop_table("scheduled_emails")

    op.drop_index("ix_status_overrides_submission_time", "status_overrides")
    op.drop_table("status_overrides")

    op.drop_index("ix_decision_records_submission_time", "decision_records")
    op.drop_table("decision_records")

    op.drop_index("ix_reviews_reviewer_id", "reviews")
    op.drop_index("ix_reviews_submission_id", "reviews")
    op.drop_table("reviews")

    op.drop_index("ix_reviewers_is_active", "reviewers")
    op.drop_index("ix_reviewers_email", "reviewers")
    op.drop_table("reviewers")

    op.drop_index("ix_submission_tags_tag_id", "submission_tags")
    op.drop_table("submission_tags")

    op.drop_index("ix_submissions_speaker_status", "submissions")
    op.drop_index("ix_submissions_status", "submissions")
    op.drop_index("ix_submissions_speaker_id", "submissions")
    op.drop_table("submissions")

    op.drop_index("ix_tags_is_suggested", "tags")
    op.drop_table("tags")

    op.drop_index("ix_speakers_email", "speakers")
    op.drop_table("speakers")
