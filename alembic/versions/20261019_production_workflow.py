"""production workflow schema

Revision ID: 20261019_production_workflow
Revises:
Create Date: 2026-10-19 09:00:00
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "20261019_production_workflow"
down_revision = None
branch_labels = None
depends_on = None


USER_ROLE = postgresql.ENUM(
    "SUPER_ADMIN", "CREATOR", "SCRIPT_WRITER", "VIDEOGRAPHER", "EDITOR", "POSTING_MANAGER",
    name="user_role",
    create_type=False,
)
ANALYSIS_STATUS = postgresql.ENUM("PENDING", "APPROVED", "REJECTED", name="analysis_status", create_type=False)
PRODUCTION_STAGE = postgresql.ENUM(
    "PLANNING", "NOT_STARTED", "PRE_PRODUCTION", "PLANNED", "SHOOTING", "SHOOT_REVIEW",
    "READY_FOR_EDIT", "EDITING", "EDIT_REVIEW", "FINAL_REVIEW", "READY_TO_POST", "POSTED",
    name="production_stage",
    create_type=False,
)
PRODUCTION_PRIORITY = postgresql.ENUM("LOW", "NORMAL", "HIGH", "URGENT", name="production_priority", create_type=False)
POSTING_PLATFORM = postgresql.ENUM(
    "INSTAGRAM_REEL", "INSTAGRAM_POST", "INSTAGRAM_STORY", "TIKTOK", "YOUTUBE_SHORTS", "YOUTUBE_VIDEO",
    name="posting_platform",
    create_type=False,
)
ASSIGNMENT_ROLE = postgresql.ENUM("VIDEOGRAPHER", "EDITOR", "POSTING_MANAGER", name="assignment_role", create_type=False)
FILE_TYPE = postgresql.ENUM(
    "RAW_FOOTAGE", "A_ROLL", "B_ROLL", "HOOK", "BODY", "CTA", "AUDIO_CLIP", "OTHER",
    "EDITED_VIDEO", "FINAL_VIDEO",
    name="production_file_type",
    create_type=False,
)
ENUMS = (
    USER_ROLE,
    ANALYSIS_STATUS,
    PRODUCTION_STAGE,
    PRODUCTION_PRIORITY,
    POSTING_PLATFORM,
    ASSIGNMENT_ROLE,
    FILE_TYPE,
)

# Content ids look like BCH-1001: three letters of the profile name, then a per-prefix counter from 1001.
GENERATE_CONTENT_ID_FUNCTION = """
CREATE OR REPLACE FUNCTION generate_content_id_on_approval(p_analysis_id uuid, p_profile_id integer)
RETURNS text
LANGUAGE plpgsql
AS $$
DECLARE
    v_existing text;
    v_name text;
    v_prefix text;
    v_next integer;
    v_content_id text;
BEGIN
    SELECT content_id INTO v_existing FROM viral_analyses WHERE id = p_analysis_id FOR UPDATE;
    IF NOT FOUND THEN
        RAISE EXCEPTION 'analysis % not found', p_analysis_id;
    END IF;
    IF v_existing IS NOT NULL THEN
        RETURN v_existing;
    END IF;

    SELECT name INTO v_name FROM profile_list WHERE id = p_profile_id;
    IF v_name IS NULL THEN
        RAISE EXCEPTION 'profile % not found', p_profile_id;
    END IF;

    v_prefix := upper(left(regexp_replace(v_name, '[^A-Za-z]', '', 'g'), 3));
    IF v_prefix = '' THEN
        v_prefix := 'VCA';
    END IF;

    PERFORM pg_advisory_xact_lock(hashtext('content_id:' || v_prefix));

    SELECT COALESCE(MAX(split_part(content_id, '-', 2)::integer), 1000) + 1
      INTO v_next
      FROM viral_analyses
     WHERE content_id ~ ('^' || v_prefix || '-[0-9]+$');

    v_content_id := v_prefix || '-' || v_next::text;
    UPDATE viral_analyses
       SET content_id = v_content_id,
           profile_id = p_profile_id
     WHERE id = p_analysis_id;
    RETURN v_content_id;
END;
$$;
"""


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
    ]


def _reference_table(name: str, *extra: sa.Column) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        *extra,
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name=f"pk_{name}"),
        sa.UniqueConstraint("name", name=f"uq_{name}_name"),
    )


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("role", USER_ROLE, nullable=False, server_default="SCRIPT_WRITER"),
        sa.Column("is_trusted_writer", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_profiles"),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)
    op.create_index("ix_profiles_role", "profiles", ["role"], unique=False)

    _reference_table("industries", sa.Column("short_code", sa.String(length=16), nullable=True))
    _reference_table("hook_tags")
    _reference_table("character_tags")
    _reference_table("profile_list")

    op.create_table(
        "viral_analyses",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reference_url", sa.String(length=2048), nullable=True),
        sa.Column("title", sa.String(length=512), nullable=True),
        sa.Column("hook", sa.Text(), nullable=True),
        sa.Column("why_viral", sa.Text(), nullable=True),
        sa.Column("how_to_replicate", sa.Text(), nullable=True),
        sa.Column("target_emotion", sa.String(length=120), nullable=True),
        sa.Column("expected_outcome", sa.Text(), nullable=True),
        sa.Column("form_data", sa.JSON(), nullable=False, server_default=sa.text("'{}'::json")),
        sa.Column("status", ANALYSIS_STATUS, nullable=False, server_default="PENDING"),
        sa.Column("hook_strength", sa.Integer(), nullable=True),
        sa.Column("content_quality", sa.Integer(), nullable=True),
        sa.Column("viral_potential", sa.Integer(), nullable=True),
        sa.Column("replication_clarity", sa.Integer(), nullable=True),
        sa.Column("overall_score", sa.Numeric(3, 1), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("feedback_voice_note_url", sa.String(length=2048), nullable=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_dissolved", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("dissolution_reason", sa.Text(), nullable=True),
        sa.Column("disapproval_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_disapproved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("disapproval_reason", sa.Text(), nullable=True),
        sa.Column("production_stage", PRODUCTION_STAGE, nullable=True),
        sa.Column("priority", PRODUCTION_PRIORITY, nullable=False, server_default="NORMAL"),
        sa.Column("content_id", sa.String(length=64), nullable=True),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("budget", sa.Numeric(12, 2), nullable=True),
        sa.Column("production_notes", sa.Text(), nullable=True),
        sa.Column("admin_remarks", sa.Text(), nullable=True),
        sa.Column("planned_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("production_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("production_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("industry_id", sa.Integer(), nullable=True),
        sa.Column("profile_id", sa.Integer(), nullable=True),
        sa.Column("total_people_involved", sa.Integer(), nullable=True),
        sa.Column("shoot_possibility", sa.Integer(), nullable=True),
        sa.Column("posting_platform", POSTING_PLATFORM, nullable=True),
        sa.Column("posting_caption", sa.Text(), nullable=True),
        sa.Column("posting_heading", sa.String(length=512), nullable=True),
        sa.Column("posting_hashtags", postgresql.ARRAY(sa.String()), nullable=True),
        sa.Column("scheduled_post_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("posted_url", sa.String(length=2048), nullable=True),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("posted_urls", sa.JSON(), nullable=False, server_default=sa.text("'[]'::json")),
        *_timestamps(),
        sa.CheckConstraint(
            "(hook_strength IS NULL) OR (hook_strength BETWEEN 1 AND 10)",
            name="ck_viral_analyses_hook_strength_range",
        ),
        sa.CheckConstraint(
            "(content_quality IS NULL) OR (content_quality BETWEEN 1 AND 10)",
            name="ck_viral_analyses_content_quality_range",
        ),
        sa.CheckConstraint(
            "(viral_potential IS NULL) OR (viral_potential BETWEEN 1 AND 10)",
            name="ck_viral_analyses_viral_potential_range",
        ),
        sa.CheckConstraint(
            "(replication_clarity IS NULL) OR (replication_clarity BETWEEN 1 AND 10)",
            name="ck_viral_analyses_replication_clarity_range",
        ),
        sa.CheckConstraint(
            "(shoot_possibility IS NULL) OR (shoot_possibility IN (25, 50, 75, 100))",
            name="ck_viral_analyses_shoot_possibility_values",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["profiles.id"], name="fk_viral_analyses_user_id_profiles", ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["reviewed_by"], ["profiles.id"], name="fk_viral_analyses_reviewed_by_profiles", ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["industry_id"], ["industries.id"], name="fk_viral_analyses_industry_id_industries", ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["profile_id"], ["profile_list.id"], name="fk_viral_analyses_profile_id_profile_list", ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_viral_analyses"),
        sa.UniqueConstraint("content_id", name="uq_viral_analyses_content_id"),
    )
    op.create_index("ix_viral_analyses_user_id", "viral_analyses", ["user_id"], unique=False)
    op.create_index("ix_viral_analyses_status", "viral_analyses", ["status"], unique=False)
    op.create_index("ix_viral_analyses_production_stage", "viral_analyses", ["production_stage"], unique=False)
    op.create_index("ix_viral_analyses_scheduled_post_time", "viral_analyses", ["scheduled_post_time"], unique=False)
    op.create_index("ix_viral_analyses_created_at", "viral_analyses", ["created_at"], unique=False)
    op.create_index("ix_viral_analyses_status_stage", "viral_analyses", ["status", "production_stage"], unique=False)

    op.create_table(
        "analysis_hook_tags",
        sa.Column("analysis_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("hook_tag_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["analysis_id"], ["viral_analyses.id"],
            name="fk_analysis_hook_tags_analysis_id_viral_analyses", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["hook_tag_id"], ["hook_tags.id"], name="fk_analysis_hook_tags_hook_tag_id_hook_tags", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("analysis_id", "hook_tag_id", name="pk_analysis_hook_tags"),
    )
    op.create_table(
        "analysis_character_tags",
        sa.Column("analysis_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("character_tag_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["analysis_id"], ["viral_analyses.id"],
            name="fk_analysis_character_tags_analysis_id_viral_analyses", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["character_tag_id"], ["character_tags.id"],
            name="fk_analysis_character_tags_character_tag_id_character_tags", ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("analysis_id", "character_tag_id", name="pk_analysis_character_tags"),
    )

    op.create_table(
        "project_assignments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("analysis_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", ASSIGNMENT_ROLE, nullable=False),
        sa.Column("assigned_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(
            ["analysis_id"], ["viral_analyses.id"],
            name="fk_project_assignments_analysis_id_viral_analyses", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["profiles.id"], name="fk_project_assignments_user_id_profiles", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["assigned_by"], ["profiles.id"], name="fk_project_assignments_assigned_by_profiles", ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_project_assignments"),
        sa.UniqueConstraint("analysis_id", "role", name="uq_project_assignments_analysis_role"),
    )
    op.create_index("ix_project_assignments_analysis_id", "project_assignments", ["analysis_id"], unique=False)
    op.create_index("ix_project_assignments_user_id", "project_assignments", ["user_id"], unique=False)
    op.create_index("ix_project_assignments_user_role", "project_assignments", ["user_id", "role"], unique=False)

    op.create_table(
        "production_files",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("analysis_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("uploaded_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("file_type", FILE_TYPE, nullable=False),
        sa.Column("file_name", sa.String(length=512), nullable=False),
        sa.Column("file_url", sa.String(length=2048), nullable=False),
        sa.Column("file_id", sa.String(length=255), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=True),
        sa.Column("mime_type", sa.String(length=120), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(
            ["analysis_id"], ["viral_analyses.id"],
            name="fk_production_files_analysis_id_viral_analyses", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["uploaded_by"], ["profiles.id"], name="fk_production_files_uploaded_by_profiles", ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_production_files"),
    )
    op.create_index("ix_production_files_analysis_id", "production_files", ["analysis_id"], unique=False)
    op.create_index(
        "ix_production_files_analysis_type_live",
        "production_files",
        ["analysis_id", "file_type", "is_deleted"],
        unique=False,
    )

    op.create_table(
        "project_skips",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("analysis_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", ASSIGNMENT_ROLE, nullable=False),
        sa.Column("skipped_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(
            ["analysis_id"], ["viral_analyses.id"],
            name="fk_project_skips_analysis_id_viral_analyses", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["profiles.id"], name="fk_project_skips_user_id_profiles", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_project_skips"),
        sa.UniqueConstraint("analysis_id", "user_id", "role", name="uq_project_skips_analysis_user_role"),
    )
    op.create_index("ix_project_skips_analysis_id", "project_skips", ["analysis_id"], unique=False)
    op.create_index("ix_project_skips_user_id", "project_skips", ["user_id"], unique=False)

    op.create_table(
        "action_audit_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=120), nullable=True),
        sa.Column("from_state", sa.String(length=64), nullable=True),
        sa.Column("to_state", sa.String(length=64), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("details_json", sa.JSON(), nullable=True),
        sa.Column("actor_user_id", sa.String(length=64), nullable=True),
        sa.Column("actor_email", sa.String(length=255), nullable=True),
        sa.Column("correlation_id", sa.String(length=64), nullable=True),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_action_audit_logs"),
    )
    for column in ("action", "entity_type", "entity_id", "actor_user_id", "correlation_id", "request_id", "created_at"):
        op.create_index(f"ix_action_audit_logs_{column}", "action_audit_logs", [column], unique=False)
    op.create_index(
        "ix_action_audit_entity_created",
        "action_audit_logs",
        ["entity_type", "entity_id", "created_at"],
        unique=False,
    )

    op.execute(GENERATE_CONTENT_ID_FUNCTION)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS generate_content_id_on_approval(uuid, integer)")
    op.drop_table("action_audit_logs")
    op.drop_table("project_skips")
    op.drop_table("production_files")
    op.drop_table("project_assignments")
    op.drop_table("analysis_character_tags")
    op.drop_table("analysis_hook_tags")
    op.drop_table("viral_analyses")
    op.drop_table("profile_list")
    op.drop_table("character_tags")
    op.drop_table("hook_tags")
    op.drop_table("industries")
    op.drop_table("profiles")

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
