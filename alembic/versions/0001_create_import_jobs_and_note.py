"""create import_jobs and note

Revision ID: 0001
Revises:
Create Date: 2024-01-10 00:00:00
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

IMPORT_STATUS = ("downloading", "importing", "completed", "failed")


def upgrade():
    import_status = sa.Enum(*IMPORT_STATUS, name="import_status")

    op.create_table(
        "import_jobs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("status", import_status, nullable=False),
        sa.Column("active_slot", sa.String(16), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("download_completed_at", sa.DateTime(), nullable=True),
        sa.Column("import_started_at", sa.DateTime(), nullable=True),
        sa.Column("total_files", sa.Integer(), nullable=True),
        sa.Column("current_file_index", sa.Integer(), nullable=True),
        sa.Column("files_processed", sa.Integer(), nullable=True),
        sa.Column("file_names", postgresql.JSONB(), nullable=True),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("download_percentage", sa.Integer(), nullable=True),
        sa.Column("download_speed", sa.String(32), nullable=True),
        sa.Column("download_cached", sa.Boolean(), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=True),
        sa.Column("download_duration", sa.Integer(), nullable=True),
        sa.Column("total_rows", sa.BigInteger(), nullable=True),
        sa.Column("rows_processed", sa.BigInteger(), nullable=True),
        sa.Column("import_duration", sa.Integer(), nullable=True),
        sa.Column("data_date", sa.Date(), nullable=True),
        sa.UniqueConstraint("active_slot", name="uq_import_jobs_active_slot"),
    )
    op.create_index("ix_import_jobs_status", "import_jobs", ["status"])
    op.create_index("ix_import_jobs_started_at", "import_jobs", ["started_at"])
    op.create_index("ix_import_jobs_data_date", "import_jobs", ["data_date"])
    op.create_index("idx_import_jobs_status_started", "import_jobs", ["status", "started_at"])

    op.create_table(
        "note",
        sa.Column("noteid", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("noteauthorparticipantid", sa.String(255), nullable=True),
        sa.Column("createdatmillis", sa.BigInteger(), nullable=True),
        sa.Column("tweetid", sa.String(255), nullable=True),
        sa.Column("classification", sa.String(255), nullable=True),
        sa.Column("believable", sa.String(255), nullable=True),
        sa.Column("harmful", sa.String(255), nullable=True),
        sa.Column("validationdifficulty", sa.String(255), nullable=True),
        sa.Column("misleadingother", sa.Integer(), nullable=False),
        sa.Column("misleadingfactualerror", sa.Integer(), nullable=False),
        sa.Column("misleadingmanipulatedmedia", sa.Integer(), nullable=False),
        sa.Column("misleadingoutdatedinformation", sa.Integer(), nullable=False),
        sa.Column("misleadingmissingimportantcontext", sa.Integer(), nullable=False),
        sa.Column("misleadingunverifiedclaimasfact", sa.Integer(), nullable=False),
        sa.Column("misleadingsatire", sa.Integer(), nullable=False),
        sa.Column("notmisleadingother", sa.Integer(), nullable=False),
        sa.Column("notmisleadingfactuallycorrect", sa.Integer(), nullable=False),
        sa.Column("notmisleadingoutdatedbutnotwhenwritten", sa.Integer(), nullable=False),
        sa.Column("notmisleadingclearlysatire", sa.Integer(), nullable=False),
        sa.Column("notmisleadingpersonalopinion", sa.Integer(), nullable=False),
        sa.Column("trustworthysources", sa.Integer(), nullable=False),
        sa.Column("summary", sa.String(8192), nullable=True),
        sa.Column("ismedianote", sa.Integer(), nullable=False),
    )
    op.create_index("idx_note_createdatmillis", "note", ["createdatmillis"])
    op.create_index("idx_note_author", "note", ["noteauthorparticipantid"])
    op.create_index("idx_note_tweetid", "note", ["tweetid"])


def downgrade():
    op.drop_table("note")
    op.drop_table("import_jobs")
    sa.Enum(name="import_status").drop(op.get_bind(), checkfirst=True)
