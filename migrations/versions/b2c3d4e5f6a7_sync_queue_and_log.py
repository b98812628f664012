"""sync queue and sync log

Revision ID: b2c3d4e5f6a7
Revises: a1b2c3d4e5f6
Create Date: 2026-10-17

"""

from alembic import op
import sqlalchemy as sa


revision = "b2c3d4e5f6a7"
down_revision = "a1b2c3d4e5f6"
branch_labels = None
depends_on = None


def upgrade():
    # ---- Cola de sync ----
    op.create_table(
        "sync_queue",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("table_name", sa.String(length=60), nullable=False),
        sa.Column("operation", sa.String(length=10), nullable=False),
        sa.Column("record_id", sa.Integer(), nullable=False),
        sa.Column("data", sa.Text(), nullable=False),
        sa.Column("synced", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("synced_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("operation IN ('INSERT','UPDATE','DELETE')", name="ck_sync_queue_operation"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sync_queue") as batch_op:
        batch_op.create_index("ix_sync_queue_pending", ["synced", "id"], unique=False)

    # ---- Log de pasadas ----
    op.create_table(
        "sync_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False),
        sa.Column("items_synced", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("items_failed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("status IN ('success','error','partial')", name="ck_sync_log_status"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("sync_log") as batch_op:
        batch_op.create_index(batch_op.f("ix_sync_log_status"), ["status"], unique=False)
        batch_op.create_index(batch_op.f("ix_sync_log_created_at"), ["created_at"], unique=False)


def downgrade():
    op.drop_table("sync_log")
    op.drop_table("sync_queue")
