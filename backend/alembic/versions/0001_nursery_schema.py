"""Nursery production schema.

Revision ID: 0001_nursery_schema
Create Date: 2026-10-16
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID


revision = "0001_nursery_schema"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLE = ("SUPER_ADMIN", "MANAGER", "FIELD_OFFICER")
PATHWAY = ("PURCHASING", "SEED_GERMINATION", "CUTTING_GERMINATION", "OUT_SOURCING")
BATCH_STATUS = ("CREATED", "IN_PROGRESS", "READY", "DELIVERED", "CANCELLED")
BATCH_STAGE = (
    "INITIAL", "PROPAGATION", "SHADE_60", "SHADE_80",
    "GROWING", "HARDENING", "RE_POTTING", "PHYTOSANITARY",
)

ENUMS = {
    "user_role": USER_ROLE,
    "pathway_type": PATHWAY,
    "batch_status": BATCH_STATUS,
    "batch_stage": BATCH_STAGE,
}


def _enum(name):
    return ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    op.execute("CREATE EXTENSION IF NOT EXISTS \"pgcrypto\"")

    # ── Enums (created once, shared by several columns) ──────
    for name, values in ENUMS.items():
        ENUM(*values, name=name).create(bind, checkfirst=True)

    # ── Users ────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", _enum("user_role"), nullable=False, server_default="FIELD_OFFICER"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # ── Catalog ──────────────────────────────────────────────
    op.create_table(
        "species",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("name", sa.String(100), unique=True, nullable=False),
        sa.Column("scientific_name", sa.String(150), unique=True, nullable=True),
        sa.Column("target_girth", sa.Float, nullable=False),
        sa.Column("target_height", sa.Float, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_species_name", "species", ["name"])

    op.create_table(
        "zone",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("name", sa.String(100), unique=True, nullable=False),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "bed",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("zone_id", UUID(as_uuid=True), sa.ForeignKey("zone.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("occupied", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.CheckConstraint("occupied >= 0", name="ck_bed_occupied_non_negative"),
    )
    op.create_index("ix_bed_zone_id", "bed", ["zone_id"])

    # ── Batches ──────────────────────────────────────────────
    op.create_table(
        "batch",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("batch_number", sa.String(50), unique=True, nullable=False),
        sa.Column("custom_name", sa.String(100), nullable=True),
        sa.Column("pathway", _enum("pathway_type"), nullable=False),
        sa.Column("species_id", UUID(as_uuid=True), sa.ForeignKey("species.id"), nullable=False),
        sa.Column("initial_qty", sa.Integer, nullable=False),
        sa.Column("current_qty", sa.Integer, nullable=False),
        sa.Column("status", _enum("batch_status"), nullable=False, server_default="CREATED"),
        sa.Column("stage", _enum("batch_stage"), nullable=False, server_default="INITIAL"),
        sa.Column("is_ready", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("ready_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("loss_reason", sa.String(255), nullable=True),
        sa.Column("loss_qty", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_by_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("zone_id", UUID(as_uuid=True), sa.ForeignKey("zone.id"), nullable=True),
        sa.Column("bed_id", UUID(as_uuid=True), sa.ForeignKey("bed.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_batch_batch_number", "batch", ["batch_number"])
    op.create_index("ux_batch_batch_number_lower", "batch", [sa.text("lower(batch_number)")], unique=True)
    op.create_index("ix_batch_species_id", "batch", ["species_id"])
    op.create_index("ix_batch_zone_id", "batch", ["zone_id"])
    op.create_index("ix_batch_bed_id", "batch", ["bed_id"])
    op.create_index("ix_batch_status", "batch", ["status"])
    op.create_index("ix_batch_stage", "batch", ["stage"])

    op.create_table(
        "stage_history",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("batch_id", UUID(as_uuid=True), sa.ForeignKey("batch.id", ondelete="CASCADE"), nullable=False),
        sa.Column("from_stage", _enum("batch_stage"), nullable=True),
        sa.Column("to_stage", _enum("batch_stage"), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_stage_history_batch_id", "stage_history", ["batch_id"])
    op.create_index("ix_stage_history_created_at", "stage_history", ["created_at"])

    op.create_table(
        "measurement",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("batch_id", UUID(as_uuid=True), sa.ForeignKey("batch.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("girth", sa.Float, nullable=False),
        sa.Column("height", sa.Float, nullable=False),
        sa.Column("sample_size", sa.Integer, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_measurement_batch_id", "measurement", ["batch_id"])
    op.create_index("ix_measurement_user_id", "measurement", ["user_id"])
    op.create_index("ix_measurement_created_at", "measurement", ["created_at"])

    # ── Audit ────────────────────────────────────────────────
    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("batch_id", UUID(as_uuid=True), sa.ForeignKey("batch.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("old_values", JSONB, nullable=True),
        sa.Column("new_values", JSONB, nullable=True),
    )
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])
    op.create_index("ix_audit_log_batch_id", "audit_log", ["batch_id"])


def downgrade() -> None:
    for table in ("audit_log", "measurement", "stage_history", "batch", "bed", "zone", "species", "users"):
        op.drop_table(table)
    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        ENUM(name=name).drop(bind, checkfirst=True)
