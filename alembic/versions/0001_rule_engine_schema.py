"""rule engine schema: admins, schools, instructors, requests, quotes, assignments, payments, settings

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    "program_category": (
        "AI_CODING", "MAKER", "SCIENCE", "CAREER", "FOURTHIND", "CULTURE", "STEAM", "EXPERIENCE", "OTHER",
    ),
    "request_status": (
        "SUBMITTED", "REVIEWING", "APPROVED", "QUOTED", "ASSIGNED", "CONFIRMED", "COMPLETED", "CANCELLED",
    ),
    "instructor_status": ("PENDING", "ACTIVE", "INACTIVE", "ON_LEAVE", "TERMINATED", "REJECTED"),
    "instructor_type": ("INTERNAL", "EXTERNAL"),
    "instructor_grade": (
        "LEVEL1", "LEVEL2", "LEVEL3", "LEVEL4", "EXTERNAL_BASIC", "EXTERNAL_PREMIUM", "EXTERNAL_VIP",
    ),
    "quote_status": ("DRAFT", "SENT", "ACCEPTED", "REJECTED", "EXPIRED"),
    "assignment_status": (
        "PROPOSED", "PENDING", "ACCEPTED", "CONFIRMED", "IN_PROGRESS", "COMPLETED", "CANCELLED", "DECLINED",
    ),
    "payment_status": ("PENDING", "CALCULATED", "APPROVED", "PROCESSING", "PAID", "CANCELLED"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _base_columns():
    return [
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_is_active"), "users", ["is_active"], unique=False)

    op.create_table(
        "schools",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("region", sa.String(100), nullable=False),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("distance_km", sa.Float(), nullable=True),
        sa.Column("contact_name", sa.String(100), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_schools_id"), "schools", ["id"], unique=False)
    op.create_index(op.f("ix_schools_name"), "schools", ["name"], unique=False)
    op.create_index(op.f("ix_schools_region"), "schools", ["region"], unique=False)

    op.create_table(
        "programs",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", _enum("program_category"), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("base_material_cost", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_programs_id"), "programs", ["id"], unique=False)
    op.create_index(op.f("ix_programs_category"), "programs", ["category"], unique=False)

    op.create_table(
        "instructors",
        *_base_columns(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("home_region", sa.String(100), nullable=False),
        sa.Column("travel_radius_km", sa.Integer(), nullable=True),
        sa.Column("subjects", postgresql.ARRAY(sa.String(100)), nullable=False),
        sa.Column("available_days", postgresql.ARRAY(sa.String(3)), nullable=False),
        sa.Column("status", _enum("instructor_status"), nullable=False),
        sa.Column("instructor_type", _enum("instructor_type"), nullable=False),
        sa.Column("grade", _enum("instructor_grade"), nullable=False),
        sa.Column("grade_updated_at", sa.DateTime(), nullable=True),
        sa.Column("total_classes", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_instructors_id"), "instructors", ["id"], unique=False)
    op.create_index(op.f("ix_instructors_home_region"), "instructors", ["home_region"], unique=False)
    op.create_index(op.f("ix_instructors_status"), "instructors", ["status"], unique=False)

    op.create_table(
        "school_requests",
        *_base_columns(),
        sa.Column("school_id", sa.UUID(), nullable=False),
        sa.Column("program_id", sa.UUID(), nullable=True),
        sa.Column("custom_program", sa.String(255), nullable=True),
        sa.Column("desired_date", sa.Date(), nullable=True),
        sa.Column("alternate_date", sa.Date(), nullable=True),
        sa.Column("sessions", sa.Integer(), nullable=False),
        sa.Column("student_count", sa.Integer(), nullable=False),
        sa.Column("target_grade", sa.String(50), nullable=True),
        sa.Column("school_budget", sa.Integer(), nullable=True),
        sa.Column("status", _enum("request_status"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["school_id"], ["schools.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["program_id"], ["programs.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_school_requests_id"), "school_requests", ["id"], unique=False)
    op.create_index(op.f("ix_school_requests_school_id"), "school_requests", ["school_id"], unique=False)
    op.create_index(op.f("ix_school_requests_program_id"), "school_requests", ["program_id"], unique=False)
    op.create_index(op.f("ix_school_requests_status"), "school_requests", ["status"], unique=False)

    op.create_table(
        "quotes",
        *_base_columns(),
        sa.Column("quote_number", sa.String(20), nullable=False),
        sa.Column("request_id", sa.UUID(), nullable=False),
        sa.Column("instructor_id", sa.UUID(), nullable=True),
        sa.Column("session_fee", sa.Integer(), nullable=False),
        sa.Column("transport_fee", sa.Integer(), nullable=False),
        sa.Column("allowances", sa.Integer(), nullable=False),
        sa.Column("instructor_fee", sa.Integer(), nullable=False),
        sa.Column("material_cost", sa.Integer(), nullable=False),
        sa.Column("margin_rate", sa.Numeric(5, 4), nullable=False),
        sa.Column("margin_amount", sa.Integer(), nullable=False),
        sa.Column("vat", sa.Integer(), nullable=False),
        sa.Column("final_total", sa.Integer(), nullable=False),
        sa.Column("valid_until", sa.Date(), nullable=False),
        sa.Column("status", _enum("quote_status"), nullable=False),
        sa.Column("created_by", sa.UUID(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["request_id"], ["school_requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["instructor_id"], ["instructors.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("request_id"),
    )
    op.create_index(op.f("ix_quotes_id"), "quotes", ["id"], unique=False)
    op.create_index(op.f("ix_quotes_quote_number"), "quotes", ["quote_number"], unique=True)
    op.create_index(op.f("ix_quotes_status"), "quotes", ["status"], unique=False)

    op.create_table(
        "instructor_assignments",
        *_base_columns(),
        sa.Column("request_id", sa.UUID(), nullable=False),
        sa.Column("instructor_id", sa.UUID(), nullable=False),
        sa.Column("status", _enum("assignment_status"), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("scheduled_time", sa.String(20), nullable=True),
        sa.Column("distance_km", sa.Float(), nullable=True),
        sa.Column("transport_fee", sa.Integer(), nullable=True),
        sa.Column("actual_sessions", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["request_id"], ["school_requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["instructor_id"], ["instructors.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_instructor_assignments_id"), "instructor_assignments", ["id"], unique=False)
    op.create_index(
        op.f("ix_instructor_assignments_request_id"), "instructor_assignments", ["request_id"], unique=False
    )
    op.create_index(
        op.f("ix_instructor_assignments_instructor_id"), "instructor_assignments", ["instructor_id"], unique=False
    )
    op.create_index(op.f("ix_instructor_assignments_status"), "instructor_assignments", ["status"], unique=False)
    op.create_index(
        op.f("ix_instructor_assignments_scheduled_date"), "instructor_assignments", ["scheduled_date"], unique=False
    )
    # At most one live assignment per request
    op.create_index(
        "uq_instructor_assignments_active_request",
        "instructor_assignments",
        ["request_id"],
        unique=True,
        postgresql_where=sa.text("status NOT IN ('CANCELLED', 'DECLINED')"),
    )

    op.create_table(
        "payments",
        *_base_columns(),
        sa.Column("payment_number", sa.String(20), nullable=False),
        sa.Column("assignment_id", sa.UUID(), nullable=False),
        sa.Column("instructor_id", sa.UUID(), nullable=False),
        sa.Column("sessions", sa.Integer(), nullable=False),
        sa.Column("session_fee", sa.Integer(), nullable=False),
        sa.Column("transport_fee", sa.Integer(), nullable=False),
        sa.Column("allowances", sa.Integer(), nullable=False),
        sa.Column("bonus", sa.Integer(), nullable=False),
        sa.Column("subtotal", sa.Integer(), nullable=False),
        sa.Column("tax_rate", sa.Numeric(5, 4), nullable=False),
        sa.Column("tax_withholding", sa.Integer(), nullable=False),
        sa.Column("deductions", sa.Integer(), nullable=False),
        sa.Column("net_amount", sa.Integer(), nullable=False),
        sa.Column("floored_to_zero", sa.Boolean(), nullable=False),
        sa.Column("status", _enum("payment_status"), nullable=False),
        sa.Column("accounting_month", sa.String(7), nullable=False),
        sa.Column("approved_by", sa.UUID(), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["assignment_id"], ["instructor_assignments.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["instructor_id"], ["instructors.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("assignment_id"),
    )
    op.create_index(op.f("ix_payments_id"), "payments", ["id"], unique=False)
    op.create_index(op.f("ix_payments_payment_number"), "payments", ["payment_number"], unique=True)
    op.create_index(op.f("ix_payments_instructor_id"), "payments", ["instructor_id"], unique=False)
    op.create_index(op.f("ix_payments_status"), "payments", ["status"], unique=False)
    op.create_index(op.f("ix_payments_accounting_month"), "payments", ["accounting_month"], unique=False)

    op.create_table(
        "settings",
        *_base_columns(),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_settings_id"), "settings", ["id"], unique=False)
    op.create_index(op.f("ix_settings_key"), "settings", ["key"], unique=True)
    op.create_index(op.f("ix_settings_category"), "settings", ["category"], unique=False)


def downgrade() -> None:
    op.drop_table("settings")
    op.drop_table("payments")
    op.drop_index("uq_instructor_assignments_active_request", table_name="instructor_assignments")
    op.drop_table("instructor_assignments")
    op.drop_table("quotes")
    op.drop_table("school_requests")
    op.drop_table("instructors")
    op.drop_table("programs")
    op.drop_table("schools")
    op.drop_table("users")
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
