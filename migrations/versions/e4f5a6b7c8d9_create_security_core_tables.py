"""create users, activity_logs, blocked_ips, leases and rental_agreements

Revision ID: e4f5a6b7c8d9
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "e4f5a6b7c8d9"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=True),
        sa.Column("last_name", sa.String(length=120), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_users_email"), ["email"], unique=True)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("activity_logs", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_activity_logs_user_id"), ["user_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_activity_logs_action"), ["action"], unique=False)
        batch_op.create_index(batch_op.f("ix_activity_logs_timestamp"), ["timestamp"], unique=False)

    op.create_table(
        "blocked_ips",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("blocked_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["blocked_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("blocked_ips", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_blocked_ips_ip_address"), ["ip_address"], unique=True)

    op.create_table(
        "leases",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("landlord_id", sa.Integer(), nullable=False),
        sa.Column("property_ref", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["landlord_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("leases", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_leases_tenant_id"), ["tenant_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_leases_landlord_id"), ["landlord_id"], unique=False)

    op.create_table(
        "rental_agreements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("lease_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("tenant_signature", sa.Text(), nullable=True),
        sa.Column("tenant_signed_at", sa.DateTime(), nullable=True),
        sa.Column("tenant_ip_address", sa.String(length=64), nullable=True),
        sa.Column("tenant_user_agent", sa.String(length=255), nullable=True),
        sa.Column("landlord_signature", sa.Text(), nullable=True),
        sa.Column("landlord_signed_at", sa.DateTime(), nullable=True),
        sa.Column("landlord_ip_address", sa.String(length=64), nullable=True),
        sa.Column("landlord_user_agent", sa.String(length=255), nullable=True),
        sa.Column("pdf_url", sa.String(length=512), nullable=True),
        sa.Column("generated_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("cancel_reason", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["lease_id"], ["leases.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("rental_agreements", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_rental_agreements_lease_id"), ["lease_id"], unique=True)


def downgrade():
    with op.batch_alter_table("rental_agreements", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_rental_agreements_lease_id"))
    op.drop_table("rental_agreements")

    with op.batch_alter_table("leases", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_leases_landlord_id"))
        batch_op.drop_index(batch_op.f("ix_leases_tenant_id"))
    op.drop_table("leases")

    with op.batch_alter_table("blocked_ips", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_blocked_ips_ip_address"))
    op.drop_table("blocked_ips")

    with op.batch_alter_table("activity_logs", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_activity_logs_timestamp"))
        batch_op.drop_index(batch_op.f("ix_activity_logs_action"))
        batch_op.drop_index(batch_op.f("ix_activity_logs_user_id"))
    op.drop_table("activity_logs")

    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_users_email"))
    op.drop_table("users")
