"""Initial schema: users and rental agreements.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

MONEY_COLUMNS = (
    "total_payment",
    "govt_charges",
    "margin",
    "payment_from_owner",
    "payment_from_tenant",
    "payment_due",
    "stamp_duty",
    "registration_charges",
    "dhc",
    "service_charge",
    "police_verification",
    "outstation_charges",
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=False, server_default="user"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "agreements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("owner_name", sa.String(), nullable=False),
        sa.Column("location", sa.String(), nullable=False),
        sa.Column("token_number", sa.String(), nullable=True),
        sa.Column("owner_contact", sa.String(), nullable=True),
        sa.Column("tenant_contact", sa.String(), nullable=True),
        sa.Column("agent_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("cc_email", sa.String(), nullable=True),
        sa.Column("agreement_date", sa.Date(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("reminder_date", sa.Date(), nullable=True),
        sa.Column("biometric_date", sa.Date(), nullable=True),
        sa.Column("payment_received_date1", sa.Date(), nullable=True),
        sa.Column("payment_received_date2", sa.Date(), nullable=True),
        *[
            sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default="0")
            for name in MONEY_COLUMNS
        ],
        sa.Column("agreement_status", sa.String(), nullable=False, server_default="Drafted"),
        sa.Column("police_verification_complete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_agreements_id"), "agreements", ["id"], unique=False)
    op.create_index(op.f("ix_agreements_user_id"), "agreements", ["user_id"], unique=False)
    op.create_index(op.f("ix_agreements_agent_name"), "agreements", ["agent_name"], unique=False)
    op.create_index(op.f("ix_agreements_agreement_date"), "agreements", ["agreement_date"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_agreements_agreement_date"), table_name="agreements")
    op.drop_index(op.f("ix_agreements_agent_name"), table_name="agreements")
    op.drop_index(op.f("ix_agreements_user_id"), table_name="agreements")
    op.drop_index(op.f("ix_agreements_id"), table_name="agreements")
    op.drop_table("agreements")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_index(op.f("ix_users_username"), table_name="users")
    op.drop_index(op.f("ix_users_id"), table_name="users")
    op.drop_table("users")
