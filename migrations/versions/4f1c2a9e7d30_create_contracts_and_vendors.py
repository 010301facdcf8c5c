"""create contracts and vendors tables

Revision ID: 4f1c2a9e7d30
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "4f1c2a9e7d30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "vendors",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_vendors_name", "vendors", ["name"])
    op.create_index("idx_vendors_status", "vendors", ["status"])

    op.create_table(
        "contracts",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("vendor_name", sa.String(200), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("value", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="Draft"),
        sa.Column("scope", sa.Text(), nullable=True),
        sa.Column("milestones", sa.Text(), nullable=True),
        sa.Column("payment_terms", sa.Text(), nullable=True),
        sa.Column("company_signer", sa.String(200), nullable=True),
        sa.Column("vendor_signer", sa.String(200), nullable=True),
        sa.Column("company_signed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("vendor_signed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("pdf_file_name", sa.String(255), nullable=True),
        sa.Column("pdf_url", sa.Text(), nullable=True),
        sa.Column(
            "audit_log",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("type IN ('MSA','SOW')", name="chk_contract_type"),
        sa.CheckConstraint(
            "status IN ('Draft','Under Review','Signed','Active','Expired','Terminated')",
            name="chk_contract_status",
        ),
        sa.CheckConstraint("value >= 0", name="chk_contract_value"),
        sa.CheckConstraint("end_date >= start_date", name="chk_contract_dates"),
    )
    op.create_index("idx_contracts_status", "contracts", ["status"])
    op.create_index("idx_contracts_end_date", "contracts", ["end_date"])
    op.create_index("idx_contracts_vendor_name", "contracts", ["vendor_name"])


def downgrade() -> None:
    op.drop_index("idx_contracts_vendor_name", table_name="contracts")
    op.drop_index("idx_contracts_end_date", table_name="contracts")
    op.drop_index("idx_contracts_status", table_name="contracts")
    op.drop_table("contracts")
    op.drop_index("idx_vendors_status", table_name="vendors")
    op.drop_index("idx_vendors_name", table_name="vendors")
    op.drop_table("vendors")
