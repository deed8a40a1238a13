"""initial schema - customers, areas, bapp_contracts, signatures, monthly_progress, signature_progress, profiles

Revision ID: 001
Revises:
Create Date: 2025-06-02

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_customers_name"), "customers", ["name"], unique=True)

    op.create_table(
        "areas",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("customer_id", "code", name="areas_customer_id_code_key"),
    )
    op.create_index(op.f("ix_areas_customer_id"), "areas", ["customer_id"], unique=False)

    op.create_table(
        "bapp_contracts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("area_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column("period", sa.String(30), nullable=False),
        sa.Column("invoice_type", sa.String(20), nullable=False, comment="Pusat / Regional 2 / Regional 3"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["area_id"], ["areas.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "invoice_type IN ('Pusat', 'Regional 2', 'Regional 3')", name="bapp_contracts_invoice_type_check"
        ),
    )
    op.create_index(op.f("ix_bapp_contracts_customer_id"), "bapp_contracts", ["customer_id"], unique=False)
    op.create_index(op.f("ix_bapp_contracts_area_id"), "bapp_contracts", ["area_id"], unique=False)
    op.create_index(op.f("ix_bapp_contracts_year"), "bapp_contracts", ["year"], unique=False)

    op.create_table(
        "signatures",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("contract_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(200), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["contract_id"], ["bapp_contracts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_signatures_contract_id"), "signatures", ["contract_id"], unique=False)

    op.create_table(
        "monthly_progress",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("contract_id", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False, comment="1-12"),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("sub_period", sa.Integer(), nullable=True, comment="1 or 2; NULL = legacy, read as 1"),
        sa.Column("upload_link", sa.String(1000), nullable=True),
        sa.Column("is_upload_completed", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("notes_updated_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["contract_id"], ["bapp_contracts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contract_id", "year", "month", "sub_period", name="uq_monthly_progress_period"),
    )
    op.create_index(op.f("ix_monthly_progress_contract_id"), "monthly_progress", ["contract_id"], unique=False)
    op.create_index(op.f("ix_monthly_progress_year"), "monthly_progress", ["year"], unique=False)

    op.create_table(
        "signature_progress",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("monthly_progress_id", sa.Integer(), nullable=False),
        sa.Column("signature_id", sa.Integer(), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("completed_by", sa.String(200), nullable=True),
        sa.ForeignKeyConstraint(["monthly_progress_id"], ["monthly_progress.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["signature_id"], ["signatures.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("monthly_progress_id", "signature_id", name="uq_signature_progress_pair"),
    )
    op.create_index(
        op.f("ix_signature_progress_monthly_progress_id"), "signature_progress", ["monthly_progress_id"], unique=False
    )
    op.create_index(op.f("ix_signature_progress_signature_id"), "signature_progress", ["signature_id"], unique=False)

    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(200), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, comment="admin / viewer"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_profiles_email"), "profiles", ["email"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_profiles_email"), table_name="profiles")
    op.drop_table("profiles")
    op.drop_index(op.f("ix_signature_progress_signature_id"), table_name="signature_progress")
    op.drop_index(op.f("ix_signature_progress_monthly_progress_id"), table_name="signature_progress")
    op.drop_table("signature_progress")
    op.drop_index(op.f("ix_monthly_progress_year"), table_name="monthly_progress")
    op.drop_index(op.f("ix_monthly_progress_contract_id"), table_name="monthly_progress")
    op.drop_table("monthly_progress")
    op.drop_index(op.f("ix_signatures_contract_id"), table_name="signatures")
    op.drop_table("signatures")
    op.drop_index(op.f("ix_bapp_contracts_year"), table_name="bapp_contracts")
    op.drop_index(op.f("ix_bapp_contracts_area_id"), table_name="bapp_contracts")
    op.drop_index(op.f("ix_bapp_contracts_customer_id"), table_name="bapp_contracts")
    op.drop_table("bapp_contracts")
    op.drop_index(op.f("ix_areas_customer_id"), table_name="areas")
    op.drop_table("areas")
    op.drop_index(op.f("ix_customers_name"), table_name="customers")
    op.drop_table("customers")
