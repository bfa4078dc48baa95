"""Provisioning tables: invited credentials, profiles, roles, repairs

Revision ID: 20251020_000001
Revises: 
Create Date: 2025-10-20 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20251020_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PROFILE_TEXT_COLUMNS = ("address_malaysia", "address_korea")

PROFILE_STRING_COLUMNS = (
    "full_name",
    "gender",
    "marital_status",
    "race",
    "religion",
    "date_of_birth",
    "born_place",
    "passport_number",
    "arc_number",
    "identity_card_number",
    "telephone_malaysia",
    "telephone_korea",
    "studying_place",
    "study_course",
    "study_level",
    "study_start_date",
    "study_end_date",
    "study_year",
    "ppmk_batch",
    "sponsorship",
    "sponsorship_address",
    "sponsorship_phone_number",
    "blood_type",
    "allergy",
    "medical_condition",
    "next_of_kin",
    "next_of_kin_relationship",
    "next_of_kin_contact_number",
)


def upgrade() -> None:
    op.create_table(
        "invited_credentials",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="member"),
        sa.Column("invited_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_invited_credentials_email", "invited_credentials", ["email"])
    op.create_index("idx_invited_credentials_email_used", "invited_credentials", ["email", "used"])

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("username", sa.String(), nullable=True),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.String(), nullable=True),
        sa.Column("must_change_password", sa.Boolean(), nullable=False, server_default=sa.false()),
        *[sa.Column(name, sa.String(), nullable=True) for name in PROFILE_STRING_COLUMNS],
        *[sa.Column(name, sa.Text(), nullable=True) for name in PROFILE_TEXT_COLUMNS],
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_profiles_user_id", "profiles", ["user_id"], unique=True)
    op.create_index("ix_profiles_email", "profiles", ["email"])

    op.create_table(
        "user_roles",
        sa.Column("user_id", sa.String(), primary_key=True),
        sa.Column("role", sa.String(), nullable=False, server_default="member"),
        sa.Column("assigned_by", sa.String(), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "provisioning_repairs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("stage", sa.String(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_provisioning_repairs_user_id", "provisioning_repairs", ["user_id"])
    op.create_index("ix_provisioning_repairs_status", "provisioning_repairs", ["status"])


def downgrade() -> None:
    op.drop_index("ix_provisioning_repairs_status", table_name="provisioning_repairs")
    op.drop_index("ix_provisioning_repairs_user_id", table_name="provisioning_repairs")
    op.drop_table("provisioning_repairs")
    op.drop_table("user_roles")
    op.drop_index("ix_profiles_email", table_name="profiles")
    op.drop_index("ix_profiles_user_id", table_name="profiles")
    op.drop_table("profiles")
    op.drop_index("idx_invited_credentials_email_used", table_name="invited_credentials")
    op.drop_index("ix_invited_credentials_email", table_name="invited_credentials")
    op.drop_table("invited_credentials")
