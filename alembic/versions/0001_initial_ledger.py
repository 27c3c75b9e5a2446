"""initial ledger schema

Revision ID: 0001_initial_ledger
Revises:
Create Date: 2026-10-18 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial_ledger"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "admins",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=100), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=True),
        sa.Column("role", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_admins")),
    )
    op.create_index(op.f("ix_admins_email"), "admins", ["email"], unique=True)
    op.create_index(op.f("ix_admins_id"), "admins", ["id"], unique=False)

    op.create_table(
        "participants",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("scan_count", sa.Integer(), nullable=False),
        sa.Column("win_count", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "scan_count >= 0",
            name=op.f("ck_participants_scan_count_non_negative"),
        ),
        sa.CheckConstraint(
            "win_count >= 0 AND win_count <= scan_count",
            name=op.f("ck_participants_win_count_bounds"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_participants")),
        sa.UniqueConstraint("phone", name=op.f("uq_participants_phone")),
    )

    op.create_table(
        "redemption_entries",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("receipt_unique_id", sa.String(length=255), nullable=False),
        sa.Column("receipt_variant", sa.String(length=20), nullable=False),
        sa.Column("participant_id", ID_TYPE, nullable=False),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("outcome", sa.String(length=10), nullable=False),
        sa.Column("prize_tier", sa.String(length=100), nullable=True),
        sa.Column("prize_value", sa.Integer(), nullable=False),
        sa.Column("transaction_hash", sa.String(length=64), nullable=False),
        sa.Column("random_seed", sa.String(length=64), nullable=False),
        sa.CheckConstraint(
            "outcome IN ('WIN','LOSE')",
            name=op.f("ck_redemption_entries_outcome_enum"),
        ),
        sa.CheckConstraint(
            "(outcome = 'WIN' AND prize_tier IS NOT NULL) OR "
            "(outcome = 'LOSE' AND prize_tier IS NULL)",
            name=op.f("ck_redemption_entries_prize_iff_win"),
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["participants.id"],
            name=op.f("fk_redemption_entries_participant_id_participants"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_redemption_entries")),
    )
    op.create_index(
        "ux_redemption_entries_receipt_unique_id",
        "redemption_entries",
        ["receipt_unique_id"],
        unique=True,
    )
    op.create_index(
        "ux_redemption_entries_transaction_hash",
        "redemption_entries",
        ["transaction_hash"],
        unique=True,
    )
    op.create_index(
        "ix_redemption_entries_participant_time",
        "redemption_entries",
        ["participant_id", "redeemed_at"],
        unique=False,
    )
    op.create_index(
        "ix_redemption_entries_outcome_time",
        "redemption_entries",
        ["outcome", "redeemed_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_redemption_entries_outcome_time", table_name="redemption_entries")
    op.drop_index("ix_redemption_entries_participant_time", table_name="redemption_entries")
    op.drop_index("ux_redemption_entries_transaction_hash", table_name="redemption_entries")
    op.drop_index("ux_redemption_entries_receipt_unique_id", table_name="redemption_entries")
    op.drop_table("redemption_entries")
    op.drop_table("participants")
    op.drop_index(op.f("ix_admins_id"), table_name="admins")
    op.drop_index(op.f("ix_admins_email"), table_name="admins")
    op.drop_table("admins")
