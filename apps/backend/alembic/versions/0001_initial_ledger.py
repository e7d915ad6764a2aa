"""initial ledger schema: users, accounts, categories, transactions

Revision ID: 0001_initial_ledger
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_ledger"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


TXN_TYPE = sa.Enum("expense", "income", "transfer", name="txn_type")


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "account",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("balance", sa.Numeric(15, 2), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ),
        sa.UniqueConstraint("user_id", "name", name="uq_account_name"),
    )
    op.create_index("ix_account_user_id", "account", ["user_id"], unique=False)

    op.create_table(
        "category",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", TXN_TYPE, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ),
    )

    op.create_table(
        "subcategory",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "transaction",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("destination_account_id", sa.Integer(), nullable=True),
        sa.Column("sub_category_id", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("type", TXN_TYPE, nullable=False),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.Column("transaction_date", sa.DateTime(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ),
        sa.ForeignKeyConstraint(["account_id"], ["account.id"], ),
        sa.ForeignKeyConstraint(["destination_account_id"], ["account.id"], ),
        sa.ForeignKeyConstraint(["sub_category_id"], ["subcategory.id"], ondelete="SET NULL"),
        sa.CheckConstraint("amount > 0", name="ck_transaction_amount_positive"),
        sa.CheckConstraint(
            "destination_account_id IS NULL OR destination_account_id != account_id",
            name="ck_transaction_not_self_transfer",
        ),
    )
    op.create_index("ix_transaction_user_date", "transaction", ["user_id", "transaction_date"], unique=False)
    op.create_index("ix_transaction_account", "transaction", ["account_id"], unique=False)
    op.create_index("ix_transaction_destination", "transaction", ["destination_account_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_transaction_destination", table_name="transaction")
    op.drop_index("ix_transaction_account", table_name="transaction")
    op.drop_index("ix_transaction_user_date", table_name="transaction")
    op.drop_table("transaction")
    op.drop_table("subcategory")
    op.drop_table("category")
    op.drop_index("ix_account_user_id", table_name="account")
    op.drop_table("account")
    op.drop_table("user")
    TXN_TYPE.drop(op.get_bind(), checkfirst=True)
