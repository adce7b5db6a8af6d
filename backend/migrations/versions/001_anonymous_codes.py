"""Create anonymous_codes table.

Revision ID: 001_anonymous_codes
Revises:
Create Date: 2026-10-19

Issuance records for the anonymous authorization flow, keyed by the opaque
verification code. user_code_hash is unique: two active records may never
share a user code.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_anonymous_codes"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "anonymous_codes",
        sa.Column("verification_code", sa.String(100), primary_key=True),
        sa.Column("client_id", sa.String(100), nullable=False),
        sa.Column("user_code_hash", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("lifetime", sa.Integer(), nullable=False),
        sa.Column("allowed_retries", sa.Integer(), nullable=False),
        sa.Column("transport", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("return_url", sa.String(400), nullable=True),
        sa.Column(
            "requested_scopes",
            sa.JSON(),
            nullable=False,
            server_default=sa.text("'[]'"),
        ),
        sa.CheckConstraint("lifetime > 0", name="ck_anonymous_codes_lifetime"),
        sa.CheckConstraint(
            "allowed_retries > 0", name="ck_anonymous_codes_allowed_retries"
        ),
    )
    op.create_index(
        "idx_anonymous_codes_user_code_hash",
        "anonymous_codes",
        ["user_code_hash"],
        unique=True,
    )
    op.create_index("idx_anonymous_codes_client_id", "anonymous_codes", ["client_id"])
    op.create_index(
        "idx_anonymous_codes_expires_at", "anonymous_codes", ["expires_at"]
    )


def downgrade() -> None:
    op.drop_index("idx_anonymous_codes_expires_at", table_name="anonymous_codes")
    op.drop_index("idx_anonymous_codes_client_id", table_name="anonymous_codes")
    op.drop_index("idx_anonymous_codes_user_code_hash", table_name="anonymous_codes")
    op.drop_table("anonymous_codes")
