"""Anonymous code model - persisted issuance records.

One row per issuance call, keyed by the opaque verification code. The user
code itself is never stored; only its hash, which is unique across the
table. Expired rows sharing a hash are removed by the store right before a
new record with that hash is inserted.
"""

from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from anonauth.models.base import Base


class AnonymousCode(Base):
    """Issuance record for the anonymous authorization flow.

    Attributes:
        verification_code: Opaque handle, primary key.
        client_id: Issuing client.
        user_code_hash: SHA-256 hex digest of the user code.
        created_at: Creation timestamp (UTC).
        expires_at: created_at + lifetime, stored for expiry queries.
        lifetime: Lifetime in seconds.
        allowed_retries: Redemption attempts allowed downstream.
        transport: Delivery channel name.
        description: Free-text description.
        return_url: Return URL after the grant completes.
        requested_scopes: Requested scopes (JSON list).
    """

    __tablename__ = "anonymous_codes"
    __table_args__ = (
        Index("idx_anonymous_codes_user_code_hash", "user_code_hash", unique=True),
        Index("idx_anonymous_codes_client_id", "client_id"),
        Index("idx_anonymous_codes_expires_at", "expires_at"),
        CheckConstraint("lifetime > 0", name="ck_anonymous_codes_lifetime"),
        CheckConstraint(
            "allowed_retries > 0", name="ck_anonymous_codes_allowed_retries"
        ),
    )

    verification_code: Mapped[str] = mapped_column(String(100), primary_key=True)
    client_id: Mapped[str] = mapped_column(String(100), nullable=False)
    user_code_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    lifetime: Mapped[int] = mapped_column(Integer, nullable=False)
    allowed_retries: Mapped[int] = mapped_column(Integer, nullable=False)
    transport: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    return_url: Mapped[str | None] = mapped_column(String(400), nullable=True)
    requested_scopes: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
