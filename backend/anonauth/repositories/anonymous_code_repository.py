"""Repository for AnonymousCode CRUD operations.

Issuance records are keyed by verification code and looked up either by
that key or by the hash of the user code.
"""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from anonauth.models.anonymous_code import AnonymousCode
from anonauth.services.issuance_types import IssuanceRecord


def _to_record(row: AnonymousCode) -> IssuanceRecord:
    """Convert an ORM row to the domain record."""
    return IssuanceRecord(
        verification_code=row.verification_code,
        client_id=row.client_id,
        user_code_hash=row.user_code_hash,
        created_at=row.created_at,
        lifetime=row.lifetime,
        allowed_retries=row.allowed_retries,
        transport=row.transport,
        description=row.description,
        return_url=row.return_url,
        requested_scopes=list(row.requested_scopes or []),
    )


class AnonymousCodeRepository:
    """Stateless repository for AnonymousCode table operations.

    All methods are static; no instance state.
    """

    @staticmethod
    async def create(db: AsyncSession, record: IssuanceRecord) -> AnonymousCode:
        """Insert a new issuance record.

        Args:
            db: Async database session.
            record: Record to store.

        Returns:
            Created AnonymousCode row.

        Raises:
            sqlalchemy.exc.IntegrityError: On a duplicate verification code
                or user code hash (raised by flush).
        """
        row = AnonymousCode(
            verification_code=record.verification_code,
            client_id=record.client_id,
            user_code_hash=record.user_code_hash,
            created_at=record.created_at,
            expires_at=record.expires_at,
            lifetime=record.lifetime,
            allowed_retries=record.allowed_retries,
            transport=record.transport,
            description=record.description,
            return_url=record.return_url,
            requested_scopes=list(record.requested_scopes),
        )
        db.add(row)
        await db.flush()
        return row

    @staticmethod
    async def get_by_verification_code(
        db: AsyncSession, verification_code: str
    ) -> IssuanceRecord | None:
        """Look up a record by its verification code.

        Args:
            db: Async database session.
            verification_code: Opaque handle.

        Returns:
            IssuanceRecord if found, None otherwise.
        """
        row = await db.get(AnonymousCode, verification_code)
        return _to_record(row) if row is not None else None

    @staticmethod
    async def get_by_user_code_hash(
        db: AsyncSession,
        user_code_hash: str,
        *,
        now: datetime,
        include_expired: bool = False,
    ) -> IssuanceRecord | None:
        """Look up a record by user code hash.

        Args:
            db: Async database session.
            user_code_hash: Hash of the user code.
            now: Reference time for expiry.
            include_expired: Also return an expired record.

        Returns:
            IssuanceRecord if found, None otherwise.
        """
        stmt = select(AnonymousCode).where(
            AnonymousCode.user_code_hash == user_code_hash
        )
        if not include_expired:
            stmt = stmt.where(AnonymousCode.expires_at > now)
        result = await db.execute(stmt)
        row = result.scalar_one_or_none()
        return _to_record(row) if row is not None else None

    @staticmethod
    async def delete_expired_by_user_code_hash(
        db: AsyncSession, user_code_hash: str, *, now: datetime
    ) -> int:
        """Delete an expired record holding a user code hash.

        Frees the hash for reissue under the unique index.

        Args:
            db: Async database session.
            user_code_hash: Hash of the user code.
            now: Reference time for expiry.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(AnonymousCode).where(
            AnonymousCode.user_code_hash == user_code_hash,
            AnonymousCode.expires_at <= now,
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def delete_expired(db: AsyncSession, *, now: datetime) -> int:
        """Delete all expired records (periodic cleanup).

        Args:
            db: Async database session.
            now: Reference time for expiry.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(AnonymousCode).where(AnonymousCode.expires_at <= now)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
