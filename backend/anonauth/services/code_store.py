"""Issuance record stores.

CodeStore is the only shared mutable resource of the issuance pipeline.
``store`` is an insert-if-absent: it refuses a record whose verification
code already exists or whose user code hash belongs to another active
record, raising DuplicateUserCodeError. The orchestrator's read-only
uniqueness check runs before the write, so two concurrent issuances can
still pick the same hash; the second write then fails in its background
task and is logged.

Implementations:
    - InMemoryCodeStore: single-process, for local development and tests.
      Check and insert happen without an intervening await, which makes
      them atomic on the event loop. Not safe for multi-threaded access.
    - DatabaseCodeStore: PostgreSQL via SQLAlchemy, relying on the primary
      key and the unique index on ``user_code_hash``.
"""

import logging
from abc import ABC, abstractmethod

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from anonauth.core.clock import Clock
from anonauth.core.errors import DuplicateUserCodeError
from anonauth.repositories.anonymous_code_repository import AnonymousCodeRepository
from anonauth.services.issuance_types import IssuanceRecord

logger = logging.getLogger(__name__)


class CodeStore(ABC):
    """Persistence contract for issuance records."""

    @abstractmethod
    async def store(self, key: str, record: IssuanceRecord) -> None:
        """Insert a record if its key and user code hash are free.

        Args:
            key: Verification code the record is stored under.
            record: Record to store.

        Raises:
            DuplicateUserCodeError: If the key exists, or the hash belongs
                to another active record.
            ValueError: If *key* differs from ``record.verification_code``.
        """
        ...

    @abstractmethod
    async def find_by_user_code_hash(
        self, user_code_hash: str, include_expired: bool = False
    ) -> IssuanceRecord | None:
        """Find the record holding a user code hash.

        Args:
            user_code_hash: Hash of the user code.
            include_expired: Also return an expired record.

        Returns:
            The record, or None.
        """
        ...

    @abstractmethod
    async def find_by_verification_code(self, key: str) -> IssuanceRecord | None:
        """Find a record by its verification code."""
        ...

    @abstractmethod
    async def remove_expired(self) -> int:
        """Remove expired records.

        Returns:
            Number of records removed.
        """
        ...


class InMemoryCodeStore(CodeStore):
    """Dict-backed store.

    Args:
        clock: Time source for expiry checks.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or Clock()
        self._records: dict[str, IssuanceRecord] = {}
        self._hash_index: dict[str, str] = {}  # user_code_hash -> key

    async def store(self, key: str, record: IssuanceRecord) -> None:
        if record.verification_code != key:
            raise ValueError("Record verification code does not match its key")

        now = self._clock.now_utc()
        if key in self._records:
            raise DuplicateUserCodeError("Verification code is already in use")

        holder_key = self._hash_index.get(record.user_code_hash)
        if holder_key is not None:
            holder = self._records[holder_key]
            if not holder.is_expired(now):
                raise DuplicateUserCodeError()
            # Expired holder gives up the hash
            del self._records[holder_key]

        self._records[key] = record
        self._hash_index[record.user_code_hash] = key

    async def find_by_user_code_hash(
        self, user_code_hash: str, include_expired: bool = False
    ) -> IssuanceRecord | None:
        key = self._hash_index.get(user_code_hash)
        if key is None:
            return None
        record = self._records[key]
        if not include_expired and record.is_expired(self._clock.now_utc()):
            return None
        return record

    async def find_by_verification_code(self, key: str) -> IssuanceRecord | None:
        return self._records.get(key)

    async def remove_expired(self) -> int:
        now = self._clock.now_utc()
        expired = [key for key, rec in self._records.items() if rec.is_expired(now)]
        for key in expired:
            record = self._records.pop(key)
            self._hash_index.pop(record.user_code_hash, None)
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)

    def clear(self) -> None:
        """Clear all records (for testing)."""
        self._records.clear()
        self._hash_index.clear()


class DatabaseCodeStore(CodeStore):
    """PostgreSQL-backed store.

    Each call opens its own session, so the store can be used from
    background tasks that outlive the request that spawned them.

    Args:
        session_factory: Async session factory.
        clock: Time source for expiry checks.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or Clock()

    async def store(self, key: str, record: IssuanceRecord) -> None:
        if record.verification_code != key:
            raise ValueError("Record verification code does not match its key")

        now = self._clock.now_utc()
        async with self._session_factory() as db:
            try:
                freed = await AnonymousCodeRepository.delete_expired_by_user_code_hash(
                    db, record.user_code_hash, now=now
                )
                if freed:
                    logger.debug("Freed user code hash held by %d expired record", freed)
                await AnonymousCodeRepository.create(db, record)
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise DuplicateUserCodeError() from exc

    async def find_by_user_code_hash(
        self, user_code_hash: str, include_expired: bool = False
    ) -> IssuanceRecord | None:
        async with self._session_factory() as db:
            return await AnonymousCodeRepository.get_by_user_code_hash(
                db,
                user_code_hash,
                now=self._clock.now_utc(),
                include_expired=include_expired,
            )

    async def find_by_verification_code(self, key: str) -> IssuanceRecord | None:
        async with self._session_factory() as db:
            return await AnonymousCodeRepository.get_by_verification_code(db, key)

    async def remove_expired(self) -> int:
        async with self._session_factory() as db:
            removed = await AnonymousCodeRepository.delete_expired(
                db, now=self._clock.now_utc()
            )
            await db.commit()
        return removed
