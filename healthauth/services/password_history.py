"""Password reuse prevention."""

import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from healthauth.core.config import settings
from healthauth.core.exceptions import InvalidInput
from healthauth.core.security import is_password_hash, verify_password
from healthauth.db.session import Database
from healthauth.models.password_history import PasswordHistoryEntry
from healthauth.utils.time import Clock, utcnow

logger = logging.getLogger(__name__)


class PasswordHistory:
    """
    Append-only log of a user's recent password hashes.

    Only the newest `depth` entries are retained; everything older is pruned
    in the same transaction that appends.
    """

    def __init__(
        self,
        database: Database,
        clock: Clock = utcnow,
        depth: int = settings.PASSWORD_HISTORY_DEPTH,
    ):
        self.database = database
        self.clock = clock
        self.depth = depth

    def _newest(self, user_id: uuid.UUID):
        return (
            select(PasswordHistoryEntry)
            .where(PasswordHistoryEntry.user_id == user_id)
            .order_by(PasswordHistoryEntry.created_at.desc(), PasswordHistoryEntry.id.desc())
            .limit(self.depth)
        )

    async def recent_hashes(self, user_id: uuid.UUID, *, db: AsyncSession | None = None) -> list[str]:
        async with self.database.transaction(db) as session:
            result = await session.execute(self._newest(user_id))
            return [entry.password_hash for entry in result.scalars().all()]

    async def was_recently_used(
        self,
        user_id: uuid.UUID,
        candidate_plaintext: str,
        *,
        db: AsyncSession | None = None,
    ) -> bool:
        """
        Check a candidate password against the retained hashes.

        Args:
            user_id: Owner of the history
            candidate_plaintext: The password as typed, never a hash

        Returns:
            True if the candidate matches any retained hash

        Raises:
            InvalidInput: if the candidate is itself a password hash
        """
        if is_password_hash(candidate_plaintext):
            raise InvalidInput("Password history expects a plaintext candidate, not a hash")

        for password_hash in await self.recent_hashes(user_id, db=db):
            if verify_password(candidate_plaintext, password_hash):
                return True
        return False

    async def record(
        self,
        user_id: uuid.UUID,
        password_hash: str,
        *,
        db: AsyncSession | None = None,
    ) -> None:
        """Append a hash and prune the history back to `depth` entries."""
        async with self.database.transaction(db) as session:
            session.add(
                PasswordHistoryEntry(
                    user_id=user_id,
                    password_hash=password_hash,
                    created_at=self.clock(),
                )
            )
            await session.flush()

            keep = self._newest(user_id).with_only_columns(PasswordHistoryEntry.id)
            result = await session.execute(
                delete(PasswordHistoryEntry)
                .where(
                    PasswordHistoryEntry.user_id == user_id,
                    PasswordHistoryEntry.id.not_in(keep),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                logger.debug(f"Pruned {result.rowcount} password history entries")
