"""Repository for PasswordlessToken CRUD operations.

Single-use sign-in tokens stored as hashed values, one row per uid, with
time-limited expiry. Expiry is compared inside SQL so that backends which
drop timezone information (SQLite) still compare consistently.
"""

from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from passwordless.models.token_record import PasswordlessToken


class TokenRecordRepository:
    """Stateless repository for PasswordlessToken table operations.

    All methods are static, with no instance state. Callers own the transaction.
    """

    @staticmethod
    async def replace(
        db: AsyncSession,
        *,
        uid: str,
        token_hash: str,
        expires_at: datetime,
        origin_url: str | None,
    ) -> PasswordlessToken:
        """Store a token for ``uid``, replacing any previous row.

        Args:
            db: Async database session.
            uid: Owner of the token.
            token_hash: SHA-256 hash of the plain token.
            expires_at: Token expiry timestamp.
            origin_url: Optional post-authentication redirect target.

        Returns:
            Created PasswordlessToken.

        Raises:
            sqlalchemy.exc.IntegrityError: If a concurrent transaction inserted
                a row for the same uid first.
        """
        await db.execute(delete(PasswordlessToken).where(PasswordlessToken.uid == uid))
        record = PasswordlessToken(
            uid=uid,
            token_hash=token_hash,
            expires_at=expires_at,
            origin_url=origin_url,
        )
        db.add(record)
        await db.flush()
        return record

    @staticmethod
    async def get_valid(
        db: AsyncSession,
        *,
        uid: str,
        token_hash: str,
        now: datetime,
    ) -> PasswordlessToken | None:
        """Look up an unexpired token for ``uid``.

        Args:
            db: Async database session.
            uid: Owner of the token.
            token_hash: SHA-256 hash of the plain token.
            now: Current time.

        Returns:
            PasswordlessToken if found and unexpired, None otherwise.
        """
        stmt = select(PasswordlessToken).where(
            PasswordlessToken.uid == uid,
            PasswordlessToken.token_hash == token_hash,
            PasswordlessToken.expires_at > now,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def consume(
        db: AsyncSession,
        *,
        uid: str,
        token_hash: str,
        now: datetime,
    ) -> tuple[bool, str | None]:
        """Delete an unexpired token and report whether it existed.

        A single DELETE ... RETURNING, so two concurrent requests cannot
        both consume the same token.

        Returns:
            (consumed, origin_url).
        """
        stmt = (
            delete(PasswordlessToken)
            .where(
                PasswordlessToken.uid == uid,
                PasswordlessToken.token_hash == token_hash,
                PasswordlessToken.expires_at > now,
            )
            .returning(PasswordlessToken.origin_url)
        )
        result = await db.execute(stmt)
        row = result.first()
        if row is None:
            return False, None
        return True, row[0]

    @staticmethod
    async def delete_for_uid(db: AsyncSession, *, uid: str) -> None:
        """Delete all tokens for a uid (single-use cleanup, logout).

        Args:
            db: Async database session.
            uid: Owner of the tokens.
        """
        await db.execute(delete(PasswordlessToken).where(PasswordlessToken.uid == uid))

    @staticmethod
    async def count(db: AsyncSession) -> int:
        """Number of stored tokens, expired or not."""
        result = await db.execute(select(func.count()).select_from(PasswordlessToken))
        return int(result.scalar_one())

    @staticmethod
    async def delete_expired(db: AsyncSession, *, now: datetime) -> int:
        """Delete all expired tokens (periodic cleanup).

        Args:
            db: Async database session.
            now: Current time.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(PasswordlessToken).where(PasswordlessToken.expires_at <= now)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
