"""SQLAlchemy-backed token store.

Persists tokens in the ``passwordless_tokens`` table through
TokenRecordRepository. Each operation runs in its own session and commits
before returning. Tokens are stored as SHA-256 hashes.
"""

from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from passwordless.core.errors import TokenStoreError
from passwordless.core.tokens import hash_token
from passwordless.repositories.token_record_repository import TokenRecordRepository
from passwordless.services.token_store import Clock, utcnow


class SqlAlchemyTokenStore:
    """TokenStore over an async SQLAlchemy session factory.

    Storing replaces the uid's row inside one transaction. consume() is a
    single DELETE ... RETURNING, which serializes concurrent attempts to use
    the same token.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utcnow,
    ) -> None:
        """Initialize the store.

        Args:
            session_factory: Factory producing AsyncSession instances.
            clock: Returns the current time. Injected by tests.
        """
        self._session_factory = session_factory
        self._clock = clock

    async def authenticate(self, token: str, uid: str) -> tuple[bool, str | None]:
        async with self._session_factory() as db:
            record = await TokenRecordRepository.get_valid(
                db, uid=uid, token_hash=hash_token(token), now=self._clock()
            )
        if record is None:
            return False, None
        return True, record.origin_url

    async def consume(self, token: str, uid: str) -> tuple[bool, str | None]:
        async with self._session_factory() as db:
            consumed, origin_url = await TokenRecordRepository.consume(
                db, uid=uid, token_hash=hash_token(token), now=self._clock()
            )
            if consumed:
                # Drop any other outstanding token for this uid too
                await TokenRecordRepository.delete_for_uid(db, uid=uid)
            await db.commit()
        return consumed, origin_url

    async def store_or_update(
        self,
        token: str,
        uid: str,
        ttl_ms: int | float,
        origin_url: str | None = None,
    ) -> None:
        if not token or not uid or ttl_ms <= 0:
            msg = "token, uid and a positive ttl_ms are required"
            raise ValueError(msg)

        async with self._session_factory() as db:
            try:
                await TokenRecordRepository.replace(
                    db,
                    uid=uid,
                    token_hash=hash_token(token),
                    expires_at=self._clock() + timedelta(milliseconds=ttl_ms),
                    origin_url=origin_url,
                )
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                msg = "Concurrent token write for the same uid"
                raise TokenStoreError(msg) from exc

    async def invalidate_user(self, uid: str) -> None:
        async with self._session_factory() as db:
            await TokenRecordRepository.delete_for_uid(db, uid=uid)
            await db.commit()

    async def length(self) -> int:
        async with self._session_factory() as db:
            return await TokenRecordRepository.count(db)

    async def cleanup_expired(self) -> int:
        """Delete expired rows. Returns the number removed."""
        async with self._session_factory() as db:
            removed = await TokenRecordRepository.delete_expired(db, now=self._clock())
            await db.commit()
        return removed
