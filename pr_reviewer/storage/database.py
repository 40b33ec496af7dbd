"""
Relational Storage Adapter

Implements the storage ports with SQLAlchemy Core on an async engine.
PostgreSQL (asyncpg) is the production target; SQLite (aiosqlite) works for
local runs and tests.

Design Decisions:
- Every public method runs in its own transaction (``engine.begin()``), which
  commits on success and rolls back on any exception or cancellation
- Driver exceptions are translated at this boundary: unique violations
  become RecordExistsError, everything else StorageError
- Reassignment locks the PR row with SELECT ... FOR UPDATE for the whole
  transaction. SQLite ignores FOR UPDATE, so on SQLite every transaction
  starts with BEGIN IMMEDIATE and holds the database write lock instead
- The candidate pool for a reassignment is read on the transaction's own
  connection, so a reassignment never needs a second pooled connection
- SQLite hands back naive timestamps; all times are normalized to UTC
- Connectivity is verified at startup with tenacity exponential backoff
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Iterable, List, Optional, Sequence

from sqlalchemy import and_, delete, event, func, insert, select, text, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pr_reviewer.config import Settings
from pr_reviewer.logging_config import get_logger
from pr_reviewer.models import PRStatus, PullRequest, PullRequestShort, User
from pr_reviewer.storage import tables
from pr_reviewer.storage.base import (
    PRStorage,
    PRTransaction,
    Storage,
    TeamStorage,
    UserStorage,
)
from pr_reviewer.storage.errors import (
    RecordExistsError,
    RecordNotFoundError,
    ReviewerNotAssignedError,
    StorageError,
)

logger = get_logger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """
    Check whether an IntegrityError comes from a unique/primary key constraint.

    asyncpg exposes the SQLSTATE on the adapted exception; SQLite only
    reports it in the message.
    """
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION_SQLSTATE
    return "UNIQUE constraint failed" in str(orig)


@asynccontextmanager
async def translate_errors(op: str) -> AsyncIterator[None]:
    """Re-raise driver failures as storage exceptions, keeping the cause."""
    try:
        yield
    except IntegrityError as e:
        if is_unique_violation(e):
            raise RecordExistsError(f"{op}: unique constraint violated") from e
        raise StorageError(f"{op}: integrity error") from e
    except SQLAlchemyError as e:
        raise StorageError(f"{op}: {type(e).__name__}") from e


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive values (SQLite) and convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _row_to_user(row) -> User:
    return User(
        user_id=row.user_id,
        username=row.username,
        team_name=row.team_name,
        is_active=row.is_active,
    )


async def _fetch_reviewer_ids(conn: AsyncConnection, pr_id: str) -> List[str]:
    result = await conn.execute(
        select(tables.pull_request_reviewers.c.user_id)
        .where(tables.pull_request_reviewers.c.pull_request_id == pr_id)
    )
    return list(result.scalars().all())


async def _fetch_pr(
    conn: AsyncConnection,
    pr_id: str,
    for_update: bool = False
) -> Optional[PullRequest]:
    stmt = select(tables.pull_requests).where(
        tables.pull_requests.c.pull_request_id == pr_id
    )
    if for_update:
        stmt = stmt.with_for_update()
    row = (await conn.execute(stmt)).first()
    if row is None:
        return None
    return PullRequest(
        pull_request_id=row.pull_request_id,
        pull_request_name=row.pull_request_name,
        author_id=row.author_id,
        status=PRStatus(row.status),
        assigned_reviewers=await _fetch_reviewer_ids(conn, pr_id),
        created_at=_as_utc(row.created_at),
        merged_at=_as_utc(row.merged_at),
    )


async def _fetch_active_teammate_ids(
    conn: AsyncConnection,
    author_id: str,
    exclude_ids: Iterable[str]
) -> List[str]:
    author_team = (
        select(tables.users.c.team_name)
        .where(tables.users.c.user_id == author_id)
        .scalar_subquery()
    )
    stmt = select(tables.users.c.user_id).where(
        and_(
            tables.users.c.team_name == author_team,
            tables.users.c.is_active.is_(True),
            tables.users.c.user_id.not_in(list(exclude_ids)),
        )
    )
    result = await conn.execute(stmt)
    return list(result.scalars().all())


class SQLUserStorage(UserStorage):

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def user_exists_and_has_team(self, user_id: str) -> bool:
        async with translate_errors("storage.user.user_exists_and_has_team"):
            async with self._engine.connect() as conn:
                result = await conn.execute(
                    select(tables.users.c.user_id).where(
                        and_(
                            tables.users.c.user_id == user_id,
                            tables.users.c.team_name.is_not(None),
                        )
                    )
                )
                return result.first() is not None

    async def get_active_teammate_ids(
        self,
        author_id: str,
        exclude_ids: Iterable[str]
    ) -> List[str]:
        async with translate_errors("storage.user.get_active_teammate_ids"):
            async with self._engine.connect() as conn:
                return await _fetch_active_teammate_ids(conn, author_id, exclude_ids)

    async def upsert_users(self, users: Sequence[User]) -> None:
        if not users:
            return
        rows = [user.model_dump() for user in users]
        dialect_insert = (
            sqlite_insert if self._engine.dialect.name == "sqlite" else pg_insert
        )
        stmt = dialect_insert(tables.users)
        stmt = stmt.on_conflict_do_update(
            index_elements=[tables.users.c.user_id],
            set_={
                "username": stmt.excluded.username,
                "team_name": stmt.excluded.team_name,
                "is_active": stmt.excluded.is_active,
            },
        )
        async with translate_errors("storage.user.upsert_users"):
            async with self._engine.begin() as conn:
                await conn.execute(stmt, rows)

    async def set_is_active(self, user_id: str, is_active: bool) -> User:
        stmt = (
            update(tables.users)
            .where(tables.users.c.user_id == user_id)
            .values(is_active=is_active)
            .returning(*tables.users.c)
        )
        async with translate_errors("storage.user.set_is_active"):
            async with self._engine.begin() as conn:
                row = (await conn.execute(stmt)).first()
        if row is None:
            raise RecordNotFoundError(f"user {user_id} not found")
        return _row_to_user(row)

    async def get_users_by_team(self, team_name: str) -> List[User]:
        stmt = (
            select(tables.users)
            .where(tables.users.c.team_name == team_name)
            .order_by(tables.users.c.user_id)
        )
        async with translate_errors("storage.user.get_users_by_team"):
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                return [_row_to_user(row) for row in result]


class SQLTeamStorage(TeamStorage):

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def create_team(self, team_name: str) -> None:
        async with translate_errors("storage.team.create_team"):
            async with self._engine.begin() as conn:
                await conn.execute(insert(tables.teams).values(team_name=team_name))

    async def team_exists(self, team_name: str) -> bool:
        async with translate_errors("storage.team.team_exists"):
            async with self._engine.connect() as conn:
                result = await conn.execute(
                    select(tables.teams.c.team_name)
                    .where(tables.teams.c.team_name == team_name)
                )
                return result.first() is not None


class SQLPRTransaction(PRTransaction):
    """Statements bound to one open connection/transaction."""

    def __init__(self, conn: AsyncConnection):
        self._conn = conn

    async def get_pr_for_update(self, pr_id: str) -> PullRequest:
        async with translate_errors("storage.pr.get_pr_for_update"):
            pr = await _fetch_pr(self._conn, pr_id, for_update=True)
        if pr is None:
            raise RecordNotFoundError(f"pull request {pr_id} not found")
        return pr

    async def remove_reviewer(self, pr_id: str, reviewer_id: str) -> None:
        stmt = delete(tables.pull_request_reviewers).where(
            and_(
                tables.pull_request_reviewers.c.pull_request_id == pr_id,
                tables.pull_request_reviewers.c.user_id == reviewer_id,
            )
        )
        async with translate_errors("storage.pr.remove_reviewer"):
            result = await self._conn.execute(stmt)
        if result.rowcount == 0:
            raise ReviewerNotAssignedError(f"{reviewer_id} is not a reviewer of {pr_id}")

    async def add_reviewer(self, pr_id: str, reviewer_id: str) -> None:
        async with translate_errors("storage.pr.add_reviewer"):
            await self._conn.execute(
                insert(tables.pull_request_reviewers)
                .values(pull_request_id=pr_id, user_id=reviewer_id)
            )

    async def get_pr(self, pr_id: str) -> PullRequest:
        async with translate_errors("storage.pr.get_pr"):
            pr = await _fetch_pr(self._conn, pr_id)
        if pr is None:
            raise RecordNotFoundError(f"pull request {pr_id} not found")
        return pr

    async def get_active_teammate_ids(
        self,
        author_id: str,
        exclude_ids: Iterable[str]
    ) -> List[str]:
        async with translate_errors("storage.pr.get_active_teammate_ids"):
            return await _fetch_active_teammate_ids(self._conn, author_id, exclude_ids)


class SQLPRStorage(PRStorage):

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def create_pr(self, pr_id: str, pr_name: str, author_id: str) -> PullRequest:
        stmt = (
            insert(tables.pull_requests)
            .values(
                pull_request_id=pr_id,
                pull_request_name=pr_name,
                author_id=author_id,
                status=PRStatus.OPEN.value,
                created_at=_utcnow(),
            )
            .returning(tables.pull_requests.c.created_at)
        )
        async with translate_errors("storage.pr.create_pr"):
            async with self._engine.begin() as conn:
                created_at = (await conn.execute(stmt)).scalar_one()
        return PullRequest(
            pull_request_id=pr_id,
            pull_request_name=pr_name,
            author_id=author_id,
            status=PRStatus.OPEN,
            created_at=_as_utc(created_at),
        )

    async def assign_reviewers(self, pr_id: str, reviewer_ids: Sequence[str]) -> None:
        if not reviewer_ids:
            return
        rows = [
            {"pull_request_id": pr_id, "user_id": reviewer_id}
            for reviewer_id in reviewer_ids
        ]
        async with translate_errors("storage.pr.assign_reviewers"):
            async with self._engine.begin() as conn:
                await conn.execute(insert(tables.pull_request_reviewers), rows)

    async def set_merged(self, pr_id: str) -> PullRequest:
        prs = tables.pull_requests
        stmt = (
            update(prs)
            .where(prs.c.pull_request_id == pr_id)
            .values(
                status=PRStatus.MERGED.value,
                merged_at=func.coalesce(prs.c.merged_at, _utcnow()),
            )
            .returning(prs.c.pull_request_id)
        )
        async with translate_errors("storage.pr.set_merged"):
            async with self._engine.begin() as conn:
                if (await conn.execute(stmt)).first() is None:
                    raise RecordNotFoundError(f"pull request {pr_id} not found")
            # reviewers are read back after the commit
            async with self._engine.connect() as conn:
                pr = await _fetch_pr(conn, pr_id)
        if pr is None:
            raise RecordNotFoundError(f"pull request {pr_id} not found")
        return pr

    async def get_pr(self, pr_id: str) -> Optional[PullRequest]:
        async with translate_errors("storage.pr.get_pr"):
            async with self._engine.connect() as conn:
                return await _fetch_pr(conn, pr_id)

    async def get_prs_reviewed_by(self, user_id: str) -> List[PullRequestShort]:
        prs = tables.pull_requests
        reviewers = tables.pull_request_reviewers
        stmt = (
            select(
                prs.c.pull_request_id,
                prs.c.pull_request_name,
                prs.c.author_id,
                prs.c.status,
            )
            .join(reviewers, prs.c.pull_request_id == reviewers.c.pull_request_id)
            .where(reviewers.c.user_id == user_id)
            .order_by(prs.c.created_at)
        )
        async with translate_errors("storage.pr.get_prs_reviewed_by"):
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                return [
                    PullRequestShort(
                        pull_request_id=row.pull_request_id,
                        pull_request_name=row.pull_request_name,
                        author_id=row.author_id,
                        status=PRStatus(row.status),
                    )
                    for row in result
                ]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SQLPRTransaction]:
        async with translate_errors("storage.pr.transaction"):
            async with self._engine.begin() as conn:
                yield SQLPRTransaction(conn)


class DatabaseStorage(Storage):
    """Storage bundle backed by one AsyncEngine."""

    def __init__(self, engine: AsyncEngine):
        super().__init__(
            users=SQLUserStorage(engine),
            teams=SQLTeamStorage(engine),
            prs=SQLPRStorage(engine),
        )
        self.engine = engine

    async def create_schema(self) -> None:
        async with translate_errors("storage.create_schema"):
            async with self.engine.begin() as conn:
                await conn.run_sync(tables.metadata.create_all)

    async def ping(self) -> None:
        async with translate_errors("storage.ping"):
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

    async def close(self) -> None:
        await self.engine.dispose()


def create_engine(settings: Settings) -> AsyncEngine:
    """Build the async engine for the configured database URL."""
    # file databases only for SQLite; ":memory:" would give each connection its own database
    engine = create_async_engine(
        settings.database_url,
        echo=settings.db_echo,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_pre_ping=True,
    )
    if engine.dialect.name == "sqlite":
        _use_immediate_transactions(engine)
    return engine


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    """
    Make every SQLite transaction take the write lock up front.

    The driver would otherwise defer BEGIN until the first write, leaving a
    read-then-write sequence unprotected.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


async def create_database_storage(settings: Settings) -> DatabaseStorage:
    """
    Connect to the database, retrying while it comes up.

    Args:
        settings: Application settings

    Returns:
        Ready-to-use DatabaseStorage

    Raises:
        StorageError: If the database is still unreachable after all attempts
    """
    storage = DatabaseStorage(create_engine(settings))

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(settings.db_connect_retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=10),
            retry=retry_if_exception_type(StorageError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "Retrying database connection",
                        attempt=attempt.retry_state.attempt_number,
                        database_url=settings.redacted_database_url
                    )
                await storage.ping()
    except StorageError:
        await storage.close()
        raise

    if settings.db_create_schema:
        await storage.create_schema()

    logger.info("Database storage ready", database_url=settings.redacted_database_url)
    return storage
