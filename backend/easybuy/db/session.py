"""
Database session configuration.

PostgreSQL (asyncpg) in production with connection pooling, SQLite
(aiosqlite) for local development. The pool settings only apply to drivers
that pool connections.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from easybuy.core.config import settings
from easybuy.core.exceptions import DatabaseException, ErrorCode
from easybuy.core.logging import get_logger
from easybuy.core.security import get_password_hash
from easybuy.db.models import Base, User

logger = get_logger(__name__)

# =============================================================================
# Engine Configuration
# =============================================================================

POOL_RECYCLE = 1800  # Recycle connections every 30 minutes
POOL_TIMEOUT = 30  # 30 second timeout for acquiring connection


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_recycle": POOL_RECYCLE,
        "pool_timeout": POOL_TIMEOUT,
        "pool_pre_ping": True,
        "connect_args": {"command_timeout": 60},
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL),
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # Rows are serialized after commit
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session for one request.

    The session is committed after the handler returns and rolled back on
    error. Handlers that must see their writes persisted before answering
    commit explicitly.

    Raises:
        DatabaseException: When the database is unreachable or a write fails
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise _wrap_database_error(e) from e
        except Exception:
            await session.rollback()
            raise


def _wrap_database_error(error: SQLAlchemyError) -> DatabaseException:
    extra = {"error_type": type(error).__name__, "error_message": str(error)}
    if isinstance(error, OperationalError):
        logger.error("Database unreachable", extra=extra, exc_info=True)
        return DatabaseException(code=ErrorCode.DATABASE_CONNECTION, original_error=error)
    if isinstance(error, IntegrityError):
        logger.warning("Constraint violated on commit", extra=extra)
        return DatabaseException(
            code=ErrorCode.DATABASE_INTEGRITY,
            details={"constraint_violation": True},
            original_error=error,
        )
    logger.error("Database error on commit", extra=extra, exc_info=True)
    return DatabaseException(original_error=error)


# =============================================================================
# Lifecycle helpers
# =============================================================================


async def create_tables() -> None:
    """Create missing tables from the model metadata."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def seed_admin_user(session: AsyncSession) -> bool:
    """
    Create the bootstrap admin account from ADMIN_EMAIL / ADMIN_PASSWORD.

    Returns:
        True when an account was created, False when it already existed or
        the settings are not configured.
    """
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return False

    email = settings.ADMIN_EMAIL.strip().lower()
    existing = await session.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        return False

    session.add(
        User(
            username=settings.ADMIN_USERNAME,
            email=email,
            password=get_password_hash(settings.ADMIN_PASSWORD),
            role="admin",
        )
    )
    await session.commit()
    logger.info("Seeded admin account", extra={"email": email})
    return True


async def dispose_engine() -> None:
    """
    Dispose of the engine and all connections.

    Call this during application shutdown.
    """
    await engine.dispose()
    logger.info("Database engine disposed")

