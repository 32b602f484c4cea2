"""PostgreSQL async connection pool."""

from psycopg_pool import AsyncConnectionPool

from permengine.config import Settings


def create_pool(settings: Settings) -> AsyncConnectionPool:
    """Pool sized from settings, created closed.

    Await pool.open() before the first unit of work. Connections are
    checked on checkout.
    """
    return AsyncConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.database_pool_min_size,
        max_size=settings.database_pool_max_size,
        name="permengine",
        check=AsyncConnectionPool.check_connection,
        open=False,
    )
