from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.engine.url import make_url
from app.config import settings


def get_database_url():
    """Parse database URL and convert to an async driver (asyncpg or aiosqlite)"""
    original_url = make_url(settings.DATABASE_URL)

    if original_url.get_backend_name() == "sqlite":
        return str(original_url.set(drivername="sqlite+aiosqlite"))

    # Build URL manually like Alembic does to preserve password correctly
    port = original_url.port or 5432
    database_url = (
        f"postgresql+asyncpg://{original_url.username}:{original_url.password}"
        f"@{original_url.host}:{port}/{original_url.database}"
    )

    # sslmode / channel_binding are libpq options, asyncpg takes ssl via connect_args
    query_params = {}
    if original_url.query:
        for key, value in original_url.query.items():
            if key not in ['sslmode', 'channel_binding']:
                query_params[key] = value

    if query_params:
        query_string = '&'.join([f"{k}={v}" for k, v in query_params.items()])
        database_url += f"?{query_string}"

    return database_url


def get_connect_args():
    """Get connection arguments for the async driver"""
    url = make_url(settings.DATABASE_URL)
    connect_args = {}

    if url.get_backend_name() == "sqlite":
        connect_args['check_same_thread'] = False
    elif url.query and url.query.get('sslmode') == 'require':
        connect_args['ssl'] = 'require'

    return connect_args


def get_engine_options():
    if make_url(settings.DATABASE_URL).get_backend_name() == "sqlite":
        return {}
    return {
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


engine = create_async_engine(
    get_database_url(),
    echo=settings.DEBUG,
    connect_args=get_connect_args(),
    **get_engine_options()
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)

Base = declarative_base()


async def close_db():
    """Close database connections"""
    await engine.dispose()
