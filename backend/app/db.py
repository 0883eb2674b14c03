from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from .config import settings

engine = create_async_engine(settings.DATABASE_URL, echo=False, pool_pre_ping=True)

# Worker commits after every status change and keeps reading the claimed rows,
# so loaded attributes must survive a commit.
AsyncSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    class_=AsyncSession,
)

async def get_db():
    """One session (one pooled connection) per request, released on exit."""
    async with AsyncSessionLocal() as session:
        yield session

async def dispose_engine() -> None:
    """Drop pooled connections; used when a Celery task owns its own event loop."""
    await engine.dispose()
