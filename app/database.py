from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_session_factory(database_url: str, echo: bool = False) -> tuple[AsyncEngine, async_sessionmaker]:
    """Create the async engine and a session factory bound to it."""
    engine = create_async_engine(database_url, echo=echo)
    session_factory = async_sessionmaker(engine, autoflush=False, expire_on_commit=False)
    return engine, session_factory


async def init_db(engine: AsyncEngine) -> None:
    """Create every table registered on Base."""
    # models register themselves on Base at import time
    import app.models  # noqa: F401

    logger.info("Creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
