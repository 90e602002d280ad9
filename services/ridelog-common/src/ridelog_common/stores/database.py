from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

engine = None
AsyncSessionLocal = None

def get_engine(database_url: str, echo: bool = False):
    global engine
    if engine is None:
        engine = create_async_engine(
            database_url,
            echo=echo,
            pool_pre_ping=True,
        )
    return engine

def get_session_maker(database_url: str, echo: bool = False):
    global AsyncSessionLocal
    if AsyncSessionLocal is None:
        AsyncSessionLocal = sessionmaker(
            get_engine(database_url, echo),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return AsyncSessionLocal

async def dispose_engine():
    global engine, AsyncSessionLocal
    if engine is not None:
        await engine.dispose()
    engine = None
    AsyncSessionLocal = None
