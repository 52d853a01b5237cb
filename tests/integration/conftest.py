"""
Fixtures for integration tests.

Each test gets a fresh SQLite database file. The stored procedure does not
exist there, so every distribution goes through the fallback path.

Helpers hand out plain ids rather than ORM objects: the failed procedure
call rolls the session back, which expires anything still attached.
"""

import pytest
from sqlalchemy import select

from commission_engine.config.database import create_engine, create_session_maker
from commission_engine.models import Base, Customer, Promoter


@pytest.fixture
async def engine(tmp_path):
    """Async engine on a throwaway SQLite file with all tables created."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session factory bound to the test engine."""
    return create_session_maker(engine)


@pytest.fixture
async def db_session(session_maker):
    """One session per test."""
    async with session_maker() as session:
        yield session


async def make_chain(
    session, depth: int, pins: int = 0, admin: bool = False
) -> list[int]:
    """
    Create a linear promoter chain.

    Returns:
        Promoter ids ordered from the initiator (index 0) upwards; the last
        one has no parent
    """
    chain: list[int] = []
    parent_id = None
    for index in reversed(range(depth)):
        promoter = Promoter(
            name=f"Promoter {index}",
            parent_promoter_id=parent_id,
            pins=pins if index == 0 else 0,
            is_admin=admin and index == depth - 1,
        )
        session.add(promoter)
        await session.flush()
        parent_id = promoter.id
        chain.insert(0, promoter.id)
    await session.commit()
    return chain


async def make_customer(session, promoter_id: int, name: str = "Customer") -> int:
    """Insert a customer without touching pins; returns its id."""
    customer = Customer(name=name, parent_promoter_id=promoter_id)
    session.add(customer)
    await session.flush()
    customer_id = customer.id
    await session.commit()
    return customer_id


async def current_pins(session, promoter_id: int) -> int:
    """Pin balance read from the database, bypassing the identity map."""
    result = await session.execute(
        select(Promoter.pins).where(Promoter.id == promoter_id)
    )
    return result.scalar_one()


@pytest.fixture
def chain_factory(db_session):
    async def _factory(depth: int, pins: int = 0, admin: bool = False):
        return await make_chain(db_session, depth, pins=pins, admin=admin)

    return _factory


@pytest.fixture
def pins_of(db_session):
    async def _pins(promoter_id: int) -> int:
        return await current_pins(db_session, promoter_id)

    return _pins


@pytest.fixture
def customer_factory(db_session):
    async def _factory(promoter_id: int, name: str = "Customer"):
        return await make_customer(db_session, promoter_id, name=name)

    return _factory
