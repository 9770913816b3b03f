import os
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from app.main import app  # noqa: E402
from app.core.models import FeeSetting, IdCounter, Student  # noqa: E402
from app.db.session import Base, get_db, init_models  # noqa: E402


@pytest.fixture()
async def engine(tmp_path):
    """File-backed SQLite so that separate sessions see each other's commits."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fees.db'}", echo=False, future=True)
    await init_models(engine)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app; every request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
def make_student(db_session: AsyncSession):
    async def _make(
        student_id: str = "S1",
        class_name: str = "One",
        enrolled_on: Optional[date] = date(2024, 1, 1),
        name: str = "Rahim Uddin",
    ) -> Student:
        student = Student(
            id=student_id,
            name=name,
            class_name=class_name,
            number="01700000000",
            enrolled_on=enrolled_on,
            is_active=True,
        )
        db_session.add(student)
        await db_session.commit()
        return student

    return _make


@pytest.fixture()
def make_fee(db_session: AsyncSession):
    async def _make(
        amount: str = "500",
        recurring: bool = False,
        can_override: bool = True,
        class_scope=None,
        active_from: Optional[date] = date(2024, 1, 1),
        active_to: Optional[date] = None,
        fee_type: str = "monthly",
        description: str = "Tuition fee",
    ) -> FeeSetting:
        counter = await db_session.get(IdCounter, "fee_settings")
        if counter is None:
            counter = IdCounter(name="fee_settings", last_id=0)
            db_session.add(counter)
        counter.last_id += 1
        fs = FeeSetting(
            fee_id=f"F{counter.last_id:03d}",
            position=counter.last_id,
            fee_type=fee_type,
            description=description,
            amount=Decimal(amount),
            class_scope=class_scope,
            active_from=active_from,
            active_to=active_to,
            can_override=can_override,
            recurring=recurring,
            is_active=True,
        )
        db_session.add(fs)
        await db_session.commit()
        return fs

    return _make
