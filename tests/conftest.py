import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from typing import AsyncGenerator, Callable, Dict, Optional
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.pool import StaticPool

from app.main import app
from app.auth.models import User
from app.auth.security import create_access_token
from app.core.enums import UserRole
from app.core.models import School
from app.db.session import Base, build_engine, build_session_factory, get_db


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
# Tables live in these schemas; SQLite gets one attached in-memory database per schema
SCHEMAS = ("core", "auth", "school")


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test. StaticPool keeps every session on one connection."""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _attach_schemas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        for schema in SCHEMAS:
            cursor.execute(f"ATTACH DATABASE ':memory:' AS {schema}")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = build_session_factory(engine)

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _create_user(
    db: AsyncSession,
    role: UserRole,
    email: str,
    school_id: Optional[UUID] = None,
) -> User:
    user = User(email=email, role=role.value, first_name="Test", last_name=role.value.title(), school_id=school_id)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture()
async def school(db_session: AsyncSession) -> School:
    school = School(name="Ecole Les Palmiers", city="Bamako", address="Rue 12")
    db_session.add(school)
    await db_session.commit()
    await db_session.refresh(school)
    return school


@pytest.fixture()
async def other_school(db_session: AsyncSession) -> School:
    school = School(name="Groupe Scolaire Horizon", city="Sikasso")
    db_session.add(school)
    await db_session.commit()
    await db_session.refresh(school)
    return school


@pytest.fixture()
async def school_admin(db_session: AsyncSession, school: School) -> User:
    admin = await _create_user(db_session, UserRole.SCHOOL_ADMIN, "admin@palmiers.test")
    # Admin linked through School.admin_id, as schools are assigned after account creation
    school.admin_id = admin.id
    await db_session.commit()
    return admin


@pytest.fixture()
async def other_school_admin(db_session: AsyncSession, other_school: School) -> User:
    return await _create_user(db_session, UserRole.SCHOOL_ADMIN, "admin@horizon.test", school_id=other_school.id)


@pytest.fixture()
async def canteen_manager(db_session: AsyncSession, school: School) -> User:
    return await _create_user(db_session, UserRole.CANTEEN_MANAGER, "cantine@palmiers.test", school_id=school.id)


@pytest.fixture()
async def super_admin(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.SUPER_ADMIN, "root@platform.test")


@pytest.fixture()
async def parent(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.PARENT, "parent.one@mail.test")


@pytest.fixture()
async def other_parent(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.PARENT, "parent.two@mail.test")


@pytest.fixture()
def auth_headers() -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        token = create_access_token(subject={"sub": str(user.id), "role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers
