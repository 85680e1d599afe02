"""
Project Matching API - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Awaitable, Callable

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient

# Set testing environment before the app reads its settings
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['DEBUG'] = 'false'
os.environ['LOG_FORMAT'] = 'console'
os.environ['LOG_LEVEL'] = 'WARNING'

from app.api.deps import get_transaction_runner  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import build_engine, build_session_factory  # noqa: E402
from app.db.store import TransactionRunner  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Student, Supervisor  # noqa: E402
from app.services.application_service import ApplicationService, ProjectDetails  # noqa: E402
from app.services.capacity_service import CapacityService  # noqa: E402
from app.services.partnership_service import PartnershipService  # noqa: E402
from app.utils.constants import AvailabilityStatus, RequestAction  # noqa: E402

fake = Faker()


@pytest.fixture
async def engine(tmp_path):
    """A fresh file-backed SQLite database per test"""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def runner(session_factory) -> TransactionRunner:
    return TransactionRunner(session_factory, max_attempts=5, min_wait=0.001, max_wait=0.01)


@pytest.fixture
def partnership_service(runner) -> PartnershipService:
    return PartnershipService(runner)


@pytest.fixture
def application_service(runner, partnership_service) -> ApplicationService:
    return ApplicationService(runner, partnership_service)


@pytest.fixture
def capacity_service(runner) -> CapacityService:
    return CapacityService(runner)


@pytest.fixture
def project() -> ProjectDetails:
    return ProjectDetails(title=fake.sentence(nb_words=5), description=fake.paragraph())


# ==================== Record factories ====================

@pytest.fixture
def create_student(session_factory) -> Callable[..., Awaitable[Student]]:
    """Insert a student; keyword arguments override the generated fields"""
    async def _create(**fields) -> Student:
        student = Student(
            full_name=fields.pop('full_name', fake.name()),
            email=fields.pop('email', fake.unique.email()),
            department=fields.pop('department', 'Computer Science'),
            skills=fields.pop('skills', ['Python']),
            **fields,
        )
        async with session_factory() as session:
            session.add(student)
            await session.commit()
        return student
    return _create


@pytest.fixture
def create_supervisor(session_factory) -> Callable[..., Awaitable[Supervisor]]:
    """Insert a supervisor; keyword arguments override the generated fields"""
    async def _create(**fields) -> Supervisor:
        supervisor = Supervisor(
            full_name=fields.pop('full_name', f"Dr. {fake.name()}"),
            email=fields.pop('email', fake.unique.email()),
            department=fields.pop('department', 'Computer Science'),
            current_capacity=fields.pop('current_capacity', 0),
            max_capacity=fields.pop('max_capacity', 5),
            availability_status=fields.pop('availability_status', AvailabilityStatus.AVAILABLE.value),
            **fields,
        )
        async with session_factory() as session:
            session.add(supervisor)
            await session.commit()
        return supervisor
    return _create


@pytest.fixture
def create_pair(create_student, partnership_service):
    """Two students paired through the partnership workflow"""
    async def _create():
        first = await create_student()
        second = await create_student()
        sent = await partnership_service.send_request(first.id, second.id)
        assert sent.ok, sent.message
        accepted = await partnership_service.respond(sent.value, second.id, RequestAction.ACCEPT)
        assert accepted.ok, accepted.message
        return first, second
    return _create


@pytest.fixture
def reload(session_factory):
    """Read a record back from the database in a fresh session"""
    async def _reload(model, record_id):
        async with session_factory() as session:
            return await session.get(model, record_id)
    return _reload


@pytest.fixture
def insert(session_factory):
    """Insert arbitrary records directly, bypassing the services"""
    async def _insert(*records):
        async with session_factory() as session:
            session.add_all(records)
            await session.commit()
        return records
    return _insert


# ==================== HTTP client ====================

@pytest.fixture
async def client(runner) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose services run against the per-test database"""
    app.dependency_overrides[get_transaction_runner] = lambda: runner

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Generate authentication headers for a student, supervisor or admin id"""
    def _headers(record_id, role: str) -> dict:
        token = create_access_token({'sub': str(record_id), 'role': role})
        return {'Authorization': f'Bearer {token}'}
    return _headers
