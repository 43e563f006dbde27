import os
import tempfile
import uuid
from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ------------------------------------------------------------------
# FORCE TESTING MODE
# Must happen BEFORE importing hod_approval.main so the settings object
# and the engine in database.py see the SQLite file.
# ------------------------------------------------------------------
_DB_FILE = os.path.join(tempfile.gettempdir(), f"hod_approval_test_{os.getpid()}.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_FILE}"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production-use"
os.environ["ENV"] = "test"
os.environ["SMTP_HOST"] = ""
os.environ.pop("SUPER_ADMIN_EMAIL", None)

from hod_approval.main import app  # noqa: E402
from hod_approval.api.deps import get_clock  # noqa: E402
from hod_approval.core.clock import FrozenClock  # noqa: E402
from hod_approval.core.database import AsyncSessionLocal, drop_db, init_db  # noqa: E402
from hod_approval.core.security import create_access_token  # noqa: E402
from hod_approval.models.departure_request import EarlyDepartureRequest  # noqa: E402
from hod_approval.models.enums import LeaveType, RequestStatus, UrgencyLevel  # noqa: E402
from hod_approval.models.user import User, UserRole  # noqa: E402
from hod_approval.services.auth_service import create_user  # noqa: E402

# Monday morning; every test date is relative to this
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
PASSWORD = "password123"


@pytest_asyncio.fixture(autouse=True)
async def _schema():
    await drop_db()
    await init_db()
    yield
    await drop_db()


@pytest.fixture
def frozen_clock():
    clock = FrozenClock(NOW)
    app.dependency_overrides[get_clock] = lambda: clock
    yield clock
    app.dependency_overrides.pop(get_clock, None)


@pytest_asyncio.fixture
async def client(frozen_clock):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session():
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def make_user():
    """Factory: `await make_user(UserRole.FACULTY, "CS", first_name="Ravi")`."""

    async def _make(role: UserRole = UserRole.FACULTY, department: str = "CS", **fields):
        suffix = uuid.uuid4().hex[:8]
        async with AsyncSessionLocal() as session:
            return await create_user(
                session,
                first_name=fields.get("first_name", role.value.title()),
                last_name=fields.get("last_name", suffix),
                email=fields.get("email", f"{role.value.lower()}.{suffix}@college.edu"),
                password=fields.get("password", PASSWORD),
                role=role,
                department=department,
                employee_id=fields.get("employee_id", f"EMP-{suffix}"),
            )

    return _make


@pytest.fixture
def build_user():
    """In-memory account for the pure domain tests (never persisted)."""

    def _build(role: UserRole = UserRole.FACULTY, department: str = "CS", **fields):
        suffix = uuid.uuid4().hex[:8]
        user = User(
            id=uuid.uuid4(),
            email=f"{role.value.lower()}.{suffix}@college.edu",
            password_hash="not-a-hash",
            first_name=fields.pop("first_name", role.value.title()),
            last_name=fields.pop("last_name", suffix),
            employee_id=f"EMP-{suffix}",
            department=department,
            role=role,
        )
        for name, value in fields.items():
            setattr(user, name, value)
        return user

    return _build


@pytest.fixture
def build_request():
    def _build(owner, status=RequestStatus.PENDING, **fields):
        values = dict(
            id=uuid.uuid4(),
            faculty_id=owner.id,
            leave_type=LeaveType.PARTIAL,
            departure_date=date(2026, 3, 5),
            departure_time="14:30",
            reason="Medical appointment at the city hospital",
            urgency_level=UrgencyLevel.MEDIUM,
            attachments=[],
            status=status,
            cancelled_by_self=False,
            version=1,
            submitted_at=NOW,
            updated_at=NOW,
        )
        values.update(fields)
        return EarlyDepartureRequest(**values)

    return _build


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token(subject=str(user.id), data={"role": user.role.value})
        return {"Authorization": f"Bearer {token}"}

    return _headers


def pytest_sessionfinish(session, exitstatus):
    if os.path.exists(_DB_FILE):
        os.remove(_DB_FILE)
