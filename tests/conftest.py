import os
import uuid
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Dict

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from academics.auth.dependencies import get_current_user
from academics.auth.schemas import CurrentUser
from academics.core.models import AcademicTerm, GradingScale, SchoolClass, Student, Subject, SubjectResult
from academics.db.session import get_db, init_models
from academics.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_USER = CurrentUser(id=uuid.uuid4(), role="SUPER_ADMIN", permissions={})


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test. StaticPool keeps every session on the one connection."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_models(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture()
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app, authenticated as a super admin."""

    async def override_current_user() -> CurrentUser:
        return ADMIN_USER

    app.dependency_overrides[get_current_user] = override_current_user
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
async def school(db_session: AsyncSession) -> Dict:
    """
    A term, two classes, three subjects and the A/B/C grading bands:
    A 80-100, B 70-79.99, C 60-69.99. Returned as plain ids so tests stay valid
    after the services roll back.
    """
    term = AcademicTerm(name="2025/2026 Term 3", start_date=date(2026, 4, 20), end_date=date(2026, 7, 24), is_current=True)
    jss1 = SchoolClass(name="JSS 1", display_order=1)
    jss2 = SchoolClass(name="JSS 2", display_order=2)
    maths = Subject(name="Mathematics", code="MTH")
    english = Subject(name="English", code="ENG")
    science = Subject(name="Basic Science", code="BSC")
    db_session.add_all([term, jss1, jss2, maths, english, science])
    db_session.add_all(
        [
            GradingScale(grade="A", min_score=Decimal("80"), max_score=Decimal("100"), gpa_point=Decimal("4.0"), remark="Excellent"),
            GradingScale(grade="B", min_score=Decimal("70"), max_score=Decimal("79.99"), gpa_point=Decimal("3.0"), remark="Very Good"),
            GradingScale(grade="C", min_score=Decimal("60"), max_score=Decimal("69.99"), gpa_point=Decimal("2.0"), remark="Good"),
        ]
    )
    await db_session.commit()
    return {
        "term_id": term.id,
        "class_id": jss1.id,
        "next_class_id": jss2.id,
        "subjects": {"maths": maths.id, "english": english.id, "science": science.id},
    }


async def add_student(
    session: AsyncSession,
    class_id: uuid.UUID,
    first_name: str,
    last_name: str,
    admission_number: str,
    status: str = "ACTIVE",
) -> uuid.UUID:
    student = Student(
        first_name=first_name,
        last_name=last_name,
        admission_number=admission_number,
        class_id=class_id,
        status=status,
    )
    session.add(student)
    await session.commit()
    return student.id


async def add_results(
    session: AsyncSession,
    student_id: uuid.UUID,
    term_id: uuid.UUID,
    scores: Dict[uuid.UUID, str],
) -> None:
    """scores: subject_id -> score as a string, e.g. "85" or "79.99"."""
    for subject_id, score in scores.items():
        session.add(
            SubjectResult(
                student_id=student_id,
                term_id=term_id,
                subject_id=subject_id,
                total_score=Decimal(score),
            )
        )
    await session.commit()
