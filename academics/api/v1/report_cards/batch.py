"""
Bulk report card generation for a class.

Partial failure, continue: one student's missing results never block the rest of
the class. Every failure is collected with its cause and returned to the caller.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academics.api.v1.grading_scales.resolver import load_grading_policy
from academics.core.enums import StudentStatus
from academics.core.exceptions import ServiceError
from academics.core.models import Student

from .schemas import ClassReportFailure, ClassReportsResult
from . import service

logger = logging.getLogger(__name__)


async def generate_class_reports(db: AsyncSession, class_id: UUID, term_id: UUID) -> ClassReportsResult:
    """Generate report cards for every ACTIVE student in the class. Unknown class/term fails the whole call."""
    await service.require_class(db, class_id)
    await service.require_term(db, term_id)

    # Plain ids: a per-student rollback expires ORM instances loaded earlier in the session
    rows = await db.execute(
        select(Student.id)
        .where(
            Student.class_id == class_id,
            Student.status == StudentStatus.ACTIVE.value,
        )
        .order_by(Student.last_name, Student.first_name)
    )
    student_ids: List[UUID] = [r[0] for r in rows.all()]

    # One policy snapshot and one ranking for the whole class
    policy = await load_grading_policy(db)
    policy.require_configured()
    standings = await service.load_class_standings(db, class_id, term_id)

    logger.info("Generating report cards for %d students (class=%s term=%s)", len(student_ids), class_id, term_id)

    succeeded = 0
    failures: List[ClassReportFailure] = []
    for student_id in student_ids:
        try:
            await service.generate_report_card(db, student_id, term_id, policy=policy, standings=standings)
            succeeded += 1
        # Storage failures arrive here as PersistenceError, already rolled back
        except ServiceError as e:
            logger.warning("Report card not generated for student %s: %s", student_id, e.message)
            failures.append(ClassReportFailure(student_id=student_id, error=e.message))

    logger.info(
        "Report cards generated for class %s term %s: %d succeeded, %d failed",
        class_id,
        term_id,
        succeeded,
        len(failures),
    )
    message = f"Generated reports for {succeeded} students"
    if failures:
        message += f"; {len(failures)} failed"
    return ClassReportsResult(count=succeeded, failures=failures, message=message)
