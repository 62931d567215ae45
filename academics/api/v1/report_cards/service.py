"""
Report card generation. One report card per (student, term), regenerated in place.

Computed fields (totals, average, GPA, graded subject lines, class position) are
overwritten on every run. Remarks are written only by update_report_remarks, so
remark entry and score aggregation can run on their own schedules.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academics.api.v1.grading_scales.resolver import GradingPolicy, load_grading_policy
from academics.core.enums import StudentStatus
from academics.core.exceptions import NoResultsForTerm, NotFoundError, PersistenceError
from academics.core.models import (
    AcademicTerm,
    ReportCard,
    ReportCardSubject,
    SchoolClass,
    Student,
    SubjectResult,
)
from academics.core.scoring import as_decimal, average_score, competition_ranks

from .schemas import ReportCardResponse, ReportCardSubjectResponse, ReportRemarksUpdate

logger = logging.getLogger(__name__)


class ClassStandings:
    """Competition ranks of one class for one term, by average score."""

    def __init__(self, class_id: UUID, term_id: UUID, averages: Dict[UUID, Decimal]) -> None:
        self.class_id = class_id
        self.term_id = term_id
        self.positions = competition_ranks(averages)
        self.total_students = len(averages)

    def position_of(self, student_id: UUID) -> Optional[int]:
        return self.positions.get(student_id)


async def load_class_standings(db: AsyncSession, class_id: UUID, term_id: UUID) -> ClassStandings:
    """Rank ACTIVE students currently in the class who have at least one result for the term."""
    result = await db.execute(
        select(SubjectResult.student_id, SubjectResult.total_score)
        .join(Student, Student.id == SubjectResult.student_id)
        .where(
            Student.class_id == class_id,
            Student.status == StudentStatus.ACTIVE.value,
            SubjectResult.term_id == term_id,
        )
    )
    scores: Dict[UUID, List[Decimal]] = {}
    for student_id, total_score in result.all():
        scores.setdefault(student_id, []).append(as_decimal(total_score))
    averages = {sid: average_score(values) for sid, values in scores.items()}
    return ClassStandings(class_id, term_id, averages)


def _line_to_response(line: ReportCardSubject) -> ReportCardSubjectResponse:
    return ReportCardSubjectResponse(
        subject_id=line.subject_id,
        subject_name=line.subject_name,
        total_score=line.total_score,
        grade=line.grade,
        gpa_point=line.gpa_point,
        remark=line.remark,
        result_remarks=line.result_remarks,
    )


def _to_response(card: ReportCard, student: Student) -> ReportCardResponse:
    lines = sorted(card.subjects, key=lambda line: line.subject_name)
    return ReportCardResponse(
        id=card.id,
        student_id=card.student_id,
        student_name=student.full_name,
        admission_number=student.admission_number,
        term_id=card.term_id,
        class_id=card.class_id,
        results=[_line_to_response(line) for line in lines],
        total_score=card.total_score,
        average_score=card.average_score,
        gpa=card.gpa,
        class_position=card.class_position,
        total_students=card.total_students,
        class_teacher_remark=card.class_teacher_remark,
        principal_remark=card.principal_remark,
        generated_at=card.generated_at,
    )


async def get_student(db: AsyncSession, student_id: UUID) -> Student:
    result = await db.execute(
        select(Student).where(Student.id == student_id).execution_options(populate_existing=True)
    )
    student = result.scalar_one_or_none()
    if not student:
        raise NotFoundError("Student not found")
    return student


async def require_term(db: AsyncSession, term_id: UUID) -> AcademicTerm:
    result = await db.execute(select(AcademicTerm).where(AcademicTerm.id == term_id))
    term = result.scalar_one_or_none()
    if not term:
        raise NotFoundError("Academic term not found")
    return term


async def require_class(db: AsyncSession, class_id: UUID) -> SchoolClass:
    result = await db.execute(select(SchoolClass).where(SchoolClass.id == class_id))
    school_class = result.scalar_one_or_none()
    if not school_class:
        raise NotFoundError("Class not found")
    return school_class


async def _write_report_card(
    db: AsyncSession,
    student_id: UUID,
    term_id: UUID,
    policy: Optional[GradingPolicy],
    standings: Optional[ClassStandings],
) -> ReportCardResponse:
    student = await get_student(db, student_id)
    await require_term(db, term_id)

    results_q = await db.execute(
        select(SubjectResult).where(
            SubjectResult.student_id == student_id,
            SubjectResult.term_id == term_id,
        )
        .execution_options(populate_existing=True)
    )
    results = list(results_q.scalars().all())
    if not results:
        raise NoResultsForTerm(student_id, term_id)

    if policy is None:
        policy = await load_grading_policy(db)
    policy.require_configured()
    # Any ungradeable subject fails the whole report
    graded = [(r, policy.resolve(r.total_score)) for r in results]

    scores = [as_decimal(r.total_score) for r in results]
    total_score = sum(scores, Decimal("0"))
    avg = average_score(scores)
    gpa = average_score(g.gpa_point for _, g in graded)

    if standings is None or standings.class_id != student.class_id or standings.term_id != term_id:
        standings = await load_class_standings(db, student.class_id, term_id)

    existing = await db.execute(
        select(ReportCard).where(
            ReportCard.student_id == student_id,
            ReportCard.term_id == term_id,
        )
        .execution_options(populate_existing=True)
    )
    card = existing.scalar_one_or_none()
    if card is None:
        card = ReportCard(student_id=student_id, term_id=term_id, subjects=[])
        db.add(card)

    card.class_id = student.class_id
    card.total_score = total_score
    card.average_score = avg
    card.gpa = gpa
    card.class_position = standings.position_of(student_id)
    card.total_students = standings.total_students
    card.generated_at = datetime.now(timezone.utc)

    # Update lines in place by subject; delete-then-insert would trip the unique key on flush
    lines_by_subject = {line.subject_id: line for line in card.subjects}
    seen = set()
    for result, grade in graded:
        seen.add(result.subject_id)
        line = lines_by_subject.get(result.subject_id)
        if line is None:
            line = ReportCardSubject(subject_id=result.subject_id)
            card.subjects.append(line)
        line.subject_name = result.subject.name if result.subject else "Unknown Subject"
        line.total_score = as_decimal(result.total_score)
        line.grade = grade.grade
        line.gpa_point = grade.gpa_point
        line.remark = grade.remark
        line.result_remarks = result.remarks
    for subject_id, line in lines_by_subject.items():
        if subject_id not in seen:
            card.subjects.remove(line)

    await db.commit()
    return _to_response(card, student)


async def generate_report_card(
    db: AsyncSession,
    student_id: UUID,
    term_id: UUID,
    *,
    policy: Optional[GradingPolicy] = None,
    standings: Optional[ClassStandings] = None,
) -> ReportCardResponse:
    """
    Compute and upsert the report card for (student, term).
    Pass policy/standings when generating for many students so they share one snapshot.
    """
    try:
        return await _write_report_card(db, student_id, term_id, policy, standings)
    except IntegrityError:
        # Another request inserted the same (student, term) first; regenerate over its row
        await db.rollback()
        logger.info("Report card for student %s term %s created concurrently; retrying as update", student_id, term_id)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to generate report card for student %s term %s", student_id, term_id)
        raise PersistenceError("Failed to save report card")
    try:
        return await _write_report_card(db, student_id, term_id, policy, standings)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Retry failed for report card of student %s term %s", student_id, term_id)
        raise PersistenceError("Failed to save report card")


async def get_student_report(db: AsyncSession, student_id: UUID, term_id: UUID) -> ReportCardResponse:
    result = await db.execute(
        select(ReportCard).where(
            ReportCard.student_id == student_id,
            ReportCard.term_id == term_id,
        )
        .execution_options(populate_existing=True)
    )
    card = result.unique().scalar_one_or_none()
    if not card:
        raise NotFoundError("Report card not found")
    return _to_response(card, card.student)


async def get_class_reports(db: AsyncSession, class_id: UUID, term_id: UUID) -> List[ReportCardResponse]:
    """Report cards generated for the class in the term, best position first."""
    await require_class(db, class_id)
    await require_term(db, term_id)
    result = await db.execute(
        select(ReportCard)
        .join(Student, Student.id == ReportCard.student_id)
        .where(
            ReportCard.class_id == class_id,
            ReportCard.term_id == term_id,
        )
        .order_by(
            ReportCard.class_position.is_(None),
            ReportCard.class_position,
            Student.last_name,
            Student.first_name,
        )
        .execution_options(populate_existing=True)
    )
    return [_to_response(card, card.student) for card in result.unique().scalars().all()]


async def update_report_remarks(db: AsyncSession, payload: ReportRemarksUpdate) -> ReportCardResponse:
    """Set staff remarks on an existing report card. Fields left out keep their current value."""
    result = await db.execute(
        select(ReportCard).where(
            ReportCard.student_id == payload.student_id,
            ReportCard.term_id == payload.term_id,
        )
        .execution_options(populate_existing=True)
    )
    card = result.unique().scalar_one_or_none()
    if not card:
        raise NotFoundError("Report card not found; generate it before adding remarks")
    if payload.class_teacher_remark is not None:
        card.class_teacher_remark = payload.class_teacher_remark
    if payload.principal_remark is not None:
        card.principal_remark = payload.principal_remark
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise PersistenceError("Failed to update remarks")
    return _to_response(card, card.student)
