"""Promotion candidates: advisory PROMOTE/RETAIN recommendations from the term's subject results."""

import hashlib
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academics.api.v1.grading_scales.resolver import load_grading_policy
from academics.api.v1.report_cards.service import require_class, require_term
from academics.core.config import settings
from academics.core.enums import PromotionAction, StudentStatus
from academics.core.models import Student, SubjectResult
from academics.core.scoring import as_decimal, average_score, round_half_up

from .schemas import PromotionCandidateResponse

PROMOTE_REASON = "Average score meets promotion criteria"
RETAIN_REASON = "Average score below promotion threshold"
NO_DATA_REASON = "No assessment data available"


def recommend(average: Optional[Decimal], pass_threshold: Decimal) -> Tuple[PromotionAction, str]:
    """No results never counts as a pass."""
    if average is None:
        return PromotionAction.RETAIN, NO_DATA_REASON
    if average >= pass_threshold:
        return PromotionAction.PROMOTE, PROMOTE_REASON
    return PromotionAction.RETAIN, RETAIN_REASON


def _threshold(pass_threshold: Optional[Decimal]) -> Decimal:
    value = settings.promotion_pass_threshold if pass_threshold is None else pass_threshold
    return round_half_up(as_decimal(value))


async def current_policy_version(db: AsyncSession, pass_threshold: Optional[Decimal] = None) -> str:
    """Short hash of the pass threshold and grading bands; changes whenever either does."""
    policy = await load_grading_policy(db)
    material = f"threshold={_threshold(pass_threshold)}|scales={policy.fingerprint()}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:16]


async def evaluate_candidates(
    db: AsyncSession,
    class_id: UUID,
    term_id: UUID,
    pass_threshold: Optional[Decimal] = None,
) -> List[PromotionCandidateResponse]:
    """
    Recommendation per ACTIVE student in the class, computed from subject results
    (not stored report cards, which may be missing or stale). Read-only.
    """
    await require_class(db, class_id)
    await require_term(db, term_id)
    threshold = _threshold(pass_threshold)

    students_q = await db.execute(
        select(Student)
        .where(
            Student.class_id == class_id,
            Student.status == StudentStatus.ACTIVE.value,
        )
        .order_by(Student.last_name, Student.first_name)
    )
    students = list(students_q.scalars().all())
    if not students:
        return []

    scores_q = await db.execute(
        select(SubjectResult.student_id, SubjectResult.total_score).where(
            SubjectResult.term_id == term_id,
            SubjectResult.student_id.in_([s.id for s in students]),
        )
    )
    scores: Dict[UUID, List[Decimal]] = {}
    for student_id, total_score in scores_q.all():
        scores.setdefault(student_id, []).append(as_decimal(total_score))

    candidates: List[PromotionCandidateResponse] = []
    for student in students:
        student_scores = scores.get(student.id, [])
        avg = average_score(student_scores)
        action, reason = recommend(avg, threshold)
        candidates.append(
            PromotionCandidateResponse(
                student_id=student.id,
                student_name=student.full_name,
                admission_number=student.admission_number,
                current_class_id=student.class_id,
                average_score=avg if avg is not None else Decimal("0.00"),
                result_count=len(student_scores),
                recommended_action=action,
                reason=reason,
            )
        )
    return candidates
