"""
Commit reviewed promotion decisions.

Each student's transition (class reassignment + promotion record) is its own
transaction: a bad row is reported in `skipped` and never blocks the rest of the
batch. A (student, term) pair is processed at most once; the student row lock and
the unique key on promotion_records make concurrent runs converge on one record
per student.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academics.api.v1.report_cards.service import require_term
from academics.core.config import settings
from academics.core.enums import PromotionAction
from academics.core.exceptions import StalePolicyError
from academics.core.models import PromotionRecord, SchoolClass, Student

from .schemas import PromotionDecision, PromotionProcessResult, PromotionSkip
from .service import current_policy_version

logger = logging.getLogger(__name__)

ALREADY_PROCESSED = "Already processed for this term"
RETAIN_REASON = "Retained in current class"


async def _transition_student(
    db: AsyncSession,
    decision: PromotionDecision,
    term_id: UUID,
    processed_by: Optional[UUID],
) -> Optional[str]:
    """Apply one decision and commit. Returns a skip reason instead of applying, or None when applied."""
    student_q = await db.execute(
        select(Student)
        .where(Student.id == decision.student_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    student = student_q.scalar_one_or_none()
    if not student:
        return "Student not found"

    existing = await db.execute(
        select(PromotionRecord.id).where(
            PromotionRecord.student_id == decision.student_id,
            PromotionRecord.term_id == term_id,
        )
    )
    if existing.scalar_one_or_none():
        return ALREADY_PROCESSED

    from_class_id = student.class_id
    if decision.action == PromotionAction.RETAIN:
        # Retention never relocates, whatever target the caller sent
        to_class_id = from_class_id
        reason = decision.reason or RETAIN_REASON
    else:
        if decision.target_class_id is None:
            return "target_class_id is required for PROMOTE"
        if decision.target_class_id == from_class_id:
            return "Target class must differ from current class"
        target = await db.execute(select(SchoolClass.id).where(SchoolClass.id == decision.target_class_id))
        if not target.scalar_one_or_none():
            return "Target class not found"
        to_class_id = decision.target_class_id
        reason = decision.reason or settings.default_promotion_reason

    student.class_id = to_class_id
    db.add(
        PromotionRecord(
            student_id=student.id,
            term_id=term_id,
            from_class_id=from_class_id,
            to_class_id=to_class_id,
            action=decision.action.value,
            reason=reason,
            processed_by=processed_by,
        )
    )
    await db.commit()
    return None


async def process_promotions(
    db: AsyncSession,
    decisions: List[PromotionDecision],
    current_term_id: UUID,
    *,
    processed_by: Optional[UUID] = None,
    policy_version: Optional[str] = None,
) -> PromotionProcessResult:
    """
    Apply decisions one student at a time. Unknown term or a stale policy_version fail
    the whole call before any write; everything else is reported per student.
    """
    await require_term(db, current_term_id)
    if policy_version is not None:
        current = await current_policy_version(db)
        if current != policy_version:
            raise StalePolicyError(policy_version, current)

    logger.info("Processing %d promotion decisions for term %s", len(decisions), current_term_id)

    applied: List[UUID] = []
    skipped: List[PromotionSkip] = []
    for decision in decisions:
        try:
            skip_reason = await _transition_student(db, decision, current_term_id, processed_by)
        except IntegrityError:
            # Lost the race to a concurrent run for the same (student, term)
            skip_reason = ALREADY_PROCESSED
        except SQLAlchemyError:
            logger.exception("Failed to process promotion for student %s", decision.student_id)
            skip_reason = "Failed to save promotion"
        if skip_reason is None:
            applied.append(decision.student_id)
            continue
        # Ends the transaction and releases the student row lock
        await db.rollback()
        logger.info("Promotion skipped for student %s: %s", decision.student_id, skip_reason)
        skipped.append(PromotionSkip(student_id=decision.student_id, reason=skip_reason))

    logger.info(
        "Promotion run for term %s finished: %d applied, %d skipped",
        current_term_id,
        len(applied),
        len(skipped),
    )
    return PromotionProcessResult(applied=applied, skipped=skipped)
