from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from academics.core.enums import PromotionAction


class PromotionCandidateResponse(BaseModel):
    """Advisory recommendation for one student. Nothing is committed until decisions are processed."""

    student_id: UUID
    student_name: str
    admission_number: str
    current_class_id: UUID
    average_score: Decimal = Field(..., description="Average of the term's subject scores (0.00 when none)")
    result_count: int = Field(..., description="Number of subject results the average is based on")
    recommended_action: PromotionAction
    reason: str


class PromotionDecision(BaseModel):
    """Reviewed decision for one student. RETAIN always keeps the current class; target_class_id is ignored."""

    student_id: UUID
    action: PromotionAction
    target_class_id: Optional[UUID] = Field(None, description="Required when action=PROMOTE")
    reason: Optional[str] = Field(None, max_length=500)


class PromotionProcessRequest(BaseModel):
    current_term_id: UUID
    decisions: List[PromotionDecision] = Field(..., min_length=1)
    policy_version: Optional[str] = Field(
        None,
        description="X-Promotion-Policy-Version returned with the candidates. When set, processing is refused if the policy has changed since.",
    )


class PromotionSkip(BaseModel):
    student_id: UUID
    reason: str


class PromotionProcessResult(BaseModel):
    """Authoritative outcome of a run. Re-running the same decisions is safe: processed students are skipped."""

    applied: List[UUID] = Field(default_factory=list)
    skipped: List[PromotionSkip] = Field(default_factory=list)
