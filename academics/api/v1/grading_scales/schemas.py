from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class GradingScaleCreate(BaseModel):
    """Create a grading band. Range must not overlap an existing band."""

    grade: str = Field(..., min_length=1, max_length=10, description="e.g. A, B+, C")
    min_score: Decimal = Field(..., ge=0, le=100, decimal_places=2)
    max_score: Decimal = Field(..., ge=0, le=100, decimal_places=2)
    gpa_point: Decimal = Field(Decimal("0"), ge=0, le=10, decimal_places=2)
    remark: Optional[str] = Field(None, max_length=100, description="e.g. Excellent")


class GradingScaleUpdate(BaseModel):
    grade: Optional[str] = Field(None, min_length=1, max_length=10)
    min_score: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    max_score: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    gpa_point: Optional[Decimal] = Field(None, ge=0, le=10, decimal_places=2)
    remark: Optional[str] = Field(None, max_length=100)


class GradingScaleResponse(BaseModel):
    id: UUID
    grade: str
    min_score: Decimal
    max_score: Decimal
    gpa_point: Decimal
    remark: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
