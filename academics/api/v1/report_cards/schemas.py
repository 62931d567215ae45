from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class ReportCardGenerate(BaseModel):
    student_id: UUID
    term_id: UUID


class ClassReportsGenerate(BaseModel):
    class_id: UUID
    term_id: UUID


class ReportRemarksUpdate(BaseModel):
    """Staff remarks. Only the remarks supplied are changed; regeneration never touches them."""

    student_id: UUID
    term_id: UUID
    class_teacher_remark: Optional[str] = Field(None, max_length=2000)
    principal_remark: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def validate_has_remark(self) -> "ReportRemarksUpdate":
        if self.class_teacher_remark is None and self.principal_remark is None:
            raise ValueError("Provide class_teacher_remark and/or principal_remark")
        return self


class ReportCardSubjectResponse(BaseModel):
    subject_id: UUID
    subject_name: str
    total_score: Decimal
    grade: str
    gpa_point: Decimal
    remark: Optional[str] = None
    result_remarks: Optional[str] = None

    class Config:
        from_attributes = True


class ReportCardResponse(BaseModel):
    id: UUID
    student_id: UUID
    student_name: str
    admission_number: str
    term_id: UUID
    class_id: UUID
    results: List[ReportCardSubjectResponse] = Field(default_factory=list)
    total_score: Decimal
    average_score: Decimal
    gpa: Optional[Decimal] = None
    class_position: Optional[int] = None
    total_students: Optional[int] = None
    class_teacher_remark: Optional[str] = None
    principal_remark: Optional[str] = None
    generated_at: datetime


class ClassReportFailure(BaseModel):
    student_id: UUID
    error: str


class ClassReportsResult(BaseModel):
    """Outcome of bulk generation. count = reports generated; every failure is listed with its cause."""

    count: int
    failures: List[ClassReportFailure] = Field(default_factory=list)
    message: str
