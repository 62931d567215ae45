from academics.core.models.academic_term import AcademicTerm
from academics.core.models.class_model import SchoolClass
from academics.core.models.grading_scale import GradingScale
from academics.core.models.promotion_record import PromotionRecord
from academics.core.models.report_card import ReportCard, ReportCardSubject
from academics.core.models.student import Student
from academics.core.models.subject import Subject
from academics.core.models.subject_result import SubjectResult

__all__ = [
    "AcademicTerm",
    "GradingScale",
    "PromotionRecord",
    "ReportCard",
    "ReportCardSubject",
    "SchoolClass",
    "Student",
    "Subject",
    "SubjectResult",
]
