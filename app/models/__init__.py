"""Database models package."""

from app.models.audit import AuditAction, AuditLog
from app.models.exam import Exam, ExamQuestion, QuestionOption
from app.models.submission import Submission, SubmissionAnswer
from app.models.user import User, UserRole

__all__ = [
    # User
    "User",
    "UserRole",
    # Exam
    "Exam",
    "ExamQuestion",
    "QuestionOption",
    # Submission
    "Submission",
    "SubmissionAnswer",
    # Audit
    "AuditLog",
    "AuditAction",
]
