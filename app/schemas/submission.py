"""Submission schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import Field, field_validator

from app.schemas.common import BaseSchema, utc_datetime


class AnswerInput(BaseSchema):
    """One selected option as sent by the student."""

    question_id: int
    selected_option: int = Field(..., ge=0)


class SubmissionCreate(BaseSchema):
    """Exam submission request."""

    exam_id: int
    answers: list[AnswerInput] = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v: datetime) -> datetime:
        return utc_datetime(v)


class SubmissionSummary(BaseSchema):
    """Result returned to the student right after submitting; never the answer key."""

    id: int
    total_score: int
    total_marks: int
    percentage: int
    time_taken: int
    grade: str
    submitted_at: datetime


class AnswerResponse(BaseSchema):
    question_id: int
    selected_option: int
    is_correct: bool
    marks_obtained: int


class SubmissionResponse(BaseSchema):
    """Stored submission with student and exam details."""

    id: int
    student_id: int
    student_name: str | None = None
    student_email: str | None = None
    student_login_id: str | None = None
    exam_id: int
    exam_title: str | None = None
    exam_subject: str | None = None
    answers: list[AnswerResponse] = []
    total_score: int
    total_marks: int
    percentage: int
    grade: str
    start_time: datetime
    end_time: datetime
    time_taken: int
    created_at: datetime


class ExamSubmissionSummary(BaseSchema):
    """Aggregate results for one exam."""

    exam_id: int
    exam_title: str
    total_submissions: int
    average_percentage: Decimal
    highest_percentage: int
    lowest_percentage: int
    pass_count: int
    fail_count: int


class StudentStats(BaseSchema):
    """A student's results across all submitted exams."""

    total_exams: int
    average_score: Decimal
    best_score: int
    worst_score: int
    pass_rate: Decimal
    improvement_trend: str
