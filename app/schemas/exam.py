"""Exam schemas."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator

from app.schemas.common import BaseSchema, utc_datetime


# ==========================================
# Authoring
# ==========================================

class OptionCreate(BaseSchema):
    """Answer option as written by an admin."""

    text: str = Field(..., min_length=1)
    is_correct: bool = False


class QuestionCreate(BaseSchema):
    """Question creation schema."""

    question: str = Field(..., min_length=5)
    options: list[OptionCreate] = Field(..., min_length=2, max_length=6)
    marks: int = Field(1, ge=1)


class ExamCreate(BaseSchema):
    """Exam creation schema."""

    title: str = Field(..., min_length=3, max_length=100)
    subject: str = Field(..., min_length=2, max_length=50)
    duration: int = Field(..., ge=1, description="Duration in minutes")
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    questions: list[QuestionCreate] = Field(..., min_length=1)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v: datetime) -> datetime:
        return utc_datetime(v)

    @model_validator(mode="after")
    def validate_window(self) -> "ExamCreate":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class ExamUpdate(ExamCreate):
    """Exam update schema; the question set is replaced wholesale."""


# ==========================================
# Admin view (full answer key)
# ==========================================

class OptionResponse(BaseSchema):
    text: str
    is_correct: bool


class QuestionResponse(BaseSchema):
    id: int
    question: str
    options: list[OptionResponse]
    marks: int


class ExamResponse(BaseSchema):
    """Exam as seen by administrators."""

    view: Literal["admin"] = "admin"
    id: int
    title: str
    subject: str
    duration: int
    total_marks: int
    questions: list[QuestionResponse]
    created_by: int | None
    creator_name: str | None = None
    is_active: bool
    start_date: datetime
    end_date: datetime
    status: str
    created_at: datetime
    updated_at: datetime


# ==========================================
# Student view (redacted)
# ==========================================

class StudentOptionView(BaseSchema):
    text: str


class StudentQuestionView(BaseSchema):
    id: int
    question: str
    options: list[StudentOptionView]
    marks: int


class StudentExamView(BaseSchema):
    """Exam as seen by students; carries no correctness flags."""

    view: Literal["student"] = "student"
    id: int
    title: str
    subject: str
    duration: int
    total_marks: int
    questions: list[StudentQuestionView]
    is_active: bool
    start_date: datetime
    end_date: datetime
    status: str | None = None


ExamView = Annotated[ExamResponse | StudentExamView, Field(discriminator="view")]


class ExamListResponse(BaseSchema):
    """Exam listing; admins get pagination fields, students the full open list."""

    items: list[ExamView] = []
    count: int
    total: int
    page: int | None = None
    total_pages: int | None = None
    stats_only: bool = False
