"""Exam lifecycle rules: availability window, attempt gating and redaction.

Everything here is a pure function of its arguments. The same
``attempt_denial`` predicate gates both the student's read of an exam and
the acceptance of a submission, so the two can never disagree.
"""

import enum
from datetime import datetime
from typing import Any

from app.core.exceptions import DenialReason
from app.models.base import as_utc
from app.schemas.exam import StudentExamView, StudentOptionView, StudentQuestionView


class ExamState(str, enum.Enum):
    """Temporal availability of an exam."""

    NOT_YET_OPEN = "not_yet_open"
    OPEN = "open"
    CLOSED = "closed"


def classify(exam: Any, now: datetime) -> ExamState:
    """Classify an exam at ``now``; an inactive exam is always closed."""
    if not exam.is_active:
        return ExamState.CLOSED
    now = as_utc(now)
    if now < as_utc(exam.start_date):
        return ExamState.NOT_YET_OPEN
    if now > as_utc(exam.end_date):
        return ExamState.CLOSED
    return ExamState.OPEN


def attempt_denial(
    exam: Any,
    now: datetime,
    has_existing_submission: bool,
) -> DenialReason | None:
    """Return why a student may not attempt the exam, or None if they may."""
    if not exam.is_active:
        return DenialReason.INACTIVE
    state = classify(exam, now)
    if state == ExamState.NOT_YET_OPEN:
        return DenialReason.NOT_STARTED
    if state == ExamState.CLOSED:
        return DenialReason.ENDED
    if has_existing_submission:
        return DenialReason.ALREADY_SUBMITTED
    return None


def can_attempt(exam: Any, now: datetime, has_existing_submission: bool) -> bool:
    return attempt_denial(exam, now, has_existing_submission) is None


def exam_status(exam: Any, now: datetime) -> str:
    """Display status for listings: upcoming, active or ended.

    Unlike ``classify`` this ignores the active flag; listings show
    the scheduling window as authored.
    """
    now = as_utc(now)
    if now < as_utc(exam.start_date):
        return "upcoming"
    if now > as_utc(exam.end_date):
        return "ended"
    return "active"


def redact_for_student(exam: Any, now: datetime | None = None) -> StudentExamView:
    """Project an exam to the student-facing view.

    Only option text survives; correctness flags are dropped
    unconditionally. Accepts an ``Exam`` row or an already redacted
    view, so applying it twice gives the same result.
    """
    status = exam_status(exam, now) if now is not None else getattr(exam, "status", None)
    return StudentExamView(
        id=exam.id,
        title=exam.title,
        subject=exam.subject,
        duration=exam.duration,
        total_marks=exam.total_marks,
        questions=[
            StudentQuestionView(
                id=question.id,
                question=question.question,
                options=[StudentOptionView(text=option.text) for option in question.options],
                marks=question.marks,
            )
            for question in exam.questions
        ],
        is_active=exam.is_active,
        start_date=as_utc(exam.start_date),
        end_date=as_utc(exam.end_date),
        status=status,
    )
