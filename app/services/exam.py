"""Exam catalog service."""

import logging
from datetime import datetime

from sqlalchemy import delete, exists, func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ExamAccessDeniedError, NotFoundError, ValidationError
from app.models.base import as_utc
from app.models.exam import Exam, ExamQuestion, QuestionOption
from app.models.submission import Submission, SubmissionAnswer
from app.models.user import User
from app.schemas.exam import (
    ExamCreate,
    ExamListResponse,
    ExamResponse,
    ExamUpdate,
    OptionResponse,
    QuestionCreate,
    QuestionResponse,
    StudentExamView,
)
from app.services.lifecycle import attempt_denial, exam_status, redact_for_student

logger = logging.getLogger(__name__)


class ExamService:
    """Exam authoring and viewing service."""

    def __init__(self, db: Session):
        self.db = db

    def _exam_to_response(self, exam: Exam, now: datetime) -> ExamResponse:
        """Convert Exam to the full admin view."""
        return ExamResponse(
            id=exam.id,
            title=exam.title,
            subject=exam.subject,
            duration=exam.duration,
            total_marks=exam.total_marks,
            questions=[
                QuestionResponse(
                    id=question.id,
                    question=question.question,
                    options=[
                        OptionResponse(text=option.text, is_correct=option.is_correct)
                        for option in question.options
                    ],
                    marks=question.marks,
                )
                for question in exam.questions
            ],
            created_by=exam.created_by,
            creator_name=exam.creator.name if exam.creator else None,
            is_active=exam.is_active,
            start_date=as_utc(exam.start_date),
            end_date=as_utc(exam.end_date),
            status=exam_status(exam, now),
            created_at=as_utc(exam.created_at),
            updated_at=as_utc(exam.updated_at),
        )

    def _build_questions(self, questions: list[QuestionCreate]) -> list[ExamQuestion]:
        if settings.EXAM_REQUIRE_SINGLE_CORRECT_OPTION:
            for index, question in enumerate(questions):
                correct = sum(1 for option in question.options if option.is_correct)
                if correct != 1:
                    raise ValidationError(
                        f"Question {index + 1} must have exactly one correct option",
                        details={"question_index": index, "correct_options": correct},
                    )

        return [
            ExamQuestion(
                position=q_index,
                question=question.question,
                marks=question.marks,
                options=[
                    QuestionOption(position=o_index, text=option.text, is_correct=option.is_correct)
                    for o_index, option in enumerate(question.options)
                ],
            )
            for q_index, question in enumerate(questions)
        ]

    def create_exam(self, admin_id: int, request: ExamCreate, now: datetime) -> ExamResponse:
        """Create an exam; total marks are derived from the questions."""
        exam = Exam(
            title=request.title,
            subject=request.subject,
            duration=request.duration,
            start_date=request.start_date,
            end_date=request.end_date,
            is_active=request.is_active,
            created_by=admin_id,
            questions=self._build_questions(request.questions),
        )
        exam.recompute_total_marks()
        self.db.add(exam)
        self.db.flush()
        self.db.refresh(exam)

        logger.info(f"Exam created: {exam.id} ({exam.title}) with {len(exam.questions)} questions")
        return self._exam_to_response(exam, now)

    def get_exam(self, exam_id: int) -> Exam:
        """Get exam by ID."""
        exam = self.db.get(Exam, exam_id)
        if not exam:
            raise NotFoundError("Exam", str(exam_id))
        return exam

    def update_exam(self, exam_id: int, request: ExamUpdate, now: datetime) -> ExamResponse:
        """Update an exam; any admin may edit any exam."""
        exam = self.get_exam(exam_id)

        exam.title = request.title
        exam.subject = request.subject
        exam.duration = request.duration
        exam.start_date = request.start_date
        exam.end_date = request.end_date
        exam.is_active = request.is_active
        exam.questions = self._build_questions(request.questions)
        exam.recompute_total_marks()

        self.db.flush()
        self.db.refresh(exam)
        return self._exam_to_response(exam, now)

    def delete_exam(self, exam_id: int) -> None:
        """Delete an exam and its submissions; any admin may delete any exam."""
        exam = self.get_exam(exam_id)
        submission_ids = select(Submission.id).where(Submission.exam_id == exam_id)
        self.db.execute(
            delete(SubmissionAnswer).where(SubmissionAnswer.submission_id.in_(submission_ids))
        )
        self.db.execute(delete(Submission).where(Submission.exam_id == exam_id))
        self.db.delete(exam)
        self.db.flush()
        logger.info(f"Exam deleted: {exam_id}")

    def has_submission(self, student_id: int, exam_id: int) -> bool:
        return bool(
            self.db.execute(
                select(
                    exists().where(
                        Submission.student_id == student_id,
                        Submission.exam_id == exam_id,
                    )
                )
            ).scalar()
        )

    def get_exam_for_viewing(
        self,
        exam_id: int,
        user: User,
        now: datetime,
    ) -> ExamResponse | StudentExamView:
        """Admins get the full exam; students get the redacted view while they may attempt it."""
        exam = self.get_exam(exam_id)

        if user.is_admin:
            return self._exam_to_response(exam, now)

        reason = attempt_denial(exam, now, self.has_submission(user.id, exam.id))
        if reason is not None:
            raise ExamAccessDeniedError(reason, exam_id=exam.id)

        return redact_for_student(exam, now)

    def list_exams(
        self,
        user: User,
        now: datetime,
        page: int = 1,
        page_size: int = 50,
        stats_only: bool = False,
    ) -> ExamListResponse:
        """List exams by role.

        Students see active exams that have not ended (upcoming ones
        included), redacted and unpaginated. Admins see everything,
        paginated, or just the count with ``stats_only``.
        """
        query = select(Exam)
        if not user.is_admin:
            query = query.where(Exam.is_active.is_(True), Exam.end_date >= now)

        total = self.db.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar() or 0

        if stats_only and user.is_admin:
            return ExamListResponse(count=total, total=total, stats_only=True)

        query = query.order_by(Exam.created_at.desc(), Exam.id.desc())

        if not user.is_admin:
            exams = self.db.execute(query).scalars().all()
            items = [redact_for_student(exam, now) for exam in exams]
            return ExamListResponse(items=items, count=len(items), total=total)

        exams = self.db.execute(
            query.offset((page - 1) * page_size).limit(page_size)
        ).scalars().all()
        items = [self._exam_to_response(exam, now) for exam in exams]
        return ExamListResponse(
            items=items,
            count=len(items),
            total=total,
            page=page,
            total_pages=(total + page_size - 1) // page_size,
        )
