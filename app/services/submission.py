"""Submission admission, grading and ledger service."""

import logging
from datetime import datetime
from decimal import Decimal
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ExamAccessDeniedError,
    NotFoundError,
    PermissionDeniedError,
    SubmissionConflictError,
)
from app.models.base import as_utc
from app.models.submission import Submission, SubmissionAnswer
from app.models.user import User
from app.schemas.submission import (
    AnswerResponse,
    ExamSubmissionSummary,
    StudentStats,
    SubmissionCreate,
    SubmissionResponse,
    SubmissionSummary,
)
from app.services.exam import ExamService
from app.services.lifecycle import attempt_denial
from app.services.scoring import grade_letter, grade_submission

logger = logging.getLogger(__name__)


class SubmissionService:
    """Owns the one-submission-per-(student, exam) ledger."""

    def __init__(self, db: Session):
        self.db = db
        self.exams = ExamService(db)

    def _submission_to_response(self, submission: Submission) -> SubmissionResponse:
        """Convert Submission to response schema."""
        student = submission.student
        exam = submission.exam
        return SubmissionResponse(
            id=submission.id,
            student_id=submission.student_id,
            student_name=student.name if student else None,
            student_email=student.email if student else None,
            student_login_id=student.login_id if student else None,
            exam_id=submission.exam_id,
            exam_title=exam.title if exam else None,
            exam_subject=exam.subject if exam else None,
            answers=[AnswerResponse.model_validate(answer) for answer in submission.answers],
            total_score=submission.total_score,
            total_marks=submission.total_marks,
            percentage=submission.percentage,
            grade=grade_letter(submission.percentage),
            start_time=as_utc(submission.start_time),
            end_time=as_utc(submission.end_time),
            time_taken=submission.time_taken,
            created_at=as_utc(submission.created_at),
        )

    def submit(
        self,
        student_id: int,
        request: SubmissionCreate,
        now: datetime,
    ) -> SubmissionSummary:
        """Admit, grade and store a submission.

        The lifecycle check here only produces the friendly error; the
        unique constraint on (student_id, exam_id) is what actually keeps
        a second concurrent submission out.
        """
        exam = self.exams.get_exam(request.exam_id)

        reason = attempt_denial(exam, now, self.exams.has_submission(student_id, exam.id))
        if reason is not None:
            raise ExamAccessDeniedError(reason, exam_id=exam.id)

        end_time = now if settings.SUBMISSION_SERVER_END_TIME else request.end_time
        result = grade_submission(
            exam.questions,
            request.answers,
            exam.total_marks,
            request.start_time,
            end_time,
        )

        submission = Submission(
            student_id=student_id,
            exam_id=exam.id,
            answers=[
                SubmissionAnswer(
                    position=index,
                    question_id=answer.question_id,
                    selected_option=answer.selected_option,
                    is_correct=answer.is_correct,
                    marks_obtained=answer.marks_obtained,
                )
                for index, answer in enumerate(result.answers)
            ],
            total_score=result.total_score,
            total_marks=result.total_marks,
            percentage=result.percentage,
            start_time=request.start_time,
            end_time=end_time,
            time_taken=result.time_taken,
            is_submitted=True,
        )
        exam_id = exam.id
        self.db.add(submission)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            logger.warning(
                f"Duplicate submission rejected by unique constraint "
                f"(student={student_id}, exam={exam_id})"
            )
            raise SubmissionConflictError(exam_id=exam_id)

        logger.info(
            f"Submission {submission.id} stored: student={student_id} exam={exam.id} "
            f"score={result.total_score}/{result.total_marks}"
        )
        return SubmissionSummary(
            id=submission.id,
            total_score=submission.total_score,
            total_marks=submission.total_marks,
            percentage=submission.percentage,
            time_taken=submission.time_taken,
            grade=grade_letter(submission.percentage),
            submitted_at=as_utc(submission.created_at),
        )

    def get_submission(self, submission_id: int) -> Submission:
        """Get submission by ID."""
        submission = self.db.get(Submission, submission_id)
        if not submission:
            raise NotFoundError("Submission", str(submission_id))
        return submission

    def get_submission_for_user(self, submission_id: int, user: User) -> SubmissionResponse:
        """Students may only read their own submissions."""
        submission = self.get_submission(submission_id)
        if not user.is_admin and submission.student_id != user.id:
            raise PermissionDeniedError("Not authorized to view this submission")
        return self._submission_to_response(submission)

    def _list(self, student_id: int | None = None, exam_id: int | None = None) -> list[Submission]:
        query = select(Submission)
        if student_id is not None:
            query = query.where(Submission.student_id == student_id)
        if exam_id is not None:
            query = query.where(Submission.exam_id == exam_id)
        query = query.order_by(Submission.created_at.desc(), Submission.id.desc())
        return list(self.db.execute(query).scalars().all())

    def list_for_student(self, student_id: int) -> list[SubmissionResponse]:
        return [self._submission_to_response(s) for s in self._list(student_id=student_id)]

    def list_all(self, exam_id: int | None = None) -> list[SubmissionResponse]:
        return [self._submission_to_response(s) for s in self._list(exam_id=exam_id)]

    def delete_submission(self, submission_id: int) -> None:
        """Administrative deletion; frees the student to attempt the exam again."""
        submission = self.get_submission(submission_id)
        self.db.delete(submission)
        self.db.flush()
        logger.info(f"Submission deleted: {submission_id}")

    # ==========================================
    # Reporting
    # ==========================================

    def exam_summary(self, exam_id: int) -> ExamSubmissionSummary:
        """Aggregate results for one exam."""
        exam = self.exams.get_exam(exam_id)
        scores = [s.percentage for s in self._list(exam_id=exam_id)]
        pass_count = sum(1 for score in scores if score >= settings.PASS_PERCENTAGE)

        average = Decimal(sum(scores)) / len(scores) if scores else Decimal("0")
        return ExamSubmissionSummary(
            exam_id=exam.id,
            exam_title=exam.title,
            total_submissions=len(scores),
            average_percentage=average.quantize(Decimal("0.01")),
            highest_percentage=max(scores, default=0),
            lowest_percentage=min(scores, default=0),
            pass_count=pass_count,
            fail_count=len(scores) - pass_count,
        )

    def student_stats(self, student_id: int) -> StudentStats:
        """A student's results; trend compares the last 3 submissions with the 3 before."""
        scores = [s.percentage for s in self._list(student_id=student_id)]
        if not scores:
            return StudentStats(
                total_exams=0,
                average_score=Decimal("0"),
                best_score=0,
                worst_score=0,
                pass_rate=Decimal("0"),
                improvement_trend="neutral",
            )

        trend = "neutral"
        if len(scores) >= 6:
            recent = sum(scores[:3]) / 3
            previous = sum(scores[3:6]) / 3
            if recent > previous:
                trend = "improving"
            elif recent < previous:
                trend = "declining"
            else:
                trend = "stable"

        pass_count = sum(1 for score in scores if score >= settings.PASS_PERCENTAGE)
        return StudentStats(
            total_exams=len(scores),
            average_score=(Decimal(sum(scores)) / len(scores)).quantize(Decimal("0.1")),
            best_score=max(scores),
            worst_score=min(scores),
            pass_rate=(Decimal(pass_count * 100) / len(scores)).quantize(Decimal("0.1")),
            improvement_trend=trend,
        )

    def export_xlsx(self, exam_id: int | None = None) -> bytes:
        """Export the ledger (optionally one exam) to an Excel workbook."""
        if exam_id is not None:
            self.exams.get_exam(exam_id)
        submissions = self.list_all(exam_id=exam_id)

        wb = Workbook()
        ws = wb.active
        ws.title = "Submissions"

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")

        headers = [
            "Student ID", "Student Name", "Email", "Exam", "Subject",
            "Score", "Total Marks", "Percentage", "Grade", "Time Taken (min)", "Submitted At",
        ]
        for col_idx, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center")

        for row_idx, s in enumerate(submissions, start=2):
            values = [
                s.student_login_id, s.student_name, s.student_email, s.exam_title, s.exam_subject,
                s.total_score, s.total_marks, s.percentage, s.grade, s.time_taken,
                s.created_at.strftime("%Y-%m-%d %H:%M"),
            ]
            for col_idx, value in enumerate(values, start=1):
                ws.cell(row=row_idx, column=col_idx, value=value)

        widths = [14, 25, 30, 30, 18, 8, 12, 12, 8, 16, 18]
        for col_idx, width in enumerate(widths, start=1):
            ws.column_dimensions[get_column_letter(col_idx)].width = width

        output = BytesIO()
        wb.save(output)
        output.seek(0)
        return output.getvalue()
