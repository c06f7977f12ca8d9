"""Submission ledger models."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin


class Submission(Base, IDMixin, TimestampMixin):
    """Scored exam attempt; at most one per (student, exam)."""

    __tablename__ = "submissions"

    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    total_score: Mapped[int] = mapped_column(Integer, nullable=False)
    # Snapshot of the exam's total at grading time
    total_marks: Mapped[int] = mapped_column(Integer, nullable=False)
    percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    time_taken: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    is_submitted: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    student: Mapped["User"] = relationship("User", lazy="selectin")
    exam: Mapped["Exam"] = relationship("Exam", lazy="selectin")
    answers: Mapped[list["SubmissionAnswer"]] = relationship(
        "SubmissionAnswer",
        back_populates="submission",
        lazy="selectin",
        order_by="SubmissionAnswer.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("student_id", "exam_id", name="uq_submission_student_exam"),
    )

    def __repr__(self) -> str:
        return f"<Submission(student_id={self.student_id}, exam_id={self.exam_id})>"


class SubmissionAnswer(Base, IDMixin):
    """Graded answer; immutable once written."""

    __tablename__ = "submission_answers"

    submission_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Plain reference: questions are replaced when an exam is edited
    question_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    selected_option: Mapped[int] = mapped_column(Integer, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    marks_obtained: Mapped[int] = mapped_column(Integer, nullable=False)

    submission: Mapped["Submission"] = relationship("Submission", back_populates="answers")


from app.models.exam import Exam  # noqa: E402
from app.models.user import User  # noqa: E402
