"""Exam catalog models."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin


class Exam(Base, IDMixin, TimestampMixin):
    """Timed multiple-choice exam authored by an administrator."""

    __tablename__ = "exams"

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    subject: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    total_marks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    created_by: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    creator: Mapped["User | None"] = relationship("User", lazy="selectin")
    questions: Mapped[list["ExamQuestion"]] = relationship(
        "ExamQuestion",
        back_populates="exam",
        lazy="selectin",
        order_by="ExamQuestion.position",
        cascade="all, delete-orphan",
    )

    def recompute_total_marks(self) -> int:
        """Refresh total_marks from the current question set."""
        self.total_marks = sum(question.marks for question in self.questions)
        return self.total_marks

    def __repr__(self) -> str:
        return f"<Exam(id={self.id}, title={self.title})>"


class ExamQuestion(Base, IDMixin):
    """Question owned by a single exam."""

    __tablename__ = "exam_questions"

    exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    marks: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    exam: Mapped["Exam"] = relationship("Exam", back_populates="questions")
    options: Mapped[list["QuestionOption"]] = relationship(
        "QuestionOption",
        back_populates="question",
        lazy="selectin",
        order_by="QuestionOption.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ExamQuestion(id={self.id}, exam_id={self.exam_id}, marks={self.marks})>"


class QuestionOption(Base, IDMixin):
    """Answer option; is_correct is part of the answer key."""

    __tablename__ = "question_options"

    question_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("exam_questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    question: Mapped["ExamQuestion"] = relationship("ExamQuestion", back_populates="options")

    def __repr__(self) -> str:
        return f"<QuestionOption(id={self.id}, question_id={self.question_id})>"


from app.models.user import User  # noqa: E402
