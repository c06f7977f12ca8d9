"""Deterministic grading of multiple-choice answers."""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from app.models.base import as_utc

# (threshold, letter), highest first
GRADE_LETTERS: list[tuple[int, str]] = [
    (90, "A+"),
    (80, "A"),
    (70, "B"),
    (60, "C"),
    (50, "D"),
]


@dataclass(frozen=True)
class GradedAnswer:
    question_id: int
    selected_option: int
    is_correct: bool
    marks_obtained: int


@dataclass(frozen=True)
class GradeResult:
    answers: list[GradedAnswer] = field(default_factory=list)
    total_score: int = 0
    total_marks: int = 0
    percentage: int = 0
    time_taken: int = 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards +infinity (12.5 -> 13, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def compute_percentage(total_score: int, total_marks: int) -> int:
    if total_marks <= 0:
        return 0
    return round_half_up(total_score / total_marks * 100)


def compute_time_taken(start_time: datetime, end_time: datetime) -> int:
    """Whole minutes between the two instants; negative spans are kept."""
    return round_half_up((as_utc(end_time) - as_utc(start_time)) / timedelta(minutes=1))


def grade_answer(question: Any, selected_option: int) -> GradedAnswer:
    """Grade one answer; an index outside the option list scores zero."""
    options = question.options
    option = options[selected_option] if 0 <= selected_option < len(options) else None
    is_correct = bool(option.is_correct) if option is not None else False
    return GradedAnswer(
        question_id=question.id,
        selected_option=selected_option,
        is_correct=is_correct,
        marks_obtained=question.marks if is_correct else 0,
    )


def grade_submission(
    questions: Sequence[Any],
    answers: Iterable[Any],
    total_marks: int,
    start_time: datetime,
    end_time: datetime,
) -> GradeResult:
    """Grade ``answers`` against the exam's question bank.

    Answers whose question id is not part of the exam are dropped, as
    are repeat answers to a question already graded.
    ``total_marks`` is the exam total at grading time and is stored as
    a snapshot on the submission.
    """
    by_id = {question.id: question for question in questions}

    graded: list[GradedAnswer] = []
    seen: set[int] = set()
    for answer in answers:
        question = by_id.get(answer.question_id)
        # Repeated answers to one question would push the score past total_marks
        if question is None or question.id in seen:
            continue
        seen.add(question.id)
        graded.append(grade_answer(question, answer.selected_option))

    total_score = sum(answer.marks_obtained for answer in graded)
    return GradeResult(
        answers=graded,
        total_score=total_score,
        total_marks=total_marks,
        percentage=compute_percentage(total_score, total_marks),
        time_taken=compute_time_taken(start_time, end_time),
    )


def grade_letter(percentage: int) -> str:
    for threshold, letter in GRADE_LETTERS:
        if percentage >= threshold:
            return letter
    return "F"
