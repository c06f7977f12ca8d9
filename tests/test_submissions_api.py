"""
Submission API tests: admission, grading, the one-per-exam ledger and reports.
"""

from datetime import datetime, timedelta, timezone
from io import BytesIO

import pytest
from openpyxl import load_workbook
from sqlalchemy import func, select

from app.core.exceptions import DenialReason, ExamAccessDeniedError
from app.models.base import utcnow
from app.models.submission import Submission
from app.schemas.exam import ExamCreate
from app.schemas.submission import SubmissionCreate
from app.services.exam import ExamService
from app.services.submission import SubmissionService
from tests.conftest import auth_headers


def submission_body(exam: dict, selected_option: int = 1, minutes: int = 10, **overrides) -> dict:
    end = utcnow()
    body = {
        "exam_id": exam["id"],
        "answers": [
            {"question_id": exam["questions"][0]["id"], "selected_option": selected_option},
        ],
        "start_time": (end - timedelta(minutes=minutes)).isoformat(),
        "end_time": end.isoformat(),
    }
    body.update(overrides)
    return body


def submission_count(db) -> int:
    return db.execute(select(func.count()).select_from(Submission)).scalar()


class TestSubmitExam:

    def test_correct_answer_scores_full_marks(self, client, student_headers, create_exam):
        exam = create_exam()

        response = client.post("/api/v1/submissions", json=submission_body(exam), headers=student_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["total_score"] == 1
        assert data["total_marks"] == 1
        assert data["percentage"] == 100
        assert data["time_taken"] == 10
        assert data["grade"] == "A+"
        assert "answers" not in data

    def test_second_submission_is_already_submitted(self, client, student_headers, create_exam, db):
        exam = create_exam()
        first = client.post("/api/v1/submissions", json=submission_body(exam), headers=student_headers)
        assert first.status_code == 201

        second = client.post(
            "/api/v1/submissions",
            json=submission_body(exam, selected_option=0),
            headers=student_headers,
        )

        assert second.status_code == 403
        error = second.json()["error"]
        assert error["code"] == "ALREADY_SUBMITTED"
        assert error["details"]["reason"] == "already_submitted"
        assert submission_count(db) == 1

    def test_exam_reads_are_blocked_after_submitting(self, client, student_headers, create_exam):
        exam = create_exam()
        client.post("/api/v1/submissions", json=submission_body(exam), headers=student_headers)

        response = client.get(f"/api/v1/exams/{exam['id']}", headers=student_headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ALREADY_SUBMITTED"

    def test_constraint_rejects_submission_the_precheck_missed(
        self, client, student_headers, create_exam, db, monkeypatch
    ):
        """Two requests that both pass the existence check: only one row survives."""
        monkeypatch.setattr(ExamService, "has_submission", lambda self, student_id, exam_id: False)
        exam = create_exam()

        first = client.post("/api/v1/submissions", json=submission_body(exam), headers=student_headers)
        second = client.post("/api/v1/submissions", json=submission_body(exam), headers=student_headers)

        assert first.status_code == 201
        assert second.status_code == 409
        error = second.json()["error"]
        assert error["code"] == "CONFLICT"
        assert error["message"] == "You have already submitted this exam"
        assert submission_count(db) == 1

    def test_not_started_exam_rejects_submission(self, client, student_headers, create_exam, db):
        exam = create_exam(start_offset=timedelta(hours=1))

        response = client.post("/api/v1/submissions", json=submission_body(exam), headers=student_headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "EXAM_NOT_STARTED"
        assert submission_count(db) == 0

    def test_inactive_exam_rejects_submission(self, client, student_headers, create_exam):
        exam = create_exam(is_active=False)

        response = client.post("/api/v1/submissions", json=submission_body(exam), headers=student_headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "EXAM_INACTIVE"

    def test_admin_cannot_submit(self, client, admin_headers, create_exam):
        exam = create_exam()

        response = client.post("/api/v1/submissions", json=submission_body(exam), headers=admin_headers)

        assert response.status_code == 403
        assert response.json()["error"]["details"]["reason"] == "wrong_role"

    def test_unknown_question_scores_zero(self, client, student_headers, create_exam):
        exam = create_exam()
        body = submission_body(exam, answers=[{"question_id": 987654, "selected_option": 0}])

        response = client.post("/api/v1/submissions", json=body, headers=student_headers)

        assert response.status_code == 201
        assert response.json()["total_score"] == 0
        assert response.json()["percentage"] == 0

    def test_missing_exam_is_404(self, client, student_headers):
        body = {
            "exam_id": 31337,
            "answers": [{"question_id": 1, "selected_option": 0}],
            "start_time": utcnow().isoformat(),
            "end_time": utcnow().isoformat(),
        }

        response = client.post("/api/v1/submissions", json=body, headers=student_headers)

        assert response.status_code == 404


class TestSubmissionScenario:

    def test_fixed_clock_scenario(self, db, primary_admin, student):
        """Exam open for 7 days from T0, submitted at T0 + 1h with a 10 minute attempt."""
        t0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
        exams = ExamService(db)
        exam = exams.create_exam(
            primary_admin.id,
            ExamCreate(
                title="Scenario Exam",
                subject="General",
                duration=60,
                start_date=t0,
                end_date=t0 + timedelta(days=7),
                questions=[
                    {
                        "question": "Pick option B",
                        "options": [{"text": "A", "is_correct": False}, {"text": "B", "is_correct": True}],
                        "marks": 1,
                    }
                ],
            ),
            now=t0,
        )
        now = t0 + timedelta(hours=1)
        request = SubmissionCreate(
            exam_id=exam.id,
            answers=[{"question_id": exam.questions[0].id, "selected_option": 1}],
            start_time=now - timedelta(minutes=10),
            end_time=now,
        )

        service = SubmissionService(db)
        summary = service.submit(student.id, request, now=now)

        assert (summary.total_score, summary.total_marks, summary.percentage, summary.time_taken) == (1, 1, 100, 10)

        with pytest.raises(ExamAccessDeniedError) as excinfo:
            service.submit(student.id, request, now=now + timedelta(minutes=5))
        assert excinfo.value.reason == DenialReason.ALREADY_SUBMITTED

    def test_server_stamped_end_time(self, db, primary_admin, student, monkeypatch):
        from app.core.config import settings

        monkeypatch.setattr(settings, "SUBMISSION_SERVER_END_TIME", True)
        t0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
        exam = ExamService(db).create_exam(
            primary_admin.id,
            ExamCreate(
                title="Timing Exam",
                subject="General",
                duration=30,
                start_date=t0,
                end_date=t0 + timedelta(days=1),
                questions=[
                    {"question": "Pick option A", "options": [{"text": "A", "is_correct": True}, {"text": "B"}]}
                ],
            ),
            now=t0,
        )
        now = t0 + timedelta(minutes=25)
        request = SubmissionCreate(
            exam_id=exam.id,
            answers=[{"question_id": exam.questions[0].id, "selected_option": 0}],
            start_time=t0,
            # Client claims a much shorter attempt
            end_time=t0 + timedelta(minutes=1),
        )

        summary = SubmissionService(db).submit(student.id, request, now=now)

        assert summary.time_taken == 25


class TestSubmissionReads:

    def test_student_lists_own_submissions(self, client, student_headers, other_student, create_exam):
        exam = create_exam()
        client.post("/api/v1/submissions", json=submission_body(exam), headers=student_headers)
        client.post(
            "/api/v1/submissions",
            json=submission_body(exam, selected_option=0),
            headers=auth_headers(other_student),
        )

        response = client.get("/api/v1/submissions/my", headers=student_headers)

        assert response.status_code == 200
        items = response.json()
        assert len(items) == 1
        assert items[0]["student_name"] == "Asha Roy"
        assert items[0]["exam_title"] == exam["title"]
        assert items[0]["answers"][0]["is_correct"] is True

    def test_student_cannot_read_another_students_submission(
        self, client, student_headers, other_student, create_exam
    ):
        exam = create_exam()
        created = client.post(
            "/api/v1/submissions",
            json=submission_body(exam),
            headers=auth_headers(other_student),
        ).json()

        response = client.get(f"/api/v1/submissions/{created['id']}", headers=student_headers)

        assert response.status_code == 403

    def test_admin_filters_by_exam(self, client, admin_headers, student_headers, create_exam):
        first = create_exam(title="First Exam")
        second = create_exam(title="Second Exam")
        client.post("/api/v1/submissions", json=submission_body(first), headers=student_headers)
        client.post("/api/v1/submissions", json=submission_body(second), headers=student_headers)

        response = client.get(f"/api/v1/submissions?exam_id={second['id']}", headers=admin_headers)

        assert response.status_code == 200
        items = response.json()
        assert [item["exam_id"] for item in items] == [second["id"]]

    def test_student_cannot_list_all(self, client, student_headers):
        response = client.get("/api/v1/submissions", headers=student_headers)

        assert response.status_code == 403

    def test_deleting_submission_allows_retake(self, client, admin_headers, student_headers, create_exam):
        exam = create_exam()
        created = client.post("/api/v1/submissions", json=submission_body(exam), headers=student_headers).json()

        response = client.delete(f"/api/v1/submissions/{created['id']}", headers=admin_headers)
        assert response.status_code == 200

        retake = client.post("/api/v1/submissions", json=submission_body(exam), headers=student_headers)
        assert retake.status_code == 201


class TestReports:

    def test_student_stats(self, client, student_headers, create_exam):
        passed = create_exam(title="Passed Exam")
        failed = create_exam(title="Failed Exam")
        client.post("/api/v1/submissions", json=submission_body(passed), headers=student_headers)
        client.post(
            "/api/v1/submissions",
            json=submission_body(failed, selected_option=0),
            headers=student_headers,
        )

        response = client.get("/api/v1/submissions/my/stats", headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_exams"] == 2
        assert float(data["average_score"]) == 50.0
        assert data["best_score"] == 100
        assert data["worst_score"] == 0
        assert float(data["pass_rate"]) == 50.0
        assert data["improvement_trend"] == "neutral"

    def test_stats_without_submissions(self, client, student_headers):
        response = client.get("/api/v1/submissions/my/stats", headers=student_headers)

        data = response.json()
        assert data["total_exams"] == 0
        assert data["best_score"] == 0

    def test_exam_summary(self, client, admin_headers, student_headers, other_student, create_exam):
        exam = create_exam()
        client.post("/api/v1/submissions", json=submission_body(exam), headers=student_headers)
        client.post(
            "/api/v1/submissions",
            json=submission_body(exam, selected_option=0),
            headers=auth_headers(other_student),
        )

        response = client.get(f"/api/v1/exams/{exam['id']}/summary", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_submissions"] == 2
        assert float(data["average_percentage"]) == 50.0
        assert data["highest_percentage"] == 100
        assert data["lowest_percentage"] == 0
        assert data["pass_count"] == 1
        assert data["fail_count"] == 1

    def test_export_xlsx(self, client, admin_headers, student_headers, create_exam):
        exam = create_exam()
        client.post("/api/v1/submissions", json=submission_body(exam), headers=student_headers)

        response = client.get(f"/api/v1/submissions/export?exam_id={exam['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        sheet = load_workbook(BytesIO(response.content)).active
        rows = list(sheet.iter_rows(values_only=True))
        assert rows[0][0] == "Student ID"
        assert len(rows) == 2
        assert rows[1][0] == "51234567890"
        assert rows[1][7] == 100
