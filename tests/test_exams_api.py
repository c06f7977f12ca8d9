"""
Exam catalog API tests: authoring, role-based views and window gating.
"""

from datetime import timedelta

from sqlalchemy import func, select

from app.models.exam import Exam
from app.models.submission import Submission
from tests.conftest import exam_payload


class TestExamAuthoring:

    def test_create_exam_derives_total_marks(self, client, admin_headers):
        payload = exam_payload()
        payload["questions"].append(
            {
                "question": "What is 3 * 3?",
                "options": [{"text": "9", "is_correct": True}, {"text": "6"}],
                "marks": 4,
            }
        )

        response = client.post("/api/v1/exams", json=payload, headers=admin_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["view"] == "admin"
        assert data["total_marks"] == 5
        assert data["status"] == "active"
        assert data["creator_name"] == "Main Admin"
        assert data["questions"][0]["options"][1]["is_correct"] is True

    def test_end_before_start_is_rejected(self, client, admin_headers):
        payload = exam_payload(start_offset=timedelta(days=2), end_offset=timedelta(days=1))

        response = client.post("/api/v1/exams", json=payload, headers=admin_headers)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_question_needs_two_options(self, client, admin_headers):
        payload = exam_payload()
        payload["questions"][0]["options"] = [{"text": "4", "is_correct": True}]

        response = client.post("/api/v1/exams", json=payload, headers=admin_headers)

        assert response.status_code == 422

    def test_student_cannot_create_exam(self, client, student_headers):
        response = client.post("/api/v1/exams", json=exam_payload(), headers=student_headers)

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "PERMISSION_DENIED"
        assert error["details"]["reason"] == "wrong_role"

    def test_update_replaces_questions(self, client, admin_headers, create_exam):
        exam = create_exam()
        payload = exam_payload(title="Algebra Revised")
        payload["questions"][0]["marks"] = 3

        response = client.put(f"/api/v1/exams/{exam['id']}", json=payload, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Algebra Revised"
        assert data["total_marks"] == 3
        assert len(data["questions"]) == 1

    def test_delete_exam_removes_submissions(self, client, admin_headers, student_headers, create_exam, db):
        exam = create_exam()
        question_id = exam["questions"][0]["id"]
        now_iso = exam["start_date"]
        client.post(
            "/api/v1/submissions",
            json={
                "exam_id": exam["id"],
                "answers": [{"question_id": question_id, "selected_option": 1}],
                "start_time": now_iso,
                "end_time": now_iso,
            },
            headers=student_headers,
        )

        response = client.delete(f"/api/v1/exams/{exam['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert db.execute(select(func.count()).select_from(Exam)).scalar() == 0
        assert db.execute(select(func.count()).select_from(Submission)).scalar() == 0

    def test_missing_exam_is_404(self, client, admin_headers):
        response = client.get("/api/v1/exams/424242", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestExamViews:

    def test_student_get_is_redacted(self, client, student_headers, create_exam):
        exam = create_exam()

        response = client.get(f"/api/v1/exams/{exam['id']}", headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["view"] == "student"
        for question in data["questions"]:
            for option in question["options"]:
                assert "is_correct" not in option

    def test_student_list_hides_inactive_and_ended(self, client, student_headers, create_exam):
        open_exam = create_exam(title="Open Exam")
        upcoming = create_exam(title="Upcoming Exam", start_offset=timedelta(days=1))
        create_exam(title="Ended Exam", start_offset=timedelta(days=-3), end_offset=timedelta(days=-1))
        create_exam(title="Hidden Exam", is_active=False)

        response = client.get("/api/v1/exams", headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        titles = {item["title"] for item in data["items"]}
        assert titles == {open_exam["title"], upcoming["title"]}
        assert data["page"] is None
        for item in data["items"]:
            assert item["view"] == "student"
            assert all("is_correct" not in o for q in item["questions"] for o in q["options"])

    def test_admin_list_is_paginated(self, client, admin_headers, create_exam):
        for index in range(3):
            create_exam(title=f"Exam number {index}")

        response = client.get("/api/v1/exams?page=2&page_size=2", headers=admin_headers)

        data = response.json()
        assert data["total"] == 3
        assert data["count"] == 1
        assert data["page"] == 2
        assert data["total_pages"] == 2
        assert data["items"][0]["view"] == "admin"

    def test_admin_stats_only_returns_count(self, client, admin_headers, create_exam):
        create_exam()
        create_exam(is_active=False)

        response = client.get("/api/v1/exams?stats_only=true", headers=admin_headers)

        data = response.json()
        assert data["stats_only"] is True
        assert data["count"] == 2
        assert data["items"] == []

    def test_admin_sees_inactive_exam_in_full(self, client, admin_headers, create_exam):
        exam = create_exam(is_active=False)

        response = client.get(f"/api/v1/exams/{exam['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["view"] == "admin"


class TestWindowGating:

    def test_not_started(self, client, student_headers, create_exam):
        exam = create_exam(start_offset=timedelta(hours=2))

        response = client.get(f"/api/v1/exams/{exam['id']}", headers=student_headers)

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "EXAM_NOT_STARTED"
        assert error["details"]["reason"] == "not_started"

    def test_ended(self, client, student_headers, create_exam):
        exam = create_exam(start_offset=timedelta(days=-2), end_offset=timedelta(hours=-1))

        response = client.get(f"/api/v1/exams/{exam['id']}", headers=student_headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "EXAM_ENDED"

    def test_inactive(self, client, student_headers, create_exam):
        exam = create_exam(is_active=False)

        response = client.get(f"/api/v1/exams/{exam['id']}", headers=student_headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "EXAM_INACTIVE"

    def test_unauthenticated_request_is_rejected(self, client, create_exam):
        exam = create_exam()

        response = client.get(
            f"/api/v1/exams/{exam['id']}",
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_FAILED"
