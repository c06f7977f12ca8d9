"""Submission endpoints."""

from io import BytesIO
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import AdminUser, CurrentUser, StudentUser
from app.models.audit import AuditAction
from app.models.base import utcnow
from app.schemas.common import MessageResponse
from app.schemas.submission import (
    StudentStats,
    SubmissionCreate,
    SubmissionResponse,
    SubmissionSummary,
)
from app.services.audit import AuditService
from app.services.submission import SubmissionService

router = APIRouter()


@router.post("", response_model=SubmissionSummary, status_code=status.HTTP_201_CREATED)
def submit_exam(
    request: SubmissionCreate,
    student: StudentUser,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Submit answers for an exam.
    Only one submission per student and exam is accepted.
    """
    service = SubmissionService(db)
    summary = service.submit(student.id, request, now=utcnow())

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.SUBMISSION_CREATED,
        resource_type="submission",
        resource_id=str(summary.id),
        user_id=student.id,
        description=f"Submission for exam {request.exam_id}",
        metadata={"score": summary.total_score, "percentage": summary.percentage},
        ip_address=http_request.client.host if http_request.client else None,
    )

    return summary


@router.get("/my", response_model=list[SubmissionResponse])
def list_my_submissions(
    student: StudentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    List the current student's submissions, newest first.
    """
    service = SubmissionService(db)
    return service.list_for_student(student.id)


@router.get("/my/stats", response_model=StudentStats)
def get_my_stats(
    student: StudentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Performance statistics for the current student.
    """
    service = SubmissionService(db)
    return service.student_stats(student.id)


@router.get("", response_model=list[SubmissionResponse])
def list_submissions(
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
    exam_id: int | None = Query(None, description="Only submissions for this exam"),
):
    """
    List all submissions, optionally for one exam.
    Admin only.
    """
    service = SubmissionService(db)
    return service.list_all(exam_id=exam_id)


@router.get("/export")
def export_submissions(
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
    exam_id: int | None = None,
):
    """
    Export submissions to an Excel file.
    Admin only.
    """
    service = SubmissionService(db)
    content = service.export_xlsx(exam_id=exam_id)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.SUBMISSIONS_EXPORTED,
        resource_type="submission",
        user_id=admin.id,
        metadata={"exam_id": exam_id},
        ip_address=http_request.client.host if http_request.client else None,
    )

    suffix = f"exam_{exam_id}" if exam_id is not None else "all"
    filename = f"submissions_{suffix}_{utcnow():%Y%m%d}.xlsx"
    return StreamingResponse(
        BytesIO(content),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/{submission_id}", response_model=SubmissionResponse)
def get_submission(
    submission_id: int,
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Get a submission with its graded answers.
    Students can only read their own.
    """
    service = SubmissionService(db)
    return service.get_submission_for_user(submission_id, current_user)


@router.delete("/{submission_id}", response_model=MessageResponse)
def delete_submission(
    submission_id: int,
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Delete a submission, allowing the student to attempt the exam again.
    Admin only.
    """
    service = SubmissionService(db)
    service.delete_submission(submission_id)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.SUBMISSION_DELETED,
        resource_type="submission",
        resource_id=str(submission_id),
        user_id=admin.id,
        ip_address=http_request.client.host if http_request.client else None,
    )

    return MessageResponse(message="Submission deleted successfully")
