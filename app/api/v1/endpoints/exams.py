"""Exam catalog endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import AdminUser, CurrentUser
from app.models.audit import AuditAction
from app.models.base import utcnow
from app.schemas.common import MessageResponse
from app.schemas.exam import (
    ExamCreate,
    ExamListResponse,
    ExamResponse,
    ExamUpdate,
    ExamView,
)
from app.schemas.submission import ExamSubmissionSummary
from app.services.audit import AuditService
from app.services.exam import ExamService
from app.services.submission import SubmissionService

router = APIRouter()


@router.get("", response_model=ExamListResponse)
def list_exams(
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    stats_only: bool = False,
):
    """
    List exams.
    Students receive currently available exams without answer keys.
    Admins receive every exam, paginated, or only the count with stats_only.
    """
    service = ExamService(db)
    return service.list_exams(
        current_user,
        now=utcnow(),
        page=page,
        page_size=page_size,
        stats_only=stats_only,
    )


@router.post("", response_model=ExamResponse, status_code=status.HTTP_201_CREATED)
def create_exam(
    request: ExamCreate,
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Create an exam with its questions.
    Total marks are the sum of question marks.
    Admin only.
    """
    service = ExamService(db)
    exam = service.create_exam(admin.id, request, now=utcnow())

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.EXAM_CREATED,
        resource_type="exam",
        resource_id=str(exam.id),
        user_id=admin.id,
        description=f"Exam '{exam.title}' created",
        metadata={"questions": len(exam.questions), "total_marks": exam.total_marks},
        ip_address=http_request.client.host if http_request.client else None,
    )

    return exam


@router.get("/{exam_id}", response_model=ExamView)
def get_exam(
    exam_id: int,
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Get a single exam.
    Students may only open an exam they can attempt right now; the
    error code says why otherwise.
    """
    service = ExamService(db)
    return service.get_exam_for_viewing(exam_id, current_user, now=utcnow())


@router.put("/{exam_id}", response_model=ExamResponse)
def update_exam(
    exam_id: int,
    request: ExamUpdate,
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Replace an exam's details and questions.
    Admin only.
    """
    service = ExamService(db)
    exam = service.update_exam(exam_id, request, now=utcnow())

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.EXAM_UPDATED,
        resource_type="exam",
        resource_id=str(exam_id),
        user_id=admin.id,
        description=f"Exam '{exam.title}' updated",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return exam


@router.delete("/{exam_id}", response_model=MessageResponse)
def delete_exam(
    exam_id: int,
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Delete an exam together with its submissions.
    Admin only.
    """
    service = ExamService(db)
    service.delete_exam(exam_id)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.EXAM_DELETED,
        resource_type="exam",
        resource_id=str(exam_id),
        user_id=admin.id,
        ip_address=http_request.client.host if http_request.client else None,
    )

    return MessageResponse(message="Exam deleted successfully")


@router.get("/{exam_id}/summary", response_model=ExamSubmissionSummary)
def get_exam_summary(
    exam_id: int,
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Aggregate submission results for an exam.
    Admin only.
    """
    service = SubmissionService(db)
    return service.exam_summary(exam_id)
