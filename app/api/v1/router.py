"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from app.api.v1.endpoints import audit, auth, exams, submissions

api_router = APIRouter()

# Authentication and admin accounts
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)

# Exam catalog
api_router.include_router(
    exams.router,
    prefix="/exams",
    tags=["Exams"],
)

# Submissions and results
api_router.include_router(
    submissions.router,
    prefix="/submissions",
    tags=["Submissions"],
)

# Audit Logs (admin only)
api_router.include_router(
    audit.router,
    prefix="/audit-logs",
    tags=["Audit Logs"],
)
