"""Authentication and admin account endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import AdminUser, CurrentUser
from app.models.audit import AuditAction
from app.schemas.auth import (
    AdminCreate,
    CredentialsChange,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from app.schemas.common import MessageResponse
from app.services.audit import AuditService
from app.services.auth import AuthService

router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Register a student account.
    A numeric student ID is generated and emailed along with the password.
    """
    service = AuthService(db)
    response = service.register_student(request)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.USER_REGISTERED,
        resource_type="user",
        resource_id=str(response.user.id),
        user_id=response.user.id,
        description=f"Student {response.user.login_id} registered",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return response


@router.post("/login", response_model=TokenResponse)
def login(
    request: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Authenticate with email or login ID and return access/refresh tokens.
    """
    service = AuthService(db)
    response = service.login(request)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.USER_LOGIN,
        resource_type="user",
        resource_id=str(response.user.id),
        user_id=response.user.id,
        ip_address=http_request.client.host if http_request.client else None,
        user_agent=http_request.headers.get("user-agent"),
    )

    return response


@router.post("/refresh", response_model=TokenResponse)
def refresh_token(
    request: RefreshTokenRequest,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Refresh access token using a valid refresh token.
    """
    service = AuthService(db)
    return service.refresh_tokens(request.refresh_token)


@router.get("/me", response_model=UserResponse)
def get_me(current_user: CurrentUser):
    """
    Get the current authenticated user.
    """
    return UserResponse.model_validate(current_user)


@router.get("/admins", response_model=list[UserResponse])
def list_admins(
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    List all admin accounts.
    Admin only.
    """
    service = AuthService(db)
    return service.list_admins()


@router.post("/admins", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def add_admin(
    request: AdminCreate,
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Create a new admin account with a chosen 11-digit admin ID.
    Admin only.
    """
    service = AuthService(db)
    created = service.add_admin(request)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.ADMIN_CREATED,
        resource_type="user",
        resource_id=str(created.id),
        user_id=admin.id,
        description=f"Admin {created.login_id} created",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return created


@router.delete("/admins/{admin_id}", response_model=MessageResponse)
def delete_admin(
    admin_id: int,
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Delete an admin account. Primary admins cannot be deleted.
    Admin only.
    """
    service = AuthService(db)
    deleted = service.delete_admin(admin_id, actor_id=admin.id)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.ADMIN_DELETED,
        resource_type="user",
        resource_id=str(admin_id),
        user_id=admin.id,
        description=f"Admin {deleted.login_id} deleted",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return MessageResponse(message="Admin deleted successfully")


@router.put("/change-credentials", response_model=UserResponse)
def change_credentials(
    request: CredentialsChange,
    admin: AdminUser,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Change an admin's login ID and password.
    Requires the old admin ID and the current password.
    """
    service = AuthService(db)
    updated = service.change_credentials(request)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.CREDENTIALS_CHANGED,
        resource_type="user",
        resource_id=str(updated.id),
        user_id=admin.id,
        description=f"Admin ID changed {request.old_admin_id} -> {request.new_admin_id}",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return updated
