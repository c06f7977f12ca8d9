"""Authentication and account service."""

import logging
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from app.core.security import (
    create_access_token,
    create_refresh_token,
    generate_login_id,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from app.models.user import User, UserRole
from app.schemas.auth import (
    AdminCreate,
    CredentialsChange,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from app.services.mailer import Mailer

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service."""

    def __init__(self, db: Session, mailer: Mailer | None = None):
        self.db = db
        self.mailer = mailer or Mailer()

    def _issue_tokens(self, user: User) -> TokenResponse:
        return TokenResponse(
            access_token=create_access_token(user.id, user.role.value),
            refresh_token=create_refresh_token(user.id),
            token_type="bearer",
            expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserResponse.model_validate(user),
        )

    def _get_by_email(self, email: str) -> User | None:
        result = self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    def _get_by_login_id(self, login_id: str) -> User | None:
        result = self.db.execute(select(User).where(User.login_id == login_id))
        return result.scalar_one_or_none()

    def register_student(self, request: RegisterRequest) -> TokenResponse:
        """Register a student and allocate a random login id.

        Uniqueness of the login id is left to the unique index on
        ``users.login_id``; a collision triggers a fresh draw, up to
        ``LOGIN_ID_MAX_ATTEMPTS`` times.
        """
        email = request.email.lower()
        if self._get_by_email(email):
            raise ValidationError("User already exists with this email")

        password_hash = hash_password(request.password)
        user = None
        for attempt in range(1, settings.LOGIN_ID_MAX_ATTEMPTS + 1):
            candidate = User(
                name=request.name,
                email=email,
                login_id=generate_login_id(),
                password_hash=password_hash,
                role=UserRole.STUDENT,
                is_active=True,
            )
            self.db.add(candidate)
            try:
                self.db.flush()
            except IntegrityError:
                self.db.rollback()
                logger.warning(f"Login id collision on attempt {attempt} for {email}")
                continue
            user = candidate
            break

        if user is None:
            raise ConflictError("Could not allocate a unique student ID, please retry")

        self.db.refresh(user)
        self.mailer.send_student_credentials(user.email, user.name, user.login_id, request.password)
        logger.info(f"Student registered: {user.login_id}")

        return self._issue_tokens(user)

    def login(self, request: LoginRequest) -> TokenResponse:
        """Authenticate by email or login id and return tokens."""
        identifier = request.identifier
        result = self.db.execute(
            select(User).where(
                or_(User.email == identifier.lower(), User.login_id == identifier)
            )
        )
        user = result.scalars().first()

        if not user or not user.is_active:
            raise AuthenticationError("Invalid credentials")

        if not verify_password(request.password, user.password_hash):
            raise AuthenticationError("Invalid credentials")

        # Update last login
        user.last_login_at = datetime.now(timezone.utc)
        self.db.flush()

        return self._issue_tokens(user)

    def refresh_tokens(self, refresh_token: str) -> TokenResponse:
        """Refresh access token using refresh token."""
        payload = verify_refresh_token(refresh_token)

        if not payload:
            raise AuthenticationError("Invalid or expired refresh token")

        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Invalid token payload")

        try:
            user = self.db.get(User, int(user_id))
        except ValueError:
            raise AuthenticationError("Invalid user ID in token")

        if not user or not user.is_active:
            raise AuthenticationError("User not found or deactivated")

        return self._issue_tokens(user)

    def get_user_by_id(self, user_id: int) -> User:
        """Get user by ID."""
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User", str(user_id))
        return user

    # ==========================================
    # Admin management
    # ==========================================

    def ensure_primary_admin(
        self,
        name: str,
        email: str,
        login_id: str,
        password: str,
    ) -> tuple[User, bool]:
        """Create the primary admin if missing.

        An existing account with the same email is promoted instead of
        duplicated. Returns the admin and whether it was newly created.
        """
        existing = self._get_by_email(email)
        if existing:
            existing.role = UserRole.ADMIN
            existing.is_primary_admin = True
            self.db.flush()
            return existing, False

        if self._get_by_login_id(login_id):
            raise ValidationError("This Admin ID is already in use")

        admin = User(
            name=name,
            email=email.lower(),
            login_id=login_id,
            password_hash=hash_password(password),
            role=UserRole.ADMIN,
            is_active=True,
            is_primary_admin=True,
        )
        self.db.add(admin)
        self.db.flush()
        logger.info(f"Primary admin created: {admin.login_id}")
        return admin, True

    def list_admins(self) -> list[UserResponse]:
        result = self.db.execute(
            select(User).where(User.role == UserRole.ADMIN).order_by(User.created_at)
        )
        return [UserResponse.model_validate(admin) for admin in result.scalars().all()]

    def add_admin(self, request: AdminCreate) -> UserResponse:
        """Create an admin with a caller-chosen admin id."""
        if self._get_by_login_id(request.admin_id):
            raise ValidationError("This Admin ID is already in use")

        email = request.email.lower()
        if self._get_by_email(email):
            raise ValidationError("This email is already registered")

        admin = User(
            name=request.name,
            email=email,
            login_id=request.admin_id,
            password_hash=hash_password(request.password),
            role=UserRole.ADMIN,
            is_active=True,
        )
        self.db.add(admin)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("This Admin ID or email is already in use")
        self.db.refresh(admin)

        logger.info(f"New admin created: {admin.name} (ID: {admin.login_id})")
        self.mailer.send_admin_credentials(admin.email, admin.name, admin.login_id, request.password)

        return UserResponse.model_validate(admin)

    def delete_admin(self, admin_id: int, actor_id: int) -> User:
        """Delete an admin; primary admins are protected."""
        admin = self.get_user_by_id(admin_id)

        if admin.id == actor_id:
            raise ValidationError("You cannot delete your own account")

        if admin.role != UserRole.ADMIN:
            raise ValidationError("This user is not an admin")

        if admin.is_primary_admin:
            raise ForbiddenError("Cannot delete the main admin account")

        self.db.delete(admin)
        self.db.flush()
        logger.info(f"Admin deleted: {admin.name} (ID: {admin.login_id})")
        return admin

    def change_credentials(self, request: CredentialsChange) -> UserResponse:
        """Replace an admin's login id and password."""
        result = self.db.execute(
            select(User).where(
                User.login_id == request.old_admin_id,
                User.role == UserRole.ADMIN,
            )
        )
        admin = result.scalar_one_or_none()
        if not admin:
            raise NotFoundError("Admin", request.old_admin_id)

        if not verify_password(request.current_password, admin.password_hash):
            raise AuthenticationError("Current password is incorrect")

        existing = self._get_by_login_id(request.new_admin_id)
        if existing and existing.id != admin.id:
            raise ValidationError("This Admin ID is already in use")

        admin.login_id = request.new_admin_id
        admin.password_hash = hash_password(request.new_password)
        self.db.flush()

        logger.info(f"Admin credentials updated: {request.old_admin_id} -> {request.new_admin_id}")
        return UserResponse.model_validate(admin)
