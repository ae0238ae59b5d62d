from collections.abc import Callable, Generator
from dataclasses import dataclass

from fastapi import Depends, Form, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from campus_timetable.core.security import decode_token
from campus_timetable.db.session import SessionLocal
from campus_timetable.models.user import User, UserRole

bearer_scheme = HTTPBearer(auto_error=False)

MANAGING_ROLES = frozenset({UserRole.admin, UserRole.hod})


@dataclass(frozen=True)
class DepartmentScope:
    """The department a timetable change is made for, and who makes it."""

    user: User
    department: str


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        user_id = decode_token(credentials.credentials).get("sub")
    except JWTError as exc:
        raise _unauthorized("Could not validate credentials") from exc

    user = db.get(User, user_id) if user_id else None
    if user is None:
        raise _unauthorized("Could not validate credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")
    return user


def require_roles(*roles: UserRole) -> Callable[..., User]:
    allowed = frozenset(roles)

    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user

    return role_checker


def ensure_department_access(user: User, department: str) -> None:
    """HODs manage only their own department; admins manage all of them."""
    if user.role == UserRole.admin:
        return
    if user.role != UserRole.hod or user.department != department:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Timetable belongs to another department")


def resolve_department(user: User, requested: str | None) -> str:
    requested = (requested or "").strip() or None
    if user.role == UserRole.admin:
        department = requested or (user.department or "").strip()
        if not department:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="department is required")
        return department
    if not user.department:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Your account has no department")
    if requested is not None:
        ensure_department_access(user, requested)
    return user.department


def get_upload_scope(
    department: str | None = Form(default=None),
    current_user: User = Depends(require_roles(*MANAGING_ROLES)),
) -> DepartmentScope:
    """Department for preview and upload forms: an HOD's own, or the one an admin names."""
    return DepartmentScope(user=current_user, department=resolve_department(current_user, department))
