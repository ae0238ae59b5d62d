from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from campus_timetable.api.deps import MANAGING_ROLES, get_db, require_roles
from campus_timetable.models.user import User, UserRole
from campus_timetable.schemas.activity import ActivityLogOut
from campus_timetable.services.audit import recent_activity

router = APIRouter()


@router.get("/activity/logs", response_model=list[ActivityLogOut])
def list_activity_logs(
    department: str | None = Query(default=None),
    action: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=500),
    current_user: User = Depends(require_roles(*MANAGING_ROLES)),
    db: Session = Depends(get_db),
) -> list[ActivityLogOut]:
    if current_user.role == UserRole.hod:
        return recent_activity(db, department=current_user.department or "", action=action, limit=limit)
    return recent_activity(db, department=department, action=action, limit=limit)
