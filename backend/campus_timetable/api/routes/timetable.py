import logging
from datetime import date

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from campus_timetable.api.deps import (
    MANAGING_ROLES,
    DepartmentScope,
    ensure_department_access,
    get_current_user,
    get_db,
    get_upload_scope,
    require_roles,
)
from campus_timetable.core.config import get_settings
from campus_timetable.core.exceptions import ParseError, ValidationError
from campus_timetable.models.school_class import SchoolClass
from campus_timetable.models.user import User, UserRole
from campus_timetable.schemas.timetable import (
    DAY_ORDER,
    CommitResult,
    PreviewSummary,
    ReplacementAssignRequest,
    StudentWeekOut,
    TermWindow,
    TimetableEntryOut,
)
from campus_timetable.services.directory import SqlClassRegistry, SqlTeacherDirectory, SqlVenueRegistry
from campus_timetable.services.replacements import assign_replacement
from campus_timetable.services.timetable_commit import commit_timetable
from campus_timetable.services.timetable_pipeline import preview_timetable
from campus_timetable.services.timetable_queries import current_week_index, list_active_entries, load_active_entry
from campus_timetable.services.workbook_template import build_template

router = APIRouter()
logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _term_window(term: str, start_date: str, end_date: str) -> TermWindow:
    try:
        return TermWindow(term=term, startDate=start_date, endDate=end_date)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid term window.",
            details={
                "errors": [
                    {"field": ".".join(str(part) for part in item["loc"]), "message": item["msg"]}
                    for item in exc.errors()
                ]
            },
        ) from exc


def _read_upload(upload: UploadFile) -> bytes:
    filename = (upload.filename or "").lower()
    if filename and not filename.endswith((".xlsx", ".xlsm")):
        raise ParseError("Only .xlsx workbooks are supported.", details={"filename": upload.filename})
    data = upload.file.read()
    if not data:
        raise ParseError("The uploaded file is empty.")
    return data


@router.get("/template")
def download_template(current_user: User = Depends(get_current_user)) -> Response:
    return Response(
        content=build_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="timetable_template.xlsx"'},
    )


@router.post("/preview", response_model=PreviewSummary)
def preview_upload(
    timetable: UploadFile = File(...),
    term: str = Form(...),
    start_date: str = Form(..., alias="startDate"),
    end_date: str = Form(..., alias="endDate"),
    scope: DepartmentScope = Depends(get_upload_scope),
    db: Session = Depends(get_db),
) -> PreviewSummary:
    settings = get_settings()
    window = _term_window(term, start_date, end_date)
    data = _read_upload(timetable)
    return preview_timetable(
        data,
        window,
        SqlTeacherDirectory(db),
        SqlVenueRegistry(db),
        classes=SqlClassRegistry(db, scope.department),
        max_rows=settings.max_workbook_rows,
        unscoped_policy=settings.unscoped_sheet_policy,
    )


@router.post("/upload", response_model=CommitResult, status_code=status.HTTP_201_CREATED)
def upload_timetable(
    timetable: UploadFile = File(...),
    term: str = Form(...),
    start_date: str = Form(..., alias="startDate"),
    end_date: str = Form(..., alias="endDate"),
    allow_errors: bool = Form(default=False, alias="allowErrors"),
    scope: DepartmentScope = Depends(get_upload_scope),
    db: Session = Depends(get_db),
) -> CommitResult:
    window = _term_window(term, start_date, end_date)
    data = _read_upload(timetable)
    logger.info(
        "TIMETABLE UPLOAD | user=%s | department=%s | term=%s | bytes=%s | allow_errors=%s",
        scope.user.id,
        scope.department,
        window.term,
        len(data),
        allow_errors,
    )
    return commit_timetable(db, data, scope.department, window, allow_errors=allow_errors, user=scope.user)


@router.get("/", response_model=list[TimetableEntryOut])
def list_entries(
    department: str | None = Query(default=None),
    term: str | None = Query(default=None),
    week: date | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TimetableEntryOut]:
    if department is None and current_user.role != UserRole.admin:
        department = current_user.department
    return list_active_entries(db, department=department, term=term, week=week)


@router.get("/teacher", response_model=list[TimetableEntryOut])
def list_teacher_entries(
    term: str | None = Query(default=None),
    week: date | None = Query(default=None),
    current_user: User = Depends(require_roles(UserRole.teacher, UserRole.hod)),
    db: Session = Depends(get_db),
) -> list[TimetableEntryOut]:
    return list_active_entries(db, term=term, week=week, teacher_id=current_user.id)


@router.get("/today", response_model=list[TimetableEntryOut])
def list_today_entries(
    on: date | None = Query(default=None, alias="date"),
    department: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TimetableEntryOut]:
    day = on or date.today()
    day_of_week = DAY_ORDER[day.weekday()]
    if current_user.role == UserRole.teacher:
        return list_active_entries(db, week=day, day_of_week=day_of_week, teacher_id=current_user.id)
    if current_user.role != UserRole.admin:
        department = current_user.department
    if department is None:
        return []
    return list_active_entries(db, department=department, week=day, day_of_week=day_of_week)


@router.get("/student", response_model=StudentWeekOut)
def student_week(
    week: int | None = Query(default=None, ge=1),
    term: str | None = Query(default=None),
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
) -> StudentWeekOut:
    department = current_user.department
    if department is None:
        return StudentWeekOut(week=week or 1, department=None, entries=[])
    if week is None:
        week = current_week_index(db, department, date.today())
    entries = list_active_entries(db, department=department, term=term, week_index=week)
    return StudentWeekOut(
        week=week,
        department=department,
        entries=[TimetableEntryOut.model_validate(entry) for entry in entries],
    )


@router.get("/class/{class_id}", response_model=list[TimetableEntryOut])
def list_class_entries(
    class_id: str,
    term: str | None = Query(default=None),
    week: date | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TimetableEntryOut]:
    if db.get(SchoolClass, class_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return list_active_entries(db, term=term, week=week, class_id=class_id)


@router.post("/{entry_id}/assign-replacement", response_model=TimetableEntryOut)
def assign_replacement_teacher(
    entry_id: str,
    payload: ReplacementAssignRequest,
    current_user: User = Depends(require_roles(*MANAGING_ROLES)),
    db: Session = Depends(get_db),
) -> TimetableEntryOut:
    ensure_department_access(current_user, load_active_entry(db, entry_id).department)
    return assign_replacement(
        db,
        entry_id,
        teacher_id=payload.replacement_teacher_id,
        teacher_name=payload.replacement_name,
        reason=payload.reason,
        user=current_user,
    )
