"""Confirming an upload: full replace of a department's timetable for a term.

The new generation and its entries are written first; the previous
generation is removed and the new one activated in the same transaction.
Readers only ever see entries of an active generation, so there is no
moment at which half of the old timetable and half of the new one are
visible.
"""

from __future__ import annotations

from collections import OrderedDict
import logging
import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from campus_timetable.core.config import get_settings
from campus_timetable.core.exceptions import ValidationError, VenueConflictError
from campus_timetable.models.school_class import SchoolClass
from campus_timetable.models.timetable import TimetableEntry, TimetableGeneration
from campus_timetable.models.user import User
from campus_timetable.models.venue_booking import VenueBooking
from campus_timetable.schemas.timetable import CommitResult, TermWindow, normalize_subject
from campus_timetable.services.audit import log_activity
from campus_timetable.services.directory import SqlTeacherDirectory, SqlVenueRegistry
from campus_timetable.services.timetable_expander import EntryDraft
from campus_timetable.services.timetable_pipeline import PipelineResult, run_pipeline
from campus_timetable.services.venue_conflicts import (
    BookingRequest,
    SqlBookingStore,
    VenueConflictResolver,
    department_locks,
    venue_locks,
)

logger = logging.getLogger(__name__)


def department_scope_key(department: str, term: str) -> str:
    return f"{department.strip().lower()}|{term.strip().lower()}"


def _subject_key(subject: str) -> str:
    return normalize_subject(subject).lower()


def active_generations(db: Session, department: str, term: str) -> list[TimetableGeneration]:
    return list(
        db.execute(
            select(TimetableGeneration).where(
                TimetableGeneration.department == department,
                TimetableGeneration.term == term,
                TimetableGeneration.is_active.is_(True),
            )
        ).scalars()
    )


def sync_classes(db: Session, department: str, result: PipelineResult) -> tuple[dict[str, str], int, int]:
    """Create or refresh one class per subject in the upload.

    The first usable row of a subject decides its teacher; credits are the
    number of distinct weekdays the subject meets on.
    """
    subjects: OrderedDict[str, dict] = OrderedDict()
    for sheet in result.sheets:
        for validated in sheet.rows:
            if validated.is_error:
                continue
            key = _subject_key(validated.row.subject)
            info = subjects.setdefault(
                key,
                {"name": normalize_subject(validated.row.subject), "teacher_id": validated.teacher_id, "pattern": []},
            )
            if info["teacher_id"] is None:
                info["teacher_id"] = validated.teacher_id
            slot = {
                "day": validated.day_of_week,
                "start_time": validated.start_time,
                "end_time": validated.end_time,
                "venue": validated.row.venue_name,
            }
            if slot not in info["pattern"]:
                info["pattern"].append(slot)

    class_ids: dict[str, str] = {}
    created = updated = 0
    for key, info in subjects.items():
        credits = len({slot["day"] for slot in info["pattern"]}) or 1
        existing = db.execute(
            select(SchoolClass).where(SchoolClass.department == department, func.lower(SchoolClass.name) == key)
        ).scalar_one_or_none()
        if existing is None:
            existing = SchoolClass(
                id=str(uuid.uuid4()),
                name=info["name"],
                department=department,
                teacher_id=info["teacher_id"],
                credits_required=credits,
                weekly_pattern=info["pattern"],
                auto_generated=True,
            )
            db.add(existing)
            created += 1
        else:
            if info["teacher_id"] is not None:
                existing.teacher_id = info["teacher_id"]
            existing.credits_required = credits
            existing.weekly_pattern = info["pattern"]
            updated += 1
        class_ids[key] = existing.id
    return class_ids, created, updated


def _booking_request(draft: EntryDraft, term: str, entry_id: str | None = None) -> BookingRequest:
    return BookingRequest(
        venue_id=draft.venue_id,
        term=term,
        day_of_week=draft.day_of_week,
        start_time=draft.start_time,
        end_time=draft.end_time,
        week_start_date=draft.week_start_date,
        entry_id=entry_id,
    )


def commit_timetable(
    db: Session,
    data: bytes,
    department: str,
    term: TermWindow,
    *,
    allow_errors: bool = False,
    user: User | None = None,
) -> CommitResult:
    """Re-run the pipeline on `data` and replace the department's timetable.

    Raises ValidationError when rows have errors and `allow_errors` is off,
    VenueConflictError when venue bookings would overlap. Either way the
    store is left untouched.
    """
    settings = get_settings()
    venues = SqlVenueRegistry(db)
    result = run_pipeline(
        data,
        term,
        SqlTeacherDirectory(db),
        venues,
        max_rows=settings.max_workbook_rows,
        unscoped_policy=settings.unscoped_sheet_policy,
    )
    if result.error_rows and not allow_errors:
        raise ValidationError(
            f"Timetable has {result.error_rows} row(s) with errors. Fix them or upload with errors to skip them.",
            details={
                "totalRows": result.total_rows,
                "errorRows": result.error_rows,
                "errors": list(result.errors),
            },
        )

    drafts = list(result.entries)
    venue_ids = {draft.venue_id for draft in drafts if draft.venue_id is not None}

    with department_locks.hold([department_scope_key(department, term.term)]), venue_locks.hold(venue_ids):
        previous = active_generations(db, department, term.term)
        previous_ids = [generation.id for generation in previous]
        previous_entry_ids: set[str] = set()
        if previous_ids:
            previous_entry_ids = set(
                db.execute(
                    select(TimetableEntry.id).where(TimetableEntry.generation_id.in_(previous_ids))
                ).scalars()
            )

        resolver = VenueConflictResolver(SqlBookingStore(db), venues)
        conflicts = resolver.batch_conflicts(
            [_booking_request(draft, term.term) for draft in drafts if draft.venue_id is not None],
            ignore_entry_ids=previous_entry_ids,
        )
        if conflicts:
            raise VenueConflictError(
                f"Timetable has {len(conflicts)} venue booking conflict(s); nothing was saved.",
                conflicts=conflicts,
            )

        try:
            class_ids, classes_created, classes_updated = sync_classes(db, department, result)

            generation_id = str(uuid.uuid4())
            generation = TimetableGeneration(
                id=generation_id,
                department=department,
                term=term.term,
                term_start_date=term.start_date,
                term_end_date=term.end_date,
                is_active=False,
                entry_count=len(drafts),
                skipped_error_rows=result.error_rows,
                created_by_id=user.id if user is not None else None,
            )
            db.add(generation)
            db.flush()

            for draft in drafts:
                entry_id = str(uuid.uuid4())
                db.add(
                    TimetableEntry(
                        id=entry_id,
                        generation_id=generation_id,
                        department=department,
                        term=term.term,
                        class_id=class_ids.get(_subject_key(draft.subject)),
                        subject=draft.subject,
                        teacher_id=draft.teacher_id,
                        day_of_week=draft.day_of_week,
                        start_time=draft.start_time,
                        end_time=draft.end_time,
                        venue_id=draft.venue_id,
                        week_index=draft.week_index,
                        week_start_date=draft.week_start_date,
                        week_end_date=draft.week_end_date,
                        source_sheet=draft.sheet_name,
                        source_row=draft.row_number,
                    )
                )
                if draft.venue_id is not None:
                    request = _booking_request(draft, term.term, entry_id)
                    db.add(
                        VenueBooking(
                            venue_id=request.venue_id,
                            term=request.term,
                            day_of_week=request.day_of_week,
                            start_time=request.start_time,
                            end_time=request.end_time,
                            week_start_date=request.week_start_date,
                            entry_id=entry_id,
                        )
                    )
            db.flush()

            if previous_ids:
                if previous_entry_ids:
                    db.execute(delete(VenueBooking).where(VenueBooking.entry_id.in_(previous_entry_ids)))
                db.execute(delete(TimetableEntry).where(TimetableEntry.generation_id.in_(previous_ids)))
                db.execute(delete(TimetableGeneration).where(TimetableGeneration.id.in_(previous_ids)))
            generation.is_active = True

            log_activity(
                db,
                "timetable.commit",
                actor=user,
                target_id=generation_id,
                department=department,
                term=term.term,
                created=len(drafts),
                replaced=len(previous_entry_ids),
                skipped_error_rows=result.error_rows,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

    logger.info(
        "TIMETABLE COMMIT | department=%s | term=%s | generation=%s | created=%s | replaced=%s | skipped_errors=%s",
        department,
        term.term,
        generation_id,
        len(drafts),
        len(previous_entry_ids),
        result.error_rows,
    )
    return CommitResult(
        department=department,
        term=term.term,
        generation_id=generation_id,
        created_entry_count=len(drafts),
        replaced_entry_count=len(previous_entry_ids),
        skipped_error_rows=result.error_rows,
        classes_created=classes_created,
        classes_updated=classes_updated,
        warnings=list(result.warnings),
    )
