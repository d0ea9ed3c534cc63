"""Monthly office attendance records."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import services
from ..auth import AuthContext, get_current_user, get_db, require_admin, require_manager
from ..schemas import (
    AttendanceBulkRequest,
    AttendanceBulkResponse,
    AttendanceComment,
    AttendanceCreate,
    AttendanceOut,
    AttendanceUpdate,
    MessageResponse,
    PathId,
)

router = APIRouter(prefix="/api/monthly-attendance", tags=["monthly-attendance"])


@router.get("", response_model=List[AttendanceOut])
def list_all(
    year: int | None = Query(None),
    month: int | None = Query(None, ge=1, le=12),
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return services.list_attendance(db, year=year, month=month)


@router.get("/{user_id}", response_model=List[AttendanceOut])
def list_for_user(
    user_id: PathId,
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    services.ensure_user_access(db, ctx.user, user_id)
    return services.list_attendance(db, user_id=user_id)


@router.post("", response_model=AttendanceOut, status_code=201)
def create_record(
    payload: AttendanceCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return services.create_attendance(db, payload)


@router.post("/bulk", response_model=AttendanceBulkResponse)
def bulk_upsert(
    payload: AttendanceBulkRequest,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return services.bulk_upsert_attendance(db, payload.records)


@router.put("/{record_id}", response_model=AttendanceOut)
def update_record(
    record_id: PathId,
    payload: AttendanceUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    record = services.get_attendance_or_404(db, record_id)
    return services.update_attendance(db, record, payload)


@router.patch("/{record_id}/comment", response_model=AttendanceOut)
def comment_record(
    record_id: PathId,
    payload: AttendanceComment,
    ctx: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
):
    record = services.get_attendance_or_404(db, record_id)
    return services.set_attendance_comment(
        db, ctx.user, record, payload.reason_for_non_compliance
    )


@router.delete("/{record_id}", response_model=MessageResponse)
def delete_record(
    record_id: PathId,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    services.delete_attendance(db, services.get_attendance_or_404(db, record_id))
    return MessageResponse(message="Monthly attendance record deleted successfully")
