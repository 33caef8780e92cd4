from datetime import date
from fastapi import APIRouter, HTTPException, Depends, Query
from typing import List
import logging

from pydantic import BaseModel

from textile_erp.models import AttendanceGridRow, AttendanceGridSummary, AttendanceUpsertRequest
from textile_erp.services.attendance_service import attendance_service, summarize_grid_row
from textile_erp.services.master_data_service import master_data_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attendance", tags=["Attendance"])


class AttendanceGridEntry(BaseModel):
    row: AttendanceGridRow
    summary: AttendanceGridSummary


def get_attendance_service():
    return attendance_service


def get_master_data_service():
    return master_data_service


@router.get("/grid", response_model=List[AttendanceGridEntry])
async def get_attendance_grid(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    service=Depends(get_attendance_service),
    master_data=Depends(get_master_data_service)
):
    """Monthly editing grid; unrecorded past days are pre-filled with defaults."""
    try:
        employees = await master_data.get_employees()
        rows = await service.get_month_grid(employees, year, month, date.today())
        return [AttendanceGridEntry(row=row, summary=summarize_grid_row(row)) for row in rows]
    except Exception as e:
        logger.error(f"Error building attendance grid: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to load attendance: {str(e)}")


@router.put("")
async def save_attendance(
    request: AttendanceUpsertRequest,
    service=Depends(get_attendance_service)
):
    try:
        saved = await service.upsert_records(request.records)
        return {"message": "Attendance saved successfully", "saved": saved}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to save attendance: {str(e)}")
