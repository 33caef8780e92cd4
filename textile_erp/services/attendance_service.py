import calendar
from datetime import date, datetime
from typing import Dict, Iterable, List, Tuple
import logging

from pymongo import UpdateOne

from textile_erp.database import get_database
from textile_erp.models import (
    AttendanceGridCell, AttendanceGridRow, AttendanceGridSummary, AttendanceRecord,
    AttendanceStatus, Employee
)

logger = logging.getLogger(__name__)


def default_status_for(day: date) -> AttendanceStatus:
    """Status pre-filled in the editing grid: Holiday on Sundays, Present otherwise."""
    return AttendanceStatus.HOLIDAY if day.weekday() == calendar.SUNDAY else AttendanceStatus.PRESENT


def default_record(employee_id: str, day: date) -> AttendanceRecord:
    status = default_status_for(day)
    return AttendanceRecord(
        employee_id=employee_id,
        date=day,
        morning_status=status,
        evening_status=status,
    )


def build_month_grid(
    employees: Iterable[Employee],
    year: int,
    month: int,
    records: Iterable[AttendanceRecord],
    today: date,
) -> List[AttendanceGridRow]:
    """Attendance grid for the editing screen.

    Days up to ``today`` without a persisted record get a synthesized default
    flagged ``is_default``. Payroll must not be computed from this grid.
    """
    by_day: Dict[Tuple[str, date], AttendanceRecord] = {
        (record.employee_id, record.date): record
        for record in records
        if record.date.year == year and record.date.month == month
    }
    days_in_month = calendar.monthrange(year, month)[1]

    rows = []
    for employee in sorted(employees, key=lambda e: e.name.lower()):
        cells = []
        for day_number in range(1, days_in_month + 1):
            day = date(year, month, day_number)
            if day > today:
                cells.append(AttendanceGridCell(date=day))
                continue
            record = by_day.get((employee.id, day))
            if record is not None:
                cells.append(AttendanceGridCell(date=day, record=record))
            else:
                cells.append(AttendanceGridCell(date=day, record=default_record(employee.id, day), is_default=True))
        rows.append(AttendanceGridRow(employee_id=employee.id, employee_name=employee.name, cells=cells))
    return rows


def summarize_grid_row(row: AttendanceGridRow) -> AttendanceGridSummary:
    summary = AttendanceGridSummary()
    for cell in row.cells:
        if cell.record is None:
            continue
        for status in (cell.record.morning_status, cell.record.evening_status):
            if status in (AttendanceStatus.PRESENT, AttendanceStatus.HOLIDAY):
                summary.present += 0.5
            elif status == AttendanceStatus.ABSENT:
                summary.absent += 0.5
            elif status == AttendanceStatus.LEAVE:
                summary.leave += 0.5
        summary.overtime_hours += cell.record.morning_overtime_hours + cell.record.evening_overtime_hours
        summary.meters_produced += cell.record.meters_produced
    return summary


def _to_storage_date(day: date) -> datetime:
    return datetime.combine(day, datetime.min.time())


class AttendanceService:
    def __init__(self):
        self.db = None
        self.attendance_collection = None

    async def _ensure_db_connection(self):
        """Ensure database connection is established."""
        if self.db is None:
            self.db = get_database()
            if self.db is None:
                raise Exception(
                    "Database connection not established. Please ensure the application has started properly.")
            self.attendance_collection = self.db["attendance"]

            try:
                await self.attendance_collection.create_index(
                    [("employee_id", 1), ("date", 1)], unique=True, name="idx_employee_date"
                )
            except Exception as e:
                logger.info(f"Index creation info: {e}")

    def _to_record(self, doc) -> AttendanceRecord:
        doc["_id"] = str(doc["_id"])
        return AttendanceRecord(**doc)

    async def get_records(self, start: date, end: date, employee_id: str = None) -> List[AttendanceRecord]:
        """Persisted attendance for an inclusive date range."""
        await self._ensure_db_connection()
        query = {"date": {"$gte": _to_storage_date(start), "$lte": _to_storage_date(end)}}
        if employee_id:
            query["employee_id"] = employee_id
        cursor = self.attendance_collection.find(query)
        return [self._to_record(doc) async for doc in cursor]

    async def upsert_records(self, records: List[AttendanceRecord]) -> int:
        """Insert or update records keyed by (employee_id, date)."""
        await self._ensure_db_connection()
        if not records:
            return 0

        now = datetime.utcnow()
        operations = []
        for record in records:
            fields = record.model_dump(exclude={"id", "created_at", "updated_at"})
            fields["date"] = _to_storage_date(record.date)
            fields["morning_status"] = record.morning_status.value
            fields["evening_status"] = record.evening_status.value
            fields["updated_at"] = now
            operations.append(UpdateOne(
                {"employee_id": record.employee_id, "date": fields["date"]},
                {"$set": fields, "$setOnInsert": {"created_at": now}},
                upsert=True,
            ))

        try:
            result = await self.attendance_collection.bulk_write(operations, ordered=False)
        except Exception as e:
            logger.error(f"Error saving attendance: {e}")
            raise

        saved = result.upserted_count + result.modified_count
        logger.info(f"✅ Saved {saved} attendance records")
        return saved

    async def get_month_grid(self, employees: List[Employee], year: int, month: int, today: date) -> List[AttendanceGridRow]:
        days_in_month = calendar.monthrange(year, month)[1]
        records = await self.get_records(date(year, month, 1), date(year, month, days_in_month))
        return build_month_grid(employees, year, month, records, today)


attendance_service = AttendanceService()
