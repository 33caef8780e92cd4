from enum import Enum
import uuid
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from sqlalchemy import Column, String, Numeric, DateTime, Date, Index
from sqlalchemy.dialects.postgresql import UUID
from textile_erp.database import Base

# =====================================================
# ATTENDANCE & ADVANCE MODELS
# =====================================================

class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    LEAVE = "Leave"
    HOLIDAY = "Holiday"

# Half-day statuses that earn wage credit
CREDITED_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.HOLIDAY})

class AttendanceRecord(BaseModel):
    """One employee-day of attendance, stored in MongoDB."""
    id: Optional[str] = Field(None, alias="_id")
    employee_id: str
    date: date
    morning_status: AttendanceStatus
    evening_status: AttendanceStatus
    morning_overtime_hours: float = Field(0.0, ge=0)
    evening_overtime_hours: float = Field(0.0, ge=0)
    meters_produced: float = Field(0.0, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        populate_by_name = True

class EmployeeAdvance(BaseModel):
    """Advance paid to an employee; paid_amount tracks repayment."""
    id: Optional[str] = Field(None, alias="_id")
    employee_id: str
    date: date
    amount: float = 0.0
    paid_amount: float = 0.0
    notes: str = ""

    class Config:
        populate_by_name = True

    @property
    def outstanding(self) -> float:
        return self.amount - self.paid_amount

class AttendanceSummary(BaseModel):
    total_working_days: float = 0.0
    total_overtime_hours: float = 0.0
    total_meters: float = 0.0
    days_recorded: int = 0

class AttendanceGridCell(BaseModel):
    date: date
    record: Optional[AttendanceRecord] = None  # None for days after today
    is_default: bool = False

class AttendanceGridRow(BaseModel):
    employee_id: str
    employee_name: str
    cells: List[AttendanceGridCell]

class AttendanceGridSummary(BaseModel):
    present: float = 0.0
    absent: float = 0.0
    leave: float = 0.0
    overtime_hours: float = 0.0
    meters_produced: float = 0.0

class AttendanceUpsertRequest(BaseModel):
    records: List[AttendanceRecord]

# =====================================================
# PAYSLIP MODELS
# =====================================================

class Payslip(BaseModel):
    id: Optional[str] = None
    employee_id: str
    employee_name: str
    payslip_date: date
    pay_period_start: date
    pay_period_end: date
    total_working_days: float = 0.0
    ot_hours: float = 0.0
    total_meters: float = 0.0
    wage_earnings: float = 0.0
    production_earnings: float = 0.0
    gross_salary: float = 0.0
    advance_deduction: float = 0.0
    net_salary: float = 0.0
    total_outstanding_advance: float = 0.0  # balance left after this deduction

    class Config:
        from_attributes = True

class PayslipRequest(BaseModel):
    """Generate or finalize a payslip.

    Leaving ``deduction_amount`` empty deducts the advances dated inside the
    pay period; a value is treated as a manually edited deduction.
    """
    employee_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    deduction_amount: Optional[float] = None
    payslip_date: Optional[date] = None

class PayslipFinalizeResponse(BaseModel):
    payslip: Payslip
    warnings: List[str] = Field(default_factory=list)

# =====================================================
# POSTGRESQL TABLES
# =====================================================

class PayslipDB(Base):
    __tablename__ = "payslips"
    __table_args__ = (
        Index("idx_payslips_employee_period", "employee_id", "pay_period_start", "pay_period_end"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(String(255), nullable=False)
    employee_name = Column(String(255), nullable=False)
    payslip_date = Column(Date, nullable=False)
    pay_period_start = Column(Date, nullable=False)
    pay_period_end = Column(Date, nullable=False)
    total_working_days = Column(Numeric(7, 1), nullable=False, default=0)
    ot_hours = Column(Numeric(9, 2), default=0)
    total_meters = Column(Numeric(15, 3), default=0)
    wage_earnings = Column(Numeric(15, 2), default=0)
    production_earnings = Column(Numeric(15, 2), default=0)
    gross_salary = Column(Numeric(15, 2), nullable=False)
    advance_deduction = Column(Numeric(15, 2), default=0)
    net_salary = Column(Numeric(15, 2), nullable=False)
    total_outstanding_advance = Column(Numeric(15, 2), default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
