"""
Payroll Calculator - attendance, wage and advance arithmetic for payslips.

A day without a persisted attendance record contributes nothing. The
attendance editing grid fills such days with Present/Holiday defaults for
display, but those defaults never reach this module.
"""

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, Iterator, Optional, Tuple

from textile_erp.exceptions import ValidationFailure
from textile_erp.models import (
    AttendanceRecord, AttendanceSummary, CREDITED_STATUSES, Employee,
    EmployeeAdvance, Payslip
)

logger = logging.getLogger(__name__)


def format_period_date(value: date) -> str:
    return value.strftime("%d-%m-%Y")


def validate_pay_period(employee: Optional[Employee], start: Optional[date], end: Optional[date]) -> None:
    errors = {}
    if employee is None:
        errors["employee_id"] = "Please select an employee."
    if start is None:
        errors["start_date"] = "Start date is required."
    if end is None:
        errors["end_date"] = "End date is required."
    if start is not None and end is not None and start > end:
        errors["start_date"] = "Start date cannot be after the end date."
    if errors:
        raise ValidationFailure(errors)


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def working_day_credit(record: AttendanceRecord) -> float:
    credit = 0.0
    if record.morning_status in CREDITED_STATUSES:
        credit += 0.5
    if record.evening_status in CREDITED_STATUSES:
        credit += 0.5
    return credit


def summarize_attendance(
    employee_id: str,
    start: date,
    end: date,
    records: Iterable[AttendanceRecord],
) -> AttendanceSummary:
    by_day: Dict[Tuple[str, date], AttendanceRecord] = {
        (record.employee_id, record.date): record for record in records
    }

    summary = AttendanceSummary()
    for day in iter_dates(start, end):
        record = by_day.get((employee_id, day))
        if record is None:
            continue
        summary.total_working_days += working_day_credit(record)
        summary.total_overtime_hours += record.morning_overtime_hours + record.evening_overtime_hours
        summary.total_meters += record.meters_produced
        summary.days_recorded += 1
    return summary


def outstanding_advance_balance(employee_id: str, advances: Iterable[EmployeeAdvance]) -> float:
    """Unrepaid advance balance across all of the employee's advances."""
    return sum(adv.outstanding for adv in advances if adv.employee_id == employee_id)


def advances_in_period(employee_id: str, advances: Iterable[EmployeeAdvance], start: date, end: date) -> float:
    """Total of the advances given to the employee inside [start, end]."""
    return sum(
        adv.amount for adv in advances
        if adv.employee_id == employee_id and start <= adv.date <= end
    )


def max_deduction(gross_salary: float, outstanding: float) -> float:
    return max(0.0, min(gross_salary, outstanding))


def calculate_payslip(
    employee: Optional[Employee],
    start: Optional[date],
    end: Optional[date],
    attendance: Iterable[AttendanceRecord],
    advances: Iterable[EmployeeAdvance],
    deduction_amount: Optional[float] = None,
    payslip_date: Optional[date] = None,
) -> Payslip:
    """Compute a payslip for one employee and one inclusive pay period.

    Without ``deduction_amount`` the advances dated inside the period are
    deducted. An explicit amount is a manual edit and must lie between zero
    and ``min(gross_salary, outstanding_before)``.
    """
    validate_pay_period(employee, start, end)
    advances = list(advances)

    summary = summarize_attendance(employee.id, start, end, attendance)
    wage_earnings = summary.total_working_days * employee.daily_wage
    production_earnings = summary.total_meters * employee.rate_per_meter
    gross_salary = wage_earnings + production_earnings

    outstanding_before = outstanding_advance_balance(employee.id, advances)
    if deduction_amount is None:
        deduction = advances_in_period(employee.id, advances, start, end)
    else:
        cap = max_deduction(gross_salary, outstanding_before)
        if deduction_amount < 0:
            raise ValidationFailure.single("deduction_amount", "Deduction cannot be negative.")
        if deduction_amount > cap:
            raise ValidationFailure.single(
                "deduction_amount",
                f"Deduction cannot exceed {cap:.2f} (lower of gross salary and outstanding advance)."
            )
        deduction = deduction_amount

    return Payslip(
        employee_id=employee.id,
        employee_name=employee.name,
        payslip_date=payslip_date or date.today(),
        pay_period_start=start,
        pay_period_end=end,
        total_working_days=summary.total_working_days,
        ot_hours=summary.total_overtime_hours,
        total_meters=summary.total_meters,
        wage_earnings=wage_earnings,
        production_earnings=production_earnings,
        gross_salary=gross_salary,
        advance_deduction=deduction,
        net_salary=gross_salary - deduction,
        total_outstanding_advance=outstanding_before - deduction,
    )


def periods_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start <= b_end and b_start <= a_end


def find_overlapping_payslip(
    existing: Iterable[Payslip],
    employee_id: str,
    start: date,
    end: date,
) -> Optional[Payslip]:
    for payslip in existing:
        if payslip.employee_id != employee_id:
            continue
        if periods_overlap(payslip.pay_period_start, payslip.pay_period_end, start, end):
            return payslip
    return None


def ensure_no_overlap(existing: Iterable[Payslip], employee_id: str, start: date, end: date) -> None:
    conflict = find_overlapping_payslip(existing, employee_id, start, end)
    if conflict is not None:
        logger.warning(
            f"Rejected payslip for {employee_id}: {start} - {end} overlaps "
            f"{conflict.pay_period_start} - {conflict.pay_period_end}"
        )
        raise ValidationFailure.single(
            "pay_period",
            f"A payslip already exists for the period "
            f"{format_period_date(conflict.pay_period_start)} - {format_period_date(conflict.pay_period_end)}."
        )
