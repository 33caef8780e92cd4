from datetime import date

import pytest

from textile_erp.exceptions import ValidationFailure
from textile_erp.models import AttendanceStatus, Payslip
from textile_erp.services.payroll_calculator import (
    advances_in_period, calculate_payslip, ensure_no_overlap, find_overlapping_payslip,
    iter_dates, max_deduction, outstanding_advance_balance, periods_overlap,
    summarize_attendance, working_day_credit
)


def _payslip(start, end, employee_id="emp-1"):
    return Payslip(
        employee_id=employee_id,
        employee_name="Ravi",
        payslip_date=end,
        pay_period_start=start,
        pay_period_end=end,
    )


def test_iter_dates_is_inclusive():
    days = list(iter_dates(date(2024, 2, 27), date(2024, 3, 1)))
    assert days == [date(2024, 2, 27), date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]


def test_half_day_credits(make_attendance):
    assert working_day_credit(make_attendance(date(2024, 4, 1))) == 1.0
    assert working_day_credit(make_attendance(date(2024, 4, 1), evening=AttendanceStatus.ABSENT)) == 0.5
    assert working_day_credit(
        make_attendance(date(2024, 4, 1), morning=AttendanceStatus.LEAVE, evening=AttendanceStatus.ABSENT)
    ) == 0.0


def test_sunday_holiday_counts_full_day(make_attendance):
    sunday = date(2024, 4, 7)
    record = make_attendance(sunday, morning=AttendanceStatus.HOLIDAY, evening=AttendanceStatus.HOLIDAY)

    summary = summarize_attendance("emp-1", sunday, sunday, [record])
    assert summary.total_working_days == 1.0


def test_missing_records_contribute_nothing(employee):
    payslip = calculate_payslip(employee, date(2024, 4, 1), date(2024, 4, 30), [], [])

    assert payslip.total_working_days == 0
    assert payslip.ot_hours == 0
    assert payslip.total_meters == 0
    assert payslip.gross_salary == 0


def test_records_outside_period_or_for_other_employee_are_ignored(make_attendance):
    records = [
        make_attendance(date(2024, 3, 31)),
        make_attendance(date(2024, 4, 2), employee_id="emp-2"),
        make_attendance(date(2024, 4, 2), morning_overtime_hours=1.5, evening_overtime_hours=2, meters_produced=40),
    ]
    summary = summarize_attendance("emp-1", date(2024, 4, 1), date(2024, 4, 30), records)

    assert summary.total_working_days == 1.0
    assert summary.total_overtime_hours == 3.5
    assert summary.total_meters == 40
    assert summary.days_recorded == 1


def test_payslip_with_manual_deduction(employee, make_attendance, make_advance):
    attendance = [
        make_attendance(date(2024, 4, day), meters_produced=20) for day in range(1, 11)
    ]
    advances = [make_advance(date(2024, 1, 10), 1500, paid_amount=500)]

    payslip = calculate_payslip(
        employee, date(2024, 4, 1), date(2024, 4, 15), attendance, advances,
        deduction_amount=300, payslip_date=date(2024, 4, 16)
    )

    assert payslip.total_working_days == 10
    assert payslip.total_meters == 200
    assert payslip.wage_earnings == 5000
    assert payslip.production_earnings == 400
    assert payslip.gross_salary == 5400
    assert payslip.advance_deduction == 300
    assert payslip.net_salary == 5100
    assert payslip.total_outstanding_advance == 700
    assert payslip.payslip_date == date(2024, 4, 16)


def test_default_deduction_sums_advances_in_period(employee, make_attendance, make_advance):
    advances = [
        make_advance(date(2024, 3, 20), 1000),
        make_advance(date(2024, 4, 5), 200),
        make_advance(date(2024, 4, 15), 300),
        make_advance(date(2024, 4, 16), 400),
        make_advance(date(2024, 4, 10), 999, employee_id="emp-2"),
    ]
    attendance = [make_attendance(date(2024, 4, day)) for day in range(1, 6)]

    payslip = calculate_payslip(employee, date(2024, 4, 1), date(2024, 4, 15), attendance, advances)

    assert payslip.advance_deduction == 500
    assert payslip.gross_salary == 2500
    assert payslip.net_salary == 2000
    assert payslip.total_outstanding_advance == 1900 - 500


def test_outstanding_balance_uses_all_advances(make_advance):
    advances = [
        make_advance(date(2023, 12, 1), 1000, paid_amount=400),
        make_advance(date(2024, 4, 1), 0, paid_amount=100),
        make_advance(date(2024, 4, 1), 700, employee_id="emp-2"),
    ]
    assert outstanding_advance_balance("emp-1", advances) == 500
    assert advances_in_period("emp-1", advances, date(2024, 4, 1), date(2024, 4, 30)) == 0


def test_max_deduction_is_lower_of_gross_and_outstanding():
    assert max_deduction(5400, 1000) == 1000
    assert max_deduction(800, 1000) == 800
    assert max_deduction(800, -50) == 0


def test_manual_deduction_above_cap_is_rejected(employee, make_attendance, make_advance):
    attendance = [make_attendance(date(2024, 4, 1))]
    advances = [make_advance(date(2024, 1, 1), 1000)]

    with pytest.raises(ValidationFailure) as excinfo:
        calculate_payslip(employee, date(2024, 4, 1), date(2024, 4, 1), attendance, advances, deduction_amount=600)
    assert "deduction_amount" in excinfo.value.errors

    with pytest.raises(ValidationFailure):
        calculate_payslip(employee, date(2024, 4, 1), date(2024, 4, 1), attendance, advances, deduction_amount=-1)


def test_start_after_end_is_rejected(employee):
    with pytest.raises(ValidationFailure) as excinfo:
        calculate_payslip(employee, date(2024, 4, 30), date(2024, 4, 1), [], [])
    assert "start_date" in excinfo.value.errors


def test_missing_employee_is_rejected():
    with pytest.raises(ValidationFailure) as excinfo:
        calculate_payslip(None, date(2024, 4, 1), date(2024, 4, 30), [], [])
    assert "employee_id" in excinfo.value.errors


def test_periods_overlap():
    assert periods_overlap(date(2024, 4, 1), date(2024, 4, 15), date(2024, 4, 15), date(2024, 4, 30))
    assert periods_overlap(date(2024, 4, 1), date(2024, 4, 30), date(2024, 4, 10), date(2024, 4, 12))
    assert not periods_overlap(date(2024, 4, 1), date(2024, 4, 15), date(2024, 4, 16), date(2024, 4, 30))


def test_adjacent_period_is_accepted():
    existing = [_payslip(date(2024, 4, 1), date(2024, 4, 15))]
    ensure_no_overlap(existing, "emp-1", date(2024, 4, 16), date(2024, 4, 30))


def test_overlapping_period_is_rejected_with_conflicting_period():
    existing = [_payslip(date(2024, 4, 1), date(2024, 4, 15))]

    with pytest.raises(ValidationFailure) as excinfo:
        ensure_no_overlap(existing, "emp-1", date(2024, 4, 10), date(2024, 4, 30))
    assert "01-04-2024 - 15-04-2024" in excinfo.value.errors["pay_period"]


def test_other_employees_payslips_do_not_conflict():
    existing = [_payslip(date(2024, 4, 1), date(2024, 4, 30), employee_id="emp-2")]
    assert find_overlapping_payslip(existing, "emp-1", date(2024, 4, 1), date(2024, 4, 30)) is None
