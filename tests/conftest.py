from datetime import date

import pytest

from textile_erp.models import (
    AttendanceRecord, AttendanceStatus, Client, ClientProcess, DeliveryChallan,
    Employee, EmployeeAdvance, ProcessType
)


@pytest.fixture
def process_types():
    return [
        ProcessType(name="DYEING", rate=3.0),
        ProcessType(name="Washing", rate=2.0),
        ProcessType(name="Printing", rate=4.5),
    ]


@pytest.fixture
def client():
    return Client(
        name="Sri Murugan Textiles",
        processes=[ClientProcess(process_name="Dyeing", rate=5.0)],
    )


@pytest.fixture
def employee():
    return Employee(id="emp-1", name="Ravi", daily_wage=500.0, rate_per_meter=2.0)


@pytest.fixture
def make_challan():
    def _make(number, process=None, mtr=100.0, pcs=10.0, **kwargs):
        fields = {
            "challan_number": number,
            "date": date(2024, 4, 1),
            "party_name": "Sri Murugan Textiles",
            "process": process if process is not None else ["DYEING"],
            "pcs": pcs,
            "mtr": mtr,
        }
        fields.update(kwargs)
        return DeliveryChallan(**fields)
    return _make


@pytest.fixture
def make_attendance():
    def _make(day, morning=AttendanceStatus.PRESENT, evening=AttendanceStatus.PRESENT,
              employee_id="emp-1", **kwargs):
        return AttendanceRecord(
            employee_id=employee_id,
            date=day,
            morning_status=morning,
            evening_status=evening,
            **kwargs
        )
    return _make


@pytest.fixture
def make_advance():
    def _make(day, amount, paid_amount=0.0, employee_id="emp-1"):
        return EmployeeAdvance(employee_id=employee_id, date=day, amount=amount, paid_amount=paid_amount)
    return _make
