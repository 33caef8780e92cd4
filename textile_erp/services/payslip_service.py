from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import logging
import uuid

from sqlalchemy import select

from textile_erp.database import AsyncSessionFactory
from textile_erp.exceptions import ValidationFailure
from textile_erp.models import Payslip, PayslipDB, PayslipFinalizeResponse, PayslipRequest
from textile_erp.services.attendance_service import attendance_service
from textile_erp.services.master_data_service import master_data_service
from textile_erp.services.payroll_calculator import (
    calculate_payslip, ensure_no_overlap, format_period_date, validate_pay_period
)

logger = logging.getLogger(__name__)


def _to_payslip(record: PayslipDB) -> Payslip:
    return Payslip(
        id=str(record.id),
        employee_id=record.employee_id,
        employee_name=record.employee_name,
        payslip_date=record.payslip_date,
        pay_period_start=record.pay_period_start,
        pay_period_end=record.pay_period_end,
        total_working_days=float(record.total_working_days or 0),
        ot_hours=float(record.ot_hours or 0),
        total_meters=float(record.total_meters or 0),
        wage_earnings=float(record.wage_earnings or 0),
        production_earnings=float(record.production_earnings or 0),
        gross_salary=float(record.gross_salary or 0),
        advance_deduction=float(record.advance_deduction or 0),
        net_salary=float(record.net_salary or 0),
        total_outstanding_advance=float(record.total_outstanding_advance or 0),
    )


class PayslipService:
    """Builds payslips from attendance and advances; finalized payslips are append-only."""

    async def list_payslips(self, employee_id: Optional[str] = None) -> List[Payslip]:
        async with AsyncSessionFactory() as session:
            query = select(PayslipDB)
            if employee_id:
                query = query.where(PayslipDB.employee_id == employee_id)
            query = query.order_by(PayslipDB.pay_period_start)
            result = await session.execute(query)
            return [_to_payslip(record) for record in result.scalars().all()]

    async def generate_payslip(self, request: PayslipRequest) -> Payslip:
        """Calculate a payslip without persisting anything."""
        employee = await master_data_service.get_employee(request.employee_id) if request.employee_id else None
        validate_pay_period(employee, request.start_date, request.end_date)

        attendance = await attendance_service.get_records(request.start_date, request.end_date, employee.id)
        advances = await master_data_service.get_advances(employee.id)

        return calculate_payslip(
            employee,
            request.start_date,
            request.end_date,
            attendance,
            advances,
            deduction_amount=request.deduction_amount,
            payslip_date=request.payslip_date,
        )

    async def finalize_payslip(self, request: PayslipRequest) -> PayslipFinalizeResponse:
        """Persist a payslip after re-checking overlap against the stored payslips."""
        payslip = await self.generate_payslip(request)

        existing = await self.list_payslips(payslip.employee_id)
        ensure_no_overlap(existing, payslip.employee_id, payslip.pay_period_start, payslip.pay_period_end)

        async with AsyncSessionFactory() as session:
            try:
                record = PayslipDB(
                    id=uuid.uuid4(),
                    employee_id=payslip.employee_id,
                    employee_name=payslip.employee_name,
                    payslip_date=payslip.payslip_date,
                    pay_period_start=payslip.pay_period_start,
                    pay_period_end=payslip.pay_period_end,
                    total_working_days=Decimal(str(payslip.total_working_days)),
                    ot_hours=Decimal(str(payslip.ot_hours)),
                    total_meters=Decimal(str(payslip.total_meters)),
                    wage_earnings=Decimal(str(payslip.wage_earnings)),
                    production_earnings=Decimal(str(payslip.production_earnings)),
                    gross_salary=Decimal(str(payslip.gross_salary)),
                    advance_deduction=Decimal(str(payslip.advance_deduction)),
                    net_salary=Decimal(str(payslip.net_salary)),
                    total_outstanding_advance=Decimal(str(payslip.total_outstanding_advance)),
                    created_at=datetime.utcnow(),
                )
                session.add(record)
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error(f"Error saving payslip for {payslip.employee_id}: {e}")
                raise

        payslip = payslip.model_copy(update={"id": str(record.id)})
        logger.info(
            f"✅ Finalized payslip {payslip.id} for {payslip.employee_name} "
            f"({payslip.pay_period_start} - {payslip.pay_period_end})"
        )

        warnings = []
        if payslip.advance_deduction > 0:
            notes = (
                f"Paid via salary deduction for period "
                f"{format_period_date(payslip.pay_period_start)} - {format_period_date(payslip.pay_period_end)}"
            )
            try:
                await master_data_service.record_advance_repayment(
                    payslip.employee_id, payslip.payslip_date, payslip.advance_deduction, notes
                )
            except Exception as e:
                logger.error(f"❌ Payslip {payslip.id} saved but advance repayment failed: {e}")
                warnings.append(
                    "Payslip was saved, but the advance deduction could not be recorded. "
                    "Please check employee advances."
                )

        return PayslipFinalizeResponse(payslip=payslip, warnings=warnings)


payslip_service = PayslipService()
