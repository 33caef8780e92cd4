from fastapi import APIRouter, HTTPException, Depends, Query
from typing import List, Optional
import logging

from textile_erp.exceptions import ValidationFailure
from textile_erp.models import Payslip, PayslipFinalizeResponse, PayslipRequest
from textile_erp.services.payslip_service import payslip_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payroll", tags=["Payroll"])


def get_payslip_service():
    return payslip_service


@router.post("/payslips/preview", response_model=Payslip)
async def preview_payslip(
    request: PayslipRequest,
    service=Depends(get_payslip_service)
):
    """Calculate a payslip for review without saving it."""
    try:
        return await service.generate_payslip(request)
    except (ValidationFailure, HTTPException):
        raise
    except Exception as e:
        logger.error(f"Error generating payslip: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to generate payslip: {str(e)}")


@router.post("/payslips", response_model=PayslipFinalizeResponse)
async def finalize_payslip(
    request: PayslipRequest,
    service=Depends(get_payslip_service)
):
    """Finalize salary: reject overlapping periods, save the payslip and book the deduction."""
    try:
        return await service.finalize_payslip(request)
    except (ValidationFailure, HTTPException):
        raise
    except Exception as e:
        logger.error(f"Error finalizing payslip: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to finalize payslip: {str(e)}")


@router.get("/payslips", response_model=List[Payslip])
async def get_payslips(
    employee_id: Optional[str] = Query(None),
    service=Depends(get_payslip_service)
):
    try:
        return await service.list_payslips(employee_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch payslips: {str(e)}")
