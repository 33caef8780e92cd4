from datetime import date
from fastapi import APIRouter, HTTPException, Depends, Query
from typing import List, Optional
import logging

from textile_erp.exceptions import ValidationFailure
from textile_erp.models import (
    DeliveryChallan, Invoice, InvoiceCreateRequest, InvoiceDraftRequest,
    InvoiceDraftResponse, InvoiceItem, LineItemRecalculateRequest
)
from textile_erp.services.invoice_aggregator import update_line_item
from textile_erp.services.invoice_service import invoice_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Invoices"])


def get_invoice_service():
    return invoice_service


@router.get("/challans/available", response_model=List[DeliveryChallan])
async def get_available_challans(
    party_name: str = Query(..., min_length=1),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    service=Depends(get_invoice_service)
):
    """Challans of a party that are ready to invoice and not yet on any invoice."""
    if start_date and end_date and start_date > end_date:
        raise ValidationFailure.single("start_date", "Start date cannot be after the end date.")
    try:
        return await service.get_available_challans(party_name, start_date, end_date)
    except Exception as e:
        logger.error(f"Error fetching available challans: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to fetch challans: {str(e)}")


@router.post("/invoices/draft", response_model=InvoiceDraftResponse)
async def draft_invoice(
    request: InvoiceDraftRequest,
    service=Depends(get_invoice_service)
):
    """Aggregate selected challans into editable invoice line items."""
    try:
        return await service.draft_invoice(request)
    except (ValidationFailure, HTTPException):
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error drafting invoice: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to draft invoice: {str(e)}")


@router.post("/invoices/items/recalculate", response_model=InvoiceItem)
async def recalculate_line_item(request: LineItemRecalculateRequest):
    """Apply a manual edit to one line item and return it with fresh amounts."""
    return update_line_item(request.item, request.changes, request.tax_type)


@router.post("/invoices", response_model=Invoice)
async def create_invoice(
    request: InvoiceCreateRequest,
    service=Depends(get_invoice_service)
):
    try:
        return await service.create_invoice(request)
    except (ValidationFailure, HTTPException):
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating invoice: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create invoice: {str(e)}")


@router.get("/invoices", response_model=List[Invoice])
async def get_invoices(
    client_name: Optional[str] = Query(None),
    service=Depends(get_invoice_service)
):
    try:
        return await service.list_invoices(client_name)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch invoices: {str(e)}")


@router.get("/invoices/{invoice_id}", response_model=Invoice)
async def get_invoice(
    invoice_id: str,
    service=Depends(get_invoice_service)
):
    invoice = await service.get_invoice(invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice
