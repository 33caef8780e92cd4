from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from textile_erp.database import AsyncSessionFactory
from textile_erp.exceptions import ValidationFailure
from textile_erp.models import (
    DeliveryChallan, Invoice, InvoiceCreateRequest, InvoiceDB, InvoiceDraftRequest,
    InvoiceDraftResponse, InvoiceItem, InvoiceItemDB, NumberSeriesConfig, NumberSeriesMode
)
from textile_erp.services.challan_service import (
    challan_service, invoiced_challan_numbers, is_available_for_invoicing
)
from textile_erp.services.invoice_aggregator import (
    aggregate_challans, build_invoice, compute_invoice_totals, invoice_challan_numbers
)
from textile_erp.services.master_data_service import master_data_service
from textile_erp.services.rate_service import RateBook

logger = logging.getLogger(__name__)


def format_document_number(config: NumberSeriesConfig) -> str:
    number = str(config.next_number)
    if config.pad_width:
        number = number.zfill(config.pad_width)
    return f"{config.prefix}{number}"


def advance_number_series(config: NumberSeriesConfig) -> NumberSeriesConfig:
    return config.model_copy(update={"next_number": config.next_number + 1})


def _money(value: float) -> Decimal:
    return Decimal(str(value))


def _to_invoice(record: InvoiceDB) -> Invoice:
    return Invoice(
        id=str(record.id),
        invoice_number=record.invoice_number,
        invoice_date=record.invoice_date,
        client_name=record.client_name,
        invoice_type=record.invoice_type,
        tax_type=record.tax_type,
        sub_total=float(record.sub_total or 0),
        total_cgst=float(record.total_cgst or 0),
        total_sgst=float(record.total_sgst or 0),
        total_tax_amount=float(record.total_tax_amount or 0),
        rounded_off=float(record.rounded_off or 0),
        total_amount=float(record.total_amount or 0),
        created_at=record.created_at,
        items=[
            InvoiceItem(
                id=str(item.id),
                challan_number=item.challan_number or "",
                challan_date=item.challan_date,
                process=item.process,
                description=item.description or "",
                design_no=item.design_no or "",
                hsn_sac=item.hsn_sac or "",
                pcs=float(item.pcs or 0),
                mtr=float(item.mtr or 0),
                rate=float(item.rate or 0),
                subtotal=float(item.subtotal or 0),
                cgst=float(item.cgst or 0),
                sgst=float(item.sgst or 0),
                amount=float(item.amount or 0),
            )
            for item in record.items
        ],
    )


class InvoiceService:
    """Drafts invoices from challans and persists finished invoices to PostgreSQL."""

    async def list_invoices(self, client_name: Optional[str] = None) -> List[Invoice]:
        async with AsyncSessionFactory() as session:
            query = select(InvoiceDB).options(selectinload(InvoiceDB.items))
            if client_name:
                query = query.where(InvoiceDB.client_name == client_name)
            query = query.order_by(InvoiceDB.invoice_date, InvoiceDB.invoice_number)
            result = await session.execute(query)
            return [_to_invoice(record) for record in result.scalars().all()]

    async def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        try:
            invoice_uuid = uuid.UUID(invoice_id)
        except ValueError:
            return None
        async with AsyncSessionFactory() as session:
            result = await session.execute(
                select(InvoiceDB).options(selectinload(InvoiceDB.items)).where(InvoiceDB.id == invoice_uuid)
            )
            record = result.scalar_one_or_none()
            return _to_invoice(record) if record else None

    async def get_available_challans(self, party_name: str, start_date=None, end_date=None) -> List[DeliveryChallan]:
        challans = await challan_service.get_challans_for_party(party_name, start_date, end_date)
        invoiced = invoiced_challan_numbers(await self.list_invoices())
        return [challan for challan in challans if is_available_for_invoicing(challan, invoiced)]

    async def draft_invoice(self, request: InvoiceDraftRequest) -> InvoiceDraftResponse:
        """Aggregate the selected challans into editable line items."""
        client = await master_data_service.get_client(request.client_id)
        if not client:
            raise ValidationFailure.single("client_id", "Client not found.")

        process_types = await master_data_service.get_process_types()
        challans = await challan_service.get_challans_by_ids(request.challan_ids) if request.challan_ids else []

        invoiced = invoiced_challan_numbers(await self.list_invoices())
        unavailable = [c.challan_number for c in challans if not is_available_for_invoicing(c, invoiced)]
        if unavailable:
            raise ValidationFailure.single(
                "challan_ids", f"Challans not available for invoicing: {', '.join(unavailable)}"
            )

        items = aggregate_challans(
            challans,
            RateBook(client, process_types),
            invoice_type=request.invoice_type,
            tax_type=request.tax_type,
            hsn_sac=request.hsn_sac,
        )

        config = await master_data_service.get_invoice_number_config()
        suggested = format_document_number(config) if config.mode == NumberSeriesMode.AUTO else None

        return InvoiceDraftResponse(
            client_name=client.name,
            invoice_type=request.invoice_type,
            tax_type=request.tax_type,
            suggested_invoice_number=suggested,
            items=items,
            **compute_invoice_totals(items).model_dump(),
        )

    async def create_invoice(self, request: InvoiceCreateRequest) -> Invoice:
        """Validate, total and persist an invoice. Nothing is written on failure."""
        config = await master_data_service.get_invoice_number_config()
        if config.mode == NumberSeriesMode.AUTO:
            invoice_number = format_document_number(config)
        else:
            invoice_number = request.invoice_number

        invoice = build_invoice(
            invoice_number,
            request.invoice_date,
            request.client_name,
            request.items,
            tax_type=request.tax_type,
            invoice_type=request.invoice_type,
        )

        invoiced = invoiced_challan_numbers(await self.list_invoices())
        already_billed = [number for number in invoice_challan_numbers(invoice) if number in invoiced]
        if already_billed:
            raise ValidationFailure.single(
                "items", f"Challans already invoiced: {', '.join(already_billed)}"
            )

        async with AsyncSessionFactory() as session:
            try:
                record = InvoiceDB(
                    id=uuid.uuid4(),
                    invoice_number=invoice.invoice_number,
                    invoice_date=invoice.invoice_date,
                    client_name=invoice.client_name,
                    invoice_type=invoice.invoice_type.value,
                    tax_type=invoice.tax_type.value,
                    sub_total=_money(invoice.sub_total),
                    total_cgst=_money(invoice.total_cgst),
                    total_sgst=_money(invoice.total_sgst),
                    total_tax_amount=_money(invoice.total_tax_amount),
                    rounded_off=_money(invoice.rounded_off),
                    total_amount=_money(invoice.total_amount),
                    created_at=datetime.utcnow(),
                )
                for position, item in enumerate(invoice.items):
                    record.items.append(InvoiceItemDB(
                        id=uuid.uuid4(),
                        position=position,
                        challan_number=item.challan_number,
                        challan_date=item.challan_date,
                        process=item.process,
                        description=item.description,
                        design_no=item.design_no,
                        hsn_sac=item.hsn_sac,
                        pcs=_money(item.pcs),
                        mtr=_money(item.mtr),
                        rate=_money(item.rate),
                        subtotal=_money(item.subtotal),
                        cgst=_money(item.cgst),
                        sgst=_money(item.sgst),
                        amount=_money(item.amount),
                    ))
                session.add(record)
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if "unique" in str(e).lower():
                    raise ValidationFailure.single(
                        "invoice_number", f"Invoice number '{invoice.invoice_number}' already exists"
                    )
                raise ValueError(f"Database constraint error: {str(e)}")
            except Exception as e:
                await session.rollback()
                logger.error(f"Error creating invoice {invoice.invoice_number}: {e}")
                raise

        if config.mode == NumberSeriesMode.AUTO:
            await master_data_service.save_invoice_number_config(advance_number_series(config))

        logger.info(
            f"🧾 Created invoice {invoice.invoice_number} for {invoice.client_name} "
            f"covering challans {', '.join(invoice_challan_numbers(invoice))}"
        )
        return invoice.model_copy(update={"id": str(record.id), "created_at": record.created_at})


invoice_service = InvoiceService()
