from typing import Iterable, Optional
import logging

from textile_erp.models import (
    ChallanStatus, Client, ClientStatement, DashboardSummary, DeliveryChallan,
    EmployeeAdvance, Invoice, PaymentReceived, ProcessType, StatementChallanLine,
    StatementInvoiceLine
)
from textile_erp.services.challan_service import challan_service, filter_available_challans
from textile_erp.services.invoice_service import invoice_service
from textile_erp.services.master_data_service import master_data_service
from textile_erp.services.rate_service import resolve_statement_rate

logger = logging.getLogger(__name__)


def build_client_statement(
    client: Client,
    invoices: Iterable[Invoice],
    challans: Iterable[DeliveryChallan],
    payments: Iterable[PaymentReceived],
    process_types: Iterable[ProcessType],
) -> ClientStatement:
    """Statement of account; each challan is priced from its first process only."""
    process_types = list(process_types)
    statement = ClientStatement(client_name=client.name)

    for invoice in sorted(invoices, key=lambda inv: (inv.invoice_date, inv.invoice_number)):
        statement.invoices.append(StatementInvoiceLine(
            invoice_number=invoice.invoice_number,
            invoice_date=invoice.invoice_date,
            total_amount=invoice.total_amount,
        ))
        statement.total_invoiced += invoice.total_amount

    for challan in sorted(challans, key=lambda c: (c.date, c.challan_number)):
        rate = resolve_statement_rate(challan, client, process_types)
        statement.challans.append(StatementChallanLine(
            challan_number=challan.challan_number,
            date=challan.date,
            process=", ".join(challan.billing_processes()),
            design_no=challan.design_no,
            pcs=challan.pcs,
            mtr=challan.mtr,
            rate=rate,
            amount=challan.mtr * rate,
            status=challan.status,
        ))

    statement.total_paid = sum(payment.amount for payment in payments)
    statement.balance_due = statement.total_invoiced - statement.total_paid
    return statement


def build_dashboard_summary(
    invoices: Iterable[Invoice],
    payments: Iterable[PaymentReceived],
    challans: Iterable[DeliveryChallan],
    advances: Iterable[EmployeeAdvance],
) -> DashboardSummary:
    invoices = list(invoices)
    challans = list(challans)

    total_revenue = sum(invoice.total_amount for invoice in invoices)
    total_payments = sum(payment.amount for payment in payments)
    ready = [c for c in challans if c.status == ChallanStatus.READY_TO_INVOICE.value]

    return DashboardSummary(
        total_revenue=total_revenue,
        total_payments=total_payments,
        amount_due=total_revenue - total_payments,
        invoice_count=len(invoices),
        ready_to_invoice_count=len(filter_available_challans(challans, invoices)),
        pending_delivery_count=sum(1 for c in challans if c.status == ChallanStatus.NOT_DELIVERED.value),
        total_meters_processed=sum(c.mtr for c in ready),
        outstanding_advances=sum(adv.outstanding for adv in advances),
    )


class StatementService:
    async def get_client_statement(self, client_id: str) -> Optional[ClientStatement]:
        client = await master_data_service.get_client(client_id)
        if not client:
            return None
        invoices = await invoice_service.list_invoices(client.name)
        challans = await challan_service.get_challans_for_party(client.name)
        payments = await master_data_service.get_payments(client.name)
        process_types = await master_data_service.get_process_types()
        logger.info(f"Building statement for {client.name}: {len(invoices)} invoices, {len(challans)} challans")
        return build_client_statement(client, invoices, challans, payments, process_types)

    async def get_dashboard_summary(self) -> DashboardSummary:
        invoices = await invoice_service.list_invoices()
        payments = await master_data_service.get_payments()
        challans = await challan_service.get_all_challans()
        advances = await master_data_service.get_advances()
        return build_dashboard_summary(invoices, payments, challans, advances)


statement_service = StatementService()
