"""
Invoice Aggregator - turn delivery challans into invoice line items and totals.

Grouping rules:
    - Each challan is expanded into its billing processes (split_process when
      present, otherwise process) and every process is priced on its own.
    - Items merge on (process, rate) in process mode and on
      (process, rate, design_no) in design mode.
    - A challan listing several processes adds its full meterage to every one
      of its process items. Billing is per process per full meterage, the
      meters are not pro-rated across processes.
    - Process names group exactly as written on the challan. Rate lookup
      ignores case, so "Dyeing" and "DYEING" at the same rate stay two lines.

Amounts are computed in Decimal and only converted to float on the models.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple

from textile_erp.config import settings
from textile_erp.exceptions import ValidationFailure
from textile_erp.models import (
    DeliveryChallan, Invoice, InvoiceItem, InvoiceItemUpdate, InvoiceTotals,
    InvoiceType, TaxType
)
from textile_erp.services.challan_service import parse_challan_numbers
from textile_erp.services.rate_service import RateBook

logger = logging.getLogger(__name__)

AggregationKey = Tuple[str, float, Optional[str]]


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value or 0))


def round_currency(value) -> int:
    """Round to the nearest whole currency unit, halves away from zero."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def describe_line(process: str, design_no: str, invoice_type: InvoiceType) -> str:
    if invoice_type == InvoiceType.DESIGN:
        return f"Design: {design_no} ({process})"
    return process


def compute_item_amounts(
    item: InvoiceItem,
    tax_type: TaxType,
    cgst_rate: float = settings.cgst_rate,
    sgst_rate: float = settings.sgst_rate,
) -> InvoiceItem:
    """Return a copy of the item with subtotal, taxes and amount recomputed."""
    subtotal = to_decimal(item.mtr) * to_decimal(item.rate)
    if tax_type == TaxType.GST:
        cgst = subtotal * to_decimal(cgst_rate)
        sgst = subtotal * to_decimal(sgst_rate)
    else:
        cgst = Decimal("0")
        sgst = Decimal("0")
    return item.model_copy(update={
        "subtotal": float(subtotal),
        "cgst": float(cgst),
        "sgst": float(sgst),
        "amount": float(subtotal + cgst + sgst),
    })


def aggregate_challans(
    challans: Iterable[DeliveryChallan],
    rate_book: RateBook,
    invoice_type: InvoiceType = InvoiceType.PROCESS,
    tax_type: TaxType = TaxType.GST,
    hsn_sac: Optional[str] = None,
) -> List[InvoiceItem]:
    """Group challan-process occurrences into priced invoice line items."""
    hsn_sac = hsn_sac or settings.default_hsn_sac
    groups: Dict[AggregationKey, dict] = {}

    for challan in challans:
        for process in challan.billing_processes():
            rate = rate_book.resolve(process)
            design_key = challan.design_no if invoice_type == InvoiceType.DESIGN else None
            key = (process, rate, design_key)

            group = groups.get(key)
            if group is None:
                group = {
                    "id": uuid.uuid4().hex,
                    "process": process,
                    "rate": rate,
                    "pcs": 0.0,
                    "mtr": 0.0,
                    "challan_numbers": [],
                    "challan_dates": [],
                    "design_nos": [],
                }
                groups[key] = group

            group["pcs"] += challan.pcs
            group["mtr"] += challan.mtr
            if challan.challan_number not in group["challan_numbers"]:
                group["challan_numbers"].append(challan.challan_number)
            group["challan_dates"].append(challan.date)
            if challan.design_no and challan.design_no not in group["design_nos"]:
                group["design_nos"].append(challan.design_no)

    items = []
    for (process, _rate, design_key), group in groups.items():
        design_no = design_key if invoice_type == InvoiceType.DESIGN else ", ".join(sorted(group["design_nos"]))
        item = InvoiceItem(
            id=group["id"],
            challan_number=", ".join(group["challan_numbers"]),
            challan_date=max(group["challan_dates"]),
            process=process,
            description=describe_line(process, design_key or "", invoice_type),
            design_no=design_no or "",
            hsn_sac=hsn_sac,
            pcs=group["pcs"],
            mtr=group["mtr"],
            rate=group["rate"],
        )
        items.append(compute_item_amounts(item, tax_type))

    logger.info(f"Aggregated challans into {len(items)} invoice items ({invoice_type.value} mode)")
    return items


def update_line_item(item: InvoiceItem, changes: InvoiceItemUpdate, tax_type: TaxType) -> InvoiceItem:
    """Apply a manual edit to one line item and recompute only that item."""
    update = {}
    for field in ("rate", "mtr", "pcs"):
        value = getattr(changes, field)
        if value is not None:
            update[field] = max(0.0, float(value))
    if changes.description is not None:
        update["description"] = changes.description
    if changes.hsn_sac is not None:
        update["hsn_sac"] = changes.hsn_sac.strip()
    return compute_item_amounts(item.model_copy(update=update), tax_type)


def compute_invoice_totals(items: Iterable[InvoiceItem]) -> InvoiceTotals:
    sub_total = Decimal("0")
    total_cgst = Decimal("0")
    total_sgst = Decimal("0")
    for item in items:
        sub_total += to_decimal(item.subtotal)
        total_cgst += to_decimal(item.cgst)
        total_sgst += to_decimal(item.sgst)

    total_tax_amount = total_cgst + total_sgst
    gross_total = sub_total + total_tax_amount
    total_amount = round_currency(gross_total)

    return InvoiceTotals(
        sub_total=float(sub_total),
        total_cgst=float(total_cgst),
        total_sgst=float(total_sgst),
        total_tax_amount=float(total_tax_amount),
        rounded_off=float(total_amount - gross_total),
        total_amount=total_amount,
    )


def validate_invoice(
    invoice_number: Optional[str],
    invoice_date: Optional[date],
    items: List[InvoiceItem],
) -> None:
    errors = {}
    if not invoice_number or not invoice_number.strip():
        errors["invoice_number"] = "Invoice Number is required."
    if not invoice_date:
        errors["invoice_date"] = "Invoice date is required."
    if not items:
        errors["items"] = "At least one item is required for the invoice."
    for item in items:
        if item.rate <= 0:
            errors[f"rate_{item.id}"] = f"Rate must be positive for '{item.description or item.process}'."
    if errors:
        raise ValidationFailure(errors)


def build_invoice(
    invoice_number: Optional[str],
    invoice_date: Optional[date],
    client_name: str,
    items: List[InvoiceItem],
    tax_type: TaxType = TaxType.GST,
    invoice_type: InvoiceType = InvoiceType.PROCESS,
) -> Invoice:
    """Save-time pass: validate, recalculate every item, then total the invoice."""
    validate_invoice(invoice_number, invoice_date, items)

    items = [compute_item_amounts(item, tax_type) for item in items]
    totals = compute_invoice_totals(items)

    return Invoice(
        invoice_number=invoice_number.strip(),
        invoice_date=invoice_date,
        client_name=client_name,
        invoice_type=invoice_type,
        tax_type=tax_type,
        items=items,
        **totals.model_dump(),
    )


def invoice_challan_numbers(invoice: Invoice) -> List[str]:
    numbers = []
    for item in invoice.items:
        for number in parse_challan_numbers(item.challan_number):
            if number not in numbers:
                numbers.append(number)
    return numbers
