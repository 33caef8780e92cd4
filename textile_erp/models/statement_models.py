from datetime import date
from typing import List
from pydantic import BaseModel, Field

# =====================================================
# STATEMENT & DASHBOARD MODELS
# =====================================================

class StatementInvoiceLine(BaseModel):
    invoice_number: str
    invoice_date: date
    total_amount: float

class StatementChallanLine(BaseModel):
    challan_number: str
    date: date
    process: str
    design_no: str = ""
    pcs: float = 0.0
    mtr: float = 0.0
    rate: float = 0.0
    amount: float = 0.0
    status: str

class ClientStatement(BaseModel):
    client_name: str
    invoices: List[StatementInvoiceLine] = Field(default_factory=list)
    challans: List[StatementChallanLine] = Field(default_factory=list)
    total_invoiced: float = 0.0
    total_paid: float = 0.0
    balance_due: float = 0.0

class DashboardSummary(BaseModel):
    total_revenue: float = 0.0
    total_payments: float = 0.0
    amount_due: float = 0.0
    invoice_count: int = 0
    ready_to_invoice_count: int = 0
    pending_delivery_count: int = 0
    total_meters_processed: float = 0.0
    outstanding_advances: float = 0.0
