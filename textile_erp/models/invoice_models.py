from enum import Enum
import uuid
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from sqlalchemy import Column, String, Text, Numeric, DateTime, Date, ForeignKey, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from textile_erp.database import Base

# =====================================================
# INVOICE MODELS
# =====================================================

class InvoiceType(str, Enum):
    """How challan lines are grouped on the invoice."""
    PROCESS = "process"
    DESIGN = "design"

class TaxType(str, Enum):
    GST = "GST"    # CGST + SGST
    NGST = "NGST"  # no tax

class NumberSeriesMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"

class InvoiceItem(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    challan_number: str = ""  # comma-joined challan numbers
    challan_date: Optional[date] = None
    process: str
    description: str = ""
    design_no: str = ""
    hsn_sac: str = ""
    pcs: float = 0.0
    mtr: float = 0.0
    rate: float = 0.0
    subtotal: float = 0.0
    cgst: float = 0.0
    sgst: float = 0.0
    amount: float = 0.0

    class Config:
        from_attributes = True

class InvoiceTotals(BaseModel):
    sub_total: float = 0.0
    total_cgst: float = 0.0
    total_sgst: float = 0.0
    total_tax_amount: float = 0.0
    rounded_off: float = 0.0
    total_amount: float = 0.0

class Invoice(InvoiceTotals):
    id: Optional[str] = None
    invoice_number: str
    invoice_date: date
    client_name: str
    invoice_type: InvoiceType = InvoiceType.PROCESS
    tax_type: TaxType = TaxType.GST
    items: List[InvoiceItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None

class InvoiceDraftRequest(BaseModel):
    """Selected challans for one client, to be turned into line items."""
    client_id: str
    challan_ids: List[str] = Field(default_factory=list)
    invoice_type: InvoiceType = InvoiceType.PROCESS
    tax_type: TaxType = TaxType.GST
    hsn_sac: Optional[str] = None

class InvoiceDraftResponse(InvoiceTotals):
    client_name: str
    invoice_type: InvoiceType
    tax_type: TaxType
    suggested_invoice_number: Optional[str] = None
    items: List[InvoiceItem]

class InvoiceCreateRequest(BaseModel):
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    client_name: str
    invoice_type: InvoiceType = InvoiceType.PROCESS
    tax_type: TaxType = TaxType.GST
    items: List[InvoiceItem] = Field(default_factory=list)

class InvoiceItemUpdate(BaseModel):
    """Manual edit of one line item before save."""
    rate: Optional[float] = None
    mtr: Optional[float] = None
    pcs: Optional[float] = None
    description: Optional[str] = None
    hsn_sac: Optional[str] = None

class LineItemRecalculateRequest(BaseModel):
    item: InvoiceItem
    changes: InvoiceItemUpdate
    tax_type: TaxType = TaxType.GST

class NumberSeriesConfig(BaseModel):
    mode: NumberSeriesMode = NumberSeriesMode.AUTO
    prefix: str = ""
    next_number: int = Field(1, ge=1)
    pad_width: Optional[int] = Field(None, ge=1)

class PaymentReceived(BaseModel):
    """Payment received from a client, stored in MongoDB."""
    id: Optional[str] = Field(None, alias="_id")
    client_name: str
    payment_date: date
    amount: float
    payment_mode: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        populate_by_name = True

# =====================================================
# POSTGRESQL TABLES
# =====================================================

class InvoiceDB(Base):
    __tablename__ = "invoices"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_number = Column(String(50), nullable=False, unique=True)
    invoice_date = Column(Date, nullable=False)
    client_name = Column(String(255), nullable=False)
    invoice_type = Column(String(20), nullable=False, default=InvoiceType.PROCESS.value)
    tax_type = Column(String(10), nullable=False, default=TaxType.GST.value)

    sub_total = Column(Numeric(15, 2), nullable=False, default=0)
    total_cgst = Column(Numeric(15, 2), default=0)
    total_sgst = Column(Numeric(15, 2), default=0)
    total_tax_amount = Column(Numeric(15, 2), default=0)
    rounded_off = Column(Numeric(15, 2), default=0)
    total_amount = Column(Numeric(15, 2), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    items = relationship("InvoiceItemDB", back_populates="invoice",
                         order_by="InvoiceItemDB.position",
                         cascade="all, delete-orphan")

class InvoiceItemDB(Base):
    __tablename__ = "invoice_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_id = Column(UUID(as_uuid=True), ForeignKey('invoices.id'), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    challan_number = Column(Text, nullable=False, default="")  # comma-joined
    challan_date = Column(Date)
    process = Column(String(255), nullable=False)
    description = Column(String(500))
    design_no = Column(String(255))
    hsn_sac = Column(String(10))
    pcs = Column(Numeric(15, 3), default=0)
    mtr = Column(Numeric(15, 3), default=0)
    rate = Column(Numeric(15, 2), nullable=False)
    subtotal = Column(Numeric(15, 2), nullable=False)
    cgst = Column(Numeric(15, 2), default=0)
    sgst = Column(Numeric(15, 2), default=0)
    amount = Column(Numeric(15, 2), nullable=False)

    invoice = relationship("InvoiceDB", back_populates="items")
