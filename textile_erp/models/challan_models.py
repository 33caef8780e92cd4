from datetime import date
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

# =====================================================
# DELIVERY CHALLAN MODELS
# =====================================================

class ChallanStatus(str, Enum):
    """Known challan statuses. Stored values are free strings."""
    NOT_DELIVERED = "Not Delivered"
    READY_TO_INVOICE = "Ready to Invoice"
    DELIVERED = "Delivered"  # legacy spelling of READY_TO_INVOICE
    REWORK = "Rework"

INVOICEABLE_STATUSES = frozenset({ChallanStatus.READY_TO_INVOICE.value, ChallanStatus.DELIVERED.value})


def split_process_names(names: List[str]) -> List[str]:
    """Flatten a process list, splitting legacy comma-joined entries."""
    result = []
    for name in names or []:
        for part in str(name).split(","):
            part = part.strip()
            if part:
                result.append(part)
    return result


class DeliveryChallan(BaseModel):
    """Model for a delivery challan stored in MongoDB."""
    id: Optional[str] = Field(None, alias="_id")
    challan_number: str
    date: date
    party_name: str
    party_dc_no: Optional[str] = None
    process: List[str] = Field(default_factory=list)
    split_process: List[str] = Field(default_factory=list)
    design_no: str = ""
    pcs: float = 0.0
    mtr: float = 0.0
    final_meter: Optional[float] = None
    width: Optional[float] = None
    status: str = ChallanStatus.READY_TO_INVOICE.value
    worker_name: Optional[str] = None
    working_unit: Optional[str] = None
    is_outsourcing: bool = False

    class Config:
        populate_by_name = True

    def billing_processes(self) -> List[str]:
        """Processes billed for this challan: split_process wins when it has entries."""
        split = split_process_names(self.split_process)
        if split:
            return split
        return split_process_names(self.process)

    def primary_process(self) -> Optional[str]:
        processes = self.billing_processes()
        return processes[0] if processes else None
